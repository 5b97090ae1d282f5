"""Generation stack: backend adapter, retry/fallback invoker and typed client."""

from skillforge.core.ai.classifier import FailureKind, classify_error, is_transient
from skillforge.core.ai.client import GenerationClient
from skillforge.core.ai.generator import ChatTurn, GeminiSettings, GeminiTextGenerator, TextGenerator
from skillforge.core.ai.invoker import ResilientInvoker
from skillforge.core.ai.metrics import GenerationMetrics
from skillforge.core.ai.model_selector import ModelSelector
from skillforge.core.ai.retry_policy import RetryPolicy

__all__ = [
    "ChatTurn",
    "FailureKind",
    "GeminiSettings",
    "GeminiTextGenerator",
    "GenerationClient",
    "GenerationMetrics",
    "ModelSelector",
    "ResilientInvoker",
    "RetryPolicy",
    "TextGenerator",
    "classify_error",
    "is_transient",
]
