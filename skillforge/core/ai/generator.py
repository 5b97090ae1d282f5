"""
Text generation backend adapters.

``TextGenerator`` is the narrow seam the rest of the service talks to: given a
model identifier and a prompt it returns raw text, or raises whatever the
backend raised. Retry, fallback and decoding live above this seam
(``ResilientInvoker`` and ``GenerationClient``).

``GeminiTextGenerator`` is the production adapter over ``google-genai``'s
async client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, Tuple

from google import genai
from google.genai import types

from skillforge.core.config.config import DEFAULT_GEMINI_MODELS, Config
from skillforge.core.exceptions import ConfigurationError, MissingConfigurationError
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)

CHAT_ROLES = ("user", "model")


@dataclass(frozen=True)
class ChatTurn:
    """One prior message in a chat conversation."""

    role: str
    text: str

    def __post_init__(self) -> None:
        if self.role not in CHAT_ROLES:
            raise ValueError(f"role must be one of {CHAT_ROLES}, got {self.role!r}")


class TextGenerator(Protocol):
    async def generate(
        self,
        model: str,
        prompt: str,
        *,
        schema: Any = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        ...

    async def chat(
        self,
        model: str,
        history: Sequence[ChatTurn],
        message: str,
        *,
        system_instruction: Optional[str] = None,
    ) -> str:
        ...


@dataclass(frozen=True)
class GeminiSettings:
    """
    Connection settings for the Gemini backend, validated at construction.

    Raises
    ------
    MissingConfigurationError
        If ``api_key`` is empty.
    ConfigurationError
        If ``models`` is empty.
    """

    api_key: str
    models: Tuple[str, ...] = tuple(DEFAULT_GEMINI_MODELS)

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise MissingConfigurationError("GEMINI_API_KEY")
        if not self.models:
            raise ConfigurationError("GEMINI_MODELS", "at least one model identifier is required")

    @classmethod
    def from_config(cls) -> GeminiSettings:
        return cls(api_key=Config.GEMINI_API_KEY or "", models=tuple(Config.GEMINI_MODELS))


class GeminiTextGenerator:
    """
    ``TextGenerator`` backed by ``google.genai.Client``.

    Structured requests set ``response_mime_type="application/json"`` and pass
    the schema through as ``response_schema``; the SDK accepts pydantic model
    types and ``list[Model]`` directly.
    """

    def __init__(self, settings: GeminiSettings, client: Optional[genai.Client] = None) -> None:
        self._settings = settings
        self._client = client or genai.Client(api_key=settings.api_key)

    @property
    def settings(self) -> GeminiSettings:
        return self._settings

    async def generate(
        self,
        model: str,
        prompt: str,
        *,
        schema: Any = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        config: Optional[types.GenerateContentConfig] = None
        if schema is not None or system_instruction:
            config = types.GenerateContentConfig(
                response_mime_type="application/json" if schema is not None else None,
                response_schema=schema,
                system_instruction=system_instruction,
            )

        response = await self._client.aio.models.generate_content(
            model=model,
            contents=prompt,
            config=config,
        )
        return response.text or ""

    async def chat(
        self,
        model: str,
        history: Sequence[ChatTurn],
        message: str,
        *,
        system_instruction: Optional[str] = None,
    ) -> str:
        session = self._client.aio.chats.create(
            model=model,
            config=types.GenerateContentConfig(system_instruction=system_instruction)
            if system_instruction
            else None,
            history=[
                types.Content(role=turn.role, parts=[types.Part.from_text(text=turn.text)])
                for turn in history
            ],
        )
        response = await session.send_message(message)
        return response.text or ""
