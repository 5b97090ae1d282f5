"""
GenerationClient - typed generation calls with retry and model fallback.

Composes a ``TextGenerator`` with a ``ResilientInvoker`` so every call made
through it gets backoff, fallback and sticky model selection. Structured
responses are decoded with pydantic ``TypeAdapter`` into whatever shape the
caller asks for (a model, ``list[Model]``, a plain type).

Decode failures are raised as ``FatalGenerationError`` inside the invoked
operation, so a malformed response is never retried.

Usage Example
-------------
>>> modules = await client.generate_structured(
...     prompt, list[ModuleOutline], operation_name="learning.roadmap_structure"
... )
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Type, TypeVar, get_origin

from pydantic import TypeAdapter, ValidationError

from skillforge.core.ai.generator import ChatTurn, TextGenerator
from skillforge.core.ai.invoker import ResilientInvoker
from skillforge.core.exceptions import FatalGenerationError
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_EMPTY_JSON_BY_ORIGIN = {
    list: "[]",
    tuple: "[]",
    set: "[]",
    frozenset: "[]",
    dict: "{}",
}


def _empty_json_for(schema: Any) -> Optional[str]:
    origin = get_origin(schema) or schema
    return _EMPTY_JSON_BY_ORIGIN.get(origin)


class GenerationClient:
    """Typed facade over a text generator with resilient invocation."""

    def __init__(self, generator: TextGenerator, invoker: ResilientInvoker) -> None:
        self._generator = generator
        self._invoker = invoker

    @property
    def invoker(self) -> ResilientInvoker:
        return self._invoker

    async def generate_text(
        self,
        prompt: str,
        *,
        operation_name: str,
        system_instruction: Optional[str] = None,
    ) -> str:
        async def operation(model: str) -> str:
            return await self._generator.generate(
                model, prompt, system_instruction=system_instruction
            )

        return await self._invoker.invoke(operation, operation_name=operation_name)

    async def generate_structured(
        self,
        prompt: str,
        schema: Type[T],
        *,
        operation_name: str,
        system_instruction: Optional[str] = None,
    ) -> T:
        """
        Generate JSON constrained to ``schema`` and decode it.

        Empty responses decode as the schema's empty value where it has one
        (``[]`` for list schemas, ``{}`` for dict schemas).

        Raises
        ------
        FatalGenerationError
            If the response cannot be decoded into ``schema``.
        AllModelsExhaustedError, GenerationDeadlineExceeded
            From the invoker.
        """
        adapter: TypeAdapter[T] = TypeAdapter(schema)
        empty = _empty_json_for(schema)

        async def operation(model: str) -> T:
            text = await self._generator.generate(
                model, prompt, schema=schema, system_instruction=system_instruction
            )
            payload = text.strip() if text else ""
            if not payload:
                if empty is None:
                    raise FatalGenerationError(
                        f"Empty response for {operation_name}", model=model
                    )
                payload = empty

            try:
                return adapter.validate_json(payload)
            except ValidationError as exc:
                logger.warning(
                    "Structured response failed validation",
                    extra={
                        "operation": operation_name,
                        "model": model,
                        "error_count": exc.error_count(),
                    },
                )
                raise FatalGenerationError(
                    f"Malformed response for {operation_name}",
                    model=model,
                    original_error=exc,
                ) from exc

        return await self._invoker.invoke(operation, operation_name=operation_name)

    async def chat(
        self,
        history: Sequence[ChatTurn],
        message: str,
        *,
        system_instruction: Optional[str] = None,
        operation_name: str = "ai.chat",
    ) -> str:
        async def operation(model: str) -> str:
            return await self._generator.chat(
                model, history, message, system_instruction=system_instruction
            )

        return await self._invoker.invoke(operation, operation_name=operation_name)
