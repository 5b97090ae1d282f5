"""
Resilient Invocation - retry, backoff and model fallback for generation calls.

Purpose
-------
Execute one remote generation operation against an ordered list of models,
retrying transient failures with exponential backoff, falling back to the next
model once a model's attempts are spent, and remembering which model worked.

Algorithm
---------
1. Read the selector's current index once; that is the starting model.
2. For each model in one full cycle from the start:
   - up to ``max_attempts_per_model`` attempts;
   - success on a model other than the starting one promotes it;
   - a transient failure sleeps ``base_delay_ms * 2**attempt`` unless it was
     the last attempt for this model, in which case the next model is tried;
   - a fatal failure propagates immediately.
3. If every combination failed transiently, raise ``AllModelsExhaustedError``
   carrying the last transient failure.

Worst case is ``len(models) * max_attempts_per_model`` attempts.

Deadlines and cancellation
--------------------------
An optional overall deadline bounds both the remote-call boundary and every
backoff sleep; exceeding it raises ``GenerationDeadlineExceeded``. Task
cancellation is never caught and propagates out of sleeps and calls as-is.

Usage Example
-------------
>>> invoker = ResilientInvoker(ModelSelector(Config.GEMINI_MODELS), RetryPolicy.from_config())
>>> text = await invoker.invoke(
...     lambda model: generator.generate(model, prompt),
...     operation_name="roadmap.generate_structure",
... )
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

from skillforge.core.ai.classifier import FailureKind, classify_error
from skillforge.core.ai.metrics import GenerationMetrics
from skillforge.core.ai.model_selector import ModelSelector
from skillforge.core.ai.retry_policy import RetryPolicy
from skillforge.core.exceptions import (
    AllModelsExhaustedError,
    FatalGenerationError,
    GenerationDeadlineExceeded,
    TransientGenerationError,
)
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]

_USE_POLICY = object()


class ResilientInvoker:
    """
    Run generation operations with retry, backoff and sticky model fallback.

    Parameters
    ----------
    selector:
        Owner of the model list and the sticky index. Shared by every client
        that should benefit from the same health discovery.
    policy:
        Attempts per model, backoff base and optional deadline.
    sleep:
        Awaitable sleep taking seconds. Injected by tests to record delays.
    clock:
        Monotonic clock in seconds, used for deadline accounting.
    metrics:
        Optional counters; a private instance is created if omitted.
    """

    def __init__(
        self,
        selector: ModelSelector,
        policy: RetryPolicy,
        *,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = time.monotonic,
        metrics: Optional[GenerationMetrics] = None,
    ) -> None:
        self._selector = selector
        self._policy = policy
        self._sleep = sleep
        self._clock = clock
        self.metrics = metrics or GenerationMetrics()

    @property
    def selector(self) -> ModelSelector:
        return self._selector

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def invoke(
        self,
        operation: Callable[[str], Awaitable[T]],
        *,
        operation_name: str,
        deadline_seconds: Optional[float] | object = _USE_POLICY,
    ) -> T:
        """
        Execute ``operation(model)`` with retry and fallback semantics.

        Parameters
        ----------
        operation:
            Async callable receiving the model identifier to use.
        operation_name:
            Stable identifier for logs (e.g. "learning.generate_quiz").
        deadline_seconds:
            Overall budget for this call. Defaults to the policy's deadline;
            pass None to disable for this call.

        Returns
        -------
        T
            The operation's result.

        Raises
        ------
        FatalGenerationError
            On the first non-transient failure. Errors that are not already
            generation errors are wrapped and chained.
        AllModelsExhaustedError
            When every model/attempt combination failed transiently.
        GenerationDeadlineExceeded
            When the overall deadline ran out.
        """
        deadline = (
            self._policy.deadline_seconds if deadline_seconds is _USE_POLICY else deadline_seconds
        )
        expires_at = self._clock() + deadline if deadline else None

        start_index = self._selector.current_index
        candidates = self._selector.candidates(start_index)
        max_attempts = self._policy.max_attempts_per_model

        attempts = 0
        last_error: Optional[TransientGenerationError] = None

        for offset, position, model in candidates:
            if offset > 0:
                self.metrics.record_fallback()
                logger.info(
                    "Model exhausted, falling back to next model",
                    extra={
                        "operation": operation_name,
                        "previous_model": candidates[offset - 1][2],
                        "model": model,
                    },
                )

            for attempt in range(max_attempts):
                attempts += 1
                self.metrics.record_attempt(model)

                try:
                    result = await self._call(operation, model, expires_at, deadline, attempts)
                except GenerationDeadlineExceeded:
                    self.metrics.record_deadline_exceeded()
                    logger.warning(
                        "Generation deadline exceeded during remote call",
                        extra={"operation": operation_name, "model": model, "attempts": attempts},
                    )
                    raise
                except Exception as exc:
                    kind = classify_error(exc)
                    transient = kind is FailureKind.TRANSIENT
                    will_retry = transient and attempt < max_attempts - 1
                    self.metrics.record_failure(transient=transient)

                    logger.warning(
                        "Generation attempt failed",
                        extra={
                            "operation": operation_name,
                            "model": model,
                            "attempt": attempt + 1,
                            "max_attempts": max_attempts,
                            "classification": kind.value,
                            "will_retry": will_retry,
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                        },
                    )

                    if not transient:
                        if isinstance(exc, FatalGenerationError):
                            raise
                        raise FatalGenerationError(
                            f"Generation failed for {operation_name}: {exc}",
                            model=model,
                            original_error=exc,
                        ) from exc

                    last_error = (
                        exc
                        if isinstance(exc, TransientGenerationError)
                        else TransientGenerationError(model, exc)
                    )
                    if last_error is not exc:
                        last_error.__cause__ = exc

                    if not will_retry:
                        break

                    delay_ms = self._policy.delay_ms(attempt)
                    self._check_sleep_budget(expires_at, delay_ms, deadline, attempts, operation_name)
                    self.metrics.record_backoff(delay_ms)
                    logger.debug(
                        "Backing off before retry",
                        extra={
                            "operation": operation_name,
                            "model": model,
                            "attempt": attempt + 1,
                            "backoff_ms": delay_ms,
                        },
                    )
                    await self._sleep(delay_ms / 1000.0)
                    continue

                promoted = False
                if offset > 0:
                    promoted = self._selector.promote(position)
                self.metrics.record_success(promoted=promoted)

                logger.debug(
                    "Generation succeeded",
                    extra={
                        "operation": operation_name,
                        "model": model,
                        "attempts": attempts,
                        "promoted": promoted,
                    },
                )
                return result

        self.metrics.record_exhausted()
        logger.error(
            "All models exhausted",
            extra={
                "operation": operation_name,
                "models": list(self._selector.models),
                "attempts": attempts,
                "last_error": str(last_error) if last_error else None,
            },
        )
        raise AllModelsExhaustedError(
            [model for _, _, model in candidates], attempts, last_error
        ) from last_error

    async def _call(
        self,
        operation: Callable[[str], Awaitable[T]],
        model: str,
        expires_at: Optional[float],
        deadline: Optional[float],
        attempts: int,
    ) -> T:
        if expires_at is None:
            return await operation(model)

        remaining = expires_at - self._clock()
        if remaining <= 0:
            raise GenerationDeadlineExceeded(deadline or 0.0, attempts - 1)

        try:
            return await asyncio.wait_for(operation(model), timeout=remaining)
        except asyncio.TimeoutError:
            if self._clock() >= expires_at:
                raise GenerationDeadlineExceeded(deadline or 0.0, attempts) from None
            raise

    def _check_sleep_budget(
        self,
        expires_at: Optional[float],
        delay_ms: int,
        deadline: Optional[float],
        attempts: int,
        operation_name: str,
    ) -> None:
        if expires_at is None:
            return
        if self._clock() + delay_ms / 1000.0 >= expires_at:
            self.metrics.record_deadline_exceeded()
            logger.warning(
                "Generation deadline would be exceeded by backoff",
                extra={"operation": operation_name, "backoff_ms": delay_ms, "attempts": attempts},
            )
            raise GenerationDeadlineExceeded(deadline or 0.0, attempts)
