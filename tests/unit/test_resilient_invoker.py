"""
Unit Tests for ResilientInvoker
===============================

Test Coverage
-------------
- Retry with exponential backoff on one model
- Fallback to the next model and sticky promotion
- Fatal errors: single attempt, no backoff, chained cause
- Exhaustion after every model/attempt combination
- Overall deadline across calls and sleeps
- Cancellation propagates untouched

Testing Strategy
----------------
- Scripted operations instead of a backend
- Recording sleep, so no test waits for real
- AAA pattern (Arrange, Act, Assert)
"""

import asyncio

import pytest

from skillforge.core.ai.invoker import ResilientInvoker
from skillforge.core.ai.model_selector import ModelSelector
from skillforge.core.ai.retry_policy import RetryPolicy
from skillforge.core.exceptions import (
    AllModelsExhaustedError,
    FatalGenerationError,
    GenerationDeadlineExceeded,
    TransientGenerationError,
)

OVERLOADED = "503 UNAVAILABLE: The model is overloaded. Please try again later."


class ScriptedOperation:
    """Operation whose behaviour per model is a queue of results or errors."""

    def __init__(self, script):
        self.script = {model: list(steps) for model, steps in script.items()}
        self.calls = []

    async def __call__(self, model):
        self.calls.append(model)
        steps = self.script[model]
        step = steps.pop(0) if len(steps) > 1 else steps[0]
        if isinstance(step, BaseException):
            raise step
        return step


# ============================================================================
# RETRY ON ONE MODEL
# ============================================================================


@pytest.mark.unit
class TestRetry:
    async def test_first_attempt_success_makes_one_call(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker()
        operation = ScriptedOperation({"model-a": ["ok"]})

        # Act
        result = await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert result == "ok"
        assert operation.calls == ["model-a"]
        assert recording_sleep.delays == []
        assert invoker.selector.current_index == 0

    async def test_transient_twice_then_success_backs_off_exponentially(
        self, make_invoker, recording_sleep
    ):
        # Arrange
        invoker = make_invoker(base_delay_ms=1000)
        operation = ScriptedOperation(
            {"model-a": [RuntimeError(OVERLOADED), RuntimeError("429 Too Many Requests"), "ok"]}
        )

        # Act
        result = await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert result == "ok"
        assert operation.calls == ["model-a", "model-a", "model-a"]
        assert recording_sleep.delays_ms == [1000, 2000]
        assert invoker.selector.current_index == 0

    async def test_backoff_scales_with_base_delay(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker(base_delay_ms=250, max_attempts=4)
        operation = ScriptedOperation(
            {"model-a": [RuntimeError("RESOURCE_EXHAUSTED")] * 3 + ["ok"]}
        )

        # Act
        await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert recording_sleep.delays_ms == [250, 500, 1000]

    async def test_typed_transient_error_is_retried(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker()
        operation = ScriptedOperation(
            {"model-a": [TransientGenerationError("model-a", message="busy"), "ok"]}
        )

        # Act
        result = await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert result == "ok"
        assert recording_sleep.delays_ms == [1000]


# ============================================================================
# FALLBACK AND STICKY SELECTION
# ============================================================================


@pytest.mark.unit
class TestFallback:
    async def test_fallback_success_promotes_model(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker()
        operation = ScriptedOperation(
            {"model-a": [RuntimeError(OVERLOADED)], "model-b": ["from b"]}
        )

        # Act
        result = await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert result == "from b"
        assert operation.calls == ["model-a"] * 3 + ["model-b"]
        assert recording_sleep.delays_ms == [1000, 2000]
        assert invoker.selector.current_index == 1
        assert invoker.metrics.promotions == 1
        assert invoker.metrics.fallbacks == 1

    async def test_next_call_starts_at_promoted_model(self, make_invoker):
        # Arrange
        invoker = make_invoker()
        operation = ScriptedOperation(
            {"model-a": [RuntimeError(OVERLOADED)], "model-b": ["from b"]}
        )
        await invoker.invoke(operation, operation_name="test.op")
        operation.calls.clear()

        # Act
        await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert operation.calls == ["model-b"]

    async def test_walk_wraps_around_from_sticky_index(self, make_invoker):
        # Arrange
        invoker = make_invoker(start_index=2, max_attempts=1)
        operation = ScriptedOperation(
            {
                "model-a": ["from a"],
                "model-b": [RuntimeError(OVERLOADED)],
                "model-c": [RuntimeError(OVERLOADED)],
            }
        )

        # Act
        result = await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert result == "from a"
        assert operation.calls == ["model-c", "model-a"]
        assert invoker.selector.current_index == 0

    async def test_single_attempt_per_model_never_sleeps(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker(max_attempts=1)
        operation = ScriptedOperation(
            {"model-a": [RuntimeError(OVERLOADED)], "model-b": ["ok"]}
        )

        # Act
        await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert recording_sleep.delays == []


# ============================================================================
# FATAL ERRORS
# ============================================================================


@pytest.mark.unit
class TestFatal:
    async def test_fatal_error_on_first_attempt_stops_immediately(
        self, make_invoker, recording_sleep
    ):
        # Arrange
        invoker = make_invoker()
        original = ValueError("API key not valid")
        operation = ScriptedOperation({"model-a": [original], "model-b": ["unused"]})

        # Act
        with pytest.raises(FatalGenerationError) as exc_info:
            await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert operation.calls == ["model-a"]
        assert recording_sleep.delays == []
        assert exc_info.value.__cause__ is original
        assert exc_info.value.model == "model-a"
        assert invoker.selector.current_index == 0

    async def test_fatal_after_transient_keeps_first_sleep_only(
        self, make_invoker, recording_sleep
    ):
        # Arrange
        invoker = make_invoker()
        operation = ScriptedOperation(
            {"model-a": [RuntimeError(OVERLOADED), KeyError("bad request")]}
        )

        # Act & Assert
        with pytest.raises(FatalGenerationError):
            await invoker.invoke(operation, operation_name="test.op")
        assert recording_sleep.delays_ms == [1000]

    async def test_existing_fatal_error_is_not_rewrapped(self, make_invoker):
        # Arrange
        invoker = make_invoker()
        original = FatalGenerationError("malformed", model="model-a")
        operation = ScriptedOperation({"model-a": [original]})

        # Act & Assert
        with pytest.raises(FatalGenerationError) as exc_info:
            await invoker.invoke(operation, operation_name="test.op")
        assert exc_info.value is original


# ============================================================================
# EXHAUSTION
# ============================================================================


@pytest.mark.unit
class TestExhaustion:
    async def test_all_transient_exhausts_every_combination(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker()
        last = RuntimeError("503 from c")
        operation = ScriptedOperation(
            {
                "model-a": [RuntimeError(OVERLOADED)],
                "model-b": [RuntimeError(OVERLOADED)],
                "model-c": [last],
            }
        )

        # Act
        with pytest.raises(AllModelsExhaustedError) as exc_info:
            await invoker.invoke(operation, operation_name="test.op")

        # Assert
        error = exc_info.value
        assert error.attempts == 9
        assert error.models == ["model-a", "model-b", "model-c"]
        assert isinstance(error.last_error, TransientGenerationError)
        assert error.last_error.__cause__ is last
        assert recording_sleep.delays_ms == [1000, 2000] * 3
        assert invoker.selector.current_index == 0
        assert invoker.metrics.exhaustions == 1

    async def test_attempt_count_never_exceeds_worst_case(self, make_invoker):
        # Arrange
        invoker = make_invoker(max_attempts=2)
        operation = ScriptedOperation({m: [RuntimeError("429")] for m in ("model-a", "model-b", "model-c")})

        # Act
        with pytest.raises(AllModelsExhaustedError):
            await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert len(operation.calls) == invoker.policy.worst_case_attempts(3)


# ============================================================================
# DEADLINE AND CANCELLATION
# ============================================================================


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds


@pytest.mark.unit
class TestDeadline:
    async def test_backoff_that_would_cross_deadline_raises(self):
        # Arrange
        clock = FakeClock()
        invoker = ResilientInvoker(
            ModelSelector(["model-a", "model-b"]),
            RetryPolicy(max_attempts_per_model=3, base_delay_ms=1000, deadline_seconds=2.5),
            sleep=clock.sleep,
            clock=clock,
        )
        operation = ScriptedOperation({"model-a": [RuntimeError(OVERLOADED)], "model-b": ["ok"]})

        # Act
        with pytest.raises(GenerationDeadlineExceeded) as exc_info:
            await invoker.invoke(operation, operation_name="test.op")

        # Assert
        assert operation.calls == ["model-a", "model-a"]
        assert clock.now == pytest.approx(1.0)
        assert exc_info.value.attempts == 2

    async def test_per_call_none_disables_policy_deadline(self):
        # Arrange
        clock = FakeClock()
        invoker = ResilientInvoker(
            ModelSelector(["model-a"]),
            RetryPolicy(max_attempts_per_model=3, base_delay_ms=1000, deadline_seconds=0.5),
            sleep=clock.sleep,
            clock=clock,
        )
        operation = ScriptedOperation({"model-a": [RuntimeError(OVERLOADED), "ok"]})

        # Act
        result = await invoker.invoke(operation, operation_name="test.op", deadline_seconds=None)

        # Assert
        assert result == "ok"

    async def test_slow_remote_call_is_cut_at_deadline(self):
        # Arrange
        invoker = ResilientInvoker(
            ModelSelector(["model-a"]),
            RetryPolicy(max_attempts_per_model=1, base_delay_ms=0),
        )

        async def hang(model):
            await asyncio.sleep(10)

        # Act & Assert
        with pytest.raises(GenerationDeadlineExceeded):
            await invoker.invoke(hang, operation_name="test.op", deadline_seconds=0.05)

    async def test_cancellation_propagates(self, make_invoker, recording_sleep):
        # Arrange
        invoker = make_invoker()
        operation = ScriptedOperation({"model-a": [asyncio.CancelledError()]})

        # Act & Assert
        with pytest.raises(asyncio.CancelledError):
            await invoker.invoke(operation, operation_name="test.op")
        assert operation.calls == ["model-a"]
        assert recording_sleep.delays == []
