"""
Retry policy for generation calls.

Backoff is deterministic exponential without jitter: the delay before the
retry that follows attempt ``k`` (0-indexed) is ``base_delay_ms * 2**k``. No
delay follows the last attempt on a model; the invoker moves straight to the
next candidate.

Configuration
-------------
All values sourced from Config:
- AI_RETRY_MAX_ATTEMPTS (default: 3)
- AI_RETRY_BASE_DELAY_MS (default: 1000)
- AI_DEADLINE_SECONDS (default: 0, meaning no overall deadline)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from skillforge.core.config.config import Config
from skillforge.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attributes
    ----------
    max_attempts_per_model : int
        Attempts per model including the first (>= 1).
    base_delay_ms : int
        Backoff base in milliseconds (>= 0).
    deadline_seconds : Optional[float]
        Overall budget for one invocation across all models, or None.
    """

    max_attempts_per_model: int = 3
    base_delay_ms: int = 1000
    deadline_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.max_attempts_per_model, int) or self.max_attempts_per_model < 1:
            raise ConfigurationError(
                "AI_RETRY_MAX_ATTEMPTS",
                f"must be an integer >= 1, got {self.max_attempts_per_model!r}",
            )
        if not isinstance(self.base_delay_ms, int) or self.base_delay_ms < 0:
            raise ConfigurationError(
                "AI_RETRY_BASE_DELAY_MS",
                f"must be an integer >= 0, got {self.base_delay_ms!r}",
            )
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ConfigurationError(
                "AI_DEADLINE_SECONDS",
                f"must be positive when set, got {self.deadline_seconds!r}",
            )

    @classmethod
    def from_config(cls) -> RetryPolicy:
        deadline = int(getattr(Config, "AI_DEADLINE_SECONDS", 0))
        return cls(
            max_attempts_per_model=int(getattr(Config, "AI_RETRY_MAX_ATTEMPTS", 3)),
            base_delay_ms=int(getattr(Config, "AI_RETRY_BASE_DELAY_MS", 1000)),
            deadline_seconds=float(deadline) if deadline > 0 else None,
        )

    def delay_ms(self, attempt: int) -> int:
        """Backoff before retrying after 0-indexed ``attempt``."""
        return self.base_delay_ms * (2**attempt)

    def is_last_attempt(self, attempt: int) -> bool:
        return attempt >= self.max_attempts_per_model - 1

    def worst_case_attempts(self, model_count: int) -> int:
        return model_count * self.max_attempts_per_model
