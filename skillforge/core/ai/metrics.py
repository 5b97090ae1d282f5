"""In-process counters for generation attempts, fallbacks and outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class GenerationMetrics:
    attempts: int = 0
    successes: int = 0
    transient_failures: int = 0
    fatal_failures: int = 0
    fallbacks: int = 0
    promotions: int = 0
    exhaustions: int = 0
    deadline_exceeded: int = 0
    total_backoff_ms: int = 0
    attempts_by_model: Dict[str, int] = field(default_factory=dict)

    def record_attempt(self, model: str) -> None:
        self.attempts += 1
        self.attempts_by_model[model] = self.attempts_by_model.get(model, 0) + 1

    def record_success(self, *, promoted: bool) -> None:
        self.successes += 1
        if promoted:
            self.promotions += 1

    def record_failure(self, *, transient: bool) -> None:
        if transient:
            self.transient_failures += 1
        else:
            self.fatal_failures += 1

    def record_backoff(self, delay_ms: int) -> None:
        self.total_backoff_ms += delay_ms

    def record_fallback(self) -> None:
        self.fallbacks += 1

    def record_exhausted(self) -> None:
        self.exhaustions += 1

    def record_deadline_exceeded(self) -> None:
        self.deadline_exceeded += 1

    def snapshot(self) -> Dict[str, Any]:
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "transient_failures": self.transient_failures,
            "fatal_failures": self.fatal_failures,
            "fallbacks": self.fallbacks,
            "promotions": self.promotions,
            "exhaustions": self.exhaustions,
            "deadline_exceeded": self.deadline_exceeded,
            "total_backoff_ms": self.total_backoff_ms,
            "attempts_by_model": dict(self.attempts_by_model),
        }
