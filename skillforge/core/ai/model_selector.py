"""
Sticky model selection for generation calls.

Holds the ordered model candidate list and the index of the model currently
believed to be healthy. Every invocation starts from that index and walks the
list cyclically; a success on a fallback model promotes it so later calls
start there instead of rediscovering the outage.

The index is the only shared mutable state in the generation stack. It is
owned by one injectable object and updated under a lock, so concurrent
invocations never tear it. A stale read costs at most one extra failed
attempt, never a wrong result.
"""

from __future__ import annotations

import threading
from typing import Sequence, Tuple

from skillforge.core.exceptions import ConfigurationError
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)


class ModelSelector:
    """
    Ordered model candidates plus a sticky current index.

    Parameters
    ----------
    models:
        Model identifiers in preference order. Must be non-empty.
    start_index:
        Initial preferred position (default 0, the primary model).

    Raises
    ------
    ConfigurationError
        If ``models`` is empty or contains blank identifiers.
    """

    def __init__(self, models: Sequence[str], *, start_index: int = 0) -> None:
        cleaned = tuple(m.strip() for m in models)
        if not cleaned:
            raise ConfigurationError("GEMINI_MODELS", "at least one model identifier is required")
        if any(not m for m in cleaned):
            raise ConfigurationError("GEMINI_MODELS", "model identifiers cannot be blank")

        self._models: Tuple[str, ...] = cleaned
        self._index = start_index % len(cleaned)
        self._lock = threading.Lock()

    @property
    def models(self) -> Tuple[str, ...]:
        return self._models

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._index

    @property
    def current_model(self) -> str:
        return self._models[self.current_index]

    def candidates(self, start_index: int) -> list[Tuple[int, int, str]]:
        """
        Return ``(offset, position, model)`` for one full cycle starting at
        ``start_index``.
        """
        count = len(self._models)
        return [
            (offset, (start_index + offset) % count, self._models[(start_index + offset) % count])
            for offset in range(count)
        ]

    def promote(self, position: int) -> bool:
        """
        Make ``position`` the preferred model for subsequent calls.

        Returns True if the index changed.
        """
        position %= len(self._models)
        with self._lock:
            previous = self._index
            self._index = position

        if previous != position:
            logger.info(
                "Switched preferred model",
                extra={
                    "previous_model": self._models[previous],
                    "model": self._models[position],
                    "model_index": position,
                },
            )
        return previous != position

    def reset(self) -> None:
        with self._lock:
            self._index = 0

    def __repr__(self) -> str:
        return f"ModelSelector(models={list(self._models)!r}, current_index={self.current_index})"
