"""
SkillForge EventBus: async pub/sub with tiered concurrency.

Purpose
-------
Decouple modules: the document stores announce ``document.changed``, the
progression service announces ``progress.*``, and subscribers (profile
watchers, the leaderboard, analytics) react without direct references.

Responsibilities
----------------
- Register/unregister listeners with priorities
- Publish events to all matching listeners (exact + wildcard patterns)
- Execute listeners according to the tiered concurrency model:
  * CRITICAL / HIGH: sequential, ordered, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Error isolation (one failing listener never blocks others)
- Lightweight metrics for introspection

Design Decisions
----------------
- Instance-based: the application context owns one bus; tests build their own.
- Wildcards use shell-style patterns (``progress.*``, ``document.changed``).
- Designed for single-threaded asyncio usage.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any, Optional

from skillforge.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EventMetrics:
    events_published: dict[str, int] = field(default_factory=dict)
    listener_errors: dict[str, int] = field(default_factory=dict)
    total_listeners: int = 0

    def get_summary(self) -> dict[str, Any]:
        total_events = sum(self.events_published.values())
        total_errors = sum(self.listener_errors.values())
        return {
            "total_events_published": total_events,
            "events_by_type": dict(self.events_published),
            "total_errors": total_errors,
            "errors_by_event": dict(self.listener_errors),
            "total_listeners": self.total_listeners,
            "error_rate": round(100.0 * total_errors / total_events, 2) if total_events else 0.0,
        }


class EventBus:
    """
    Async EventBus with tiered listener execution.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("progress.leveled_up", on_level_up, priority=ListenerPriority.HIGH)
    >>> await bus.publish("progress.leveled_up", {"user_id": "u1", "new_level": 3})
    """

    def __init__(
        self,
        *,
        listener_timeout_seconds: float = 5.0,
        enable_metrics: bool = True,
    ) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._timeout = listener_timeout_seconds
        self._metrics = EventMetrics()
        self._metrics_enabled = enable_metrics
        self._background_tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        required = [
            p
            for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        if len(required) != 1:
            name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(required)} parameters for '{name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns
        -------
        str:
            The listener identifier (for unsubscribing later).

        Raises
        ------
        ValueError:
            If the callback does not take exactly one payload argument.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        bucket = self._listeners.setdefault(event_name, [])
        if any(existing.identifier == listener.identifier for existing in bucket):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        bucket.append(listener)
        bucket.sort(key=lambda lst: lst.priority.value)
        self._metrics.total_listeners += 1

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "once": once,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        bucket = self._listeners.get(event_name)
        if not bucket:
            return False

        remaining = [lst for lst in bucket if lst.identifier != identifier]
        removed = len(remaining) != len(bucket)
        if remaining:
            self._listeners[event_name] = remaining
        else:
            del self._listeners[event_name]

        if removed:
            self._metrics.total_listeners -= 1
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        previous = self._metrics.total_listeners
        self._listeners.clear()
        self._metrics.total_listeners = 0
        logger.info("EventBus: cleared all listeners", extra={"previous_listener_count": previous})

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def _extract_listeners(self, event_name: str) -> list[EventListener]:
        matched: list[EventListener] = []
        for pattern in list(self._listeners):
            if pattern != event_name and not fnmatchcase(event_name, pattern):
                continue
            bucket = self._listeners[pattern]
            matched.extend(bucket)
            once_ids = {lst.identifier for lst in bucket if lst.once}
            for identifier in once_ids:
                self.unsubscribe(pattern, identifier)

        matched.sort(key=lambda lst: lst.priority.value)
        return matched

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to all subscribed listeners.

        Returns
        -------
        list[Any]:
            Results from CRITICAL/HIGH/NORMAL listeners. Failed listeners
            contribute ``None``; LOW-tier listeners are not included.
        """
        if self._metrics_enabled:
            self._metrics.events_published[event_name] = (
                self._metrics.events_published.get(event_name, 0) + 1
            )

        listeners = self._extract_listeners(event_name)
        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        results: list[Any] = []
        sequential = [
            lst
            for lst in listeners
            if lst.priority in (ListenerPriority.CRITICAL, ListenerPriority.HIGH)
        ]
        normal = [lst for lst in listeners if lst.priority == ListenerPriority.NORMAL]
        low = [lst for lst in listeners if lst.priority == ListenerPriority.LOW]

        for listener in sequential:
            results.append(
                await self._run_listener(listener, event_name, data, timeout=self._timeout)
            )

        if normal:
            results.extend(
                await asyncio.gather(
                    *(self._run_listener(lst, event_name, data) for lst in normal)
                )
            )

        for listener in low:
            task = asyncio.create_task(self._run_listener(listener, event_name, data))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        data: EventPayload,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        try:
            result = listener.callback(data)
            if inspect.isawaitable(result):
                if timeout is not None:
                    result = await asyncio.wait_for(result, timeout=timeout)
                else:
                    result = await result
            return result
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._metrics_enabled:
                self._metrics.listener_errors[event_name] = (
                    self._metrics.listener_errors.get(event_name, 0) + 1
                )
            logger.error(
                "EventBus: listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------ #
    # Metrics & Introspection
    # ------------------------------------------------------------------ #

    def get_metrics_summary(self) -> dict[str, Any]:
        if not self._metrics_enabled:
            return {}
        return self._metrics.get_summary()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return self._metrics.total_listeners
        return sum(
            len(bucket)
            for pattern, bucket in self._listeners.items()
            if pattern == event_name or fnmatchcase(event_name, pattern)
        )

    def get_all_events(self) -> list[str]:
        return sorted(self._listeners)
