"""
Base Service Foundation

Purpose
-------
Foundational class for SkillForge domain services. Services hold learning
and gamification logic, coordinate the document store and the generation
client, and emit domain events.

This base class provides:
- Structured logging with operation context
- Event emission helpers
- Input validation that raises domain ``ValidationError``

What this class does NOT do:
- Own the store or generation client (subclasses receive what they need)
- Render anything for a UI

Usage
-----
    class RoadmapService(BaseService):
        def __init__(self, store, learning, progression, event_bus, logger):
            super().__init__(event_bus, logger)
            self._store = store
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from skillforge.core.exceptions import get_error_severity, is_transient_error
from skillforge.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from skillforge.core.event.bus import EventBus
    from skillforge.domain.models.base import DomainEvent


class BaseService:
    """
    Base class for all domain services.

    Args:
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(self, event_bus: EventBus, logger: Logger) -> None:
        self._events = event_bus
        self.log = logger

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Emit a domain event for cross-module communication.

        Args:
            event_type: Type/name of the event
            data: Event payload data
            context: Optional additional context (user_id, roadmap_id, etc.)
        """
        await self._events.publish(event_type, {**data, **(context or {})})

    async def publish_domain_events(
        self, events: Iterable[DomainEvent], context: Optional[Dict[str, Any]] = None
    ) -> None:
        for event in events:
            await self.emit_event(event.event_name, event.payload, context)

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        """
        Log a service error with full context, at the level of its severity.

        Args:
            operation: Name of the operation that failed
            error: The exception that occurred
            **context: Additional context data
        """
        severity = get_error_severity(error)
        self.log.log(
            logging.getLevelName(severity.value.upper()),
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "severity": severity.value,
                "retryable": is_transient_error(error),
                **context,
            },
        )

    def validate_non_negative_int(self, value: int, name: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(name, f"{name} must be a non-negative integer, got {value}")

    def validate_not_blank(self, value: str, name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} cannot be empty")
