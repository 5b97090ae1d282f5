"""Event bus infrastructure."""

from skillforge.core.event.bus import EventBus
from skillforge.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventListener",
    "EventPayload",
    "ListenerPriority",
    "CallbackType",
]
