"""
Document store contract.

Documents are JSON-compatible dicts addressed by ``(collection, key)``.
Every write publishes a ``document.changed`` event on the EventBus after it
completes; subscriptions are EventBus listeners filtered to one document or
one collection. Concurrent writers are last-write-wins.

Subscriptions deliver the current state once on subscribe, then once per
change. A deleted or missing document is delivered as ``None``.

Inside ``deferred_notifications()`` a task's change events are queued and
published when the outermost block exits. Services wrap their per-user lock
in it so subscribers never run while that lock is held.
"""

from __future__ import annotations

import copy
import inspect
import uuid
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Union

from skillforge.core.event.bus import EventBus
from skillforge.core.event.types import EventPayload, ListenerPriority
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)

DOCUMENT_CHANGED = "document.changed"

Document = dict[str, Any]
DocumentCallback = Callable[[Optional[Document]], Union[None, Awaitable[None]]]
CollectionCallback = Callable[["DocumentChange"], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class DocumentChange:
    collection: str
    key: str
    document: Optional[Document]

    def to_payload(self) -> EventPayload:
        return {
            "collection": self.collection,
            "key": self.key,
            "document": copy.deepcopy(self.document),
        }

    @classmethod
    def from_payload(cls, payload: EventPayload) -> DocumentChange:
        return cls(
            collection=payload["collection"],
            key=payload["key"],
            document=copy.deepcopy(payload.get("document")),
        )


@dataclass
class _PendingChanges:
    changes: list[tuple[EventBus, DocumentChange]] = field(default_factory=list)
    open: bool = True


_pending: ContextVar[Optional[_PendingChanges]] = ContextVar("store_pending_changes", default=None)


class DocumentStore(Protocol):
    async def get(self, collection: str, key: str) -> Optional[Document]:
        ...

    async def set(self, collection: str, key: str, document: Document) -> None:
        ...

    async def update_fields(self, collection: str, key: str, partial: Document) -> Document:
        ...

    async def delete(self, collection: str, key: str) -> bool:
        ...

    async def subscribe(
        self, collection: str, key: str, on_change: DocumentCallback
    ) -> Unsubscribe:
        ...

    async def query_top(self, collection: str, field: str, limit: int) -> list[Document]:
        ...

    async def subscribe_collection(
        self, collection: str, on_change: CollectionCallback
    ) -> Unsubscribe:
        ...

    def deferred_notifications(self) -> AbstractAsyncContextManager[None]:
        ...


async def _deliver(callback: Callable[[Any], Any], value: Any) -> None:
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class ChangeNotifier:
    """
    EventBus-backed change fan-out shared by the store implementations.

    Listeners run at NORMAL priority, so a publish awaits every subscriber
    and a failing subscriber is isolated by the bus.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self._bus = event_bus

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    async def publish(self, collection: str, key: str, document: Optional[Document]) -> None:
        change = DocumentChange(collection=collection, key=key, document=copy.deepcopy(document))
        pending = _pending.get()
        if pending is not None and pending.open:
            pending.changes.append((self._bus, change))
            return
        await self._bus.publish(DOCUMENT_CHANGED, change.to_payload())

    @asynccontextmanager
    async def deferred(self) -> AsyncIterator[None]:
        """
        Queue this task's change events until the outermost block exits.

        Nested blocks join the outer queue. Queued events are published even
        when the block raises, since the writes they describe are committed.
        """
        if _pending.get() is not None:
            yield
            return

        pending = _PendingChanges()
        token = _pending.set(pending)
        try:
            yield
        finally:
            pending.open = False
            _pending.reset(token)
            for bus, change in pending.changes:
                await bus.publish(DOCUMENT_CHANGED, change.to_payload())

    async def watch_document(
        self,
        collection: str,
        key: str,
        current: Optional[Document],
        on_change: DocumentCallback,
    ) -> Unsubscribe:
        async def listener(payload: EventPayload) -> None:
            if payload["collection"] != collection or payload["key"] != key:
                return
            await _deliver(on_change, copy.deepcopy(payload.get("document")))

        identifier = f"store.document:{collection}/{key}:{uuid.uuid4().hex}"
        self._bus.subscribe(
            DOCUMENT_CHANGED, listener, priority=ListenerPriority.NORMAL, identifier=identifier
        )
        await _deliver(on_change, current)
        return self._unsubscriber(identifier)

    def watch_collection(self, collection: str, on_change: CollectionCallback) -> Unsubscribe:
        async def listener(payload: EventPayload) -> None:
            if payload["collection"] != collection:
                return
            await _deliver(on_change, DocumentChange.from_payload(payload))

        identifier = f"store.collection:{collection}:{uuid.uuid4().hex}"
        self._bus.subscribe(
            DOCUMENT_CHANGED, listener, priority=ListenerPriority.NORMAL, identifier=identifier
        )
        return self._unsubscriber(identifier)

    def _unsubscriber(self, identifier: str) -> Unsubscribe:
        def unsubscribe() -> None:
            if self._bus.unsubscribe(DOCUMENT_CHANGED, identifier):
                logger.debug("Store subscription removed", extra={"listener_id": identifier})

        return unsubscribe


def sort_key_for(field: str) -> Callable[[Document], float]:
    """Numeric sort key; missing or non-numeric values sort last."""

    def key(document: Document) -> float:
        value = document.get(field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return float("-inf")
        return float(value)

    return key
