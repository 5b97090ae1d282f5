"""In-process document store. Documents are deep-copied on the way in and out."""

from __future__ import annotations

import copy
from contextlib import AbstractAsyncContextManager
from typing import Optional

from skillforge.core.event.bus import EventBus
from skillforge.core.exceptions import DocumentNotFoundError
from skillforge.core.logging.logger import get_logger
from skillforge.core.store.base import (
    ChangeNotifier,
    CollectionCallback,
    Document,
    DocumentCallback,
    Unsubscribe,
    sort_key_for,
)

logger = get_logger(__name__)


class MemoryDocumentStore:
    def __init__(self, event_bus: EventBus) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._notifier = ChangeNotifier(event_bus)

    async def get(self, collection: str, key: str) -> Optional[Document]:
        document = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, collection: str, key: str, document: Document) -> None:
        stored = copy.deepcopy(document)
        self._collections.setdefault(collection, {})[key] = stored
        logger.debug("Document written", extra={"collection": collection, "key": key})
        await self._notifier.publish(collection, key, stored)

    async def update_fields(self, collection: str, key: str, partial: Document) -> Document:
        """
        Shallow-merge ``partial`` into an existing document.

        Raises
        ------
        DocumentNotFoundError
            If the document does not exist.
        """
        current = self._collections.get(collection, {}).get(key)
        if current is None:
            raise DocumentNotFoundError(collection, key)

        current.update(copy.deepcopy(partial))
        logger.debug(
            "Document fields updated",
            extra={"collection": collection, "key": key, "fields": sorted(partial)},
        )
        await self._notifier.publish(collection, key, current)
        return copy.deepcopy(current)

    async def delete(self, collection: str, key: str) -> bool:
        removed = self._collections.get(collection, {}).pop(key, None)
        if removed is None:
            return False
        await self._notifier.publish(collection, key, None)
        return True

    async def subscribe(
        self, collection: str, key: str, on_change: DocumentCallback
    ) -> Unsubscribe:
        return await self._notifier.watch_document(
            collection, key, await self.get(collection, key), on_change
        )

    async def query_top(self, collection: str, field: str, limit: int) -> list[Document]:
        documents = list(self._collections.get(collection, {}).values())
        documents.sort(key=sort_key_for(field), reverse=True)
        return [copy.deepcopy(d) for d in documents[: max(0, limit)]]

    async def subscribe_collection(
        self, collection: str, on_change: CollectionCallback
    ) -> Unsubscribe:
        return self._notifier.watch_collection(collection, on_change)

    def deferred_notifications(self) -> AbstractAsyncContextManager[None]:
        return self._notifier.deferred()
