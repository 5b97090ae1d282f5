"""
SQL-backed document store.

Stores each document as a JSON column in the ``documents`` table through
``DatabaseService`` sessions. Works on PostgreSQL (asyncpg) and SQLite
(aiosqlite). Change notifications are published after the transaction
commits.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from skillforge.core.database.service import DatabaseService
from skillforge.core.event.bus import EventBus
from skillforge.core.exceptions import DatabaseError, DocumentNotFoundError
from skillforge.core.logging.logger import get_logger
from skillforge.core.store.base import (
    ChangeNotifier,
    CollectionCallback,
    Document,
    DocumentCallback,
    Unsubscribe,
)
from skillforge.core.store.models import DocumentRecord

logger = get_logger(__name__)


class SqlDocumentStore:
    """
    ``DocumentStore`` over SQLAlchemy async sessions.

    ``DatabaseService`` must be initialized and the schema created before
    use.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self._notifier = ChangeNotifier(event_bus)

    async def get(self, collection: str, key: str) -> Optional[Document]:
        try:
            async with DatabaseService.get_session() as session:
                record = await session.get(DocumentRecord, (collection, key))
                return dict(record.data) if record is not None else None
        except SQLAlchemyError as e:
            raise DatabaseError("get_document", e) from e

    async def set(self, collection: str, key: str, document: Document) -> None:
        data = dict(document)
        try:
            async with DatabaseService.get_transaction() as session:
                record = await session.get(
                    DocumentRecord, (collection, key), with_for_update=True
                )
                if record is None:
                    session.add(DocumentRecord(collection=collection, key=key, data=data))
                else:
                    record.data = data
        except SQLAlchemyError as e:
            raise DatabaseError("set_document", e) from e

        logger.debug("Document written", extra={"collection": collection, "key": key})
        await self._notifier.publish(collection, key, data)

    async def update_fields(self, collection: str, key: str, partial: Document) -> Document:
        """
        Shallow-merge ``partial`` into an existing document under a row lock.

        Raises
        ------
        DocumentNotFoundError
            If the document does not exist.
        """
        merged: Optional[Document] = None
        try:
            async with DatabaseService.get_transaction() as session:
                record = await session.get(
                    DocumentRecord, (collection, key), with_for_update=True
                )
                if record is not None:
                    # Reassign so the JSON column is flagged dirty
                    merged = {**record.data, **partial}
                    record.data = merged
        except SQLAlchemyError as e:
            raise DatabaseError("update_document", e) from e

        if merged is None:
            raise DocumentNotFoundError(collection, key)

        logger.debug(
            "Document fields updated",
            extra={"collection": collection, "key": key, "fields": sorted(partial)},
        )
        await self._notifier.publish(collection, key, merged)
        return dict(merged)

    async def delete(self, collection: str, key: str) -> bool:
        try:
            async with DatabaseService.get_transaction() as session:
                result = await session.execute(
                    delete(DocumentRecord).where(
                        DocumentRecord.collection == collection,
                        DocumentRecord.key == key,
                    )
                )
                removed = (result.rowcount or 0) > 0
        except SQLAlchemyError as e:
            raise DatabaseError("delete_document", e) from e

        if removed:
            await self._notifier.publish(collection, key, None)
        return removed

    async def subscribe(
        self, collection: str, key: str, on_change: DocumentCallback
    ) -> Unsubscribe:
        return await self._notifier.watch_document(
            collection, key, await self.get(collection, key), on_change
        )

    async def query_top(self, collection: str, field: str, limit: int) -> list[Document]:
        stmt = (
            select(DocumentRecord.data)
            .where(DocumentRecord.collection == collection)
            .order_by(DocumentRecord.data[field].as_float().desc().nulls_last())
            .limit(max(0, limit))
        )
        try:
            async with DatabaseService.get_session() as session:
                rows = await session.scalars(stmt)
                return [dict(data) for data in rows]
        except SQLAlchemyError as e:
            raise DatabaseError("query_top", e) from e

    async def subscribe_collection(
        self, collection: str, on_change: CollectionCallback
    ) -> Unsubscribe:
        return self._notifier.watch_collection(collection, on_change)

    def deferred_notifications(self) -> AbstractAsyncContextManager[None]:
        return self._notifier.deferred()
