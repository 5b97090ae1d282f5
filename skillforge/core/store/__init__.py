"""Document store contract and implementations."""

from skillforge.core.store.base import (
    DOCUMENT_CHANGED,
    CollectionCallback,
    Document,
    DocumentCallback,
    DocumentChange,
    DocumentStore,
    Unsubscribe,
)
from skillforge.core.store.memory import MemoryDocumentStore
from skillforge.core.store.sql import SqlDocumentStore

__all__ = [
    "DOCUMENT_CHANGED",
    "CollectionCallback",
    "Document",
    "DocumentCallback",
    "DocumentChange",
    "DocumentStore",
    "MemoryDocumentStore",
    "SqlDocumentStore",
    "Unsubscribe",
]
