"""
Database subsystem.

Async SQLAlchemy engine, session management and ORM base classes.
"""

from skillforge.core.database.base import Base, TimestampMixin, utc_now
from skillforge.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "utc_now",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
