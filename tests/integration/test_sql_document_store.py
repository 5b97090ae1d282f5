"""
Integration Tests for SqlDocumentStore
======================================

Purpose
-------
Exercise the SQL document store against real databases: a file-backed
SQLite database always, and PostgreSQL through testcontainers when Docker
is available.

Test Coverage
-------------
- Document CRUD and shallow field merges
- Top-N ordering by a JSON field
- Change notifications after commit
- DatabaseService health and lifecycle
- Services running on top of the SQL store
"""

import asyncio

import pytest

from skillforge.core.database.service import DatabaseNotInitializedError, DatabaseService
from skillforge.core.exceptions import DocumentNotFoundError
from skillforge.core.store.sql import SqlDocumentStore
from skillforge.modules.progression.service import ProgressionService
from skillforge.modules.shared.constants import USERS_COLLECTION
from skillforge.modules.user.service import UserService


# ============================================================================
# DOCUMENT OPERATIONS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDocuments:
    async def test_set_and_get(self, sql_store):
        # Arrange
        document = {"id": "u1", "name": "Ada", "roadmaps": [{"id": "map-1", "modules": []}]}

        # Act
        await sql_store.set("users", "u1", document)
        loaded = await sql_store.get("users", "u1")

        # Assert
        assert loaded == document
        assert await sql_store.get("users", "missing") is None

    async def test_set_replaces_whole_document(self, sql_store):
        # Arrange
        await sql_store.set("users", "u1", {"name": "Ada", "points": 5})

        # Act
        await sql_store.set("users", "u1", {"name": "Grace"})

        # Assert
        assert await sql_store.get("users", "u1") == {"name": "Grace"}

    async def test_update_fields_merges(self, sql_store):
        # Arrange
        await sql_store.set("users", "u1", {"name": "Ada", "points": 5})

        # Act
        merged = await sql_store.update_fields("users", "u1", {"points": 15, "level": 1})

        # Assert
        assert merged == {"name": "Ada", "points": 15, "level": 1}
        assert await sql_store.get("users", "u1") == merged

    async def test_update_fields_missing_raises(self, sql_store):
        with pytest.raises(DocumentNotFoundError):
            await sql_store.update_fields("users", "ghost", {"points": 1})

    async def test_delete(self, sql_store):
        # Arrange
        await sql_store.set("users", "u1", {"name": "Ada"})

        # Act & Assert
        assert await sql_store.delete("users", "u1") is True
        assert await sql_store.delete("users", "u1") is False
        assert await sql_store.get("users", "u1") is None

    async def test_collections_are_separate(self, sql_store):
        # Arrange
        await sql_store.set("users", "k", {"v": "user"})
        await sql_store.set("credentials", "k", {"v": "cred"})

        # Act & Assert
        assert (await sql_store.get("users", "k"))["v"] == "user"
        assert (await sql_store.get("credentials", "k"))["v"] == "cred"


@pytest.mark.integration
@pytest.mark.database
class TestQueryTop:
    async def test_orders_by_numeric_field(self, sql_store):
        # Arrange
        for key, points in [("a", 5), ("b", 500), ("c", 40), ("d", 1200)]:
            await sql_store.set("users", key, {"id": key, "points": points})
        await sql_store.set("credentials", "x", {"id": "x", "points": 10_000})

        # Act
        top = await sql_store.query_top("users", "points", 3)

        # Assert
        assert [d["id"] for d in top] == ["d", "b", "c"]

    async def test_documents_without_field_sort_last(self, sql_store):
        # Arrange
        await sql_store.set("users", "a", {"id": "a"})
        await sql_store.set("users", "b", {"id": "b", "points": 1})

        # Act
        top = await sql_store.query_top("users", "points", 10)

        # Assert
        assert [d["id"] for d in top] == ["b", "a"]


@pytest.mark.integration
@pytest.mark.database
class TestNotifications:
    async def test_subscriber_sees_committed_state(self, sql_store):
        # Arrange
        seen = []
        await sql_store.set("users", "u1", {"points": 1})

        async def on_change(document):
            seen.append(document)

        # Act
        unsubscribe = await sql_store.subscribe("users", "u1", on_change)
        await sql_store.update_fields("users", "u1", {"points": 2})
        await sql_store.delete("users", "u1")
        unsubscribe()

        # Assert
        assert seen == [{"points": 1}, {"points": 2}, None]


# ============================================================================
# SERVICES ON THE SQL STORE
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestServicesOnSql:
    async def test_concurrent_awards_accumulate(self, sql_store, event_bus):
        # Arrange
        await sql_store.set(
            USERS_COLLECTION, "u1", {"id": "u1", "name": "Ada", "points": 0, "badges": []}
        )
        progression = ProgressionService(sql_store, event_bus)

        # Act
        await asyncio.gather(*(progression.award("u1", 10, reason="test") for _ in range(10)))

        # Assert
        document = await sql_store.get(USERS_COLLECTION, "u1")
        assert document["points"] == 100
        assert document["level"] == 2
        assert [b["id"] for b in document["badges"]] == ["novice"]

    async def test_profile_update_round_trip(self, sql_store, event_bus):
        # Arrange
        await sql_store.set(USERS_COLLECTION, "u1", {"id": "u1", "name": "Ada", "points": 0})
        users = UserService(sql_store, event_bus)

        # Act
        profile = await users.update_profile("u1", {"name": "Grace"})

        # Assert
        assert profile.name == "Grace"
        assert (await users.get_profile("u1")).name == "Grace"


# ============================================================================
# DATABASE SERVICE LIFECYCLE
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDatabaseService:
    async def test_health_check(self, sql_store):
        assert await DatabaseService.health_check() is True

    async def test_sessions_refused_after_shutdown(self, tmp_path):
        # Arrange
        await DatabaseService.initialize(f"sqlite+aiosqlite:///{tmp_path / 'lifecycle.db'}")
        await DatabaseService.shutdown()

        # Act & Assert
        assert not DatabaseService.is_initialized()
        assert await DatabaseService.health_check() is False
        with pytest.raises(DatabaseNotInitializedError):
            async with DatabaseService.get_session():
                pass

    async def test_in_memory_sqlite_shares_one_database(self, event_bus):
        # Arrange
        await DatabaseService.initialize("sqlite+aiosqlite:///:memory:")
        try:
            await DatabaseService.create_schema()
            store = SqlDocumentStore(event_bus)

            # Act
            await store.set("users", "u1", {"name": "Ada"})

            # Assert
            assert await store.get("users", "u1") == {"name": "Ada"}
        finally:
            await DatabaseService.shutdown()
