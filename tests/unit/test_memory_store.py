"""
Unit Tests for MemoryDocumentStore
==================================

Test Coverage
-------------
- Read and write isolation (stored documents are copies)
- Shallow field merge and missing documents
- Top-N queries by a numeric field
- Document and collection subscriptions
"""

import pytest

from skillforge.core.exceptions import DocumentNotFoundError


@pytest.mark.unit
class TestReadWrite:
    async def test_get_missing_returns_none(self, memory_store):
        assert await memory_store.get("users", "nobody") is None

    async def test_documents_are_copied(self, memory_store):
        # Arrange
        document = {"name": "Ada", "tags": ["a"]}
        await memory_store.set("users", "u1", document)

        # Act
        document["tags"].append("b")
        loaded = await memory_store.get("users", "u1")
        loaded["name"] = "changed"

        # Assert
        assert await memory_store.get("users", "u1") == {"name": "Ada", "tags": ["a"]}

    async def test_update_fields_merges_shallowly(self, memory_store):
        # Arrange
        await memory_store.set("users", "u1", {"name": "Ada", "points": 10, "meta": {"a": 1}})

        # Act
        merged = await memory_store.update_fields("users", "u1", {"points": 20, "meta": {"b": 2}})

        # Assert
        assert merged == {"name": "Ada", "points": 20, "meta": {"b": 2}}
        assert await memory_store.get("users", "u1") == merged

    async def test_update_fields_on_missing_document_raises(self, memory_store):
        with pytest.raises(DocumentNotFoundError):
            await memory_store.update_fields("users", "ghost", {"points": 1})

    async def test_delete(self, memory_store):
        # Arrange
        await memory_store.set("users", "u1", {"name": "Ada"})

        # Act & Assert
        assert await memory_store.delete("users", "u1") is True
        assert await memory_store.delete("users", "u1") is False
        assert await memory_store.get("users", "u1") is None


@pytest.mark.unit
class TestQueryTop:
    async def test_orders_descending_and_limits(self, memory_store):
        # Arrange
        for key, points in [("a", 5), ("b", 50), ("c", 20), ("d", 0)]:
            await memory_store.set("users", key, {"id": key, "points": points})

        # Act
        top = await memory_store.query_top("users", "points", 3)

        # Assert
        assert [d["id"] for d in top] == ["b", "c", "a"]

    async def test_missing_field_sorts_last(self, memory_store):
        # Arrange
        await memory_store.set("users", "a", {"id": "a"})
        await memory_store.set("users", "b", {"id": "b", "points": 1})

        # Act
        top = await memory_store.query_top("users", "points", 10)

        # Assert
        assert [d["id"] for d in top] == ["b", "a"]

    async def test_zero_limit_is_empty(self, memory_store):
        await memory_store.set("users", "a", {"points": 1})
        assert await memory_store.query_top("users", "points", 0) == []


@pytest.mark.unit
class TestSubscriptions:
    async def test_document_subscription_delivers_current_state_then_changes(self, memory_store):
        # Arrange
        seen = []
        await memory_store.set("users", "u1", {"points": 1})

        # Act
        unsubscribe = await memory_store.subscribe("users", "u1", seen.append)
        await memory_store.update_fields("users", "u1", {"points": 2})
        await memory_store.set("users", "u2", {"points": 99})
        await memory_store.delete("users", "u1")
        unsubscribe()
        await memory_store.set("users", "u1", {"points": 3})

        # Assert
        assert seen == [{"points": 1}, {"points": 2}, None]

    async def test_subscription_to_missing_document_delivers_none(self, memory_store):
        # Arrange
        seen = []

        # Act
        await memory_store.subscribe("users", "ghost", seen.append)

        # Assert
        assert seen == [None]

    async def test_collection_subscription_filters_by_collection(self, memory_store):
        # Arrange
        changes = []

        async def on_change(change):
            changes.append((change.collection, change.key))

        unsubscribe = await memory_store.subscribe_collection("users", on_change)

        # Act
        await memory_store.set("users", "u1", {})
        await memory_store.set("credentials", "ada@example.com", {})
        unsubscribe()
        await memory_store.set("users", "u2", {})

        # Assert
        assert changes == [("users", "u1")]

    async def test_failing_subscriber_does_not_break_writes(self, memory_store):
        # Arrange
        def broken(document):
            if document is not None:
                raise RuntimeError("subscriber bug")

        await memory_store.subscribe("users", "u1", broken)

        # Act
        await memory_store.set("users", "u1", {"points": 1})

        # Assert
        assert await memory_store.get("users", "u1") == {"points": 1}

    async def test_deferred_notifications_publish_after_outermost_block(self, memory_store):
        # Arrange
        seen = []
        await memory_store.subscribe("users", "u1", seen.append)

        # Act
        async with memory_store.deferred_notifications():
            async with memory_store.deferred_notifications():
                await memory_store.set("users", "u1", {"points": 1})
            await memory_store.update_fields("users", "u1", {"points": 2})
            during = list(seen)

        # Assert
        assert during == [None]
        assert seen == [None, {"points": 1}, {"points": 2}]

    async def test_deferred_notifications_flush_when_block_raises(self, memory_store):
        # Arrange
        seen = []
        await memory_store.subscribe("users", "u1", seen.append)

        # Act
        with pytest.raises(RuntimeError):
            async with memory_store.deferred_notifications():
                await memory_store.set("users", "u1", {"points": 1})
                raise RuntimeError("after write")

        # Assert
        assert seen == [None, {"points": 1}]
