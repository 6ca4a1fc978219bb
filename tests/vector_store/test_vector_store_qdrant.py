"""
Tests for Qdrant vector store implementation.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from memsync.core.vector_store.qdrant import VECTOR_NAME, QdrantVectorStore
from memsync.utils.exceptions import ValidationError, VectorStoreError


def make_point(store, record, with_vector=True):
    """Build a retrieved point as the client returns it."""
    point = MagicMock()
    point.payload = store._record_to_payload(record)
    point.vector = {VECTOR_NAME: record.embedding} if with_vector else {}
    return point


@pytest.mark.unit
@pytest.mark.asyncio
class TestQdrantVectorStore:
    """Test Qdrant vector store implementation."""

    async def test_initialization(self, qdrant_store):
        """Test store initialization."""
        assert qdrant_store.host == "localhost"
        assert qdrant_store.port == 6333
        assert qdrant_store.collection_name == "test_memories"
        assert qdrant_store.vector_size == 3
        assert qdrant_store.client is None

    async def test_to_uuid_with_valid_uuid(self, qdrant_store):
        """Test UUID conversion with valid UUID."""
        uuid_str = "550e8400-e29b-41d4-a716-446655440000"
        assert qdrant_store._to_uuid(uuid_str) == uuid_str

    async def test_to_uuid_with_string_id(self, qdrant_store):
        """Test UUID conversion with string ID is stable."""
        result = qdrant_store._to_uuid("test-memory-1")
        assert len(result) == 36
        assert result == qdrant_store._to_uuid("test-memory-1")

    async def test_connect(self, qdrant_store):
        """Test connection to Qdrant."""
        with patch("memsync.core.vector_store.qdrant.AsyncQdrantClient") as mock_client:
            mock_client.return_value = AsyncMock()
            await qdrant_store.connect()
            assert qdrant_store.client is not None

    async def test_connect_failure(self, qdrant_store):
        """Test connection failure handling."""
        with patch("memsync.core.vector_store.qdrant.AsyncQdrantClient") as mock_client:
            mock_client.side_effect = Exception("Connection failed")
            with pytest.raises(VectorStoreError, match="Failed to connect"):
                await qdrant_store.connect()

    async def test_initialize_new_collection(self, qdrant_store):
        """Test initialization creates a named-vector collection and indices."""
        mock_client = AsyncMock()
        mock_collections = MagicMock()
        mock_collections.collections = []
        mock_client.get_collections.return_value = mock_collections

        with patch("memsync.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client):
            await qdrant_store.initialize()

            mock_client.create_collection.assert_called_once()
            vectors_config = mock_client.create_collection.call_args.kwargs["vectors_config"]
            assert list(vectors_config) == [VECTOR_NAME]
            assert vectors_config[VECTOR_NAME].size == 3

            indexed = {
                call.kwargs["field_name"]
                for call in mock_client.create_payload_index.call_args_list
            }
            assert indexed == {"user_id", "conversation_id", "is_deleted", "created_ts"}

    async def test_initialize_existing_collection(self, qdrant_store):
        """Test initialization with existing collection."""
        mock_client = AsyncMock()
        mock_collection = MagicMock()
        mock_collection.name = "test_memories"
        mock_collections = MagicMock()
        mock_collections.collections = [mock_collection]
        mock_client.get_collections.return_value = mock_collections

        with patch("memsync.core.vector_store.qdrant.AsyncQdrantClient", return_value=mock_client):
            await qdrant_store.initialize()

            mock_client.create_collection.assert_not_called()

    async def test_record_payload_round_trip(self, qdrant_store, sample_record):
        """Test record to payload conversion and back."""
        payload = qdrant_store._record_to_payload(sample_record)

        assert payload["original_id"] == sample_record.id
        assert payload["created_ts"] == sample_record.created_at.timestamp()
        assert "embedding" not in payload

        record = qdrant_store._payload_to_record(payload, {VECTOR_NAME: [0.1, 0.2, 0.3]})
        assert record == sample_record

    async def test_payload_without_vector(self, qdrant_store, sample_record):
        """Test a point stored before its embedding converts to an empty embedding."""
        payload = qdrant_store._record_to_payload(sample_record)

        record = qdrant_store._payload_to_record(payload, {})

        assert record.embedding == []
        assert record.has_embedding() is False

    async def test_insert(self, qdrant_store):
        """Test insert assigns an id and upserts the point."""
        mock_client = AsyncMock()
        qdrant_store.client = mock_client

        record = await qdrant_store.insert(
            user_id="user-1", content="hello", embedding=[0.1, 0.2, 0.3], importance=8
        )

        assert record.id
        assert record.importance == 8
        mock_client.upsert.assert_called_once()
        point = mock_client.upsert.call_args.kwargs["points"][0]
        assert point.id == record.id
        assert point.vector == {VECTOR_NAME: [0.1, 0.2, 0.3]}
        assert point.payload["user_id"] == "user-1"

    async def test_insert_without_embedding(self, qdrant_store):
        """Test a record can be inserted before its embedding exists."""
        mock_client = AsyncMock()
        qdrant_store.client = mock_client

        await qdrant_store.insert(user_id="user-1", content="hello", embedding=[])

        point = mock_client.upsert.call_args.kwargs["points"][0]
        assert point.vector == {}

    async def test_insert_validation(self, qdrant_store):
        """Test insert rejects missing user or content."""
        qdrant_store.client = AsyncMock()

        with pytest.raises(ValidationError):
            await qdrant_store.insert(user_id="", content="hello", embedding=[])
        with pytest.raises(ValidationError):
            await qdrant_store.insert(user_id="user-1", content="", embedding=[])

    async def test_insert_failure(self, qdrant_store):
        """Test upsert errors are wrapped."""
        mock_client = AsyncMock()
        mock_client.upsert.side_effect = Exception("disk full")
        qdrant_store.client = mock_client

        with pytest.raises(VectorStoreError, match="Failed to insert memory"):
            await qdrant_store.insert(user_id="user-1", content="hello", embedding=[])

    async def test_get_by_id(self, qdrant_store, sample_record):
        """Test retrieval by id."""
        mock_client = AsyncMock()
        mock_client.retrieve.return_value = [make_point(qdrant_store, sample_record)]
        qdrant_store.client = mock_client

        record = await qdrant_store.get_by_id(sample_record.id)

        assert record == sample_record

    async def test_get_by_id_not_found(self, qdrant_store):
        """Test missing ids return None."""
        mock_client = AsyncMock()
        mock_client.retrieve.return_value = []
        qdrant_store.client = mock_client

        assert await qdrant_store.get_by_id("missing") is None

    async def test_get_by_id_hides_soft_deleted(self, qdrant_store, sample_record):
        """Test soft-deleted records are hidden unless requested."""
        deleted = sample_record.model_copy(update={"is_deleted": True})
        mock_client = AsyncMock()
        mock_client.retrieve.return_value = [make_point(qdrant_store, deleted)]
        qdrant_store.client = mock_client

        assert await qdrant_store.get_by_id(deleted.id) is None
        assert (await qdrant_store.get_by_id(deleted.id, include_deleted=True)).is_deleted

    async def test_get_by_id_empty(self, qdrant_store):
        """Test empty ids are rejected."""
        with pytest.raises(ValidationError):
            await qdrant_store.get_by_id("  ")

    async def test_update(self, qdrant_store, sample_record):
        """Test partial update merges fields into the stored record."""
        mock_client = AsyncMock()
        mock_client.retrieve.return_value = [make_point(qdrant_store, sample_record)]
        qdrant_store.client = mock_client

        updated = await qdrant_store.update(sample_record.id, {"content": "new", "summary": None})

        assert updated.content == "new"
        assert updated.summary is None
        assert updated.importance == sample_record.importance
        assert updated.updated_at > sample_record.updated_at
        point = mock_client.upsert.call_args.kwargs["points"][0]
        assert point.payload["content"] == "new"

    async def test_update_not_found(self, qdrant_store):
        """Test updating a missing record returns None."""
        mock_client = AsyncMock()
        mock_client.retrieve.return_value = []
        qdrant_store.client = mock_client

        assert await qdrant_store.update("missing", {"content": "new"}) is None
        mock_client.upsert.assert_not_called()

    async def test_update_rejects_unknown_fields(self, qdrant_store):
        """Test id and timestamps cannot be overwritten."""
        with pytest.raises(ValidationError):
            await qdrant_store.update("m1", {"id": "other"})

    async def test_update_rejects_invalid_importance(self, qdrant_store, sample_record):
        """Test updated records are re-validated."""
        mock_client = AsyncMock()
        mock_client.retrieve.return_value = [make_point(qdrant_store, sample_record)]
        qdrant_store.client = mock_client

        with pytest.raises(ValueError):
            await qdrant_store.update(sample_record.id, {"importance": 11})
        mock_client.upsert.assert_not_called()

    async def test_soft_delete(self, qdrant_store):
        """Test soft delete sets the payload flag."""
        mock_client = AsyncMock()
        qdrant_store.client = mock_client

        await qdrant_store.delete("550e8400-e29b-41d4-a716-446655440000")

        mock_client.set_payload.assert_called_once()
        assert mock_client.set_payload.call_args.kwargs["payload"]["is_deleted"] is True
        mock_client.delete.assert_not_called()

    async def test_hard_delete(self, qdrant_store):
        """Test hard delete removes the point."""
        mock_client = AsyncMock()
        qdrant_store.client = mock_client

        await qdrant_store.delete("550e8400-e29b-41d4-a716-446655440000", hard=True)

        mock_client.delete.assert_called_once()
        mock_client.set_payload.assert_not_called()

    async def test_delete_failure(self, qdrant_store):
        """Test delete errors are wrapped."""
        mock_client = AsyncMock()
        mock_client.delete.side_effect = Exception("timeout")
        qdrant_store.client = mock_client

        with pytest.raises(VectorStoreError, match="Failed to delete memory"):
            await qdrant_store.delete("m1", hard=True)

    async def test_get_recent(self, qdrant_store, sample_record):
        """Test recent records are scrolled newest first with filters."""
        mock_client = AsyncMock()
        mock_client.scroll.return_value = ([make_point(qdrant_store, sample_record)], None)
        qdrant_store.client = mock_client

        records = await qdrant_store.get_recent("user-1", limit=10, conversation_id="conv-1")

        assert records == [sample_record]
        kwargs = mock_client.scroll.call_args.kwargs
        assert kwargs["limit"] == 10
        assert kwargs["order_by"].key == "created_ts"
        scroll_filter = kwargs["scroll_filter"]
        assert {c.key for c in scroll_filter.must} == {"user_id", "conversation_id"}
        assert [c.key for c in scroll_filter.must_not] == ["is_deleted"]

    async def test_get_recent_all_users_including_deleted(self, qdrant_store):
        """Test no filter is sent for an unscoped scan including deleted records."""
        mock_client = AsyncMock()
        mock_client.scroll.return_value = ([], None)
        qdrant_store.client = mock_client

        await qdrant_store.get_recent(None, exclude_deleted=False)

        assert mock_client.scroll.call_args.kwargs["scroll_filter"] is None

    async def test_get_stats(self, qdrant_store):
        """Test counts of total and soft-deleted records."""
        mock_client = AsyncMock()
        mock_client.count.side_effect = [MagicMock(count=10), MagicMock(count=3)]
        qdrant_store.client = mock_client

        stats = await qdrant_store.get_stats("user-1")

        assert stats.total == 10
        assert stats.deleted == 3
        assert stats.active == 7

    async def test_get_stats_failure(self, qdrant_store):
        """Test count errors are wrapped."""
        mock_client = AsyncMock()
        mock_client.count.side_effect = Exception("unavailable")
        qdrant_store.client = mock_client

        with pytest.raises(VectorStoreError, match="Failed to count memories"):
            await qdrant_store.get_stats()

    async def test_search_similar(self, qdrant_store, sample_record):
        """Test similarity search returns records with scores."""
        point = make_point(qdrant_store, sample_record)
        point.score = 0.92
        response = MagicMock()
        response.points = [point]
        mock_client = AsyncMock()
        mock_client.query_points.return_value = response
        qdrant_store.client = mock_client

        results = await qdrant_store.search_similar([0.1, 0.2, 0.3], user_id="user-1", limit=5)

        assert results == [(sample_record, 0.92)]
        assert mock_client.query_points.call_args.kwargs["using"] == VECTOR_NAME

    async def test_search_similar_requires_user(self, qdrant_store):
        """Test similarity search is always scoped to a user."""
        with pytest.raises(ValidationError):
            await qdrant_store.search_similar([0.1, 0.2, 0.3], user_id="")

    async def test_close(self, qdrant_store):
        """Test close releases the client."""
        mock_client = AsyncMock()
        qdrant_store.client = mock_client

        await qdrant_store.close()

        mock_client.close.assert_called_once()
        assert qdrant_store.client is None


@pytest.mark.unit
class TestQdrantVectorStoreOptions:
    """Test constructor options."""

    def test_grpc_and_quantization(self):
        store = QdrantVectorStore(use_grpc=True, port=6334, use_quantization=True)
        assert store.use_grpc is True
        assert store.port == 6334
        assert store.use_quantization is True
