"""
Shared test fixtures for vector store tests.
"""

from datetime import datetime

import pytest

from memsync.core.vector_store.qdrant import QdrantVectorStore
from memsync.models.memory import MemoryRecord


@pytest.fixture
def qdrant_store():
    """Create Qdrant store for testing."""
    return QdrantVectorStore(
        host="localhost",
        port=6333,
        collection_name="test_memories",
        vector_size=3,
        use_grpc=True,
    )


@pytest.fixture
def sample_record():
    """Create sample memory record for testing."""
    return MemoryRecord(
        id="550e8400-e29b-41d4-a716-446655440000",
        user_id="user-1",
        content="Test memory content",
        embedding=[0.1, 0.2, 0.3],
        conversation_id="conv-1",
        metadata={"source": "chat"},
        importance=7,
        created_at=datetime(2024, 1, 1, 12, 0, 0),
        updated_at=datetime(2024, 1, 1, 12, 0, 0),
    )
