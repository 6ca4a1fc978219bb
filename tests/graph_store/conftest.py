"""
Shared test fixtures for graph store tests.
"""

from datetime import datetime

import pytest

from memsync.core.graph_store.neo4j_store import Neo4jGraphStore
from memsync.models.entity import Entity, EntityType
from memsync.models.memory import MemoryRecord


@pytest.fixture
def neo4j_store():
    """Create Neo4j store for testing."""
    return Neo4jGraphStore(
        uri="bolt://localhost:7687",
        username="neo4j",
        password="password",
        database="neo4j",
    )


@pytest.fixture
def sample_record():
    """Create sample memory record for testing."""
    return MemoryRecord(
        id="mem-1",
        user_id="user-1",
        content="Met Bob at Acme",
        created_at=datetime(2024, 1, 1, 12, 0, 0),
        updated_at=datetime(2024, 1, 1, 12, 0, 0),
    )


@pytest.fixture
def sample_entity():
    """Create sample entity for testing."""
    return Entity(
        type=EntityType.PERSON,
        value="Bob",
        normalized="robert smith",
        confidence=0.9,
        context="Met Bob at Acme",
    )
