"""Fixtures for service tests.

In-memory vector and graph stores with failure injection. The graph fake
dispatches on GraphQuery names instead of parsing Cypher.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any

import pytest

from memsync.config import PersistenceConfig, SyncConfig
from memsync.core.graph_store.base import GraphStats, GraphStore
from memsync.core.graph_store.queries import ANCHOR_LABEL, MENTIONED_IN, GraphQuery, QueryName
from memsync.core.vector_store.base import VectorStore
from memsync.models.entity import Entity, EntityType
from memsync.models.memory import MemoryRecord, VectorStats
from memsync.services.inconsistency_log import InMemoryInconsistencyLog
from memsync.services.persistence_coordinator import PersistenceCoordinator
from memsync.services.sync_service import SyncService
from memsync.utils.exceptions import GraphStoreError, VectorStoreError
from memsync.utils.id_generator import generate_memory_id


class InMemoryVectorStore(VectorStore):
    """Dict-backed vector store.

    ``fail_on`` holds method names that raise VectorStoreError.
    ``delay`` makes every call sleep first (for timeout tests).
    """

    def __init__(self):
        self.records: dict[str, MemoryRecord] = {}
        self.fail_on: set[str] = set()
        self.delay: float = 0.0
        self.calls: list[str] = []
        self._clock = datetime(2024, 1, 1)

    async def _enter(self, method: str) -> None:
        self.calls.append(method)
        if self.delay:
            await asyncio.sleep(self.delay)
        if method in self.fail_on:
            raise VectorStoreError(f"{method} unavailable")

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def insert(
        self,
        user_id: str,
        content: str,
        embedding: list[float],
        conversation_id: str | None = None,
        summary: str | None = None,
        metadata: dict[str, Any] | None = None,
        importance: int = 5,
    ) -> MemoryRecord:
        await self._enter("insert")
        now = self._tick()
        record = MemoryRecord(
            id=generate_memory_id(),
            user_id=user_id,
            content=content,
            embedding=embedding,
            conversation_id=conversation_id,
            summary=summary,
            metadata=metadata or {},
            importance=importance,
            created_at=now,
            updated_at=now,
        )
        self.records[record.id] = record
        return record

    async def update(self, memory_id: str, fields: dict[str, Any]) -> MemoryRecord | None:
        await self._enter("update")
        record = self.records.get(memory_id)
        if record is None:
            return None
        updated = record.model_copy(update={**fields, "updated_at": self._tick()})
        self.records[memory_id] = updated
        return updated

    async def delete(self, memory_id: str, hard: bool = False) -> None:
        await self._enter("delete")
        if hard:
            self.records.pop(memory_id, None)
        elif memory_id in self.records:
            self.records[memory_id] = self.records[memory_id].model_copy(
                update={"is_deleted": True}
            )

    async def get_by_id(self, memory_id: str, include_deleted: bool = False) -> MemoryRecord | None:
        await self._enter("get_by_id")
        record = self.records.get(memory_id)
        if record is None or (record.is_deleted and not include_deleted):
            return None
        return record

    async def get_recent(
        self,
        user_id: str | None,
        limit: int = 100,
        conversation_id: str | None = None,
        exclude_deleted: bool = True,
    ) -> list[MemoryRecord]:
        await self._enter("get_recent")
        records = [
            r
            for r in self.records.values()
            if (user_id is None or r.user_id == user_id)
            and (conversation_id is None or r.conversation_id == conversation_id)
            and not (exclude_deleted and r.is_deleted)
        ]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    async def get_stats(self, user_id: str | None = None) -> VectorStats:
        await self._enter("get_stats")
        records = [r for r in self.records.values() if user_id is None or r.user_id == user_id]
        deleted = sum(1 for r in records if r.is_deleted)
        return VectorStats(total=len(records), active=len(records) - deleted, deleted=deleted)

    def add(self, user_id: str = "user-1", content: str = "memory") -> MemoryRecord:
        """Seed a record directly, bypassing failure injection."""
        now = self._tick()
        record = MemoryRecord(
            id=generate_memory_id(),
            user_id=user_id,
            content=content,
            created_at=now,
            updated_at=now,
        )
        self.records[record.id] = record
        return record


class InMemoryGraphStore(GraphStore):
    """Graph fake keyed on anchors, entity nodes and MENTIONED_IN links.

    ``fail_on`` holds query names that raise GraphStoreError; ``fail_times``
    limits how many times they fail before succeeding (None = always).
    """

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.reachable = True
        self.stats_error: Exception | None = None
        self.anchors: dict[str, dict[str, Any]] = {}
        self.entities: dict[tuple[str, str], dict[str, Any]] = {}
        self.mentions: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.fail_on: set[QueryName] = set()
        self.fail_times: int | None = None
        self.delay: float = 0.0
        self.executed: list[QueryName] = []
        self.cleared = 0
        self.indexes_created = 0

    def is_configured(self) -> bool:
        return self.configured

    async def verify_connection(self) -> bool:
        if not self.reachable:
            raise GraphStoreError("graph unreachable")
        return True

    async def run_query(self, query: str, params: dict[str, Any] | None = None) -> None:
        raise NotImplementedError("InMemoryGraphStore only runs named queries")

    async def query(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        raise NotImplementedError("InMemoryGraphStore only runs named queries")

    async def _enter(self, query: GraphQuery) -> None:
        self.executed.append(query.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if query.name in self.fail_on:
            if self.fail_times is None:
                raise GraphStoreError(f"{query.name.value} failed")
            if self.fail_times > 0:
                self.fail_times -= 1
                raise GraphStoreError(f"{query.name.value} failed")

    async def execute(self, query: GraphQuery) -> None:
        await self._enter(query)
        p = query.params

        if query.name == QueryName.MERGE_ANCHOR:
            self.anchors.setdefault(p["id"], {}).update(p)
        elif query.name == QueryName.REPAIR_ANCHOR:
            if p["id"] not in self.anchors:
                self.anchors[p["id"]] = dict(p)
        elif query.name == QueryName.MERGE_ENTITY:
            key = (query.label, p["normalized"])
            node = self.entities.get(key)
            if node is None:
                self.entities[key] = {
                    "name": p["name"],
                    "frequency": 1,
                    "confidence": p["confidence"],
                }
            else:
                node["frequency"] += 1
                node["confidence"] = (node["confidence"] + p["confidence"]) / 2
        elif query.name == QueryName.MERGE_MENTIONED_IN:
            entity_key = (query.label, p["normalized"])
            if entity_key in self.entities and p["memory_id"] in self.anchors:
                self.mentions.setdefault((*entity_key, p["memory_id"]), dict(p))
        elif query.name == QueryName.REMOVE_MENTIONS:
            self.mentions = {k: v for k, v in self.mentions.items() if k[2] != p["memory_id"]}
        elif query.name == QueryName.DELETE_ANCHOR:
            self.anchors.pop(p["memory_id"], None)
            self.mentions = {k: v for k, v in self.mentions.items() if k[2] != p["memory_id"]}
        else:
            raise NotImplementedError(query.name)

    async def fetch(self, query: GraphQuery) -> list[dict[str, Any]]:
        await self._enter(query)
        if query.name == QueryName.ANCHOR_EXISTS:
            return [{"found": query.params["memory_id"] in self.anchors}]
        raise NotImplementedError(query.name)

    async def clear_all(self) -> None:
        self.cleared += 1
        self.anchors.clear()
        self.entities.clear()
        self.mentions.clear()

    async def create_indexes(self) -> None:
        self.indexes_created += 1

    async def get_stats(self) -> GraphStats:
        if self.stats_error is not None:
            raise self.stats_error
        nodes_by_type: dict[str, int] = {}
        if self.anchors:
            nodes_by_type[ANCHOR_LABEL] = len(self.anchors)
        for label, _ in self.entities:
            nodes_by_type[label] = nodes_by_type.get(label, 0) + 1
        relationships = {MENTIONED_IN: len(self.mentions)} if self.mentions else {}
        return GraphStats(
            node_count=len(self.anchors) + len(self.entities),
            relationship_count=len(self.mentions),
            nodes_by_type=nodes_by_type,
            relationships_by_type=relationships,
        )


# Fixtures


@pytest.fixture
def vector_store():
    """Empty in-memory vector store."""
    return InMemoryVectorStore()


@pytest.fixture
def graph_store():
    """Empty in-memory graph store."""
    return InMemoryGraphStore()


@pytest.fixture
def unconfigured_graph_store():
    """Graph store without connection settings."""
    return InMemoryGraphStore(configured=False)


@pytest.fixture
def persistence_config():
    """Config with fast retries for tests."""
    return PersistenceConfig(retry_attempts=3, retry_delay=0.0, store_timeout=1.0)


@pytest.fixture
def inconsistency_log():
    """Inconsistency sink that keeps records."""
    return InMemoryInconsistencyLog()


@pytest.fixture
def coordinator(vector_store, graph_store, persistence_config, inconsistency_log):
    """Coordinator wired to the in-memory stores."""
    return PersistenceCoordinator(
        vector_store=vector_store,
        graph_store=graph_store,
        config=persistence_config,
        inconsistency_log=inconsistency_log,
    )


@pytest.fixture
def sync_service(vector_store, graph_store, persistence_config):
    """Sync service wired to the in-memory stores."""
    return SyncService(
        vector_store=vector_store,
        graph_store=graph_store,
        config=persistence_config,
        sync_config=SyncConfig(),
    )


@pytest.fixture
def sample_entities():
    """Two entities extracted from a memory."""
    return [
        Entity(
            type=EntityType.PERSON,
            value="Bob",
            normalized="robert smith",
            confidence=0.9,
            context="Met Bob at Acme",
        ),
        Entity(type=EntityType.COMPANY, value="Acme", normalized="acme corp", confidence=0.8),
    ]
