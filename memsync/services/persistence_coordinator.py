"""
Persistence Coordinator - Dual writes to the vector and graph stores.

Handles:
- Vector store writes on the critical path (source of truth)
- Best-effort graph projection (anchor node, entities, MENTIONED_IN)
- Inconsistency reporting for partial failures
- Optional rollback of the vector write when the graph write fails
- Independent health probing of both stores
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from memsync.config import PersistenceConfig
from memsync.core.graph_store import queries
from memsync.core.graph_store.base import GraphStore
from memsync.core.graph_store.queries import ANCHOR_LABEL, GraphQuery
from memsync.core.vector_store.base import VectorStore
from memsync.models.entity import Entity
from memsync.models.memory import MemoryRecord, VectorStats
from memsync.models.persistence import (
    HealthCheck,
    HealthMetrics,
    HealthStatus,
    MemoryDeletionRequest,
    MemoryStorageRequest,
    MemoryUpdateRequest,
    PersistenceMetadata,
    PersistenceOutcome,
    PersistenceResult,
    StorageStatus,
    StoreStatus,
)
from memsync.models.sync import Inconsistency, InconsistencyIssue, compute_sync_percentage
from memsync.services.inconsistency_log import InconsistencyLog, LoggingInconsistencyLog
from memsync.utils.exceptions import (
    ConfigurationError,
    GraphStoreError,
    NotFoundError,
    VectorStoreError,
)
from memsync.utils.logger import get_logger
from memsync.utils.retry import retry_async, with_timeout

logger = get_logger(__name__)

T = TypeVar("T")


class PersistenceCoordinator:
    """
    Writes memories to both stores with the vector store as source of truth.

    - Vector store failure = the operation fails
    - Graph store failure = inconsistency recorded, operation still succeeds
      (unless rollback_on_partial_failure is set, which only applies to store())

    Graph writes are MERGE-based and retried with exponential backoff.
    Vector writes are not retried. Every store call is bounded by
    config.store_timeout.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        graph_store: GraphStore,
        config: PersistenceConfig | None = None,
        inconsistency_log: InconsistencyLog | None = None,
    ):
        """
        Initialize coordinator.

        Args:
            vector_store: Vector database (source of truth)
            graph_store: Graph database (derived projection)
            config: Persistence configuration
            inconsistency_log: Sink for detected inconsistencies
        """
        self.vector_store = vector_store
        self.graph_store = graph_store
        self.config = config or PersistenceConfig()
        self.inconsistency_log = inconsistency_log or LoggingInconsistencyLog()

    # ═══════════════════════════════════════════════════════════
    # WRITE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def store(self, request: MemoryStorageRequest) -> PersistenceResult[MemoryRecord]:
        """
        Store a new memory in the vector store, then project it into the graph.

        Args:
            request: Storage request

        Returns:
            PersistenceResult with the stored record

        Raises:
            GraphStoreError: If the graph write failed and
                rollback_on_partial_failure is enabled
        """
        start = time.perf_counter()
        metadata = PersistenceMetadata()

        if not self.config.enable_vector_store:
            return self._vector_disabled("store", metadata, start)

        try:
            record = await self._vector_call(
                self.vector_store.insert(
                    user_id=request.user_id,
                    content=request.content,
                    embedding=request.embedding or [],
                    conversation_id=request.conversation_id,
                    summary=request.summary,
                    metadata=request.metadata,
                    importance=request.importance or 5,
                )
            )
        except Exception as e:
            error = self._vector_error(e, "store", {"user_id": request.user_id})
            return self._fatal(error, metadata, start)

        metadata.vector_write_success = True
        logger.debug(
            "Vector write succeeded", extra={"memory_id": record.id}
        )

        graph_error: GraphStoreError | None = None
        if request.entities is not None and self._graph_enabled("store", record.id):
            try:
                await self._graph_write(
                    "store", record.id, lambda: self._write_projection(record, request.entities)
                )
                metadata.graph_write_success = True
            except Exception as e:
                graph_error = self._graph_error(e, "store", record.id)
                await self._record_inconsistency(
                    record.id,
                    InconsistencyIssue.MISSING_IN_GRAPH,
                    f"Graph write failed: {graph_error.message}",
                    operation="store",
                    entity_count=len(request.entities),
                )
                if self.config.rollback_on_partial_failure:
                    await self._rollback(record.id, graph_error)

        return self._result(record, metadata, start, graph_error)

    async def update(self, request: MemoryUpdateRequest) -> PersistenceResult[MemoryRecord]:
        """
        Update a memory, replacing its entity relationships if entities are given.

        Graph failures are never rolled back.

        Args:
            request: Update request (only explicitly set fields are applied)

        Returns:
            PersistenceResult with the updated record; a FATAL result with
            NotFoundError when the memory does not exist
        """
        start = time.perf_counter()
        metadata = PersistenceMetadata()

        if not self.config.enable_vector_store:
            return self._vector_disabled("update", metadata, start)

        try:
            record = await self._vector_call(
                self.vector_store.update(request.id, request.changes())
            )
        except Exception as e:
            error = self._vector_error(e, "update", {"memory_id": request.id})
            return self._fatal(error, metadata, start)

        if record is None:
            logger.warning("Update target not found", extra={"memory_id": request.id})
            error = NotFoundError(
                f"Memory {request.id} not found",
                context={"memory_id": request.id, "operation": "update"},
            )
            return self._fatal(error, metadata, start)

        metadata.vector_write_success = True

        graph_error: GraphStoreError | None = None
        if request.entities is not None and self._graph_enabled("update", record.id):
            try:
                await self._graph_write(
                    "update",
                    record.id,
                    lambda: self._rewrite_projection(record, request.entities),
                )
                metadata.graph_write_success = True
            except Exception as e:
                graph_error = self._graph_error(e, "update", record.id)
                await self._record_inconsistency(
                    record.id,
                    InconsistencyIssue.MISSING_IN_GRAPH,
                    f"Graph update failed: {graph_error.message}",
                    operation="update",
                    entity_count=len(request.entities),
                )

        return self._result(record, metadata, start, graph_error)

    async def delete(self, request: MemoryDeletionRequest) -> PersistenceResult[None]:
        """
        Delete a memory, optionally removing its graph anchor too.

        A failed graph cascade leaves an orphaned anchor; it is recorded as
        a missing_in_vector inconsistency and the delete still succeeds.

        Args:
            request: Deletion request

        Returns:
            PersistenceResult without data
        """
        start = time.perf_counter()
        metadata = PersistenceMetadata()

        if not self.config.enable_vector_store:
            return self._vector_disabled("delete", metadata, start)

        try:
            await self._vector_call(self.vector_store.delete(request.id, hard=request.hard))
        except Exception as e:
            error = self._vector_error(e, "delete", {"memory_id": request.id, "hard": request.hard})
            return self._fatal(error, metadata, start)

        metadata.vector_write_success = True

        graph_error: GraphStoreError | None = None
        if request.cascade_graph and self._graph_enabled("delete", request.id):
            try:
                await self._graph_write(
                    "delete",
                    request.id,
                    lambda: self._execute(queries.delete_anchor(request.id)),
                )
                metadata.graph_write_success = True
            except Exception as e:
                graph_error = self._graph_error(e, "delete", request.id)
                await self._record_inconsistency(
                    request.id,
                    InconsistencyIssue.MISSING_IN_VECTOR,
                    f"Graph anchor left behind after delete: {graph_error.message}",
                    operation="delete",
                    hard=request.hard,
                )

        return self._result(None, metadata, start, graph_error)

    # ═══════════════════════════════════════════════════════════
    # HEALTH
    # ═══════════════════════════════════════════════════════════

    async def get_health(self) -> HealthCheck:
        """
        Check both stores independently and compare their record counts.

        Returns:
            HealthCheck with per-store status and sync metrics
        """
        vector_status, vector_stats = await self._check_vector_store()
        graph_status, anchor_count = await self._check_graph_store()

        total = vector_stats.active if vector_stats else 0
        vector_count = total if vector_status.healthy else 0
        graph_count = anchor_count if graph_status.healthy else 0

        if vector_status.healthy and graph_status.healthy:
            status = HealthStatus.HEALTHY
        elif vector_status.healthy or graph_status.healthy:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UNHEALTHY

        health = HealthCheck(
            status=status,
            stores=StorageStatus(vector_store=vector_status, graph_store=graph_status),
            metrics=HealthMetrics(
                total_memories=total,
                vector_store_count=vector_count,
                graph_store_count=graph_count,
                sync_percentage=compute_sync_percentage(vector_count, graph_count, total),
            ),
        )

        logger.info(
            f"Health check: {status.value}",
            extra={
                "status": status.value,
                "sync_percentage": health.metrics.sync_percentage,
                "total_memories": total,
            },
        )
        return health

    async def _check_vector_store(self) -> tuple[StoreStatus, VectorStats | None]:
        if not self.config.enable_vector_store:
            return _unavailable("Vector store disabled"), None

        try:
            stats = await self._vector_call(self.vector_store.get_stats(None))
        except Exception as e:
            logger.warning(
                "Vector store health check failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return _unavailable(str(e) or type(e).__name__), None

        return StoreStatus(available=True, healthy=True), stats

    async def _check_graph_store(self) -> tuple[StoreStatus, int]:
        if not self.config.enable_graph_store:
            return _unavailable("Graph store disabled"), 0
        if not self.graph_store.is_configured():
            return _unavailable("Graph store not configured"), 0

        try:
            reachable = await with_timeout(
                self.graph_store.verify_connection(), self.config.store_timeout
            )
            if not reachable:
                return _unavailable("Graph store unreachable"), 0
            stats = await with_timeout(self.graph_store.get_stats(), self.config.store_timeout)
        except Exception as e:
            logger.warning(
                "Graph store health check failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return _unavailable(str(e) or type(e).__name__), 0

        return StoreStatus(available=True, healthy=True), stats.nodes_by_type.get(ANCHOR_LABEL, 0)

    # ═══════════════════════════════════════════════════════════
    # GRAPH PROJECTION
    # ═══════════════════════════════════════════════════════════

    async def _write_projection(self, record: MemoryRecord, entities: list[Entity]) -> None:
        """Merge the anchor node, then each entity with its MENTIONED_IN link."""
        await self._execute(queries.merge_anchor(record))
        for entity in entities:
            await self._execute(queries.merge_entity(entity))
            await self._execute(queries.merge_mentioned_in(entity, record.id))

    async def _rewrite_projection(self, record: MemoryRecord, entities: list[Entity]) -> None:
        """Drop existing MENTIONED_IN links, then write the new entity list."""
        await self._execute(queries.remove_mentions(record.id))
        await self._write_projection(record, entities)

    async def _execute(self, query: GraphQuery) -> None:
        await with_timeout(self.graph_store.execute(query), self.config.store_timeout)

    async def _graph_write(
        self, operation: str, memory_id: str, work: Callable[[], Awaitable[None]]
    ) -> None:
        await retry_async(
            work,
            operation_name=f"graph_{operation}",
            max_retries=self.config.retry_attempts,
            retry_delay=self.config.retry_delay,
            context={"memory_id": memory_id},
        )

    def _graph_enabled(self, operation: str, memory_id: str) -> bool:
        if not self.config.enable_graph_store:
            return False
        if not self.graph_store.is_configured():
            logger.warning(
                f"Graph store not configured, skipping graph {operation}",
                extra={"memory_id": memory_id, "operation": operation},
            )
            return False
        return True

    async def _rollback(self, memory_id: str, graph_error: GraphStoreError) -> None:
        """
        Hard-delete a freshly inserted vector record after a failed graph write.

        Always raises the graph error, whether or not the rollback succeeded.
        """
        rollback_succeeded = True
        try:
            await self._vector_call(self.vector_store.delete(memory_id, hard=True))
            logger.warning(
                "Rolled back vector write",
                extra={"memory_id": memory_id, "operation": "store"},
            )
        except Exception as e:
            rollback_succeeded = False
            logger.error(
                "Rollback failed, vector record remains",
                extra={
                    "memory_id": memory_id,
                    "operation": "store",
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

        raise GraphStoreError(
            f"Graph write failed for memory {memory_id}: {graph_error.message}",
            context={
                **graph_error.context,
                "memory_id": memory_id,
                "rolled_back": True,
                "rollback_succeeded": rollback_succeeded,
            },
        ) from graph_error

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    async def _vector_call(self, awaitable: Awaitable[T]) -> T:
        return await with_timeout(awaitable, self.config.store_timeout)

    def _vector_error(
        self, error: Exception, operation: str, context: dict[str, Any]
    ) -> VectorStoreError:
        logger.error(
            f"Vector {operation} failed",
            extra={
                **context,
                "operation": operation,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        if isinstance(error, VectorStoreError):
            return error
        wrapped = VectorStoreError(
            f"Vector {operation} failed: {error or type(error).__name__}",
            context={**context, "operation": operation, "error_type": type(error).__name__},
        )
        wrapped.__cause__ = error
        return wrapped

    def _graph_error(self, error: Exception, operation: str, memory_id: str) -> GraphStoreError:
        logger.error(
            f"Graph {operation} failed (non-critical)",
            extra={
                "memory_id": memory_id,
                "operation": operation,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        if isinstance(error, GraphStoreError):
            return error
        wrapped = GraphStoreError(
            f"Graph {operation} failed: {error or type(error).__name__}",
            context={
                "memory_id": memory_id,
                "operation": operation,
                "error_type": type(error).__name__,
            },
        )
        wrapped.__cause__ = error
        return wrapped

    async def _record_inconsistency(
        self, memory_id: str, issue: InconsistencyIssue, details: str, **context: Any
    ) -> None:
        inconsistency = Inconsistency(
            memory_id=memory_id, issue=issue, details=details, context=context
        )
        try:
            await self.inconsistency_log.record(inconsistency)
        except Exception as e:
            logger.error(
                "Failed to record inconsistency",
                extra={"memory_id": memory_id, "issue": issue.value, "error": str(e)},
            )

    def _vector_disabled(
        self, operation: str, metadata: PersistenceMetadata, start: float
    ) -> PersistenceResult:
        logger.warning(
            f"Vector store disabled, {operation} skipped", extra={"operation": operation}
        )
        error = ConfigurationError(
            "Vector store is disabled", context={"operation": operation}
        )
        return self._fatal(error, metadata, start)

    def _fatal(
        self, error: Exception, metadata: PersistenceMetadata, start: float
    ) -> PersistenceResult:
        metadata.duration_ms = (time.perf_counter() - start) * 1000
        return PersistenceResult(
            success=False, outcome=PersistenceOutcome.FATAL, error=error, metadata=metadata
        )

    def _result(
        self,
        data: Any,
        metadata: PersistenceMetadata,
        start: float,
        graph_error: GraphStoreError | None,
    ) -> PersistenceResult:
        metadata.duration_ms = (time.perf_counter() - start) * 1000
        return PersistenceResult(
            success=True,
            outcome=PersistenceOutcome.RECOVERED if graph_error else PersistenceOutcome.OK,
            data=data,
            error=graph_error,
            metadata=metadata,
        )


def _unavailable(error: str) -> StoreStatus:
    return StoreStatus(available=False, healthy=False, error=error)
