"""
Sync Service - Detects and repairs drift between the vector and graph stores.

Handles:
- Consistency scans (vector records without a graph anchor)
- Idempotent repair of missing anchors
- Full sync (scan + repair, with dry run)
- Graph rebuild from the vector store
- Periodic background sync

Sync direction: Vector store (source of truth) -> Graph store
"""

import asyncio
import time
from datetime import datetime

from memsync.config import PersistenceConfig, SyncConfig
from memsync.core.graph_store import queries
from memsync.core.graph_store.base import GraphStore
from memsync.core.graph_store.queries import ANCHOR_LABEL
from memsync.core.vector_store.base import VectorStore
from memsync.models.memory import MemoryRecord
from memsync.models.sync import (
    Inconsistency,
    InconsistencyIssue,
    SyncResult,
    SyncStats,
    compute_sync_percentage,
)
from memsync.utils.exceptions import ConfigurationError, SyncError
from memsync.utils.logger import get_logger
from memsync.utils.retry import retry_async, with_timeout

logger = get_logger(__name__)

ALL_USERS = "*"


class SyncService:
    """
    Keeps the graph projection in line with the vector store.

    Repairs only restore anchor nodes. Entity relationships are not
    reconstructed because entities are never stored outside the graph;
    rebuild_graph() reports every record whose relationships were skipped.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        graph_store: GraphStore,
        config: PersistenceConfig | None = None,
        sync_config: SyncConfig | None = None,
    ):
        """
        Initialize sync service.

        Args:
            vector_store: Vector database (source of truth)
            graph_store: Graph database (derived projection)
            config: Persistence configuration (timeouts, retries, auto sync)
            sync_config: Scan and rebuild limits
        """
        self.vector_store = vector_store
        self.graph_store = graph_store
        self.config = config or PersistenceConfig()
        self.sync_config = sync_config or SyncConfig()
        self.last_sync: datetime | None = None
        self._rebuild_locks: dict[str, asyncio.Lock] = {}
        self._worker_task: asyncio.Task | None = None

    # ═══════════════════════════════════════════════════════════
    # CONSISTENCY CHECK & REPAIR
    # ═══════════════════════════════════════════════════════════

    async def check_consistency(
        self, user_id: str | None = None, limit: int | None = None
    ) -> list[Inconsistency]:
        """
        Find recent vector records that have no graph anchor.

        Args:
            user_id: Restrict the scan to one user
            limit: Maximum records to scan (default from SyncConfig)

        Returns:
            One missing_in_graph inconsistency per record without an anchor

        Raises:
            SyncError: If the vector store cannot be read
        """
        records = await self._scan(user_id, limit or self.sync_config.default_limit)
        return await self._find_missing(records)

    async def repair_inconsistencies(self, inconsistencies: list[Inconsistency]) -> SyncResult:
        """
        Restore missing anchor nodes.

        Each inconsistency is handled on its own; a failure is counted and
        the batch continues.

        Args:
            inconsistencies: Inconsistencies to repair

        Returns:
            SyncResult with repaired and failed counts
        """
        start = time.perf_counter()
        result = SyncResult(total_checked=len(inconsistencies), inconsistencies=inconsistencies)

        logger.info(f"Repairing {len(inconsistencies)} inconsistencies")

        for inconsistency in inconsistencies:
            try:
                await self._repair_one(inconsistency)
                result.repaired += 1
            except Exception as e:
                result.failed += 1
                logger.error(
                    "Failed to repair inconsistency",
                    extra={
                        "memory_id": inconsistency.memory_id,
                        "issue": inconsistency.issue.value,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )

        result.duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Repair complete: {result.repaired} repaired, {result.failed} failed",
            extra={"repaired": result.repaired, "failed": result.failed},
        )
        return result

    async def full_sync(
        self, user_id: str | None = None, limit: int | None = None, dry_run: bool = False
    ) -> SyncResult:
        """
        Check consistency, then repair what was found.

        Args:
            user_id: Restrict the scan to one user
            limit: Maximum records to scan (default from SyncConfig)
            dry_run: Report inconsistencies without writing anything

        Returns:
            SyncResult; repaired and failed stay 0 on a dry run
        """
        start = time.perf_counter()
        logger.info(f"Starting full sync (dry_run: {dry_run})", extra={"user_id": user_id})

        records = await self._scan(user_id, limit or self.sync_config.default_limit)
        inconsistencies = await self._find_missing(records)

        if dry_run or not inconsistencies:
            result = SyncResult(total_checked=len(records), inconsistencies=inconsistencies)
        else:
            repair = await self.repair_inconsistencies(inconsistencies)
            result = repair.model_copy(update={"total_checked": len(records)})

        if not dry_run:
            self.last_sync = datetime.now()

        result.duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Full sync complete: {len(records)} checked, "
            f"{len(inconsistencies)} inconsistent, {result.repaired} repaired",
            extra={
                "user_id": user_id,
                "dry_run": dry_run,
                "total_checked": result.total_checked,
                "repaired": result.repaired,
                "failed": result.failed,
            },
        )
        return result

    # ═══════════════════════════════════════════════════════════
    # REBUILD
    # ═══════════════════════════════════════════════════════════

    async def rebuild_graph(
        self,
        user_id: str | None = None,
        limit: int | None = None,
        clear_existing: bool = False,
    ) -> SyncResult:
        """
        Recreate anchor nodes for vector records.

        Entity relationships are not rebuilt: every processed record is
        counted in relationships_skipped.

        Args:
            user_id: Restrict the rebuild to one user
            limit: Maximum records to process (default from SyncConfig)
            clear_existing: Wipe the whole graph and recreate indexes first

        Returns:
            SyncResult; repaired counts anchors written

        Raises:
            SyncError: If the graph store is not configured, a rebuild of the
                same scope is already running, or the rebuild cannot start
        """
        if not self.graph_store.is_configured():
            raise SyncError("Graph store not configured, cannot rebuild graph")

        scope = user_id or ALL_USERS
        lock = self._rebuild_locks.setdefault(scope, asyncio.Lock())
        if lock.locked():
            raise SyncError(
                f"Graph rebuild already running for scope {scope}", context={"scope": scope}
            )

        try:
            async with lock:
                return await self._rebuild(
                    user_id, limit or self.sync_config.rebuild_limit, clear_existing
                )
        finally:
            if self._rebuild_locks.get(scope) is lock and not lock.locked():
                del self._rebuild_locks[scope]

    async def _rebuild(self, user_id: str | None, limit: int, clear_existing: bool) -> SyncResult:
        start = time.perf_counter()
        logger.info(
            "Starting graph rebuild",
            extra={"user_id": user_id, "limit": limit, "clear_existing": clear_existing},
        )

        if clear_existing:
            logger.warning("Clearing existing graph data before rebuild")
            try:
                await with_timeout(self.graph_store.clear_all(), self.config.store_timeout)
                await with_timeout(self.graph_store.create_indexes(), self.config.store_timeout)
            except Exception as e:
                raise SyncError(f"Failed to reset graph before rebuild: {e}") from e

        records = await self._scan(user_id, limit)
        result = SyncResult(total_checked=len(records))

        for record in records:
            try:
                await self._write_anchor(record)
                result.repaired += 1
                # Entities are not persisted anywhere, so relationships cannot be rebuilt
                result.relationships_skipped += 1
            except Exception as e:
                result.failed += 1
                logger.error(
                    "Failed to rebuild anchor",
                    extra={"memory_id": record.id, "error": str(e)},
                )

        self.last_sync = datetime.now()
        result.duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"Graph rebuild complete: {result.repaired} anchors, "
            f"{result.relationships_skipped} records without relationships",
            extra={
                "user_id": user_id,
                "repaired": result.repaired,
                "failed": result.failed,
                "relationships_skipped": result.relationships_skipped,
            },
        )
        return result

    # ═══════════════════════════════════════════════════════════
    # STATS
    # ═══════════════════════════════════════════════════════════

    async def get_stats(self) -> SyncStats:
        """
        Raw record counts of both stores.

        Soft-deleted records are not counted. A store that cannot be counted
        yields zero counts and a 0 percent sync.

        Returns:
            SyncStats with counts, sync percentage and last sync time
        """
        try:
            vector_stats = await with_timeout(
                self.vector_store.get_stats(None), self.config.store_timeout
            )
            graph_count = 0
            if self.graph_store.is_configured():
                graph_stats = await with_timeout(
                    self.graph_store.get_stats(), self.config.store_timeout
                )
                graph_count = graph_stats.nodes_by_type.get(ANCHOR_LABEL, 0)
        except Exception as e:
            logger.error(
                "Failed to get sync stats",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return SyncStats(sync_percentage=0, last_sync=self.last_sync)

        return SyncStats(
            vector_store_count=vector_stats.active,
            graph_store_count=graph_count,
            sync_percentage=compute_sync_percentage(
                vector_stats.active, graph_count, vector_stats.active
            ),
            last_sync=self.last_sync,
        )

    # ═══════════════════════════════════════════════════════════
    # BACKGROUND SYNC
    # ═══════════════════════════════════════════════════════════

    def start_auto_sync(self, interval_seconds: float | None = None) -> None:
        """
        Start the periodic full sync worker.

        An explicit interval starts the worker directly. Without one the worker
        runs only when config.enable_auto_sync is set, every
        config.sync_interval_seconds.

        Args:
            interval_seconds: Seconds between runs (default from config)

        Raises:
            ConfigurationError: If auto sync is disabled or no interval is configured
        """
        if interval_seconds is None and not self.config.enable_auto_sync:
            raise ConfigurationError("Auto sync is disabled (enable_auto_sync is False)")

        interval = interval_seconds or self.config.sync_interval_seconds
        if not interval:
            raise ConfigurationError("Auto sync requires sync_interval_seconds")

        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self._sync_worker(interval))
            logger.info(f"Auto sync started (every {interval}s)")

    async def stop_auto_sync(self) -> None:
        """Stop the periodic full sync worker."""
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None

    @property
    def auto_sync_running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def _sync_worker(self, interval: float) -> None:
        """
        Background worker running full_sync forever.

        A failed run is logged and the loop keeps going.
        """
        while True:
            try:
                result = await self.full_sync()
                logger.info(
                    f"Auto sync run finished: {result.repaired} repaired",
                    extra={"repaired": result.repaired, "failed": result.failed},
                )
            except asyncio.CancelledError:
                logger.info("Auto sync worker stopped")
                raise
            except Exception as e:
                logger.error("Error in auto sync worker", extra={"error": str(e)})

            await asyncio.sleep(interval)

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    async def _scan(self, user_id: str | None, limit: int) -> list[MemoryRecord]:
        try:
            records = await with_timeout(
                self.vector_store.get_recent(user_id, limit=limit, exclude_deleted=True),
                self.config.store_timeout,
            )
        except Exception as e:
            logger.error(
                "Failed to read vector records",
                extra={"user_id": user_id, "limit": limit, "error": str(e)},
            )
            raise SyncError(
                f"Failed to read vector records: {e}", context={"user_id": user_id}
            ) from e

        logger.debug(f"Scanned {len(records)} vector records", extra={"user_id": user_id})
        return records

    async def _find_missing(self, records: list[MemoryRecord]) -> list[Inconsistency]:
        if not self.graph_store.is_configured():
            logger.warning("Graph store not configured, skipping consistency check")
            return []

        inconsistencies = []
        for record in records:
            if not await self._anchor_exists(record.id):
                inconsistencies.append(
                    Inconsistency(
                        memory_id=record.id,
                        issue=InconsistencyIssue.MISSING_IN_GRAPH,
                        details="Memory exists in vector store but has no graph anchor",
                        context={"user_id": record.user_id},
                    )
                )

        logger.info(
            f"Found {len(inconsistencies)} inconsistencies in {len(records)} records",
            extra={"checked": len(records), "inconsistent": len(inconsistencies)},
        )
        return inconsistencies

    async def _anchor_exists(self, memory_id: str) -> bool:
        """
        Whether the graph holds an anchor for a memory.

        A failed lookup counts as missing; repairing an existing anchor is a no-op.
        """
        try:
            rows = await with_timeout(
                self.graph_store.fetch(queries.anchor_exists(memory_id)),
                self.config.store_timeout,
            )
        except Exception as e:
            logger.error(
                "Failed to check graph anchor",
                extra={"memory_id": memory_id, "error": str(e)},
            )
            return False
        return bool(rows) and bool(rows[0].get("found"))

    async def _repair_one(self, inconsistency: Inconsistency) -> None:
        if inconsistency.issue == InconsistencyIssue.MISSING_IN_VECTOR:
            raise SyncError(
                f"Cannot repair memory {inconsistency.memory_id} missing from vector store",
                context={"memory_id": inconsistency.memory_id},
            )

        record = await with_timeout(
            self.vector_store.get_by_id(inconsistency.memory_id), self.config.store_timeout
        )
        if record is None:
            raise SyncError(
                f"Memory {inconsistency.memory_id} not found in vector store",
                context={"memory_id": inconsistency.memory_id},
            )

        await self._write_anchor(record)
        logger.info(
            "Repaired graph anchor", extra={"memory_id": record.id}
        )

    async def _write_anchor(self, record: MemoryRecord) -> None:
        await retry_async(
            lambda: with_timeout(
                self.graph_store.execute(queries.repair_anchor(record)),
                self.config.store_timeout,
            ),
            operation_name="anchor_write",
            max_retries=self.config.retry_attempts,
            retry_delay=self.config.retry_delay,
            context={"memory_id": record.id},
        )
