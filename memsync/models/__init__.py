"""
Data models for memsync.

Core models:
- MemoryRecord, VectorStats: Vector store records (source of truth)
- Entity, EntityType: Extracted entities projected into the graph
- MemoryStorageRequest, MemoryUpdateRequest, MemoryDeletionRequest: Coordinator inputs
- PersistenceResult, PersistenceOutcome, PersistenceMetadata: Coordinator outputs
- HealthCheck, HealthStatus, StoreStatus, StorageStatus, HealthMetrics: Health reporting
- Inconsistency, InconsistencyIssue, SyncResult, SyncStats: Drift detection and repair
"""

from memsync.models.entity import ENTITY_LABELS, Entity, EntityType, entity_type_to_label
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
from memsync.models.sync import (
    Inconsistency,
    InconsistencyIssue,
    SyncResult,
    SyncStats,
    compute_sync_percentage,
)

__all__ = [
    # Memory models
    "MemoryRecord",
    "VectorStats",
    # Entity models
    "Entity",
    "EntityType",
    "ENTITY_LABELS",
    "entity_type_to_label",
    # Requests
    "MemoryStorageRequest",
    "MemoryUpdateRequest",
    "MemoryDeletionRequest",
    # Results
    "PersistenceResult",
    "PersistenceOutcome",
    "PersistenceMetadata",
    # Health
    "HealthCheck",
    "HealthStatus",
    "HealthMetrics",
    "StoreStatus",
    "StorageStatus",
    # Sync
    "Inconsistency",
    "InconsistencyIssue",
    "SyncResult",
    "SyncStats",
    "compute_sync_percentage",
]
