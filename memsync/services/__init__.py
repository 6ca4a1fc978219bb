"""
Services for memsync.

High-level persistence services:
- PersistenceCoordinator: Dual writes with the vector store as source of truth
- SyncService: Graph/Vector store drift detection, repair and rebuild
- InconsistencyLog: Sinks for partial-failure reports
"""

from memsync.services.inconsistency_log import (
    InconsistencyLog,
    InMemoryInconsistencyLog,
    LoggingInconsistencyLog,
)
from memsync.services.persistence_coordinator import PersistenceCoordinator
from memsync.services.sync_service import SyncService

__all__ = [
    "PersistenceCoordinator",
    "SyncService",
    "InconsistencyLog",
    "LoggingInconsistencyLog",
    "InMemoryInconsistencyLog",
]
