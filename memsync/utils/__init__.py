"""Utility modules for memsync."""

from memsync.utils.exceptions import (
    ConfigurationError,
    GraphStoreError,
    MemsyncError,
    NotFoundError,
    StoreError,
    SyncError,
    ValidationError,
    VectorStoreError,
)
from memsync.utils.id_generator import generate_inconsistency_id, generate_memory_id
from memsync.utils.logger import get_logger, setup_logging
from memsync.utils.retry import retry_async, with_timeout

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_memory_id",
    "generate_inconsistency_id",
    # Retry
    "retry_async",
    "with_timeout",
    # Exceptions
    "MemsyncError",
    "StoreError",
    "VectorStoreError",
    "GraphStoreError",
    "SyncError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
]
