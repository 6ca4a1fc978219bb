"""
Custom exception hierarchy for memsync.

Provides structured error types for the dual-write persistence layer.
All exceptions inherit from MemsyncError for easy catching.
"""


class MemsyncError(Exception):
    """
    Base exception for all memsync errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize memsync error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(MemsyncError):
    """
    Base exception for store operations.
    Used for errors related to data storage operations.
    """

    pass


class VectorStoreError(StoreError):
    """
    Vector store operation errors.
    The vector store is the source of truth, so these are always fatal
    to the operation that raised them.
    """

    pass


class GraphStoreError(StoreError):
    """
    Graph store operation errors.
    Non-fatal by default: recorded as an inconsistency and surfaced in
    result metadata.
    """

    pass


class SyncError(StoreError):
    """
    Synchronization errors between stores.
    Raised when scanning or repairing a single record fails, or when a
    sync job cannot run at all.
    """

    pass


class ValidationError(MemsyncError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class NotFoundError(MemsyncError):
    """
    Resource not found errors.
    Raised when a requested memory record doesn't exist.
    """

    pass


class ConfigurationError(MemsyncError):
    """
    Configuration errors.
    Raised when configuration is invalid or disables a required store.
    """

    pass
