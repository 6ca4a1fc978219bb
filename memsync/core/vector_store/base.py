"""
Base interface for vector storage.

The vector store is the source of truth: a memory exists if and only if it
exists here. Implementations raise VectorStoreError for backend failures.
"""

from abc import ABC, abstractmethod
from typing import Any

from memsync.models.memory import MemoryRecord, VectorStats


class VectorStore(ABC):
    """Abstract base class for vector storage implementations."""

    async def initialize(self) -> None:
        """Initialize the vector store (create collections/indices)."""
        pass

    @abstractmethod
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
        """
        Insert a new memory record.

        Args:
            user_id: Owner user ID
            content: Memory content
            embedding: Embedding vector (may be empty)
            conversation_id: Optional originating conversation
            summary: Optional summary
            metadata: Optional metadata dict
            importance: Importance on a 1-10 scale

        Returns:
            The stored record, with its newly assigned ID

        Raises:
            VectorStoreError: If the insert fails
        """
        pass

    @abstractmethod
    async def update(self, memory_id: str, fields: dict[str, Any]) -> MemoryRecord | None:
        """
        Apply a partial update to a record.

        Args:
            memory_id: Memory identifier
            fields: Record fields to overwrite

        Returns:
            Updated record, or None if it doesn't exist

        Raises:
            VectorStoreError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, memory_id: str, hard: bool = False) -> None:
        """
        Delete a record.

        Args:
            memory_id: Memory identifier
            hard: Remove permanently instead of setting the soft-delete flag

        Raises:
            VectorStoreError: If the delete fails
        """
        pass

    @abstractmethod
    async def get_by_id(self, memory_id: str, include_deleted: bool = False) -> MemoryRecord | None:
        """
        Retrieve a record by ID.

        Args:
            memory_id: Memory identifier
            include_deleted: Also return soft-deleted records

        Returns:
            MemoryRecord or None if not found
        """
        pass

    @abstractmethod
    async def get_recent(
        self,
        user_id: str | None,
        limit: int = 100,
        conversation_id: str | None = None,
        exclude_deleted: bool = True,
    ) -> list[MemoryRecord]:
        """
        Most recently created records, newest first.

        Args:
            user_id: Restrict to one user, None for all users
            limit: Maximum results
            conversation_id: Optional conversation filter
            exclude_deleted: Skip soft-deleted records

        Returns:
            List of records
        """
        pass

    @abstractmethod
    async def get_stats(self, user_id: str | None = None) -> VectorStats:
        """
        Record counts.

        Args:
            user_id: Restrict to one user, None for all users

        Returns:
            VectorStats with total/active/deleted counts
        """
        pass

    async def close(self) -> None:
        """Close the connection to the vector store."""
        pass
