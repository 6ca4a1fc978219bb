"""
Base interface for graph storage.

The graph holds a derived projection of the vector store: one anchor node per
memory, entity nodes and MENTIONED_IN relationships pointing at the anchors.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from memsync.core.graph_store.queries import GraphQuery


class GraphStats(BaseModel):
    """Node and relationship counts of a graph store."""

    node_count: int = 0
    relationship_count: int = 0
    nodes_by_type: dict[str, int] = Field(default_factory=dict)
    relationships_by_type: dict[str, int] = Field(default_factory=dict)


class GraphStore(ABC):
    """Abstract base class for graph storage implementations."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether connection settings are present for this store."""
        pass

    @abstractmethod
    async def verify_connection(self) -> bool:
        """
        Check that the graph database is reachable.

        Returns:
            True if a round trip succeeded
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # QUERY EXECUTION
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def run_query(self, query: str, params: dict[str, Any] | None = None) -> None:
        """
        Run a write query, discarding results.

        Args:
            query: Cypher text
            params: Query parameters

        Raises:
            GraphStoreError: If the query fails
        """
        pass

    @abstractmethod
    async def query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """
        Run a read query.

        Args:
            query: Cypher text
            params: Query parameters

        Returns:
            One dict per result row

        Raises:
            GraphStoreError: If the query fails
        """
        pass

    async def execute(self, query: GraphQuery) -> None:
        """Run a named write query."""
        await self.run_query(query.cypher, query.params)

    async def fetch(self, query: GraphQuery) -> list[dict[str, Any]]:
        """Run a named read query."""
        return await self.query(query.cypher, query.params)

    # ═══════════════════════════════════════════════════════════
    # MAINTENANCE
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every node and relationship."""
        pass

    @abstractmethod
    async def create_indexes(self) -> None:
        """Create the indexes and constraints the projection relies on."""
        pass

    @abstractmethod
    async def get_stats(self) -> GraphStats:
        """
        Count nodes and relationships.

        Returns:
            GraphStats with per-label breakdowns
        """
        pass

    async def close(self) -> None:
        """Close the connection to the graph store."""
        pass
