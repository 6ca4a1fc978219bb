"""
Neo4j graph store implementation.

Holds the memory anchor nodes, entity nodes and MENTIONED_IN relationships.
"""

from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase

from memsync.core.graph_store.base import GraphStats, GraphStore
from memsync.core.graph_store.queries import ANCHOR_LABEL
from memsync.models.entity import ENTITY_LABELS
from memsync.utils.exceptions import ConfigurationError, GraphStoreError
from memsync.utils.logger import get_logger

logger = get_logger(__name__)


class Neo4jGraphStore(GraphStore):
    """
    Neo4j-based graph store for the entity projection.

    Features:
    - Native graph traversal
    - Cypher query language
    - ACID transactions per statement
    - MERGE-based idempotent writes
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "password",
        database: str = "neo4j",
    ):
        """
        Initialize Neo4j graph store.

        Args:
            uri: Neo4j connection URI
            username: Username
            password: Password
            database: Database name
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.driver: AsyncDriver | None = None

    def is_configured(self) -> bool:
        return bool(self.uri and self.username and self.password)

    async def connect(self) -> None:
        """
        Establish connection to Neo4j.

        Raises:
            ConfigurationError: If connection settings are missing
            GraphStoreError: If connection fails
        """
        if not self.is_configured():
            raise ConfigurationError("Neo4j connection settings are incomplete")

        if self.driver is None:
            try:
                self.driver = AsyncGraphDatabase.driver(
                    self.uri,
                    auth=(self.username, self.password),
                )
            except Exception as e:
                logger.error(
                    "Failed to connect to Neo4j",
                    extra={"uri": self.uri, "error": str(e)},
                )
                raise GraphStoreError(f"Failed to connect to Neo4j: {e}") from e

    async def initialize(self) -> None:
        """
        Create indexes and constraints.

        Raises:
            GraphStoreError: If initialization fails
        """
        await self.create_indexes()

    async def verify_connection(self) -> bool:
        """
        Check that Neo4j answers.

        Returns:
            True when the server is reachable

        Raises:
            GraphStoreError: If the server cannot be reached
        """
        await self.connect()
        try:
            await self.driver.verify_connectivity()
        except Exception as e:
            logger.warning(
                "Neo4j connectivity check failed",
                extra={"uri": self.uri, "error": str(e)},
            )
            raise GraphStoreError(f"Neo4j is unreachable: {e}", context={"uri": self.uri}) from e
        return True

    # ═══════════════════════════════════════════════════════════
    # QUERY EXECUTION
    # ═══════════════════════════════════════════════════════════

    async def run_query(self, query: str, params: dict[str, Any] | None = None) -> None:
        await self.connect()
        try:
            async with self.driver.session(database=self.database) as session:
                result = await session.run(query, params or {})
                await result.consume()
        except Exception as e:
            logger.error(
                "Neo4j write failed",
                extra={"query": query, "error": str(e)},
            )
            raise GraphStoreError(f"Neo4j write failed: {e}", context={"query": query}) from e

    async def query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        await self.connect()
        try:
            async with self.driver.session(database=self.database) as session:
                result = await session.run(query, params or {})
                return await result.data()
        except Exception as e:
            logger.error(
                "Neo4j read failed",
                extra={"query": query, "error": str(e)},
            )
            raise GraphStoreError(f"Neo4j read failed: {e}", context={"query": query}) from e

    # ═══════════════════════════════════════════════════════════
    # MAINTENANCE
    # ═══════════════════════════════════════════════════════════

    async def clear_all(self) -> None:
        """Delete every node and relationship in the database."""
        await self.run_query("MATCH (n) DETACH DELETE n")
        logger.warning("Cleared all graph data", extra={"database": self.database})

    async def create_indexes(self) -> None:
        """
        Create the anchor constraint and lookup indexes.

        Raises:
            GraphStoreError: If index creation fails
        """
        # Unique anchor per memory id
        await self.run_query(
            "CREATE CONSTRAINT memory_id IF NOT EXISTS "
            f"FOR (m:{ANCHOR_LABEL}) REQUIRE m.id IS UNIQUE"
        )
        await self.run_query(
            f"CREATE INDEX memory_user IF NOT EXISTS FOR (m:{ANCHOR_LABEL}) ON (m.user_id)"
        )

        for label in sorted(set(ENTITY_LABELS.values())):
            await self.run_query(
                f"CREATE INDEX {label.lower()}_normalized IF NOT EXISTS "
                f"FOR (e:{label}) ON (e.normalized)"
            )

    async def get_stats(self) -> GraphStats:
        """
        Count nodes and relationships.

        Raises:
            GraphStoreError: If counting fails
        """
        node_rows = await self.query("MATCH (n) RETURN count(n) AS count")
        rel_rows = await self.query("MATCH ()-[r]->() RETURN count(r) AS count")
        label_rows = await self.query(
            "MATCH (n) UNWIND labels(n) AS label RETURN label, count(*) AS count"
        )
        type_rows = await self.query(
            "MATCH ()-[r]->() RETURN type(r) AS type, count(r) AS count"
        )

        return GraphStats(
            node_count=node_rows[0]["count"] if node_rows else 0,
            relationship_count=rel_rows[0]["count"] if rel_rows else 0,
            nodes_by_type={row["label"]: row["count"] for row in label_rows},
            relationships_by_type={row["type"]: row["count"] for row in type_rows},
        )

    async def close(self) -> None:
        """Close the Neo4j driver."""
        if self.driver is not None:
            await self.driver.close()
            self.driver = None
