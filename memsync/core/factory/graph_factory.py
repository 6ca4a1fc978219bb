"""
Factory for creating graph store backends.
"""

from memsync.config import Config
from memsync.core.graph_store.base import GraphStore
from memsync.core.graph_store.neo4j_store import Neo4jGraphStore
from memsync.utils.exceptions import ConfigurationError


class GraphStoreFactory:
    """Factory for creating graph store backends from configuration."""

    @staticmethod
    def create(config: Config) -> GraphStore:
        """
        Create graph store from configuration.

        Args:
            config: Main configuration object

        Returns:
            Graph store instance

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.graph_backend == "neo4j":
            return Neo4jGraphStore(
                uri=config.neo4j.uri,
                username=config.neo4j.username,
                password=config.neo4j.password,
                database=config.neo4j.database,
            )
        else:
            raise ConfigurationError(
                f"Unsupported graph backend: {config.graph_backend}",
                context={"graph_backend": config.graph_backend},
            )
