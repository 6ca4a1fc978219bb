"""
Graph store implementations for memsync.

Provides abstract base, named queries and concrete implementations for graph storage.

Available backends:
- Neo4jGraphStore: Production-grade graph database
"""

from memsync.core.graph_store.base import GraphStats, GraphStore
from memsync.core.graph_store.neo4j_store import Neo4jGraphStore
from memsync.core.graph_store.queries import ANCHOR_LABEL, GraphQuery, QueryName

__all__ = [
    "GraphStore",
    "GraphStats",
    "GraphQuery",
    "QueryName",
    "ANCHOR_LABEL",
    "Neo4jGraphStore",
]
