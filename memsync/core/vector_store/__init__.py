"""
Vector store implementations for memsync.

Provides abstract base and concrete implementations for vector storage.
"""

from memsync.core.vector_store.base import VectorStore
from memsync.core.vector_store.qdrant import QdrantVectorStore

__all__ = [
    "VectorStore",
    "QdrantVectorStore",
]
