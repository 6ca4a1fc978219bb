"""
Factory modules for creating memsync store backends.
"""

from memsync.core.factory.graph_factory import GraphStoreFactory
from memsync.core.factory.vector_factory import VectorStoreFactory

__all__ = [
    "GraphStoreFactory",
    "VectorStoreFactory",
]
