"""
ID generation utilities for memsync.

Memory ids are plain UUID4 strings so that every vector backend can use
them directly as point ids, and the graph anchor node can share the same key.
"""

from uuid import uuid4


def generate_memory_id() -> str:
    """
    Generate unique Memory ID.

    Returns:
        UUID4 string (36 characters)
    """
    return str(uuid4())


def generate_inconsistency_id() -> str:
    """
    Generate unique Inconsistency ID.

    Returns:
        ID in format "inc_xxx" where xxx is 12 hex characters
    """
    return f"inc_{uuid4().hex[:12]}"
