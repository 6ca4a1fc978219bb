"""
Models for consistency scanning and repair between the two stores.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from memsync.utils.id_generator import generate_inconsistency_id


class InconsistencyIssue(str, Enum):
    """Kinds of drift between the vector store and the graph store."""

    # Record exists in the vector store but has no graph anchor node
    MISSING_IN_GRAPH = "missing_in_graph"
    # Graph anchor node survives a record that is gone from the vector store
    MISSING_IN_VECTOR = "missing_in_vector"


class Inconsistency(BaseModel):
    """A detected mismatch between the two stores for one memory."""

    id: str = Field(default_factory=generate_inconsistency_id)
    memory_id: str
    issue: InconsistencyIssue
    details: str = ""
    detected_at: datetime = Field(default_factory=datetime.now)
    context: dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat()}


class SyncResult(BaseModel):
    """Outcome of a scan, repair or rebuild batch."""

    total_checked: int = 0
    inconsistencies: list[Inconsistency] = Field(default_factory=list)
    repaired: int = 0
    failed: int = 0
    duration_ms: float = 0.0
    # Records whose entity relationships could not be rebuilt
    relationships_skipped: int = 0


class SyncStats(BaseModel):
    """Raw store counts without availability probing."""

    vector_store_count: int = 0
    graph_store_count: int = 0
    sync_percentage: int = 100
    last_sync: datetime | None = None


def compute_sync_percentage(vector_count: int, graph_count: int, total: int) -> int:
    """
    Compare record counts across stores.

    Args:
        vector_count: Records visible in the vector store
        graph_count: Anchor nodes in the graph store
        total: Total memories (denominator)

    Returns:
        min(vector, graph) / total as a percentage rounded half up,
        or 100 when total is zero
    """
    if total <= 0:
        return 100
    return math.floor(min(vector_count, graph_count) / total * 100 + 0.5)
