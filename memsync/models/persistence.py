"""
Request and result models for the persistence coordinator.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from memsync.models.entity import Entity

T = TypeVar("T")


class MemoryStorageRequest(BaseModel):
    """Request to store a new memory in both stores."""

    user_id: str = Field(..., description="Owner user ID")
    content: str = Field(..., description="Memory content")
    embedding: list[float] | None = Field(
        default=None, description="Embedding; stored empty and computed later when omitted"
    )
    conversation_id: str | None = None
    summary: str | None = None
    metadata: dict[str, Any] | None = None
    importance: int | None = Field(default=None, ge=1, le=10)
    entities: list[Entity] | None = Field(
        default=None, description="Extracted entities for the graph projection"
    )


class MemoryUpdateRequest(BaseModel):
    """
    Partial update of an existing memory.

    Only fields that were explicitly passed are applied. A field left out is
    not touched; ``summary=None`` clears the summary. Fields that cannot be
    empty on a record (content, embedding, metadata, importance) reject an
    explicit None.
    """

    id: str = Field(..., description="Memory ID")
    content: str | None = None
    embedding: list[float] | None = None
    summary: str | None = None
    metadata: dict[str, Any] | None = None
    importance: int | None = Field(default=None, ge=1, le=10)
    entities: list[Entity] | None = Field(
        default=None, description="Replacement entity list for graph relationships"
    )

    @field_validator("content", "embedding", "metadata", "importance")
    @classmethod
    def _not_clearable(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be set to None")
        return value

    def changes(self) -> dict[str, Any]:
        """
        Fields to write to the vector store.

        Returns:
            Dict of explicitly set record fields (id and entities excluded)
        """
        return self.model_dump(exclude_unset=True, exclude={"id", "entities"})


class MemoryDeletionRequest(BaseModel):
    """Request to delete a memory."""

    id: str = Field(..., description="Memory ID")
    hard: bool = Field(default=False, description="Permanently remove instead of soft delete")
    cascade_graph: bool = Field(default=False, description="Also remove the graph anchor node")


class PersistenceOutcome(str, Enum):
    """
    Tagged outcome of a coordinator operation.

    OK: no store reported an error
    RECOVERED: the vector write stands but the graph write failed
    FATAL: the operation failed as a whole
    """

    OK = "ok"
    RECOVERED = "recovered"
    FATAL = "fatal"


class PersistenceMetadata(BaseModel):
    """Per-store status of a coordinator operation."""

    vector_write_success: bool = False
    graph_write_success: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)
    duration_ms: float = 0.0


class PersistenceResult(BaseModel, Generic[T]):
    """
    Result of every coordinator operation.

    ``metadata`` is always populated, including on total failure.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    outcome: PersistenceOutcome
    data: T | None = None
    error: Exception | None = None
    metadata: PersistenceMetadata = Field(default_factory=PersistenceMetadata)

    @property
    def fully_consistent(self) -> bool:
        """True when both stores were written."""
        return (
            self.success
            and self.metadata.vector_write_success
            and self.metadata.graph_write_success
        )


class HealthStatus(str, Enum):
    """Overall health of the persistence layer."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class StoreStatus(BaseModel):
    """Availability of a single store."""

    available: bool
    healthy: bool
    last_check: datetime = Field(default_factory=datetime.now)
    error: str | None = None


class StorageStatus(BaseModel):
    """Availability of both stores."""

    vector_store: StoreStatus
    graph_store: StoreStatus


class HealthMetrics(BaseModel):
    """Coarse record-count comparison across stores."""

    total_memories: int = 0
    vector_store_count: int = 0
    graph_store_count: int = 0
    sync_percentage: int = 100


class HealthCheck(BaseModel):
    """Health report returned by PersistenceCoordinator.get_health()."""

    status: HealthStatus
    stores: StorageStatus
    metrics: HealthMetrics
