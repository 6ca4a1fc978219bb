"""
Memory record model as owned by the vector store.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class MemoryRecord(BaseModel):
    """
    A single piece of user memory (note, extracted fact, conversation snippet).

    Storage Architecture:
    - Vector Store: Source of truth - stores ALL fields including the embedding
    - Graph Store: Anchor node only (id, user_id, content, created_at) that entity
      nodes attach to via MENTIONED_IN relationships

    The coordinator never caches records; every read goes to the vector store.
    """

    # Core identity
    id: str = Field(..., description="Memory ID assigned by the vector store")
    user_id: str = Field(..., description="Owner user ID")
    content: str = Field(..., description="Memory content")
    embedding: list[float] = Field(
        default_factory=list, description="Vector embedding (empty until computed)"
    )

    # Context
    conversation_id: str | None = Field(default=None, description="Originating conversation")
    summary: str | None = Field(default=None, description="Optional short summary")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Additional metadata")

    # Scoring
    importance: int = Field(default=5, ge=1, le=10, description="Importance on a 1-10 scale")
    access_count: int = Field(default=0, ge=0, description="Number of times accessed")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.now, description="Last update timestamp")

    # Soft delete
    is_deleted: bool = Field(default=False, description="Soft-delete flag")

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat()}

    def has_embedding(self) -> bool:
        """Check whether the embedding has been computed yet."""
        return len(self.embedding) > 0


class VectorStats(BaseModel):
    """Record counts reported by a vector store."""

    total: int = 0
    active: int = 0
    deleted: int = 0
