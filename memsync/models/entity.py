"""
Entity models produced by the (caller-side) entity extractor.
"""

from enum import Enum

from pydantic import BaseModel, Field


class EntityType(str, Enum):
    """Categories of entities extracted from memory content."""

    PERSON = "person"
    COMPANY = "company"
    PROJECT = "project"
    DATE = "date"
    TOPIC = "topic"
    LOCATION = "location"
    ACTION_ITEM = "action_item"


# Graph node label per entity type. Dates and action items share the Topic label.
ENTITY_LABELS: dict[EntityType, str] = {
    EntityType.PERSON: "Person",
    EntityType.COMPANY: "Company",
    EntityType.PROJECT: "Project",
    EntityType.TOPIC: "Topic",
    EntityType.LOCATION: "Location",
    EntityType.DATE: "Topic",
    EntityType.ACTION_ITEM: "Topic",
}


class Entity(BaseModel):
    """
    A typed, normalized fact extracted from memory content.

    Entities are transient: the coordinator turns them into graph nodes and
    MENTIONED_IN relationships but never stores them anywhere else.
    """

    type: EntityType = Field(..., description="Entity category")
    value: str = Field(..., description="Raw extracted string")
    normalized: str = Field(..., description="Canonical key (e.g. 'Bob' -> 'robert smith')")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Extraction confidence")
    source: str = Field(default="body", description="Where the entity was found")
    context: str | None = Field(default=None, description="Surrounding text")

    @property
    def label(self) -> str:
        """Graph node label for this entity."""
        return entity_type_to_label(self.type)


def entity_type_to_label(entity_type: EntityType) -> str:
    """
    Map an entity type to its graph node label.

    Args:
        entity_type: Entity category

    Returns:
        Node label from the fixed label table
    """
    return ENTITY_LABELS[EntityType(entity_type)]
