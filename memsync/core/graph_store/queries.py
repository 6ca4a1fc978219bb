"""
Named, parameterized graph queries.

Every write the services perform against the graph goes through one of these
builders. Values always travel as parameters; node labels are interpolated
only from the fixed entity label table.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from memsync.models.entity import Entity
from memsync.models.memory import MemoryRecord

ANCHOR_LABEL = "Memory"
MENTIONED_IN = "MENTIONED_IN"


class QueryName(str, Enum):
    """Identifiers of the queries below."""

    MERGE_ANCHOR = "merge_anchor"
    MERGE_ENTITY = "merge_entity"
    MERGE_MENTIONED_IN = "merge_mentioned_in"
    REMOVE_MENTIONS = "remove_mentions"
    DELETE_ANCHOR = "delete_anchor"
    ANCHOR_EXISTS = "anchor_exists"
    REPAIR_ANCHOR = "repair_anchor"


class GraphQuery(BaseModel):
    """A Cypher statement with its parameters and a stable name."""

    model_config = ConfigDict(frozen=True)

    name: QueryName
    cypher: str
    params: dict[str, Any] = Field(default_factory=dict)
    # Entity node label the query targets, if any
    label: str | None = None


def merge_anchor(record: MemoryRecord) -> GraphQuery:
    """Create or refresh the anchor node of a memory."""
    return GraphQuery(
        name=QueryName.MERGE_ANCHOR,
        cypher=(
            f"MERGE (m:{ANCHOR_LABEL} {{id: $id}}) "
            "SET m.user_id = $user_id, m.content = $content, m.created_at = $created_at"
        ),
        params={
            "id": record.id,
            "user_id": record.user_id,
            "content": record.content,
            "created_at": record.created_at.isoformat(),
        },
    )


def merge_entity(entity: Entity, seen_at: datetime | None = None) -> GraphQuery:
    """
    Create an entity node or bump its frequency.

    New nodes start at frequency 1. Existing nodes get their frequency
    incremented and their confidence averaged with the new observation.
    """
    seen_at = seen_at or datetime.now()
    return GraphQuery(
        name=QueryName.MERGE_ENTITY,
        label=entity.label,
        cypher=(
            f"MERGE (e:{entity.label} {{normalized: $normalized}}) "
            "ON CREATE SET e.name = $name, e.frequency = 1, e.confidence = $confidence, "
            "e.first_seen = $seen_at, e.last_seen = $seen_at "
            "ON MATCH SET e.frequency = e.frequency + 1, "
            "e.confidence = (e.confidence + $confidence) / 2, e.last_seen = $seen_at"
        ),
        params={
            "normalized": entity.normalized,
            "name": entity.value,
            "confidence": entity.confidence,
            "seen_at": seen_at.isoformat(),
        },
    )


def merge_mentioned_in(
    entity: Entity, memory_id: str, extracted_at: datetime | None = None
) -> GraphQuery:
    """Link an entity node to a memory anchor."""
    extracted_at = extracted_at or datetime.now()
    return GraphQuery(
        name=QueryName.MERGE_MENTIONED_IN,
        label=entity.label,
        cypher=(
            f"MATCH (e:{entity.label} {{normalized: $normalized}}) "
            f"MATCH (m:{ANCHOR_LABEL} {{id: $memory_id}}) "
            f"MERGE (e)-[r:{MENTIONED_IN}]->(m) "
            "ON CREATE SET r.confidence = $confidence, r.source = $source, "
            "r.context = $context, r.extracted_at = $extracted_at"
        ),
        params={
            "normalized": entity.normalized,
            "memory_id": memory_id,
            "confidence": entity.confidence,
            "source": entity.source,
            "context": entity.context,
            "extracted_at": extracted_at.isoformat(),
        },
    )


def remove_mentions(memory_id: str) -> GraphQuery:
    """Drop every MENTIONED_IN relationship into a memory anchor."""
    return GraphQuery(
        name=QueryName.REMOVE_MENTIONS,
        cypher=f"MATCH ()-[r:{MENTIONED_IN}]->(m:{ANCHOR_LABEL} {{id: $memory_id}}) DELETE r",
        params={"memory_id": memory_id},
    )


def delete_anchor(memory_id: str) -> GraphQuery:
    """Remove a memory anchor along with its relationships."""
    return GraphQuery(
        name=QueryName.DELETE_ANCHOR,
        cypher=f"MATCH (m:{ANCHOR_LABEL} {{id: $memory_id}}) DETACH DELETE m",
        params={"memory_id": memory_id},
    )


def anchor_exists(memory_id: str) -> GraphQuery:
    """Read query returning one row with a ``found`` flag."""
    return GraphQuery(
        name=QueryName.ANCHOR_EXISTS,
        cypher=(
            f"OPTIONAL MATCH (m:{ANCHOR_LABEL} {{id: $memory_id}}) "
            "RETURN m IS NOT NULL AS found"
        ),
        params={"memory_id": memory_id},
    )


def repair_anchor(record: MemoryRecord, repaired_at: datetime | None = None) -> GraphQuery:
    """Create a minimal anchor for a record, leaving an existing one untouched."""
    repaired_at = repaired_at or datetime.now()
    return GraphQuery(
        name=QueryName.REPAIR_ANCHOR,
        cypher=(
            f"MERGE (m:{ANCHOR_LABEL} {{id: $id}}) "
            "ON CREATE SET m.user_id = $user_id, m.content = $content, "
            "m.created_at = $created_at, m.repaired_at = $repaired_at"
        ),
        params={
            "id": record.id,
            "user_id": record.user_id,
            "content": record.content,
            "created_at": record.created_at.isoformat(),
            "repaired_at": repaired_at.isoformat(),
        },
    )
