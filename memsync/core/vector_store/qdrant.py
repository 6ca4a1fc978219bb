"""
Qdrant vector store implementation.

Records live in a single collection with one named vector ("content"), so a
record can be stored before its embedding has been computed.
"""

from datetime import datetime
from typing import Any
from uuid import NAMESPACE_DNS, UUID, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Direction,
    Distance,
    FieldCondition,
    Filter,
    HnswConfigDiff,
    MatchValue,
    OptimizersConfigDiff,
    OrderBy,
    PointStruct,
    ScalarQuantization,
    ScalarQuantizationConfig,
    ScalarType,
    VectorParams,
)

from memsync.core.vector_store.base import VectorStore
from memsync.models.memory import MemoryRecord, VectorStats
from memsync.utils.exceptions import ValidationError, VectorStoreError
from memsync.utils.id_generator import generate_memory_id
from memsync.utils.logger import get_logger

logger = get_logger(__name__)

VECTOR_NAME = "content"

# Record fields that may be changed through update()
UPDATABLE_FIELDS = {
    "content",
    "embedding",
    "conversation_id",
    "summary",
    "metadata",
    "importance",
    "access_count",
    "is_deleted",
}


class QdrantVectorStore(VectorStore):
    """
    Qdrant-backed store for memory records.

    Features:
    - gRPC connection for 2-3x speed
    - HNSW indexing for fast search
    - Int8 quantization for memory efficiency
    - Soft delete via payload flag
    - Payload indexing for user, conversation and recency filters
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "memory_entries",
        vector_size: int = 1536,
        use_grpc: bool = False,  # Set to True for production
        use_quantization: bool = False,  # Set to True for large datasets
        quantization_type: str = "int8",
        hnsw_m: int = 16,  # HNSW M parameter (16-32 recommended)
        hnsw_ef_construct: int = 100,  # Higher = better quality
        on_disk: bool = False,  # Store vectors on disk instead of RAM
        timeout: int = 30,
    ):
        """
        Initialize Qdrant store.

        Args:
            host: Qdrant host
            port: Qdrant port (6333 for HTTP, 6334 for gRPC)
            collection_name: Collection name
            vector_size: Embedding dimension
            use_grpc: Use gRPC connection (faster)
            use_quantization: Use int8 quantization (memory efficient)
            quantization_type: Type of quantization (int8)
            hnsw_m: HNSW M parameter (connections per node)
            hnsw_ef_construct: HNSW ef_construct parameter
            on_disk: Store vectors on disk (reduces RAM usage)
            timeout: Client request timeout in seconds
        """
        self.host = host
        self.port = port
        self.collection_name = collection_name
        self.vector_size = vector_size
        self.use_grpc = use_grpc
        self.use_quantization = use_quantization
        self.quantization_type = quantization_type
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.on_disk = on_disk
        self.timeout = timeout
        self.client: AsyncQdrantClient | None = None

    def _to_uuid(self, id_str: str) -> str:
        """
        Convert string ID to UUID format consistently.

        Args:
            id_str: String identifier

        Returns:
            UUID string
        """
        try:
            UUID(id_str)
            return id_str
        except ValueError:
            return str(uuid5(NAMESPACE_DNS, id_str))

    async def connect(self) -> None:
        """
        Establish connection to Qdrant.

        Raises:
            VectorStoreError: If connection fails
        """
        if self.client is None:
            try:
                self.client = AsyncQdrantClient(
                    host=self.host,
                    port=self.port,
                    prefer_grpc=self.use_grpc,
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.error(
                    "Failed to connect to Qdrant",
                    extra={"host": self.host, "port": self.port, "error": str(e)},
                )
                raise VectorStoreError(f"Failed to connect to Qdrant: {e}") from e

    async def initialize(self) -> None:
        """
        Initialize the collection with optimized settings.

        Raises:
            VectorStoreError: If initialization fails
        """
        try:
            await self.connect()

            collections = await self.client.get_collections()
            collection_names = [col.name for col in collections.collections]

            if self.collection_name in collection_names:
                return

            vector_params = VectorParams(
                size=self.vector_size,
                distance=Distance.COSINE,
                hnsw_config=HnswConfigDiff(
                    m=self.hnsw_m,
                    ef_construct=self.hnsw_ef_construct,
                    full_scan_threshold=10000,
                ),
                on_disk=self.on_disk,
            )

            if self.use_quantization:
                vector_params.quantization_config = ScalarQuantization(
                    scalar=ScalarQuantizationConfig(
                        type=ScalarType.INT8,
                        quantile=0.99,
                        always_ram=True,
                    )
                )

            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config={VECTOR_NAME: vector_params},
                optimizers_config=OptimizersConfigDiff(
                    indexing_threshold=20000,
                    memmap_threshold=50000,
                ),
            )

            # Payload indices for the filters used by get_recent/get_stats
            for field_name, schema in (
                ("user_id", "keyword"),
                ("conversation_id", "keyword"),
                ("is_deleted", "bool"),
                ("created_ts", "float"),
            ):
                await self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=schema,
                )
        except Exception as e:
            logger.error(
                "Failed to initialize Qdrant collection",
                extra={"collection": self.collection_name, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to initialize Qdrant collection: {e}") from e

    def _record_to_payload(self, record: MemoryRecord) -> dict[str, Any]:
        """
        Convert MemoryRecord to Qdrant payload.

        Args:
            record: Memory record

        Returns:
            Payload dictionary (embedding excluded, it is the point vector)
        """
        return {
            "original_id": record.id,
            "user_id": record.user_id,
            "content": record.content,
            "conversation_id": record.conversation_id,
            "summary": record.summary,
            "metadata": record.metadata,
            "importance": record.importance,
            "access_count": record.access_count,
            "created_at": record.created_at.isoformat(),
            "created_ts": record.created_at.timestamp(),
            "updated_at": record.updated_at.isoformat(),
            "is_deleted": record.is_deleted,
        }

    def _payload_to_record(self, payload: dict[str, Any], vector: Any) -> MemoryRecord:
        """
        Convert Qdrant payload to MemoryRecord.

        Args:
            payload: Qdrant payload
            vector: Named vector dict, plain list, or None

        Returns:
            MemoryRecord object
        """
        if isinstance(vector, dict):
            embedding = vector.get(VECTOR_NAME) or []
        else:
            embedding = vector or []

        return MemoryRecord(
            id=payload["original_id"],
            user_id=payload["user_id"],
            content=payload["content"],
            embedding=list(embedding),
            conversation_id=payload.get("conversation_id"),
            summary=payload.get("summary"),
            metadata=payload.get("metadata") or {},
            importance=payload.get("importance", 5),
            access_count=payload.get("access_count", 0),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
            is_deleted=payload.get("is_deleted", False),
        )

    def _to_point(self, record: MemoryRecord) -> PointStruct:
        """Build the Qdrant point for a record."""
        return PointStruct(
            id=self._to_uuid(record.id),
            vector={VECTOR_NAME: record.embedding} if record.embedding else {},
            payload=self._record_to_payload(record),
        )

    def _build_filter(
        self,
        user_id: str | None = None,
        conversation_id: str | None = None,
        deleted: bool | None = None,
    ) -> Filter | None:
        """
        Build a payload filter.

        Args:
            user_id: Restrict to one user
            conversation_id: Restrict to one conversation
            deleted: True for only soft-deleted, False to exclude them, None for both

        Returns:
            Filter or None when no condition applies
        """
        must = []
        must_not = []

        if user_id:
            must.append(FieldCondition(key="user_id", match=MatchValue(value=user_id)))
        if conversation_id:
            must.append(
                FieldCondition(key="conversation_id", match=MatchValue(value=conversation_id))
            )

        deleted_condition = FieldCondition(key="is_deleted", match=MatchValue(value=True))
        if deleted is True:
            must.append(deleted_condition)
        elif deleted is False:
            must_not.append(deleted_condition)

        if not must and not must_not:
            return None
        return Filter(must=must or None, must_not=must_not or None)

    async def insert(
        self,
        user_id: str,
        content: str,
        embedding: list[float],
        conversation_id: str | None = None,
        summary: str | None = None,
        metadata: dict[str, Any] | None = None,
        importance: int = 5,
    ) -> MemoryRecord:
        """
        Insert a new memory record.

        Raises:
            ValidationError: If user_id or content is empty
            VectorStoreError: If the upsert fails
        """
        if not user_id:
            raise ValidationError("Memory must have user_id")
        if not content:
            raise ValidationError("Memory content cannot be empty")

        now = datetime.now()
        record = MemoryRecord(
            id=generate_memory_id(),
            user_id=user_id,
            content=content,
            embedding=embedding or [],
            conversation_id=conversation_id,
            summary=summary,
            metadata=metadata or {},
            importance=importance,
            created_at=now,
            updated_at=now,
        )

        try:
            await self.connect()
            await self.client.upsert(
                collection_name=self.collection_name,
                points=[self._to_point(record)],
                wait=True,  # Wait for write to complete for consistency
            )
        except Exception as e:
            logger.error(
                "Failed to insert memory",
                extra={"memory_id": record.id, "user_id": user_id, "error": str(e)},
            )
            raise VectorStoreError(
                f"Failed to insert memory: {e}", context={"memory_id": record.id}
            ) from e

        return record

    async def update(self, memory_id: str, fields: dict[str, Any]) -> MemoryRecord | None:
        """
        Apply a partial update to a record.

        Raises:
            ValidationError: If memory_id is empty or a field is not updatable
            VectorStoreError: If the update fails
        """
        if not memory_id or not memory_id.strip():
            raise ValidationError("Memory ID cannot be empty")
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {sorted(unknown)}", context={"memory_id": memory_id}
            )

        current = await self.get_by_id(memory_id, include_deleted=True)
        if current is None:
            return None

        updated = current.model_copy(update={**fields, "updated_at": datetime.now()})
        # Re-validate so a bad importance or content is rejected before writing
        updated = MemoryRecord.model_validate(updated.model_dump())

        try:
            await self.client.upsert(
                collection_name=self.collection_name,
                points=[self._to_point(updated)],
                wait=True,
            )
        except Exception as e:
            logger.error(
                "Failed to update memory",
                extra={"memory_id": memory_id, "fields": sorted(fields), "error": str(e)},
            )
            raise VectorStoreError(
                f"Failed to update memory: {e}", context={"memory_id": memory_id}
            ) from e

        return updated

    async def delete(self, memory_id: str, hard: bool = False) -> None:
        """
        Delete a record, permanently or by setting the soft-delete flag.

        Raises:
            ValidationError: If memory_id is invalid
            VectorStoreError: If deletion operation fails
        """
        if not memory_id or not memory_id.strip():
            raise ValidationError("Memory ID cannot be empty")

        try:
            await self.connect()

            uuid_id = self._to_uuid(memory_id)

            if hard:
                await self.client.delete(
                    collection_name=self.collection_name,
                    points_selector=[uuid_id],
                    wait=True,
                )
            else:
                await self.client.set_payload(
                    collection_name=self.collection_name,
                    payload={"is_deleted": True, "updated_at": datetime.now().isoformat()},
                    points=[uuid_id],
                    wait=True,
                )
        except Exception as e:
            logger.error(
                "Failed to delete memory",
                extra={"memory_id": memory_id, "hard": hard, "error": str(e)},
            )
            raise VectorStoreError(
                f"Failed to delete memory: {e}", context={"memory_id": memory_id, "hard": hard}
            ) from e

    async def get_by_id(self, memory_id: str, include_deleted: bool = False) -> MemoryRecord | None:
        """
        Retrieve a record by ID.

        Raises:
            ValidationError: If memory_id is invalid
            VectorStoreError: If retrieval operation fails
        """
        if not memory_id or not memory_id.strip():
            raise ValidationError("Memory ID cannot be empty")

        try:
            await self.connect()

            results = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=[self._to_uuid(memory_id)],
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            logger.error(
                "Failed to retrieve memory",
                extra={"memory_id": memory_id, "error": str(e)},
            )
            raise VectorStoreError(
                f"Failed to retrieve memory: {e}", context={"memory_id": memory_id}
            ) from e

        if not results:
            return None

        point = results[0]
        record = self._payload_to_record(point.payload, point.vector)
        if record.is_deleted and not include_deleted:
            return None
        return record

    async def get_recent(
        self,
        user_id: str | None,
        limit: int = 100,
        conversation_id: str | None = None,
        exclude_deleted: bool = True,
    ) -> list[MemoryRecord]:
        """
        Most recently created records, newest first.

        Raises:
            VectorStoreError: If the scroll fails
        """
        try:
            await self.connect()

            points, _ = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=self._build_filter(
                    user_id=user_id,
                    conversation_id=conversation_id,
                    deleted=False if exclude_deleted else None,
                ),
                limit=limit,
                order_by=OrderBy(key="created_ts", direction=Direction.DESC),
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            logger.error(
                "Failed to list recent memories",
                extra={"user_id": user_id, "limit": limit, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to list recent memories: {e}") from e

        return [self._payload_to_record(point.payload, point.vector) for point in points]

    async def get_stats(self, user_id: str | None = None) -> VectorStats:
        """
        Record counts.

        Raises:
            VectorStoreError: If counting fails
        """
        try:
            await self.connect()

            total = await self.client.count(
                collection_name=self.collection_name,
                count_filter=self._build_filter(user_id=user_id),
                exact=True,
            )
            deleted = await self.client.count(
                collection_name=self.collection_name,
                count_filter=self._build_filter(user_id=user_id, deleted=True),
                exact=True,
            )
        except Exception as e:
            logger.error(
                "Failed to count memories",
                extra={"user_id": user_id, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to count memories: {e}") from e

        return VectorStats(
            total=total.count,
            deleted=deleted.count,
            active=total.count - deleted.count,
        )

    async def search_similar(
        self,
        vector: list[float],
        user_id: str,
        limit: int = 10,
        score_threshold: float | None = None,
    ) -> list[tuple[MemoryRecord, float]]:
        """
        Search a user's non-deleted records by vector similarity.

        Args:
            vector: Query embedding vector
            user_id: Owner user ID (required for multi-user isolation)
            limit: Maximum results
            score_threshold: Minimum similarity score

        Returns:
            List of (record, score) tuples, best match first
        """
        if not user_id:
            raise ValidationError("Similarity search requires user_id")

        try:
            await self.connect()

            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                using=VECTOR_NAME,
                limit=limit,
                score_threshold=score_threshold,
                query_filter=self._build_filter(user_id=user_id, deleted=False),
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            logger.error(
                "Similarity search failed",
                extra={"user_id": user_id, "error": str(e)},
            )
            raise VectorStoreError(f"Similarity search failed: {e}") from e

        return [
            (self._payload_to_record(point.payload, point.vector), point.score)
            for point in response.points
        ]

    async def close(self) -> None:
        """Close the connection to Qdrant."""
        if self.client is not None:
            await self.client.close()
            self.client = None
