"""
Configuration for memsync.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class PersistenceConfig(BaseModel):
    """Dual-write coordinator configuration."""

    enable_vector_store: bool = True
    enable_graph_store: bool = True
    # Escalate a graph failure on store() into a total failure with vector rollback
    rollback_on_partial_failure: bool = False
    # Graph writes only; vector inserts are never retried
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0.0)
    # Per store call, seconds; None disables the bound
    store_timeout: float | None = Field(default=30.0, gt=0.0)
    enable_auto_sync: bool = False
    sync_interval_seconds: float | None = Field(default=None, gt=0.0)


class SyncConfig(BaseModel):
    """Consistency scan and rebuild configuration."""

    default_limit: int = Field(default=100, ge=1)
    rebuild_limit: int = Field(default=1000, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class QdrantConfig(BaseModel):
    """Qdrant vector store configuration."""

    url: str = "http://localhost:6333"
    collection_name: str = "memory_entries"
    vector_size: int = 1536
    use_grpc: bool = True
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    use_quantization: bool = True
    quantization_type: str = "int8"
    on_disk: bool = False
    timeout: int = 30


class Neo4jConfig(BaseModel):
    """Neo4j graph database configuration."""

    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"


class Config(BaseModel):
    """Main configuration."""

    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)

    # Graph store backend
    graph_backend: str = "neo4j"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            MEMSYNC_ENABLE_VECTOR_STORE: Enable the vector store critical path
            MEMSYNC_ENABLE_GRAPH_STORE: Enable graph writes
            MEMSYNC_ROLLBACK_ON_PARTIAL_FAILURE: Roll back vector writes on graph failure
            MEMSYNC_RETRY_ATTEMPTS: Graph write attempts
            MEMSYNC_RETRY_DELAY: Base retry delay in seconds
            MEMSYNC_STORE_TIMEOUT: Per store call timeout in seconds
            MEMSYNC_ENABLE_AUTO_SYNC: Run full sync periodically
            MEMSYNC_SYNC_INTERVAL_SECONDS: Auto sync interval
            MEMSYNC_SYNC_DEFAULT_LIMIT: Records scanned per consistency check
            MEMSYNC_SYNC_REBUILD_LIMIT: Records processed per graph rebuild
            MEMSYNC_GRAPH_BACKEND: Graph backend (neo4j)
            MEMSYNC_NEO4J_URI: Neo4j URI
            MEMSYNC_NEO4J_USERNAME: Neo4j username
            MEMSYNC_NEO4J_PASSWORD: Neo4j password
            MEMSYNC_QDRANT_URL: Qdrant URL
            MEMSYNC_QDRANT_COLLECTION: Qdrant collection name
            MEMSYNC_QDRANT_VECTOR_SIZE: Embedding dimension
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            # Convert boolean strings
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        sync_interval = get_env("MEMSYNC_SYNC_INTERVAL_SECONDS")

        return cls(
            persistence=PersistenceConfig(
                enable_vector_store=get_env("MEMSYNC_ENABLE_VECTOR_STORE", True),
                enable_graph_store=get_env("MEMSYNC_ENABLE_GRAPH_STORE", True),
                rollback_on_partial_failure=get_env("MEMSYNC_ROLLBACK_ON_PARTIAL_FAILURE", False),
                retry_attempts=get_env("MEMSYNC_RETRY_ATTEMPTS", 3),
                retry_delay=get_env("MEMSYNC_RETRY_DELAY", 1.0),
                store_timeout=get_env("MEMSYNC_STORE_TIMEOUT", 30.0),
                enable_auto_sync=get_env("MEMSYNC_ENABLE_AUTO_SYNC", False),
                sync_interval_seconds=float(sync_interval) if sync_interval else None,
            ),
            sync=SyncConfig(
                default_limit=get_env("MEMSYNC_SYNC_DEFAULT_LIMIT", 100),
                rebuild_limit=get_env("MEMSYNC_SYNC_REBUILD_LIMIT", 1000),
            ),
            graph_backend=get_env("MEMSYNC_GRAPH_BACKEND", "neo4j"),
            neo4j=Neo4jConfig(
                uri=get_env("MEMSYNC_NEO4J_URI", "bolt://localhost:7687"),
                username=get_env("MEMSYNC_NEO4J_USERNAME", "neo4j"),
                password=get_env("MEMSYNC_NEO4J_PASSWORD", "password"),
                database=get_env("MEMSYNC_NEO4J_DATABASE", "neo4j"),
            ),
            qdrant=QdrantConfig(
                url=get_env("MEMSYNC_QDRANT_URL", "http://localhost:6333"),
                collection_name=get_env("MEMSYNC_QDRANT_COLLECTION", "memory_entries"),
                vector_size=get_env("MEMSYNC_QDRANT_VECTOR_SIZE", 1536),
                use_grpc=get_env("MEMSYNC_QDRANT_USE_GRPC", True),
                hnsw_m=get_env("MEMSYNC_QDRANT_HNSW_M", 16),
                hnsw_ef_construct=get_env("MEMSYNC_QDRANT_HNSW_EF_CONSTRUCT", 100),
                use_quantization=get_env("MEMSYNC_QDRANT_USE_QUANTIZATION", True),
                quantization_type=get_env("MEMSYNC_QDRANT_QUANTIZATION_TYPE", "int8"),
                on_disk=get_env("MEMSYNC_QDRANT_ON_DISK", False),
                timeout=get_env("MEMSYNC_QDRANT_TIMEOUT", 30),
            ),
            logging=LoggingConfig(
                level=get_env("MEMSYNC_LOG_LEVEL", "INFO"),
                log_to_file=get_env("MEMSYNC_LOG_TO_FILE", True),
                log_dir=get_env("MEMSYNC_LOG_DIR", "logs"),
                file_rotation=get_env("MEMSYNC_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("MEMSYNC_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("MEMSYNC_LOG_COMPRESSION", "zip"),
                serialize=get_env("MEMSYNC_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        # Start with YAML if provided
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        # Merge: env vars override YAML
        final_dict = {**config_dict}

        # Apply env overrides (non-default values)
        default = cls()
        for section in ("persistence", "sync", "neo4j", "qdrant", "logging"):
            if getattr(env_config, section) != getattr(default, section):
                final_dict[section] = getattr(env_config, section).model_dump()

        if env_config.graph_backend != default.graph_backend:
            final_dict["graph_backend"] = env_config.graph_backend

        return cls(**final_dict) if final_dict else env_config
