"""Vector store factory.

Centralizes creation of concrete ``VectorStore`` backends so callers don't
depend on implementation details. New stores can be added without changing
call sites.
"""

from typing import Any, Dict
from enum import Enum
import structlog

from libs.common.config import BaseConfig
from .base import VectorStore
from .chroma import ChromaVectorStore

logger = structlog.get_logger("vector_store.factory")


class VectorStoreType(Enum):
    """Supported vector store types."""
    CHROMA = "chroma"


class VectorStoreFactory:
    """Factory for creating vector store instances."""

    @staticmethod
    def create(
        store_type: VectorStoreType,
        config: Dict[str, Any],
        **kwargs: Any
    ) -> VectorStore:
        """Create a vector store instance.

        Parameters
        - store_type: A ``VectorStoreType`` enum value
        - config: Backend-specific parameters (e.g., host and port for chroma)
        - kwargs: Additional optional overrides forwarded to implementation
        """

        if store_type == VectorStoreType.CHROMA:
            host = config.get("host")
            if not host:
                raise ValueError("Chroma requires 'host' in config")

            return ChromaVectorStore(
                host=host,
                port=int(config.get("port", 8000)),
                ssl=bool(config.get("ssl", False)),
                tenant=config.get("tenant", "default_tenant"),
                database=config.get("database", "default_database"),
                **kwargs
            )

        raise ValueError(f"Unsupported vector store type: {store_type}")

    @staticmethod
    def create_from_config(config: Dict[str, Any], **kwargs: Any) -> VectorStore:
        """Create vector store from configuration dictionary.

        Expects a ``type`` key and any implementation-specific fields.
        """
        store_type_str = config.get("type", "chroma")

        try:
            store_type = VectorStoreType(store_type_str)
        except ValueError:
            raise ValueError(f"Unsupported vector store type: {store_type_str}")

        return VectorStoreFactory.create(store_type, config, **kwargs)


def create_vector_store_from_config(config: BaseConfig, **kwargs: Any) -> VectorStore:
    """Create the vector store described by service configuration.

    Parameters
    - config: A ``BaseConfig`` (or subclass) carrying the ``ml_vector_*`` and
      ``ml_chroma_*`` settings
    - kwargs: Forwarded to the backend constructor (e.g. a pre-built ``client``)
    """
    store = VectorStoreFactory.create_from_config(
        {
            "type": config.ml_vector_backend,
            "host": config.ml_chroma_host,
            "port": config.ml_chroma_port,
            "ssl": config.ml_chroma_ssl,
            "tenant": config.ml_chroma_tenant,
            "database": config.ml_chroma_database,
        },
        **kwargs
    )
    logger.info("Vector store created", backend=config.ml_vector_backend, host=config.ml_chroma_host, port=config.ml_chroma_port)
    return store
