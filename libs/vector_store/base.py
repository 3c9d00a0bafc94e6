"""Base vector store interface.

Defines the abstract contract the search service depends on, independent of
the backing implementation (Chroma today).

All methods are asynchronous to support high-throughput services.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import numpy as np

DEFAULT_INCLUDE = ("documents", "embeddings", "metadatas", "distances")


@dataclass(frozen=True)
class CollectionInfo:
    """A resolved collection handle."""
    id: str
    name: str
    metadata: Optional[Dict[str, Any]] = None


def _plain_embeddings(batches: Any) -> Optional[List[List[Optional[List[float]]]]]:
    """Convert per-batch embedding arrays (often numpy) to nested lists."""
    if batches is None:
        return None
    return [
        [None if vector is None else np.asarray(vector, dtype=float).tolist() for vector in batch]
        if batch is not None else []
        for batch in batches
    ]


@dataclass
class QueryResult:
    """Raw nearest-neighbor output for a batch of queries.

    Every field holds one inner list per query in the batch. Optional fields
    are ``None`` when the backend did not return them.
    """
    ids: List[List[str]] = field(default_factory=list)
    documents: Optional[List[List[Optional[str]]]] = None
    embeddings: Optional[List[List[Optional[List[float]]]]] = None
    metadatas: Optional[List[List[Optional[Dict[str, Any]]]]] = None
    distances: Optional[List[List[Optional[float]]]] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "QueryResult":
        """Build from a backend JSON payload, tolerating missing keys."""
        return cls(
            ids=payload.get("ids") or [],
            documents=payload.get("documents"),
            embeddings=_plain_embeddings(payload.get("embeddings")),
            metadatas=payload.get("metadatas"),
            distances=payload.get("distances"),
        )


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Implementations perform nearest-neighbor retrieval and metadata filtering;
    filters are passed through untouched.
    """

    async def initialize(self) -> None:
        """Acquire connections. Optional for backends without setup."""

    async def close(self) -> None:
        """Release connections. Optional for backends without teardown."""

    @abstractmethod
    async def get_collection(self, name: str) -> CollectionInfo:
        """Resolve a collection by name.

        Raises ``VectorStoreNotFoundError`` when it does not exist.
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: CollectionInfo,
        query_embeddings: Sequence[np.ndarray],
        n_results: int = 10,
        where: Optional[Dict[str, Any]] = None,
        where_document: Optional[Dict[str, Any]] = None,
        include: Sequence[str] = DEFAULT_INCLUDE,
    ) -> QueryResult:
        """Run a nearest-neighbor query.

        Returns
        - A ``QueryResult`` with one batch per query embedding, each ordered
          by ascending distance.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the vector store is healthy."""
        pass


class VectorStoreError(Exception):
    """Base exception for vector store operations."""
    pass


class VectorStoreConnectionError(VectorStoreError):
    """Connection error to vector store."""
    pass


class VectorStoreQueryError(VectorStoreError):
    """Query error in vector store."""
    pass


class VectorStoreNotFoundError(VectorStoreError):
    """Collection not found in store."""
    pass
