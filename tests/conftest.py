"""Shared fixtures and fakes for the test suite."""

from typing import Any, Dict, List, Optional, Sequence

import pytest

from libs.vector_store.base import (
    DEFAULT_INCLUDE,
    CollectionInfo,
    QueryResult,
    VectorStore,
    VectorStoreNotFoundError,
)

VEC_A = [1.0, 0.0]
VEC_B = [0.0, 1.0]
VEC_GROUPS = [0.5, 0.5]


def make_result(
    ids: List[str],
    documents: Optional[List[Optional[str]]] = None,
    metadatas: Optional[List[Optional[Dict[str, Any]]]] = None,
    distances: Optional[List[Optional[float]]] = None,
    embeddings: Optional[List[Optional[List[float]]]] = None,
) -> QueryResult:
    """Wrap single-query arrays in the batched shape the store returns."""
    return QueryResult(
        ids=[ids],
        documents=[documents] if documents is not None else None,
        embeddings=[embeddings] if embeddings is not None else None,
        metadatas=[metadatas] if metadatas is not None else None,
        distances=[distances] if distances is not None else None,
    )


class FakeVectorStore(VectorStore):
    """In-memory store answering queries from canned results keyed by vector."""

    def __init__(
        self,
        results: Optional[Dict[tuple, QueryResult]] = None,
        collections: Sequence[str] = ("docs",),
        error: Optional[Exception] = None,
        healthy: bool = True,
    ):
        self.results = results or {}
        self.collections = set(collections)
        self.error = error
        self.healthy = healthy
        self.calls: List[Dict[str, Any]] = []

    async def get_collection(self, name: str) -> CollectionInfo:
        if name not in self.collections:
            raise VectorStoreNotFoundError(f"Collection {name} does not exist.")
        return CollectionInfo(id=f"{name}-id", name=name)

    async def query(
        self,
        collection,
        query_embeddings,
        n_results=10,
        where=None,
        where_document=None,
        include=DEFAULT_INCLUDE,
    ) -> QueryResult:
        vector = tuple(float(x) for x in query_embeddings[0])
        self.calls.append({
            "collection": collection.name,
            "vector": vector,
            "n_results": n_results,
            "where": where,
            "where_document": where_document,
            "include": tuple(include),
        })
        if self.error is not None:
            raise self.error
        return self.results.get(vector, QueryResult(ids=[[]]))

    async def health_check(self) -> bool:
        return self.healthy


class FakeEmbeddingClient:
    """Maps query text to fixed vectors."""

    def __init__(self, vectors: Dict[str, List[float]]):
        self.vectors = vectors
        self.texts: List[str] = []

    async def embed(self, text: str):
        self.texts.append(text)
        return self.vectors[text]


@pytest.fixture
def canned_results() -> Dict[tuple, QueryResult]:
    return {
        tuple(VEC_A): make_result(
            ids=["d1", "d2", "d3"],
            documents=["alpha", "beta", "gamma"],
            metadatas=[
                {"category": "A", "year": 2024},
                {"category": "B", "year": 2023},
                {"category": "A", "year": 2023},
            ],
            distances=[0.1, 0.2, 0.3],
            embeddings=[[1.0, 0.0], [0.9, 0.1], [0.8, 0.2]],
        ),
        tuple(VEC_B): make_result(
            ids=["d3", "d4", "d1"],
            documents=["gamma", "delta", "alpha"],
            metadatas=[
                {"category": "A", "year": 2023},
                {"category": "C", "year": 2022},
                {"category": "A", "year": 2024},
            ],
            distances=[0.05, 0.15, 0.25],
        ),
        tuple(VEC_GROUPS): make_result(
            ids=["g1", "g2", "g3", "g4"],
            metadatas=[
                {"category": "A"},
                {"category": "B"},
                {"category": "A"},
                {"category": "C"},
            ],
            distances=[0.1, 0.2, 0.3, 0.4],
        ),
    }


@pytest.fixture
def fake_store(canned_results) -> FakeVectorStore:
    return FakeVectorStore(results=canned_results)


@pytest.fixture
def collection() -> CollectionInfo:
    return CollectionInfo(id="docs-id", name="docs")
