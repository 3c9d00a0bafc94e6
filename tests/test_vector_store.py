"""Tests for the Chroma vector store adapter."""

import uuid

import chromadb
import httpx
import numpy as np
import pytest
from chromadb.errors import NotFoundError

from libs.common.config import BaseConfig
from libs.vector_store.base import (
    CollectionInfo,
    VectorStoreConnectionError,
    VectorStoreNotFoundError,
    VectorStoreQueryError,
)
from libs.vector_store.chroma import ChromaVectorStore
from libs.vector_store.factory import (
    VectorStoreFactory,
    VectorStoreType,
    create_vector_store_from_config,
)


class FakeCollection:
    """Stands in for a chromadb async collection."""

    def __init__(self, name, payload=None, error=None):
        self.id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        self.name = name
        self.metadata = {"hnsw:space": "l2"}
        self.payload = payload or {"ids": [[]]}
        self.error = error
        self.calls = []

    async def query(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.payload


class FakeChromaClient:
    """Stands in for ``chromadb.AsyncHttpClient``."""

    def __init__(self, collections=(), error=None):
        self.collections = {c.name: c for c in collections}
        self.error = error
        self.lookups = 0

    async def get_collection(self, name):
        self.lookups += 1
        if self.error is not None:
            raise self.error
        if name not in self.collections:
            raise NotFoundError(f"Collection [{name}] does not exists")
        return self.collections[name]

    async def heartbeat(self):
        if self.error is not None:
            raise self.error
        return 1


def handle(collection: FakeCollection) -> CollectionInfo:
    return CollectionInfo(id=str(collection.id), name=collection.name)


@pytest.mark.asyncio
async def test_get_collection():
    """Test resolving a collection by name."""
    client = FakeChromaClient([FakeCollection("docs")])
    store = ChromaVectorStore(client=client)

    info = await store.get_collection("docs")
    await store.get_collection("docs")

    assert info == CollectionInfo(
        id="12345678-1234-5678-1234-567812345678",
        name="docs",
        metadata={"hnsw:space": "l2"},
    )
    # the collection handle is cached after the first lookup
    assert client.lookups == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    NotFoundError("Collection [missing] does not exists"),
    ValueError("Collection missing does not exist."),
])
async def test_get_collection_not_found(error):
    store = ChromaVectorStore(client=FakeChromaClient(error=error))

    with pytest.raises(VectorStoreNotFoundError):
        await store.get_collection("missing")


@pytest.mark.asyncio
async def test_query_arguments_and_result():
    """Test the arguments passed to chromadb and the parsed result."""
    collection = FakeCollection("docs", payload={
        "ids": [["d1", "d2"]],
        "documents": [["alpha", None]],
        "embeddings": [np.array([[1.0, 0.0], [0.5, 0.5]], dtype=np.float32)],
        "metadatas": [[{"category": "A"}, None]],
        "distances": [[0.1, 0.2]],
    })
    store = ChromaVectorStore(client=FakeChromaClient([collection]))

    result = await store.query(
        handle(collection),
        query_embeddings=[[1, 0]],
        n_results=5,
        where={"category": "A"},
        where_document={},
    )

    call = collection.calls[0]
    assert call["n_results"] == 5
    assert call["where"] == {"category": "A"}
    assert call["where_document"] is None
    assert call["include"] == ["documents", "embeddings", "metadatas", "distances"]
    assert [v.tolist() for v in call["query_embeddings"]] == [[1.0, 0.0]]
    assert result.ids == [["d1", "d2"]]
    assert result.embeddings == [[[1.0, 0.0], [0.5, 0.5]]]
    assert result.distances == [[0.1, 0.2]]


@pytest.mark.asyncio
async def test_query_error():
    collection = FakeCollection("docs", error=ValueError("Expected where operator"))
    store = ChromaVectorStore(client=FakeChromaClient([collection]))

    with pytest.raises(VectorStoreQueryError):
        await store.query(handle(collection), query_embeddings=[[1.0]])


@pytest.mark.asyncio
async def test_connection_error():
    client = FakeChromaClient(error=httpx.ConnectError("connection refused"))
    store = ChromaVectorStore(client=client)

    with pytest.raises(VectorStoreConnectionError):
        await store.get_collection("docs")
    assert await store.health_check() is False


@pytest.mark.asyncio
@pytest.mark.parametrize("vector", [[], [[1.0, 2.0]]])
async def test_query_rejects_bad_vectors(vector):
    collection = FakeCollection("docs")
    store = ChromaVectorStore(client=FakeChromaClient([collection]))

    with pytest.raises(VectorStoreQueryError):
        await store.query(handle(collection), query_embeddings=[vector])
    assert collection.calls == []


@pytest.mark.asyncio
async def test_health_check():
    assert await ChromaVectorStore(client=FakeChromaClient()).health_check() is True


@pytest.mark.asyncio
async def test_client_created_on_first_use(monkeypatch):
    seen = {}
    client = FakeChromaClient([FakeCollection("docs")])

    async def fake_async_http_client(**kwargs):
        seen.update(kwargs)
        return client

    monkeypatch.setattr(chromadb, "AsyncHttpClient", fake_async_http_client)
    store = ChromaVectorStore(host="chroma", port=9000, ssl=True, tenant="t1", database="db1")

    await store.initialize()

    assert store.client is client
    assert seen["host"] == "chroma"
    assert seen["port"] == 9000
    assert seen["ssl"] is True
    assert seen["tenant"] == "t1"
    assert seen["database"] == "db1"


@pytest.mark.asyncio
async def test_initialize_tolerates_unreachable_server(monkeypatch):
    async def refuse(**kwargs):
        raise ValueError("Could not connect to a Chroma server. Are you sure it is running?")

    monkeypatch.setattr(chromadb, "AsyncHttpClient", refuse)
    store = ChromaVectorStore()

    await store.initialize()

    assert store.client is None
    assert await store.health_check() is False


def test_factory_creates_chroma():
    store = VectorStoreFactory.create_from_config({"type": "chroma", "host": "chroma", "port": "8001"})

    assert isinstance(store, ChromaVectorStore)
    assert store.host == "chroma"
    assert store.port == 8001


def test_factory_rejects_unknown_backend():
    with pytest.raises(ValueError):
        VectorStoreFactory.create_from_config({"type": "faiss", "host": "x"})
    with pytest.raises(ValueError):
        VectorStoreFactory.create(VectorStoreType.CHROMA, {})


def test_create_from_service_config():
    config = BaseConfig(ml_chroma_host="chroma", ml_chroma_port=9000, ml_chroma_tenant="t1", ml_chroma_database="db1")

    store = create_vector_store_from_config(config)

    assert isinstance(store, ChromaVectorStore)
    assert store.port == 9000
    assert store.tenant == "t1"
    assert store.database == "db1"
