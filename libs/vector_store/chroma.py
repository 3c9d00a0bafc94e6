"""Chroma vector store implementation."""

import asyncio
from typing import Any, Dict, Optional, Sequence

import chromadb
import httpx
import numpy as np
import structlog
from chromadb.config import DEFAULT_DATABASE, DEFAULT_TENANT
from chromadb.errors import ChromaError, NotFoundError

from .base import (
    DEFAULT_INCLUDE,
    CollectionInfo,
    QueryResult,
    VectorStore,
    VectorStoreConnectionError,
    VectorStoreError,
    VectorStoreNotFoundError,
    VectorStoreQueryError,
)

logger = structlog.get_logger("vector_store.chroma")

_NOT_FOUND_MARKERS = ("does not exist", "not found")


class ChromaVectorStore(VectorStore):
    """Chroma-backed vector store using the async HTTP client."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8000,
        ssl: bool = False,
        tenant: str = DEFAULT_TENANT,
        database: str = DEFAULT_DATABASE,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[Any] = None,
    ):
        """Initialize Chroma vector store.

        Args:
            host: Chroma server host
            port: Chroma server port
            ssl: Connect over https
            tenant: Tenant owning the database
            database: Database holding the collections
            headers: Extra headers (e.g. auth tokens) sent with every request
            client: Pre-built async client; created on first use when omitted
        """
        self.host = host
        self.port = port
        self.ssl = ssl
        self.tenant = tenant
        self.database = database
        self.headers = headers
        self.client = client
        self._collections: Dict[str, Any] = {}
        self._client_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Connect eagerly; a failure is logged and retried on first use."""
        try:
            await self._get_client()
        except VectorStoreError as e:
            logger.warning("Chroma not reachable at startup", host=self.host, port=self.port, error=str(e))

    async def close(self) -> None:
        self._collections.clear()
        self.client = None

    async def _get_client(self) -> Any:
        async with self._client_lock:
            if self.client is None:
                self.client = await self._call(
                    "connect",
                    chromadb.AsyncHttpClient(
                        host=self.host,
                        port=self.port,
                        ssl=self.ssl,
                        headers=self.headers,
                        tenant=self.tenant,
                        database=self.database,
                    ),
                )
                logger.info("Connected to Chroma", host=self.host, port=self.port, tenant=self.tenant)
            return self.client

    async def _call(self, operation: str, awaitable: Any) -> Any:
        """Await a client call and translate failures into store exceptions."""
        try:
            return await awaitable
        except NotFoundError as e:
            raise VectorStoreNotFoundError(str(e)) from e
        except (httpx.TransportError, ConnectionError) as e:
            logger.error("Chroma request failed", operation=operation, error=str(e))
            raise VectorStoreConnectionError(f"Chroma unreachable at {self.host}:{self.port}: {e}") from e
        except (ChromaError, ValueError) as e:
            message = str(e)
            if "could not connect" in message.lower():
                raise VectorStoreConnectionError(message) from e
            if any(marker in message.lower() for marker in _NOT_FOUND_MARKERS):
                raise VectorStoreNotFoundError(message) from e
            logger.error("Chroma returned an error", operation=operation, error=message)
            raise VectorStoreQueryError(f"Chroma {operation} failed: {message}") from e

    async def _collection(self, name: str) -> Any:
        if name not in self._collections:
            client = await self._get_client()
            self._collections[name] = await self._call("get_collection", client.get_collection(name=name))
        return self._collections[name]

    async def get_collection(self, name: str) -> CollectionInfo:
        collection = await self._collection(name)
        return CollectionInfo(
            id=str(collection.id),
            name=collection.name,
            metadata=collection.metadata,
        )

    async def query(
        self,
        collection: CollectionInfo,
        query_embeddings: Sequence[np.ndarray],
        n_results: int = 10,
        where: Optional[Dict[str, Any]] = None,
        where_document: Optional[Dict[str, Any]] = None,
        include: Sequence[str] = DEFAULT_INCLUDE,
    ) -> QueryResult:
        """Run a nearest-neighbor query against one collection."""
        embeddings = []
        for vector in query_embeddings:
            array = np.asarray(vector, dtype=float)
            if array.ndim != 1 or array.size == 0:
                raise VectorStoreQueryError(
                    f"Query embedding must be a non-empty 1-D vector, got shape {array.shape}"
                )
            embeddings.append(array)

        handle = await self._collection(collection.name)
        payload = await self._call(
            "query",
            handle.query(
                query_embeddings=embeddings,
                n_results=n_results,
                where=where or None,
                where_document=where_document or None,
                include=list(include),
            ),
        )

        logger.debug(
            "Chroma query completed",
            collection=collection.name,
            n_results=n_results,
            batches=len(payload.get("ids") or []),
        )
        return QueryResult.from_payload(payload)

    async def health_check(self) -> bool:
        try:
            client = await self._get_client()
            await self._call("heartbeat", client.heartbeat())
            return True
        except VectorStoreConnectionError:
            return False
        except VectorStoreError as e:
            logger.warning("Chroma heartbeat failed", error=str(e))
            return False
