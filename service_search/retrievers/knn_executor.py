"""Execute a single nearest-neighbor query against the vector store."""

from typing import Any, Dict, List, Optional

import structlog

from libs.common.metrics import MetricsCollector
from libs.vector_store.base import DEFAULT_INCLUDE, CollectionInfo, VectorStore, VectorStoreError
from ..errors import EmbeddingServiceError, UnsupportedEmbeddingKeyError
from ..fields import ReservedField
from ..models import KnnQuery, ResultItem
from .embedding_client import EmbeddingClient
from .transformer import ResultTransformer

logger = structlog.get_logger("search_service.knn_executor")

DEFAULT_KNN_LIMIT = 100


class KnnQueryExecutor:
    """Runs ``KnnQuery`` objects against one collection.

    Text queries are vectorized through the embedding service first; vector
    queries go to the store unchanged.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        collection: CollectionInfo,
        embedding_client: Optional[EmbeddingClient] = None,
        default_limit: int = DEFAULT_KNN_LIMIT,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.vector_store = vector_store
        self.collection = collection
        self.embedding_client = embedding_client
        self.default_limit = default_limit
        self.metrics = metrics
        self.transformer = ResultTransformer()

    @staticmethod
    def validate(knn: KnnQuery) -> None:
        """Reject queries this executor cannot run, before any store call."""
        if knn.key is not None and knn.key != ReservedField.EMBEDDING.value:
            raise UnsupportedEmbeddingKeyError(knn.key)

    async def execute(
        self,
        knn: KnnQuery,
        where: Optional[Dict[str, Any]] = None,
        where_document: Optional[Dict[str, Any]] = None,
    ) -> List[ResultItem]:
        self.validate(knn)

        if isinstance(knn.query, str):
            if self.embedding_client is None:
                raise EmbeddingServiceError("Text queries require an embedding service")
            vector = await self.embedding_client.embed(knn.query)
        else:
            vector = knn.query

        n_results = knn.limit or self.default_limit
        try:
            raw = await self.vector_store.query(
                self.collection,
                query_embeddings=[vector],
                n_results=n_results,
                where=where,
                where_document=where_document,
                include=DEFAULT_INCLUDE,
            )
        except VectorStoreError as e:
            if self.metrics:
                self.metrics.record_vector_store_operation("query", status="error")
            logger.error(
                "KNN query failed",
                collection=self.collection.name,
                n_results=n_results,
                error=str(e),
            )
            raise

        if self.metrics:
            self.metrics.record_vector_store_operation("query")

        results = self.transformer.transform(raw, return_rank=bool(knn.return_rank))
        logger.debug(
            "KNN query completed",
            collection=self.collection.name,
            n_results=n_results,
            returned=len(results),
            text_query=isinstance(knn.query, str),
        )
        return results
