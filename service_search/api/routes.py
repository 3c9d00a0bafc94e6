"""API routes for the search service."""

import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
import structlog

from libs.common.config import SearchConfig
from libs.common.metrics import MetricsCollector
from libs.vector_store.base import (
    CollectionInfo,
    VectorStore,
    VectorStoreError,
    VectorStoreNotFoundError,
)
from ..errors import EmbeddingServiceError, SearchRequestError
from ..models import AnySearchResponse, SearchRequest, SearchResponse
from ..pipeline.search_executor import SearchExecutor, query_type
from ..retrievers.embedding_client import EmbeddingClient

logger = structlog.get_logger("search_service.api")

router = APIRouter()


class BatchSearchRequest(BaseModel):
    """Request model for the batch endpoint."""
    searches: List[SearchRequest] = Field(..., min_length=1, description="Independent searches")


class BatchSearchResponse(BaseModel):
    """Response model for the batch endpoint."""
    results: List[SearchResponse] = Field(..., description="One response per search, in order")
    took: float = Field(..., ge=0, description="Total elapsed milliseconds")


def get_config(request: Request) -> SearchConfig:
    """Get service configuration from application state."""
    return request.app.state.config


def get_vector_store(request: Request) -> VectorStore:
    """Get vector store from application state."""
    return request.app.state.vector_store


def get_embedding_client(request: Request) -> Optional[EmbeddingClient]:
    """Get embedding client from application state."""
    return getattr(request.app.state, "embedding_client", None)


def get_metrics(request: Request) -> Optional[MetricsCollector]:
    """Get metrics collector from application state."""
    return getattr(request.app.state, "metrics_collector", None)


async def _resolve_collection(vector_store: VectorStore, name: str) -> CollectionInfo:
    if not name.strip():
        raise HTTPException(status_code=400, detail="Collection name is required")
    try:
        return await vector_store.get_collection(name)
    except VectorStoreNotFoundError as e:
        logger.warning("Collection not found", collection=name, error=str(e))
        raise HTTPException(status_code=404, detail=f"Collection {name} not found")
    except VectorStoreError as e:
        logger.error("Failed to resolve collection", collection=name, error=str(e))
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")


def _build_executor(
    config: SearchConfig,
    vector_store: VectorStore,
    collection: CollectionInfo,
    embedding_client: Optional[EmbeddingClient],
    metrics_collector: Optional[MetricsCollector],
) -> SearchExecutor:
    return SearchExecutor.from_config(
        config,
        vector_store,
        collection,
        embedding_client=embedding_client,
        metrics=metrics_collector,
    )


@router.post(
    "/collections/{name}/search",
    response_model=AnySearchResponse,
    response_model_exclude_none=True,
)
async def search(
    name: str,
    request: SearchRequest,
    config: SearchConfig = Depends(get_config),
    vector_store: VectorStore = Depends(get_vector_store),
    embedding_client: Optional[EmbeddingClient] = Depends(get_embedding_client),
    metrics_collector: Optional[MetricsCollector] = Depends(get_metrics),
):
    """Search one collection."""
    start_time = time.time()
    collection = await _resolve_collection(vector_store, name)
    executor = _build_executor(config, vector_store, collection, embedding_client, metrics_collector)

    try:
        response = await executor.execute(request)
    except SearchRequestError as e:
        logger.warning("Rejected search request", collection=name, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except VectorStoreNotFoundError as e:
        logger.warning("Collection disappeared during search", collection=name, error=str(e))
        raise HTTPException(status_code=404, detail=f"Collection {name} not found")
    except (VectorStoreError, EmbeddingServiceError) as e:
        logger.error("Search failed", collection=name, error=str(e))
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")

    if metrics_collector:
        metrics_collector.record_search(
            query_type=query_type(request),
            duration=time.time() - start_time,
            grouped=response.grouped,
        )

    logger.info(
        "Search completed",
        collection=name,
        query_type=query_type(request),
        grouped=response.grouped,
        latency_ms=response.took,
    )
    return response


@router.post(
    "/collections/{name}/search/batch",
    response_model=BatchSearchResponse,
    response_model_exclude_none=True,
)
async def batch_search(
    name: str,
    request: BatchSearchRequest,
    config: SearchConfig = Depends(get_config),
    vector_store: VectorStore = Depends(get_vector_store),
    embedding_client: Optional[EmbeddingClient] = Depends(get_embedding_client),
    metrics_collector: Optional[MetricsCollector] = Depends(get_metrics),
):
    """Run several searches against one collection concurrently."""
    collection = await _resolve_collection(vector_store, name)
    executor = _build_executor(config, vector_store, collection, embedding_client, metrics_collector)

    try:
        responses, took = await executor.execute_batch(request.searches)
    except SearchRequestError as e:
        logger.warning("Rejected batch search request", collection=name, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except VectorStoreNotFoundError as e:
        logger.warning("Collection disappeared during batch search", collection=name, error=str(e))
        raise HTTPException(status_code=404, detail=f"Collection {name} not found")
    except (VectorStoreError, EmbeddingServiceError) as e:
        logger.error("Batch search failed", collection=name, error=str(e))
        raise HTTPException(status_code=500, detail=f"Batch search failed: {str(e)}")

    if metrics_collector:
        for search_request, response in zip(request.searches, responses):
            metrics_collector.record_search(
                query_type=query_type(search_request),
                duration=response.took / 1000,
                grouped=response.grouped,
            )

    logger.info("Batch search completed", collection=name, batch_size=len(responses), latency_ms=took)
    return BatchSearchResponse(results=responses, took=took)
