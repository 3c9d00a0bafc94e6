"""Search executor: the end-to-end search pipeline for one collection.

Stages, in order:
1. Ranking: a single KNN query, or every sub-query of an RRF clause fused
   into one list. Any store failure aborts the request.
2. Grouping (optional): group the full ranked list, then page through the
   groups; otherwise page through the ranked items.
3. Projection (optional): apply the select clause to the returned items.
4. Response assembly, with the elapsed time in milliseconds.
"""

import asyncio
import time
from typing import Awaitable, List, Optional, Sequence, Tuple, TypeVar

import structlog

from libs.common.config import SearchConfig
from libs.common.logging import log_performance
from libs.common.metrics import MetricsCollector
from libs.vector_store.base import CollectionInfo, VectorStore
from ..aggregation.group_by import GroupByAggregator
from ..errors import MissingRankError
from ..models import (
    AnySearchResponse,
    GroupedSearchResponse,
    KnnQuery,
    ResultItem,
    RrfClause,
    SearchRequest,
    UngroupedSearchResponse,
)
from ..projection.field_selector import FieldSelector
from ..ranking.fusion import ReciprocalRankFusion
from ..retrievers.embedding_client import EmbeddingClient
from ..retrievers.knn_executor import DEFAULT_KNN_LIMIT, KnnQueryExecutor

T = TypeVar("T")


def query_type(request: SearchRequest) -> str:
    """Metric/log label for the ranking method of ``request``."""
    if isinstance(request.rank, RrfClause):
        return "rrf"
    if isinstance(request.rank, KnnQuery):
        return "knn"
    return "none"


async def gather_or_cancel(*aws: Awaitable[T]) -> List[T]:
    """Run awaitables concurrently; the first failure cancels the rest."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def paginate(items: Sequence[T], limit: Optional[int], offset: int) -> List[T]:
    """Slice by offset, then by limit (``None`` means unbounded)."""
    page = list(items[offset:]) if offset > 0 else list(items)
    if limit is not None:
        page = page[:limit]
    return page


class SearchExecutor:
    """Runs ``SearchRequest`` objects against one collection.

    Parameters
    - vector_store: Store used for the nearest-neighbor queries
    - collection: Resolved collection handle
    - embedding_client: Needed only for text queries
    - default_knn_limit: Candidates fetched when a query sets no limit
    - concurrent_subqueries: Issue RRF sub-queries concurrently
    - synthesize_default_rank: See ``ReciprocalRankFusion``
    - metrics: Optional collector for store operation counts
    """

    def __init__(
        self,
        vector_store: VectorStore,
        collection: CollectionInfo,
        embedding_client: Optional[EmbeddingClient] = None,
        default_knn_limit: int = DEFAULT_KNN_LIMIT,
        concurrent_subqueries: bool = True,
        synthesize_default_rank: bool = False,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.collection = collection
        self.concurrent_subqueries = concurrent_subqueries
        self.knn_executor = KnnQueryExecutor(
            vector_store,
            collection,
            embedding_client=embedding_client,
            default_limit=default_knn_limit,
            metrics=metrics,
        )
        self.rrf_processor = ReciprocalRankFusion(synthesize_default_rank=synthesize_default_rank)
        self.group_by_processor = GroupByAggregator()
        self.select_processor = FieldSelector()
        self.log = structlog.get_logger("search_service.search_executor").bind(collection=collection.name)

    @classmethod
    def from_config(
        cls,
        config: SearchConfig,
        vector_store: VectorStore,
        collection: CollectionInfo,
        embedding_client: Optional[EmbeddingClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "SearchExecutor":
        return cls(
            vector_store,
            collection,
            embedding_client=embedding_client,
            default_knn_limit=config.ml_search_default_knn_limit,
            concurrent_subqueries=config.ml_search_concurrent_subqueries,
            synthesize_default_rank=config.ml_search_rrf_default_rank_synthesis,
            metrics=metrics,
        )

    async def execute(self, request: SearchRequest) -> AnySearchResponse:
        start_time = time.perf_counter()

        results = await self._rank(request)
        limit, offset = request.pagination()

        if request.group_by is not None:
            groups = self.group_by_processor.process(results, request.group_by)
            total_groups = len(groups)
            total_items = sum(len(group.items) for group in groups)

            page = paginate(groups, limit, offset)
            if request.select is not None:
                page = [
                    group.model_copy(update={
                        "items": self.select_processor.select(group.items, request.select)
                    })
                    for group in page
                ]

            took = (time.perf_counter() - start_time) * 1000
            response: AnySearchResponse = GroupedSearchResponse(
                groups=page,
                total_groups=total_groups,
                total_items=total_items,
                took=took,
            )
            returned = len(page)
        else:
            page_items = paginate(results, limit, offset)
            if request.select is not None:
                page_items = self.select_processor.select(page_items, request.select)

            took = (time.perf_counter() - start_time) * 1000
            response = UngroupedSearchResponse(
                results=page_items,
                total=len(page_items),
                took=took,
            )
            returned = len(page_items)

        log_performance(
            "search",
            took,
            collection=self.collection.name,
            query_type=query_type(request),
            grouped=response.grouped,
            candidates=len(results),
            returned=returned,
        )
        return response

    async def execute_batch(
        self,
        requests: Sequence[SearchRequest],
    ) -> Tuple[List[AnySearchResponse], float]:
        """Run independent requests concurrently.

        Returns the responses in request order and the total elapsed
        milliseconds. The first failure propagates and cancels the rest.
        """
        start_time = time.perf_counter()
        responses = await gather_or_cancel(*(self.execute(request) for request in requests))
        took = (time.perf_counter() - start_time) * 1000
        self.log.info("Batch search completed", batch_size=len(requests), took_ms=took)
        return list(responses), took

    async def _rank(self, request: SearchRequest) -> List[ResultItem]:
        rank = request.rank
        if rank is None:
            raise MissingRankError()

        if isinstance(rank, RrfClause):
            # validate every sub-query before the first store call
            for knn in rank.ranks:
                KnnQueryExecutor.validate(knn)
            ranked_lists = await self._run_subqueries(rank.ranks, request)
            return self.rrf_processor.fuse(ranked_lists, rank)

        return await self.knn_executor.execute(rank, request.where, request.where_document)

    async def _run_subqueries(
        self,
        queries: Sequence[KnnQuery],
        request: SearchRequest,
    ) -> List[List[ResultItem]]:
        if self.concurrent_subqueries:
            return await gather_or_cancel(*(
                self.knn_executor.execute(knn, request.where, request.where_document)
                for knn in queries
            ))

        ranked_lists = []
        for knn in queries:
            ranked_lists.append(
                await self.knn_executor.execute(knn, request.where, request.where_document)
            )
        return ranked_lists
