"""Normalize raw store output into ``ResultItem`` sequences."""

from typing import Any, List, Optional, Sequence

import structlog

from libs.vector_store.base import QueryResult
from ..models import ResultItem

logger = structlog.get_logger("search_service.transformer")


def _first_batch(batches: Optional[Sequence[Any]]) -> Optional[Sequence[Any]]:
    if not batches:
        return None
    return batches[0]


def _at(values: Optional[Sequence[Any]], index: int) -> Any:
    if values is None or index >= len(values):
        return None
    return values[index]


class ResultTransformer:
    """Turns one query's raw candidate batch into result items.

    Only the first batch is read; the executor always sends a single query
    embedding. Missing arrays, short arrays and ``None`` entries all leave
    the corresponding field absent.
    """

    def transform(self, raw: QueryResult, return_rank: bool = False) -> List[ResultItem]:
        ids = _first_batch(raw.ids) or []
        documents = _first_batch(raw.documents)
        embeddings = _first_batch(raw.embeddings)
        metadatas = _first_batch(raw.metadatas)
        distances = _first_batch(raw.distances)

        results: List[ResultItem] = []
        skipped = 0
        for index, item_id in enumerate(ids):
            if not item_id:
                skipped += 1
                continue

            metadata = _at(metadatas, index)
            if metadata is not None:
                metadata = {key: value for key, value in metadata.items() if value is not None}

            embedding = _at(embeddings, index)

            results.append(ResultItem(
                id=str(item_id),
                document=_at(documents, index),
                embedding=list(embedding) if embedding is not None else None,
                metadata=metadata,
                # rank position replaces distance in rank mode
                score=float(index) if return_rank else None,
                distance=None if return_rank else _at(distances, index),
            ))

        if skipped:
            logger.warning("Skipped candidates without ids", skipped=skipped)

        return results
