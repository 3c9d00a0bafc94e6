"""Reciprocal Rank Fusion of several ranked result lists."""

from typing import Dict, List, Sequence

import structlog

from ..models import DEFAULT_RRF_WEIGHT, ResultItem, RrfClause

logger = structlog.get_logger("search_service.fusion")


class ReciprocalRankFusion:
    """Reciprocal Rank Fusion (RRF) algorithm.

    Each candidate at zero-based rank ``r`` in list ``i`` contributes
    ``w_i / (k + r + 1)``. Contributions are summed per id and the fused
    ``score`` is the negated sum, so lower is better like a distance.

    Parameters
    - synthesize_default_rank: When set, an id missing from list ``i`` is
      credited as if ranked at that query's ``default`` (when it has one).
      Off by default, so absence earns nothing.
    """

    def __init__(self, synthesize_default_rank: bool = False):
        self.synthesize_default_rank = synthesize_default_rank

    @staticmethod
    def effective_weights(clause: RrfClause, list_count: int) -> List[float]:
        """Per-list weights after defaults and optional normalization."""
        if clause.weights is not None:
            weights = list(clause.weights)
        else:
            weights = [DEFAULT_RRF_WEIGHT] * list_count

        if clause.normalize and weights:
            total = sum(weights)
            if total != 0:
                weights = [w / total for w in weights]

        # pad after normalizing; a missing weight stays at the default
        if len(weights) < list_count:
            weights.extend([DEFAULT_RRF_WEIGHT] * (list_count - len(weights)))

        return weights

    def fuse(
        self,
        ranked_lists: Sequence[Sequence[ResultItem]],
        clause: RrfClause,
    ) -> List[ResultItem]:
        """Fuse ``ranked_lists`` (one per ``clause.ranks`` entry)."""
        k = clause.k
        weights = self.effective_weights(clause, len(ranked_lists))

        scores: Dict[str, float] = {}
        first_seen: Dict[str, ResultItem] = {}

        for list_index, results in enumerate(ranked_lists):
            weight = weights[list_index]
            for rank, item in enumerate(results):
                contribution = weight / (k + rank + 1)
                if item.id in scores:
                    scores[item.id] += contribution
                else:
                    scores[item.id] = contribution
                    first_seen[item.id] = item

        if self.synthesize_default_rank:
            self._credit_missing(ranked_lists, clause, weights, scores)

        # sorted() is stable, so ties keep first-occurrence order
        ordered = sorted(scores, key=lambda item_id: scores[item_id], reverse=True)
        fused = [
            first_seen[item_id].model_copy(update={"score": -scores[item_id], "distance": None})
            for item_id in ordered
        ]

        logger.debug(
            "RRF fusion completed",
            list_count=len(ranked_lists),
            input_count=sum(len(results) for results in ranked_lists),
            fused_count=len(fused),
            k_parameter=k,
        )
        return fused

    @staticmethod
    def _credit_missing(
        ranked_lists: Sequence[Sequence[ResultItem]],
        clause: RrfClause,
        weights: List[float],
        scores: Dict[str, float],
    ) -> None:
        for list_index, results in enumerate(ranked_lists):
            if list_index >= len(clause.ranks):
                break
            default_rank = clause.ranks[list_index].default
            if default_rank is None:
                continue
            present = {item.id for item in results}
            contribution = weights[list_index] / (clause.k + default_rank + 1)
            for item_id in scores:
                if item_id not in present:
                    scores[item_id] += contribution
