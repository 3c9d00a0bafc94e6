"""Group results by key(s) and keep the top k of each group.

Grouping keys and sort keys are field references resolved through
``resolve_field``. A single grouping key yields the raw value as the group
value; several keys yield a compact JSON array of the values. Items missing
any grouping key are dropped.

Within a group, ``$min_k`` sorts ascending and ``$max_k`` descending over the
sort keys from left to right. Numbers compare numerically and strings by
Unicode collation (``pyuca``), so case and accents only break ties. An item
missing a sort value always goes after one that has it, whatever the
direction. Values of different types compare equal and
fall through to the next key. The sort is stable.
"""

import json
from functools import cmp_to_key, lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from pyuca import Collator

from ..fields import FieldRef, resolve_field
from ..models import GroupByClause, GroupedSearchResult, ResultItem

logger = structlog.get_logger("search_service.group_by")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@lru_cache(maxsize=None)
def _collator() -> Collator:
    return Collator()


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison of two present sort values."""
    if _is_number(a) and _is_number(b):
        return _sign(a - b)
    if isinstance(a, str) and isinstance(b, str):
        collator = _collator()
        key_a, key_b = collator.sort_key(a), collator.sort_key(b)
        return (key_a > key_b) - (key_a < key_b)
    return 0


class GroupByAggregator:
    """Partitions result items and applies MinK/MaxK per partition."""

    def process(
        self,
        results: Sequence[ResultItem],
        clause: GroupByClause,
    ) -> List[GroupedSearchResult]:
        group_refs = [key.ref for key in clause.keys]
        group_key = ",".join(ref.name for ref in group_refs)

        top_k = clause.aggregate.top_k
        sort_refs = [key.ref for key in top_k.keys]
        descending = clause.aggregate.descending

        groups: List[GroupedSearchResult] = []
        for value, items in self._partition(results, group_refs):
            groups.append(GroupedSearchResult(
                group_key=group_key,
                group_value=value,
                items=self._sort_and_slice(items, sort_refs, descending, top_k.k),
            ))

        logger.debug(
            "Grouping completed",
            group_key=group_key,
            input_count=len(results),
            group_count=len(groups),
            descending=descending,
            k=top_k.k,
        )
        return groups

    def _partition(
        self,
        results: Sequence[ResultItem],
        refs: List[FieldRef],
    ) -> List[Tuple[Any, List[ResultItem]]]:
        """Bucket items by group value, in discovery order."""
        buckets: Dict[Tuple[bool, Any], Tuple[Any, List[ResultItem]]] = {}
        for item in results:
            value = self.group_value(item, refs)
            if value is None:
                continue
            # keep True and 1 apart; dict keys would otherwise merge them
            bucket_key = (isinstance(value, bool), value)
            if bucket_key not in buckets:
                buckets[bucket_key] = (value, [])
            buckets[bucket_key][1].append(item)
        return list(buckets.values())

    @staticmethod
    def group_value(item: ResultItem, refs: List[FieldRef]) -> Optional[Any]:
        """Group value of ``item``, or ``None`` when any key is missing."""
        if len(refs) == 1:
            return resolve_field(item, refs[0])

        values = []
        for ref in refs:
            value = resolve_field(item, ref)
            if value is None:
                return None
            values.append(value)
        return json.dumps(values, separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def _sort_and_slice(
        items: List[ResultItem],
        sort_refs: List[FieldRef],
        descending: bool,
        k: int,
    ) -> List[ResultItem]:
        def compare(a: ResultItem, b: ResultItem) -> int:
            for ref in sort_refs:
                a_val = resolve_field(a, ref)
                b_val = resolve_field(b, ref)
                if a_val is None and b_val is None:
                    continue
                # missing values go last in either direction
                if a_val is None:
                    return 1
                if b_val is None:
                    return -1
                diff = compare_values(a_val, b_val)
                if diff:
                    return -diff if descending else diff
            return 0

        return sorted(items, key=cmp_to_key(compare))[:k]
