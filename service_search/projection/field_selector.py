"""Project result items down to a requested field set."""

from typing import Any, Dict, List, Sequence

from ..fields import FieldRef, ReservedField
from ..models import ResultItem, SelectClause


class FieldSelector:
    """Applies a ``SelectClause`` to result items.

    ``id`` is always kept and an empty selection keeps everything. ``#score``
    (or ``#distance``) carries both score and distance. ``#metadata`` keeps
    the whole map and wins over named metadata fields; named fields keep
    only the entries present, and omit metadata when none are. Input items
    are never modified.
    """

    def select(self, items: Sequence[ResultItem], clause: SelectClause) -> List[ResultItem]:
        refs = [FieldRef.parse(key) for key in clause.keys]
        reserved = {ref.reserved for ref in refs if ref.reserved is not None}
        named_fields = [ref.name for ref in refs if ref.is_metadata_field]
        include_all = not refs

        return [self._project(item, include_all, reserved, named_fields) for item in items]

    @staticmethod
    def _project(
        item: ResultItem,
        include_all: bool,
        reserved: set,
        named_fields: List[str],
    ) -> ResultItem:
        if include_all:
            return item.model_copy(deep=True)

        fields: Dict[str, Any] = {"id": item.id}

        if ReservedField.DOCUMENT in reserved and item.document is not None:
            fields["document"] = item.document

        if ReservedField.EMBEDDING in reserved and item.embedding is not None:
            fields["embedding"] = list(item.embedding)

        if reserved & {ReservedField.SCORE, ReservedField.DISTANCE}:
            if item.score is not None:
                fields["score"] = item.score
            if item.distance is not None:
                fields["distance"] = item.distance

        if item.metadata is not None:
            if ReservedField.METADATA in reserved:
                fields["metadata"] = dict(item.metadata)
            elif named_fields:
                partial = {name: item.metadata[name] for name in named_fields if name in item.metadata}
                if partial:
                    fields["metadata"] = partial

        return ResultItem(**fields)
