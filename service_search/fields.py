"""Field references shared by grouping, sorting, and projection.

A reference is either one of the reserved markers (``#id``, ``#score``, ...)
or the name of a metadata entry. ``resolve_field`` is the single lookup used
everywhere a reference has to be turned into a value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ReservedField(str, Enum):
    """Built-in field markers."""
    ID = "#id"
    DOCUMENT = "#document"
    EMBEDDING = "#embedding"
    METADATA = "#metadata"
    SCORE = "#score"
    DISTANCE = "#distance"


@dataclass(frozen=True)
class FieldRef:
    """A parsed field reference.

    ``reserved`` is set for built-in markers; otherwise ``name`` is a
    metadata key.
    """
    name: str
    reserved: Optional[ReservedField] = None

    @classmethod
    def parse(cls, name: str) -> "FieldRef":
        try:
            return cls(name=name, reserved=ReservedField(name))
        except ValueError:
            return cls(name=name)

    @property
    def is_metadata_field(self) -> bool:
        return self.reserved is None


def resolve_field(item: Any, ref: FieldRef) -> Any:
    """Return the value ``ref`` points at on ``item``, or ``None`` if absent."""
    if ref.reserved is ReservedField.SCORE:
        return item.score
    if ref.reserved is ReservedField.DISTANCE:
        return item.distance
    if ref.reserved is ReservedField.ID:
        return item.id
    if ref.reserved is ReservedField.DOCUMENT:
        return item.document
    if ref.reserved is ReservedField.EMBEDDING:
        return item.embedding
    if ref.reserved is ReservedField.METADATA:
        return item.metadata
    if item.metadata is None:
        return None
    return item.metadata.get(ref.name)
