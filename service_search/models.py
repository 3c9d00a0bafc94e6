"""Request and response models for the search pipeline.

These pydantic models are both the validation layer of the HTTP surface and
the in-memory types the pipeline stages pass between each other. Absent
optional fields are ``None`` and are dropped on serialization.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    field_validator,
    model_validator,
)

from .fields import FieldRef, ReservedField

MetadataValue = Union[str, bool, int, float]

DEFAULT_RRF_K = 60
DEFAULT_RRF_WEIGHT = 1.0


class ResultItem(BaseModel):
    """One candidate flowing through the pipeline."""
    id: str = Field(..., min_length=1, description="Stable document id")
    document: Optional[str] = Field(None, description="Document text")
    embedding: Optional[List[float]] = Field(None, description="Stored embedding")
    metadata: Optional[Dict[str, MetadataValue]] = Field(None, description="Document metadata")
    score: Optional[float] = Field(None, description="Rank position or fused score")
    distance: Optional[float] = Field(None, description="Distance to the query (lower is closer)")


class KnnQuery(BaseModel):
    """A single nearest-neighbor ranking query."""
    model_config = ConfigDict(populate_by_name=True)

    query: Union[str, List[float]] = Field(..., description="Query text or embedding vector")
    key: Optional[str] = Field(None, description="Embedding field to search (default #embedding)")
    limit: Optional[PositiveInt] = Field(None, description="Candidates to fetch from the store")
    return_rank: Optional[bool] = Field(None, alias="returnRank", description="Emit rank positions instead of distances")
    default: Optional[float] = Field(None, description="Rank assumed for documents missing from this query (RRF)")


class RrfClause(BaseModel):
    """Reciprocal Rank Fusion over several nearest-neighbor queries."""
    ranks: List[KnnQuery] = Field(..., min_length=1, description="Queries to fuse")
    k: PositiveInt = Field(DEFAULT_RRF_K, description="RRF smoothing constant")
    weights: Optional[List[float]] = Field(None, description="Per-query weights, positional")
    normalize: Optional[bool] = Field(None, description="Scale weights to sum to 1")


class KeyRef(BaseModel):
    """Reference to a reserved field (``#score``) or a metadata field."""
    field: str = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"field": data}
        return data

    @property
    def ref(self) -> FieldRef:
        return FieldRef.parse(self.field)


def _as_key_list(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class TopKClause(BaseModel):
    """Sort keys and the number of items kept per group."""
    keys: List[KeyRef] = Field(..., min_length=1)
    k: PositiveInt

    @field_validator("keys", mode="before")
    @classmethod
    def _normalize_keys(cls, value: Any) -> Any:
        return _as_key_list(value)


class AggregateClause(BaseModel):
    """Either ``$min_k`` (ascending) or ``$max_k`` (descending)."""
    model_config = ConfigDict(populate_by_name=True)

    min_k: Optional[TopKClause] = Field(None, alias="$min_k")
    max_k: Optional[TopKClause] = Field(None, alias="$max_k")

    @model_validator(mode="after")
    def _exactly_one(self) -> "AggregateClause":
        if (self.min_k is None) == (self.max_k is None):
            raise ValueError("aggregate must contain exactly one of $min_k or $max_k")
        return self

    @property
    def descending(self) -> bool:
        return self.max_k is not None

    @property
    def top_k(self) -> TopKClause:
        return self.max_k if self.max_k is not None else self.min_k


class GroupByClause(BaseModel):
    """Partition results by key(s) and keep the top k of each partition."""
    keys: List[KeyRef] = Field(..., min_length=1)
    aggregate: AggregateClause

    @field_validator("keys", mode="before")
    @classmethod
    def _normalize_keys(cls, value: Any) -> Any:
        return _as_key_list(value)

    @field_validator("keys")
    @classmethod
    def _scalar_keys_only(cls, keys: List[KeyRef]) -> List[KeyRef]:
        for key in keys:
            if key.ref.reserved in (ReservedField.EMBEDDING, ReservedField.METADATA):
                raise ValueError(f"cannot group by {key.field}")
        return keys


class SelectClause(BaseModel):
    """Fields to keep on each result; empty means everything."""
    keys: List[str] = Field(default_factory=list)


class LimitWindow(BaseModel):
    limit: PositiveInt
    offset: NonNegativeInt = 0


class SearchRequest(BaseModel):
    """A declarative search: ranking, filters, pagination, projection, grouping."""
    model_config = ConfigDict(populate_by_name=True)

    rank: Optional[Union[RrfClause, KnnQuery]] = Field(None, description="KNN query or RRF clause")
    where: Optional[Dict[str, Any]] = Field(None, description="Metadata filter passed to the store")
    where_document: Optional[Dict[str, Any]] = Field(None, alias="whereDocument", description="Document content filter passed to the store")
    limit: Optional[Union[PositiveInt, LimitWindow]] = Field(None, description="Page size, or {limit, offset}")
    select: Optional[SelectClause] = Field(None, description="Field projection")
    group_by: Optional[GroupByClause] = Field(None, alias="groupBy", description="Grouping and top-k aggregation")

    def pagination(self) -> Tuple[Optional[int], int]:
        """Return ``(limit, offset)``; limit is ``None`` when unbounded."""
        if self.limit is None:
            return None, 0
        if isinstance(self.limit, int):
            return self.limit, 0
        return self.limit.limit, self.limit.offset


class GroupedSearchResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_key: str = Field(..., alias="groupKey", description="Grouping field name(s), comma-joined")
    group_value: MetadataValue = Field(..., alias="groupValue", description="Value shared by the group")
    items: List[ResultItem] = Field(default_factory=list)


class UngroupedSearchResponse(BaseModel):
    grouped: Literal[False] = False
    results: List[ResultItem]
    total: int = Field(..., ge=0)
    took: float = Field(..., ge=0, description="Elapsed milliseconds")


class GroupedSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    grouped: Literal[True] = True
    groups: List[GroupedSearchResult]
    total_groups: int = Field(..., ge=0, alias="totalGroups")
    total_items: int = Field(..., ge=0, alias="totalItems")
    took: float = Field(..., ge=0, description="Elapsed milliseconds")


# plain union for return types; the discriminated form for nested validation
AnySearchResponse = Union[UngroupedSearchResponse, GroupedSearchResponse]

SearchResponse = Annotated[
    Union[UngroupedSearchResponse, GroupedSearchResponse],
    Field(discriminator="grouped"),
]
