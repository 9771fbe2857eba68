"""Shared domain models used across the metadata query pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Protocol, Sequence, Tuple

from tsmeta.aggregations import AggregationNode


class QueryType(str, Enum):
    NAMESPACES = "NAMESPACES"
    METRICS = "METRICS"
    TAG_KEYS = "TAG_KEYS"
    TAG_VALUES = "TAG_VALUES"
    TAG_KEYS_AND_VALUES = "TAG_KEYS_AND_VALUES"
    TIMESERIES = "TIMESERIES"


class MetaResult(str, Enum):
    """Outcome of a metadata query.

    The ``*_FALLBACK`` variants tell the caller it may retry through another
    retrieval path; the plain variants mean it should not.
    """

    DATA = "DATA"
    NO_DATA = "NO_DATA"
    NO_DATA_FALLBACK = "NO_DATA_FALLBACK"
    EXCEPTION = "EXCEPTION"
    EXCEPTION_FALLBACK = "EXCEPTION_FALLBACK"


@dataclass(frozen=True)
class MetaQuery:
    """A single metadata request against one namespace."""

    type: QueryType
    namespace: str = ""
    filter: Any = None
    from_: int = 0
    to: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "namespace", (self.namespace or "").lower())
        if self.from_ < 0 or self.to < 0:
            raise ValueError("Pagination bounds must be non-negative")
        if self.to < self.from_:
            raise ValueError(f"Pagination end {self.to} is before start {self.from_}")

    @property
    def size(self) -> int:
        return self.to - self.from_


@dataclass(frozen=True)
class SearchHit:
    """A raw document returned by the search backend."""

    source: Mapping[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class RawResponse:
    """One search response from one cluster or shard group."""

    total_hits: int
    aggregations: Mapping[str, AggregationNode] | None = None
    hits: Sequence[SearchHit] = ()
    took_ms: int | None = None


@dataclass(frozen=True)
class TimeSeriesId:
    """String identity of a time series: a metric plus its tag pairs."""

    metric: str
    tags: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def build(cls, metric: str, tags: Iterable[Tuple[str, str]]) -> "TimeSeriesId":
        merged: dict[str, str] = {}
        for key, value in tags:
            merged[key] = value
        return cls(metric=metric, tags=tuple(sorted(merged.items())))

    @property
    def tag_map(self) -> dict[str, str]:
        return dict(self.tags)


@dataclass(frozen=True)
class TimeSeriesDataSourceConfig:
    """Source node of a query pipeline: one dotted metric plus an optional filter."""

    metric: str
    filter: Any = None
    filter_id: str | None = None


class QueryPipelineContext(Protocol):
    """Resolves named filters declared on the enclosing query."""

    def get_filter(self, filter_id: str) -> Any | None:
        """Return the filter registered under ``filter_id`` or None."""


__all__ = [
    "MetaQuery",
    "MetaResult",
    "QueryPipelineContext",
    "QueryType",
    "RawResponse",
    "SearchHit",
    "TimeSeriesDataSourceConfig",
    "TimeSeriesId",
]
