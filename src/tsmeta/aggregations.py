"""Typed aggregation trees returned by the document search backend.

Responses are requested with ``typed_keys`` so every aggregation name arrives
as ``"<type>#<name>"``; the prefix decides which node class is built. Request
builders and interpreters share the aggregation and field names below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

# Aggregation names
NAMESPACE_AGG = "ns_agg"
METRIC_AGG = "metric_agg"
METRIC_UNIQUE = "unique_metrics"
TAG_KEY_AGG = "tagk_agg"
TAG_KEY_UNIQUE = "unique_tagks"
TAG_VALUE_AGG = "tagv_agg"
TAG_VALUE_UNIQUE = "unique_tagvs"
TAGS_AGG = "tags_agg"
TAGS_UNIQUE = "unique_tags"
TAGS_SUB_AGG = "tags_sub_agg"
TAGS_SUB_UNIQUE = "tags_sub_unique"

# Document fields
TAGS_FIELD = "tags"
METRICS_NESTED_FIELD = "AM_nested"
METRIC_NAME_FIELD = "name.raw"
TAG_KEY_FIELD = "key.raw"
TAG_VALUE_FIELD = "value.raw"

_TERMS_TYPES = frozenset({"sterms", "lterms", "dterms", "umterms"})
_NESTED_TYPES = frozenset({"nested", "reverse_nested"})
_FILTER_TYPES = frozenset({"filter"})


@dataclass(frozen=True)
class Bucket:
    """One grouped-by-value entry of a terms aggregation."""

    key: str
    doc_count: int
    aggregations: Mapping[str, "AggregationNode"] = field(default_factory=dict)


@dataclass(frozen=True)
class TermsAggregation:
    """Flat list of buckets."""

    buckets: Sequence[Bucket] = ()


@dataclass(frozen=True)
class NestedAggregation:
    """Wrapper whose real aggregations run over nested documents."""

    doc_count: int
    aggregations: Mapping[str, "AggregationNode"] = field(default_factory=dict)


@dataclass(frozen=True)
class FilterAggregation:
    """Wrapper whose aggregations run over documents matching a filter."""

    doc_count: int
    aggregations: Mapping[str, "AggregationNode"] = field(default_factory=dict)


@dataclass(frozen=True)
class UnknownAggregation:
    """An aggregation type the metadata layer has no reader for."""

    type: str
    body: Mapping[str, Any] = field(default_factory=dict)


AggregationNode = Union[TermsAggregation, NestedAggregation, FilterAggregation, UnknownAggregation]


def parse_aggregations(raw: Mapping[str, Any] | None) -> dict[str, AggregationNode]:
    """Parse a ``typed_keys`` aggregations object into typed nodes keyed by name.

    Types without a reader are kept as ``UnknownAggregation`` so consumers
    expecting another shape reject them.
    """

    parsed: dict[str, AggregationNode] = {}
    if not raw:
        return parsed
    for typed_name, body in raw.items():
        agg_type, sep, name = typed_name.partition("#")
        if not sep:
            raise ValueError(f"Aggregation '{typed_name}' has no type prefix; request typed_keys")
        parsed[name] = _parse_node(agg_type, body)
    return parsed


def _parse_node(agg_type: str, body: Mapping[str, Any]) -> AggregationNode:
    if agg_type in _TERMS_TYPES:
        return TermsAggregation(buckets=tuple(_parse_bucket(b) for b in body.get("buckets", [])))
    if agg_type in _NESTED_TYPES:
        return NestedAggregation(
            doc_count=int(body.get("doc_count", 0)),
            aggregations=parse_aggregations(_sub_aggregations(body)),
        )
    if agg_type in _FILTER_TYPES:
        return FilterAggregation(
            doc_count=int(body.get("doc_count", 0)),
            aggregations=parse_aggregations(_sub_aggregations(body)),
        )
    return UnknownAggregation(type=agg_type, body=dict(body))


def _parse_bucket(body: Mapping[str, Any]) -> Bucket:
    key = body.get("key_as_string", body.get("key"))
    return Bucket(
        key=str(key),
        doc_count=int(body.get("doc_count", 0)),
        aggregations=parse_aggregations(_sub_aggregations(body)),
    )


def _sub_aggregations(body: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in body.items() if "#" in k and isinstance(v, Mapping)}


__all__ = [
    "AggregationNode",
    "Bucket",
    "FilterAggregation",
    "NestedAggregation",
    "TermsAggregation",
    "UnknownAggregation",
    "parse_aggregations",
]
