"""Interpreters turning raw search responses into result entries.

Each interpreter is called once per response of a batch with the result
built so far (or None). A result is only created once an entry is found,
so a batch without any bucket leaves it None.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from tsmeta.aggregations import (
    METRIC_AGG,
    METRIC_NAME_FIELD,
    METRIC_UNIQUE,
    METRICS_NESTED_FIELD,
    NAMESPACE_AGG,
    TAG_KEY_AGG,
    TAG_KEY_FIELD,
    TAG_KEY_UNIQUE,
    TAG_VALUE_AGG,
    TAG_VALUE_FIELD,
    TAG_VALUE_UNIQUE,
    TAGS_AGG,
    TAGS_FIELD,
    TAGS_SUB_AGG,
    TAGS_SUB_UNIQUE,
    TAGS_UNIQUE,
    AggregationNode,
    FilterAggregation,
    NestedAggregation,
    TermsAggregation,
)
from tsmeta.errors import AggregationTypeMismatch
from tsmeta.models import MetaQuery, MetaResult, QueryType, RawResponse, SearchHit, TimeSeriesId
from tsmeta.schema.result import MetaDataStorageResult

NodeT = TypeVar("NodeT")

IdentityBuilder = Callable[[str, Iterable[Tuple[str, str]]], Any]
Interpreter = Callable[
    [MetaQuery, AggregationNode, Optional[MetaDataStorageResult]],
    Optional[MetaDataStorageResult],
]


def _expect(name: str, node: object, expected: type[NodeT]) -> NodeT:
    if not isinstance(node, expected):
        raise AggregationTypeMismatch(name, expected, node)
    return node


def _ensure(result: Optional[MetaDataStorageResult], query: MetaQuery) -> MetaDataStorageResult:
    if result is None:
        return MetaDataStorageResult(MetaResult.DATA, query)
    return result


def _unique_terms(
    name: str,
    aggregation: AggregationNode,
    unique_name: str,
) -> Optional[TermsAggregation]:
    """Unwrap a nested wrapper, returning its terms or None when it is empty."""

    nested = _expect(name, aggregation, NestedAggregation)
    if nested.doc_count <= 0:
        return None
    unique = nested.aggregations.get(unique_name)
    if unique is None:
        return None
    return _expect(unique_name, unique, TermsAggregation)


def parse_namespaces(
    query: MetaQuery,
    aggregation: AggregationNode,
    result: Optional[MetaDataStorageResult] = None,
) -> Optional[MetaDataStorageResult]:
    terms = _expect(NAMESPACE_AGG, aggregation, TermsAggregation)
    for bucket in terms.buckets:
        result = _ensure(result, query)
        result.add_namespace(bucket.key)
    return result


def parse_metrics(
    query: MetaQuery,
    aggregation: AggregationNode,
    result: Optional[MetaDataStorageResult] = None,
) -> Optional[MetaDataStorageResult]:
    terms = _unique_terms(METRIC_AGG, aggregation, METRIC_UNIQUE)
    if terms is None:
        return result
    for bucket in terms.buckets:
        result = _ensure(result, query)
        result.add_metric((bucket.key, bucket.doc_count))
    return result


def parse_tag_keys(
    query: MetaQuery,
    aggregation: AggregationNode,
    result: Optional[MetaDataStorageResult] = None,
) -> Optional[MetaDataStorageResult]:
    terms = _unique_terms(TAG_KEY_AGG, aggregation, TAG_KEY_UNIQUE)
    if terms is None:
        return result
    for bucket in terms.buckets:
        result = _ensure(result, query)
        result.add_tag_key_or_value((bucket.key, bucket.doc_count))
    return result


def parse_tag_values(
    query: MetaQuery,
    aggregation: AggregationNode,
    result: Optional[MetaDataStorageResult] = None,
) -> Optional[MetaDataStorageResult]:
    terms = _unique_terms(TAG_VALUE_AGG, aggregation, TAG_VALUE_UNIQUE)
    if terms is None:
        return result
    for bucket in terms.buckets:
        result = _ensure(result, query)
        result.add_tag_key_or_value((bucket.key, bucket.doc_count))
    return result


def parse_tag_keys_and_values(
    query: MetaQuery,
    aggregation: AggregationNode,
    result: Optional[MetaDataStorageResult] = None,
) -> Optional[MetaDataStorageResult]:
    terms = _unique_terms(TAGS_AGG, aggregation, TAGS_UNIQUE)
    if terms is None:
        return result
    for bucket in terms.buckets:
        result = _ensure(result, query)
        key = (bucket.key, bucket.doc_count)
        sub = bucket.aggregations.get(TAGS_SUB_AGG)
        if sub is None:
            result.add_tags(key, None)
            continue
        sub = _expect(TAGS_SUB_AGG, sub, FilterAggregation)
        unique = sub.aggregations.get(TAGS_SUB_UNIQUE)
        if sub.doc_count < 1 or unique is None:
            result.add_tags(key, None)
            continue
        values = _expect(TAGS_SUB_UNIQUE, unique, TermsAggregation)
        result.add_tags(key, [(value.key, value.doc_count) for value in values.buckets])
    return result


def build_time_series(
    hit: SearchHit,
    metric: str | None = None,
    identity_builder: IdentityBuilder = TimeSeriesId.build,
) -> List[Any]:
    """Rebuild the time series identities described by one document.

    With a fixed ``metric`` a single identity is produced. Otherwise one is
    produced per entry of the nested metrics field, each carrying the full
    tag list of the document.
    """

    source: Mapping[str, Any] = hit.source or {}
    tags = [
        (pair.get(TAG_KEY_FIELD), pair.get(TAG_VALUE_FIELD))
        for pair in source.get(TAGS_FIELD) or []
    ]
    if metric is not None:
        return [identity_builder(metric, tags)]
    return [
        identity_builder(entry.get(METRIC_NAME_FIELD), tags)
        for entry in source.get(METRICS_NESTED_FIELD) or []
    ]


def parse_timeseries(
    query: MetaQuery,
    response: RawResponse,
    result: Optional[MetaDataStorageResult] = None,
    *,
    metric: str | None = None,
    identity_builder: IdentityBuilder = TimeSeriesId.build,
) -> Optional[MetaDataStorageResult]:
    for hit in response.hits:
        for time_series in build_time_series(hit, metric, identity_builder):
            result = _ensure(result, query)
            result.add_time_series(time_series)
    return result


# Query type -> (top level aggregation name, interpreter)
AGGREGATION_INTERPRETERS: Mapping[QueryType, Tuple[str, Interpreter]] = {
    QueryType.NAMESPACES: (NAMESPACE_AGG, parse_namespaces),
    QueryType.METRICS: (METRIC_AGG, parse_metrics),
    QueryType.TAG_KEYS: (TAG_KEY_AGG, parse_tag_keys),
    QueryType.TAG_VALUES: (TAG_VALUE_AGG, parse_tag_values),
    QueryType.TAG_KEYS_AND_VALUES: (TAGS_AGG, parse_tag_keys_and_values),
}


def interpret_batch(
    query: MetaQuery,
    responses: Sequence[RawResponse],
    identity_builder: IdentityBuilder = TimeSeriesId.build,
) -> Optional[MetaDataStorageResult]:
    """Fold every response of a batch, in order, into one result."""

    result: Optional[MetaDataStorageResult] = None
    for response in responses:
        if query.type is QueryType.TIMESERIES:
            result = parse_timeseries(query, response, result, identity_builder=identity_builder)
            continue
        agg_name, interpreter = AGGREGATION_INTERPRETERS[query.type]
        if not response.aggregations:
            continue
        aggregation = response.aggregations.get(agg_name)
        if aggregation is None:
            continue
        result = interpreter(query, aggregation, result)
    return result


__all__ = [
    "AGGREGATION_INTERPRETERS",
    "IdentityBuilder",
    "build_time_series",
    "interpret_batch",
    "parse_metrics",
    "parse_namespaces",
    "parse_tag_keys",
    "parse_tag_keys_and_values",
    "parse_tag_values",
    "parse_timeseries",
]
