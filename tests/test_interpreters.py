from __future__ import annotations

import pytest

from tsmeta.aggregations import (
    METRIC_UNIQUE,
    TAG_KEY_UNIQUE,
    TAG_VALUE_UNIQUE,
    TAGS_SUB_AGG,
    TAGS_SUB_UNIQUE,
    TAGS_UNIQUE,
    Bucket,
    FilterAggregation,
    NestedAggregation,
    TermsAggregation,
)
from tsmeta.errors import AggregationTypeMismatch
from tsmeta.models import MetaQuery, MetaResult, QueryType, RawResponse, SearchHit, TimeSeriesId
from tsmeta.schema.interpreters import (
    build_time_series,
    parse_metrics,
    parse_namespaces,
    parse_tag_keys,
    parse_tag_keys_and_values,
    parse_tag_values,
    parse_timeseries,
)


def _terms(*pairs: tuple[str, int]) -> TermsAggregation:
    return TermsAggregation(buckets=tuple(Bucket(key=k, doc_count=c) for k, c in pairs))


def _hit(tags: dict[str, str], metrics: list[str] | None = None) -> SearchHit:
    source: dict[str, object] = {"tags": [{"key.raw": k, "value.raw": v} for k, v in tags.items()]}
    if metrics is not None:
        source["AM_nested"] = [{"name.raw": m} for m in metrics]
    return SearchHit(source=source)


def test_namespaces_appended_in_order_without_dedupe():
    query = MetaQuery(type=QueryType.NAMESPACES)
    result = parse_namespaces(query, _terms(("sys", 1), ("app", 2)))
    result = parse_namespaces(query, _terms(("sys", 4)), result)
    assert result.result is MetaResult.DATA
    assert result.namespaces == ("sys", "app", "sys")


def test_empty_buckets_do_not_create_a_result():
    query = MetaQuery(type=QueryType.NAMESPACES)
    assert parse_namespaces(query, _terms()) is None


def test_metrics_keep_duplicate_keys_across_responses():
    query = MetaQuery(type=QueryType.METRICS, namespace="sys")
    agg = NestedAggregation(doc_count=5, aggregations={METRIC_UNIQUE: _terms(("sys.cpu", 5))})
    result = parse_metrics(query, agg)
    result = parse_metrics(query, agg, result)
    assert result.metrics == (("sys.cpu", 5), ("sys.cpu", 5))


@pytest.mark.parametrize(
    "agg",
    [
        NestedAggregation(doc_count=0, aggregations={METRIC_UNIQUE: _terms(("sys.cpu", 5))}),
        NestedAggregation(doc_count=3, aggregations={}),
    ],
)
def test_empty_nested_wrapper_is_a_no_op(agg):
    query = MetaQuery(type=QueryType.METRICS)
    assert parse_metrics(query, agg) is None
    existing = parse_metrics(
        query, NestedAggregation(doc_count=1, aggregations={METRIC_UNIQUE: _terms(("a", 1))})
    )
    assert parse_metrics(query, agg, existing) is existing
    assert existing.metrics == (("a", 1),)


def test_wrong_shape_fails_with_type_mismatch():
    query = MetaQuery(type=QueryType.METRICS)
    with pytest.raises(AggregationTypeMismatch):
        parse_metrics(query, _terms(("sys.cpu", 1)))
    with pytest.raises(AggregationTypeMismatch):
        parse_namespaces(query, NestedAggregation(doc_count=1))


def test_tag_keys_and_values_attach_sub_buckets():
    query = MetaQuery(type=QueryType.TAG_KEYS_AND_VALUES)
    sub = FilterAggregation(doc_count=3, aggregations={TAGS_SUB_UNIQUE: _terms(("web01", 2), ("web02", 1))})
    outer = TermsAggregation(buckets=(Bucket(key="host", doc_count=3, aggregations={TAGS_SUB_AGG: sub}),))
    result = parse_tag_keys_and_values(query, NestedAggregation(doc_count=3, aggregations={TAGS_UNIQUE: outer}))
    assert result.tags == ((("host", 3), (("web01", 2), ("web02", 1))),)


@pytest.mark.parametrize(
    "sub_aggs",
    [
        {},
        {TAGS_SUB_AGG: FilterAggregation(doc_count=0, aggregations={TAGS_SUB_UNIQUE: _terms(("web01", 2))})},
        {TAGS_SUB_AGG: FilterAggregation(doc_count=2, aggregations={})},
    ],
)
def test_tag_key_without_values_is_kept(sub_aggs):
    query = MetaQuery(type=QueryType.TAG_KEYS_AND_VALUES)
    outer = TermsAggregation(buckets=(Bucket(key="host", doc_count=3, aggregations=sub_aggs),))
    result = parse_tag_keys_and_values(query, NestedAggregation(doc_count=3, aggregations={TAGS_UNIQUE: outer}))
    assert result.tags == ((("host", 3), None),)


def test_tag_sub_aggregation_must_be_a_filter():
    query = MetaQuery(type=QueryType.TAG_KEYS_AND_VALUES)
    outer = TermsAggregation(buckets=(Bucket(key="host", doc_count=3, aggregations={TAGS_SUB_AGG: _terms()}),))
    with pytest.raises(AggregationTypeMismatch):
        parse_tag_keys_and_values(query, NestedAggregation(doc_count=3, aggregations={TAGS_UNIQUE: outer}))


def test_time_series_duplicates_tags_per_metric():
    identities = build_time_series(_hit({"host": "web01"}, ["sys.cpu", "sys.mem"]))
    assert [ts.metric for ts in identities] == ["sys.cpu", "sys.mem"]
    assert all(ts.tag_map == {"host": "web01"} for ts in identities)


def test_time_series_with_fixed_metric_emits_one_identity():
    identities = build_time_series(_hit({"host": "web01", "dc": "lga"}, ["ignored"]), metric="Sys.CPU")
    assert identities == [TimeSeriesId.build("Sys.CPU", [("host", "web01"), ("dc", "lga")])]


def test_time_series_without_metrics_emits_nothing():
    assert build_time_series(_hit({"host": "web01"}, [])) == []
    assert build_time_series(_hit({"host": "web01"})) == []


def test_parse_timeseries_uses_identity_builder():
    query = MetaQuery(type=QueryType.TIMESERIES, namespace="sys")
    response = RawResponse(total_hits=1, hits=(_hit({"host": "web01"}, ["sys.cpu"]),))
    result = parse_timeseries(query, response, identity_builder=lambda metric, tags: (metric, tuple(tags)))
    assert result.time_series == (("sys.cpu", (("host", "web01"),)),)


def test_tag_keys_and_tag_values_record_counts():
    keys = parse_tag_keys(
        MetaQuery(type=QueryType.TAG_KEYS),
        NestedAggregation(doc_count=4, aggregations={TAG_KEY_UNIQUE: _terms(("host", 4), ("dc", 2))}),
    )
    values = parse_tag_values(
        MetaQuery(type=QueryType.TAG_VALUES),
        NestedAggregation(doc_count=3, aggregations={TAG_VALUE_UNIQUE: _terms(("web01", 3))}),
    )
    assert keys.tag_keys_or_values == (("host", 4), ("dc", 2))
    assert values.tag_keys_or_values == (("web01", 3),)
