from __future__ import annotations

import pytest

from tsmeta.aggregations import (
    FilterAggregation,
    NestedAggregation,
    TermsAggregation,
    UnknownAggregation,
    parse_aggregations,
)


def test_parse_typed_keys_tree():
    raw = {
        "nested#tags_agg": {
            "doc_count": 4,
            "sterms#unique_tags": {
                "doc_count_error_upper_bound": 0,
                "sum_other_doc_count": 0,
                "buckets": [
                    {
                        "key": "host",
                        "doc_count": 3,
                        "filter#tags_sub_agg": {
                            "doc_count": 3,
                            "sterms#tags_sub_unique": {
                                "buckets": [
                                    {"key": "web01", "doc_count": 2},
                                    {"key": "web02", "doc_count": 1},
                                ]
                            },
                        },
                    }
                ],
            },
        }
    }
    parsed = parse_aggregations(raw)
    nested = parsed["tags_agg"]
    assert isinstance(nested, NestedAggregation)
    assert nested.doc_count == 4
    terms = nested.aggregations["unique_tags"]
    assert isinstance(terms, TermsAggregation)
    bucket = terms.buckets[0]
    assert (bucket.key, bucket.doc_count) == ("host", 3)
    sub = bucket.aggregations["tags_sub_agg"]
    assert isinstance(sub, FilterAggregation)
    values = sub.aggregations["tags_sub_unique"]
    assert [(b.key, b.doc_count) for b in values.buckets] == [("web01", 2), ("web02", 1)]


def test_numeric_terms_keys_become_strings():
    parsed = parse_aggregations({"lterms#ns_agg": {"buckets": [{"key": 42, "doc_count": 1}]}})
    assert parsed["ns_agg"].buckets[0].key == "42"


def test_unreadable_aggregation_types_are_kept_opaque():
    parsed = parse_aggregations({"avg#latency": {"value": 1.5}, "sterms#ns_agg": {"buckets": []}})
    assert parsed["latency"] == UnknownAggregation(type="avg", body={"value": 1.5})
    assert isinstance(parsed["ns_agg"], TermsAggregation)


def test_untyped_names_are_rejected():
    with pytest.raises(ValueError):
        parse_aggregations({"ns_agg": {"buckets": []}})
