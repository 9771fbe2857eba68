from __future__ import annotations

from tsmeta.config import get_settings
from tsmeta.schema import SchemaConfig


def test_defaults_match_registered_meta_settings():
    settings = get_settings({"environment": "test"})
    assert settings.max_cardinality == 4096
    assert settings.max_results == 4096
    assert settings.fallback_on_exception is True
    assert settings.fallback_on_no_data is False


def test_es_hosts_accepts_comma_separated_string():
    settings = get_settings({"es_hosts": "http://a:9200, http://b:9200"})
    assert settings.es_hosts_tuple == ("http://a:9200", "http://b:9200")


def test_schema_config_snapshot_from_settings():
    settings = get_settings({"max_cardinality": 10, "fallback_on_no_data": True, "query_timeout": "2s"})
    config = SchemaConfig.from_settings(settings)
    assert config.max_cardinality == 10
    assert config.query_timeout == "2s"
    assert config.fallback.on_no_data is True
    assert config.fallback.on_exception is True
