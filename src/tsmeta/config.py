"""Runtime configuration for the metadata query services."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="tsmeta_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"
    log_level: str = "INFO"

    # Meta query behaviour
    max_cardinality: int = 4096  # maximum entries allowed for multi-get queries
    query_timeout: str = "5s"
    fallback_on_exception: bool = True
    fallback_on_no_data: bool = False
    max_results: int = 4096  # maximum results returned by a multi-get query

    # Search clusters
    es_hosts: tuple[str, ...] | str = ("http://localhost:9200",)
    es_index_suffix: str = ""
    es_all_namespace_index: str = "all_namespace"
    es_request_timeout_seconds: float = 10.0

    @property
    def es_hosts_tuple(self) -> tuple[str, ...]:
        value = self.es_hosts
        if isinstance(value, str):
            return tuple(p.strip() for p in value.split(",") if p.strip())
        return tuple(value)


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
