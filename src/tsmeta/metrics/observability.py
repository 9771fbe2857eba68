"""Observability helpers for the metadata query layer."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator

import structlog
from prometheus_client import Counter, Histogram

from tsmeta.config import get_settings

_logger_configured = False


def resolve_log_level(level: int | str | None = None) -> int:
    """Turn a level name or number into a logging level, defaulting to settings."""

    if level is None:
        level = get_settings().log_level
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level '{level}'")
    return resolved


def configure_logging(level: int | str | None = None) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    level = resolve_log_level(level)
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def get_logger(name: str = "tsmeta") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class SchemaMetrics:
    """Prometheus metrics for metadata query dispatch."""

    search_latency = Histogram(
        "tsmeta_search_duration_seconds",
        "Time spent waiting on the search backend.",
        buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
    )
    parse_latency = Histogram(
        "tsmeta_parse_duration_seconds",
        "Time spent turning search responses into a result.",
        buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5),
    )
    outcomes = Counter(
        "tsmeta_query_outcomes_total",
        "Metadata query outcomes by query type.",
        ["query_type", "result"],
    )
    cardinality_breaches = Counter(
        "tsmeta_cardinality_breaches_total",
        "Queries aborted because a response exceeded the cardinality ceiling.",
    )

    @classmethod
    def observe_search(cls, duration_seconds: float) -> None:
        cls.search_latency.observe(duration_seconds)

    @classmethod
    def observe_parse(cls, duration_seconds: float) -> None:
        cls.parse_latency.observe(duration_seconds)

    @classmethod
    def observe_outcome(cls, query_type: str, result: str) -> None:
        cls.outcomes.labels(query_type=query_type, result=result).inc()

    @classmethod
    def observe_cardinality_breach(cls) -> None:
        cls.cardinality_breaches.inc()


@contextmanager
def timed(observe: Callable[[float], None]) -> Iterator[None]:
    """Report the seconds spent in the block to ``observe``, even when it raises."""

    start = time.perf_counter()
    try:
        yield
    finally:
        observe(time.perf_counter() - start)


__all__ = [
    "SchemaMetrics",
    "configure_logging",
    "get_logger",
    "resolve_log_level",
    "timed",
]
