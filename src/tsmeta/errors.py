"""Exceptions raised by the metadata query layer."""

from __future__ import annotations


class MetaQueryError(Exception):
    """Base error for metadata query failures."""


class AggregationTypeMismatch(MetaQueryError, TypeError):
    """Raised when an aggregation node does not have the shape the query type expects."""

    def __init__(self, name: str, expected: type, actual: object) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Aggregation '{name}' expected {expected.__name__}, got {type(actual).__name__}"
        )


class MalformedRequestError(MetaQueryError, ValueError):
    """Raised when a request cannot be turned into a metadata query."""


class SearchBackendError(MetaQueryError):
    """Raised by a search client when the backend cannot answer a request."""

    def __init__(self, message: str, *, host: str | None = None, status_code: int | None = None) -> None:
        self.host = host
        self.status_code = status_code
        super().__init__(message)


__all__ = [
    "AggregationTypeMismatch",
    "MalformedRequestError",
    "MetaQueryError",
    "SearchBackendError",
]
