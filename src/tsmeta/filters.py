"""Filter values synthesized by the metadata layer.

Filters are otherwise opaque here: compiling them into backend query syntax
is the job of the request builder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


class FilterOp(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class MetricLiteralFilter:
    """Matches documents carrying exactly this metric name."""

    metric: str


@dataclass(frozen=True)
class ChainFilter:
    """Combines child filters with a boolean operator."""

    op: FilterOp
    filters: Sequence[Any]

    @classmethod
    def all_of(cls, *filters: Any) -> "ChainFilter":
        return cls(op=FilterOp.AND, filters=tuple(f for f in filters if f is not None))


__all__ = ["ChainFilter", "FilterOp", "MetricLiteralFilter"]
