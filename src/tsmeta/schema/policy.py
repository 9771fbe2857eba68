"""Cardinality guard and fallback policy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tsmeta.models import MetaResult


class Condition(str, Enum):
    EXCEPTION = "EXCEPTION"
    NO_DATA = "NO_DATA"


_VARIANTS: dict[Condition, tuple[MetaResult, MetaResult]] = {
    # condition -> (plain, fallback)
    Condition.EXCEPTION: (MetaResult.EXCEPTION, MetaResult.EXCEPTION_FALLBACK),
    Condition.NO_DATA: (MetaResult.NO_DATA, MetaResult.NO_DATA_FALLBACK),
}


def finalize(condition: Condition, fallback_enabled: bool) -> MetaResult:
    """Pick the plain or fallback outcome for an empty or failed query."""

    plain, fallback = _VARIANTS[condition]
    return fallback if fallback_enabled else plain


def cardinality_breached(total_hits: int, ceiling: int) -> bool:
    return total_hits > ceiling


@dataclass(frozen=True)
class FallbackPolicy:
    """The two independent fallback switches."""

    on_exception: bool = True
    on_no_data: bool = False

    def exception_result(self) -> MetaResult:
        return finalize(Condition.EXCEPTION, self.on_exception)

    def no_data_result(self) -> MetaResult:
        return finalize(Condition.NO_DATA, self.on_no_data)


__all__ = ["Condition", "FallbackPolicy", "cardinality_breached", "finalize"]
