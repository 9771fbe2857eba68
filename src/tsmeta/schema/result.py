"""Accumulating result of one metadata query."""

from __future__ import annotations

from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

from tsmeta.models import MetaQuery, MetaResult

TimeSeriesT = TypeVar("TimeSeriesT")

NameCount = Tuple[str, int]


class MetaDataStorageResult(Generic[TimeSeriesT]):
    """Outcome of a metadata query, filled in as responses are parsed.

    Payload collections only hold entries when the result is ``DATA``. The
    total hit count is the largest count seen in any single response.
    """

    def __init__(
        self,
        result: MetaResult,
        query: MetaQuery | None = None,
        exception: BaseException | None = None,
    ) -> None:
        self._result = result
        self._query = query
        self._exception = exception
        self._total_hits = 0
        self._namespaces: List[str] = []
        self._metrics: List[NameCount] = []
        self._tag_keys_or_values: List[NameCount] = []
        self._tags: List[Tuple[NameCount, Optional[List[NameCount]]]] = []
        self._time_series: List[TimeSeriesT] = []

    @property
    def result(self) -> MetaResult:
        return self._result

    @property
    def query(self) -> MetaQuery | None:
        return self._query

    @property
    def exception(self) -> BaseException | None:
        return self._exception

    @property
    def total_hits(self) -> int:
        return self._total_hits

    @total_hits.setter
    def total_hits(self, value: int) -> None:
        self._total_hits = int(value)

    @property
    def namespaces(self) -> Sequence[str]:
        return tuple(self._namespaces)

    @property
    def metrics(self) -> Sequence[NameCount]:
        return tuple(self._metrics)

    @property
    def tag_keys_or_values(self) -> Sequence[NameCount]:
        return tuple(self._tag_keys_or_values)

    @property
    def tags(self) -> Sequence[Tuple[NameCount, Optional[Sequence[NameCount]]]]:
        return tuple((key, tuple(values) if values is not None else None) for key, values in self._tags)

    @property
    def time_series(self) -> Sequence[TimeSeriesT]:
        return tuple(self._time_series)

    def add_namespace(self, namespace: str) -> None:
        self._require_data()
        self._namespaces.append(namespace)

    def add_metric(self, metric: NameCount) -> None:
        self._require_data()
        self._metrics.append(metric)

    def add_tag_key_or_value(self, entry: NameCount) -> None:
        self._require_data()
        self._tag_keys_or_values.append(entry)

    def add_tags(self, key: NameCount, values: Optional[Sequence[NameCount]]) -> None:
        self._require_data()
        self._tags.append((key, list(values) if values is not None else None))

    def add_time_series(self, time_series: TimeSeriesT) -> None:
        self._require_data()
        self._time_series.append(time_series)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "result": self._result.value,
            "total_hits": self._total_hits,
        }
        if self._exception is not None:
            payload["exception"] = str(self._exception)
        if self._namespaces:
            payload["namespaces"] = list(self._namespaces)
        if self._metrics:
            payload["metrics"] = [{"name": n, "count": c} for n, c in self._metrics]
        if self._tag_keys_or_values:
            payload["tag_keys_or_values"] = [{"name": n, "count": c} for n, c in self._tag_keys_or_values]
        if self._tags:
            payload["tags"] = [
                {
                    "key": key,
                    "count": count,
                    "values": [{"name": n, "count": c} for n, c in values] if values is not None else None,
                }
                for (key, count), values in self._tags
            ]
        if self._time_series:
            payload["time_series"] = [_time_series_dict(ts) for ts in self._time_series]
        return payload

    def _require_data(self) -> None:
        if self._result is not MetaResult.DATA:
            raise ValueError(f"Cannot add payload to a {self._result.value} result")

    def __repr__(self) -> str:
        return f"MetaDataStorageResult(result={self._result.value}, total_hits={self._total_hits})"


def _time_series_dict(time_series: Any) -> Any:
    metric = getattr(time_series, "metric", None)
    tag_map = getattr(time_series, "tag_map", None)
    if metric is None or tag_map is None:
        return str(time_series)
    return {"metric": metric, "tags": dict(tag_map)}
