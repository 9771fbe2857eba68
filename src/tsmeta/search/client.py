"""Search client implementations for the metadata store."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping, Protocol, Sequence

import httpx

from tsmeta.aggregations import parse_aggregations
from tsmeta.config import Settings
from tsmeta.errors import SearchBackendError
from tsmeta.metrics.observability import get_logger
from tsmeta.models import MetaQuery, RawResponse, SearchHit

# Target scope meaning "search every namespace".
ALL_NAMESPACES = "all_namespace"


@dataclass
class SearchRequest:
    """Search body plus the envelope settings the dispatcher controls."""

    body: MutableMapping[str, Any] = field(default_factory=dict)
    size: int | None = None
    timeout: str | None = None

    def to_body(self) -> dict[str, Any]:
        body = dict(self.body)
        if self.size is not None:
            body["size"] = self.size
        if self.timeout:
            body["timeout"] = self.timeout
        return body


class SearchRequestBuilder(Protocol):
    """Compiles a metadata query and its filter tree into a search request."""

    def build(self, query: MetaQuery) -> SearchRequest:
        """Return the search request for ``query``."""


class SearchClient(Protocol):
    """Submits one search and returns the batch of responses it produced."""

    async def search(
        self,
        request: SearchRequest,
        target: str,
        trace: Any | None = None,
    ) -> Sequence[RawResponse]:
        """Run ``request`` against ``target`` (a namespace or ``ALL_NAMESPACES``)."""


class ElasticsearchClusterClient:
    """Search client fanning each request out to every configured cluster."""

    def __init__(
        self,
        hosts: Sequence[str],
        *,
        index_suffix: str = "",
        all_namespace_index: str = ALL_NAMESPACES,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not hosts:
            raise ValueError("At least one search host is required")
        self._hosts = tuple(host.rstrip("/") for host in hosts)
        self._index_suffix = index_suffix
        self._all_namespace_index = all_namespace_index
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = get_logger("search")

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.AsyncClient | None = None) -> "ElasticsearchClusterClient":
        return cls(
            settings.es_hosts_tuple,
            index_suffix=settings.es_index_suffix,
            all_namespace_index=settings.es_all_namespace_index,
            timeout=settings.es_request_timeout_seconds,
            client=client,
        )

    @property
    def hosts(self) -> tuple[str, ...]:
        return self._hosts

    def index_for(self, target: str) -> str:
        if target == ALL_NAMESPACES:
            return self._all_namespace_index
        return f"{target}{self._index_suffix}"

    async def search(
        self,
        request: SearchRequest,
        target: str,
        trace: Any | None = None,
    ) -> Sequence[RawResponse]:
        index = self.index_for(target)
        body = request.to_body()
        tasks = [asyncio.ensure_future(self._search_host(host, index, body)) for host in self._hosts]
        try:
            responses = await asyncio.gather(*tasks)
        except BaseException:
            # one failed cluster fails the batch; stop the requests still in flight
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return list(responses)

    async def _search_host(self, host: str, index: str, body: Mapping[str, Any]) -> RawResponse:
        url = f"{host}/{index}/_search"
        try:
            response = await self._client.post(url, params={"typed_keys": "true"}, json=body)
        except httpx.HTTPError as exc:
            self._logger.warning("search.transport_error", host=host, index=index, error=str(exc))
            raise SearchBackendError(f"Search request to {host} failed: {exc}", host=host) from exc
        if response.status_code >= 400:
            self._logger.warning("search.http_error", host=host, index=index, status_code=response.status_code)
            raise SearchBackendError(
                f"Search request to {host} returned HTTP {response.status_code}",
                host=host,
                status_code=response.status_code,
            )
        try:
            return parse_search_response(response.json())
        except (ValueError, TypeError, AttributeError) as exc:
            raise SearchBackendError(f"Malformed search response from {host}: {exc}", host=host) from exc

    async def aclose(self) -> None:
        await self._client.aclose()


def parse_search_response(payload: Mapping[str, Any]) -> RawResponse:
    """Turn a ``_search`` JSON payload into a RawResponse."""

    hits = payload.get("hits") or {}
    total = hits.get("total", 0)
    if isinstance(total, Mapping):
        total = total.get("value", 0)
    raw_aggs = payload.get("aggregations")
    return RawResponse(
        total_hits=int(total or 0),
        aggregations=parse_aggregations(raw_aggs) if raw_aggs is not None else None,
        hits=tuple(
            SearchHit(source=hit.get("_source") or {}, id=hit.get("_id"))
            for hit in hits.get("hits") or []
        ),
        took_ms=payload.get("took"),
    )
