"""Runs metadata queries against the document store and shapes the results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from tsmeta.config import Settings
from tsmeta.errors import MalformedRequestError
from tsmeta.filters import ChainFilter, MetricLiteralFilter
from tsmeta.metrics.observability import SchemaMetrics, get_logger, timed
from tsmeta.models import (
    MetaQuery,
    MetaResult,
    QueryPipelineContext,
    QueryType,
    RawResponse,
    TimeSeriesDataSourceConfig,
    TimeSeriesId,
)
from tsmeta.schema.interpreters import IdentityBuilder, interpret_batch, parse_timeseries
from tsmeta.schema.policy import FallbackPolicy, cardinality_breached
from tsmeta.schema.result import MetaDataStorageResult
from tsmeta.search.client import ALL_NAMESPACES, SearchClient, SearchRequest, SearchRequestBuilder


@dataclass(frozen=True)
class SchemaConfig:
    """Snapshot of the settings a dispatch reads."""

    max_cardinality: int = 4096
    query_timeout: str | None = "5s"
    max_results: int = 4096
    fallback: FallbackPolicy = field(default_factory=FallbackPolicy)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchemaConfig":
        return cls(
            max_cardinality=settings.max_cardinality,
            query_timeout=settings.query_timeout,
            max_results=settings.max_results,
            fallback=FallbackPolicy(
                on_exception=settings.fallback_on_exception,
                on_no_data=settings.fallback_on_no_data,
            ),
        )


class DocumentSchema:
    """Meta query schema over namespaced, aggregated time series documents."""

    TYPE = "NamespacedAggregatedDocumentSchema"

    def __init__(
        self,
        client: SearchClient,
        request_builder: SearchRequestBuilder,
        config: SchemaConfig | None = None,
        *,
        identity_builder: IdentityBuilder = TimeSeriesId.build,
        schema_id: str | None = None,
    ) -> None:
        self._client = client
        self._builder = request_builder
        self._config = config or SchemaConfig()
        self._identity_builder = identity_builder
        self._id = schema_id or self.TYPE
        self._logger = get_logger("schema")

    @property
    def id(self) -> str:
        return self._id

    @property
    def version(self) -> str:
        return "3.0.0"

    @property
    def config(self) -> SchemaConfig:
        return self._config

    async def run_query(self, query: MetaQuery, trace: Any | None = None) -> MetaDataStorageResult:
        """Run a typed meta query.

        Backend failures come back as ``EXCEPTION``; the fallback policy is not
        applied on this path.
        """

        request = self._prepare(query, size=query.size)
        target = ALL_NAMESPACES if query.type is QueryType.NAMESPACES else query.namespace.lower()
        self._logger.debug(
            "meta.query.submit",
            query_type=query.type.value,
            target=target,
            size=request.size,
        )
        try:
            with timed(SchemaMetrics.observe_search):
                responses = await self._client.search(request, target, trace)
        except Exception as exc:  # any failed submission is a backend failure
            self._logger.debug("meta.query.backend_error", query_type=query.type.value, exc_info=exc)
            return self._finish(query, MetaDataStorageResult(MetaResult.EXCEPTION, query, exc))
        return self._finish(query, self._interpret(query, responses))

    async def run_source_query(
        self,
        context: QueryPipelineContext,
        source: TimeSeriesDataSourceConfig,
        trace: Any | None = None,
    ) -> MetaDataStorageResult:
        """Resolve the time series a pipeline data source will read."""

        namespace, metric = split_metric(source.metric)
        query_filter = source.filter
        if query_filter is None and source.filter_id:
            query_filter = context.get_filter(source.filter_id)
            if query_filter is None:
                raise MalformedRequestError(f"Unknown filter id '{source.filter_id}'")

        query = MetaQuery(
            type=QueryType.TIMESERIES,
            namespace=namespace,
            filter=ChainFilter.all_of(MetricLiteralFilter(metric=metric), query_filter),
        )
        request = self._prepare(query, size=self._config.max_results)
        self._logger.debug("meta.source_query.submit", target=namespace, metric=metric, size=request.size)
        try:
            with timed(SchemaMetrics.observe_search):
                responses = await self._client.search(request, namespace, trace)
        except Exception as exc:  # any failed submission is a backend failure
            self._logger.debug("meta.source_query.backend_error", metric=source.metric, exc_info=exc)
            return self._finish(
                query,
                MetaDataStorageResult(self._config.fallback.exception_result(), query, exc),
            )
        return self._finish(query, self._resolve(query, responses, source.metric))

    async def shutdown(self) -> None:
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()

    def _prepare(self, query: MetaQuery, *, size: int) -> SearchRequest:
        request = self._builder.build(query)
        request.size = size
        if self._config.query_timeout:
            request.timeout = self._config.query_timeout
        return request

    def _interpret(self, query: MetaQuery, responses: Sequence[RawResponse]) -> MetaDataStorageResult:
        with timed(SchemaMetrics.observe_parse):
            result = interpret_batch(query, responses, self._identity_builder)
        if result is None:
            result = MetaDataStorageResult(MetaResult.NO_DATA, query)
        result.total_hits = max((response.total_hits for response in responses), default=0)
        return result

    def _resolve(
        self,
        query: MetaQuery,
        responses: Sequence[RawResponse],
        metric: str,
    ) -> MetaDataStorageResult:
        ceiling = self._config.max_cardinality
        for response in responses:
            if cardinality_breached(response.total_hits, ceiling):
                self._logger.debug(
                    "meta.source_query.too_many_hits",
                    total_hits=response.total_hits,
                    ceiling=ceiling,
                )
                SchemaMetrics.observe_cardinality_breach()
                result = MetaDataStorageResult(self._config.fallback.no_data_result(), query)
                result.total_hits = response.total_hits
                return result

        max_hits = max((response.total_hits for response in responses), default=0)
        if max_hits <= 0:
            result = MetaDataStorageResult(self._config.fallback.no_data_result(), query)
            result.total_hits = max_hits
            return result

        result = MetaDataStorageResult(MetaResult.DATA, query)
        with timed(SchemaMetrics.observe_parse):
            for response in responses:
                parse_timeseries(
                    query,
                    response,
                    result,
                    metric=metric,
                    identity_builder=self._identity_builder,
                )
        result.total_hits = max_hits
        return result

    def _finish(self, query: MetaQuery, result: MetaDataStorageResult) -> MetaDataStorageResult:
        SchemaMetrics.observe_outcome(query.type.value, result.result.value)
        self._logger.debug(
            "meta.query.complete",
            query_type=query.type.value,
            result=result.result.value,
            total_hits=result.total_hits,
        )
        return result


def split_metric(metric: str) -> tuple[str, str]:
    """Split ``"<namespace>.<metric>"`` on the first dot, lower-casing both parts."""

    namespace, sep, name = (metric or "").partition(".")
    if not sep or not namespace or not name:
        raise MalformedRequestError(f"Metric '{metric}' is not of the form <namespace>.<metric>")
    return namespace.lower(), name.lower()


__all__ = ["DocumentSchema", "SchemaConfig", "split_metric"]
