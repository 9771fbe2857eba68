"""Search backend collaborators."""

from .client import (
    ALL_NAMESPACES,
    ElasticsearchClusterClient,
    SearchClient,
    SearchRequest,
    SearchRequestBuilder,
    parse_search_response,
)

__all__ = [
    "ALL_NAMESPACES",
    "ElasticsearchClusterClient",
    "SearchClient",
    "SearchRequest",
    "SearchRequestBuilder",
    "parse_search_response",
]
