"""tsmeta: time-series metadata queries over a document search backend."""

from tsmeta.models import MetaQuery, MetaResult, QueryType, TimeSeriesDataSourceConfig, TimeSeriesId
from tsmeta.schema import DocumentSchema, MetaDataStorageResult, SchemaConfig
from tsmeta.search import ElasticsearchClusterClient

__version__ = "0.1.0"

__all__ = [
    "DocumentSchema",
    "ElasticsearchClusterClient",
    "MetaDataStorageResult",
    "MetaQuery",
    "MetaResult",
    "QueryType",
    "SchemaConfig",
    "TimeSeriesDataSourceConfig",
    "TimeSeriesId",
    "__version__",
]
