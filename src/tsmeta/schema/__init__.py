"""Meta query dispatch and result reduction."""

from .dispatcher import DocumentSchema, SchemaConfig, split_metric
from .policy import Condition, FallbackPolicy, cardinality_breached, finalize
from .result import MetaDataStorageResult

__all__ = [
    "Condition",
    "DocumentSchema",
    "FallbackPolicy",
    "MetaDataStorageResult",
    "SchemaConfig",
    "cardinality_breached",
    "finalize",
    "split_metric",
]
