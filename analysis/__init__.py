"""Reclaimable-space analysis of table data files."""
from .types import PURGE_ORDER, PartitionStatistics, RunningTotals, purge_sort_key
from .topk import TopKAggregator
from .throttle import ThroughputLimiter

__version__ = "0.1.0"

__all__ = [
    "PURGE_ORDER",
    "PartitionStatistics",
    "RunningTotals",
    "purge_sort_key",
    "TopKAggregator",
    "ThroughputLimiter",
    "__version__",
]
