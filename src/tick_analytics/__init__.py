"""In-memory time-series primitives for tick-trade data.

Timestamp reconstruction, fixed-interval bucketing, as-of joins and
range-based window aggregation over ordered event streams.
"""

from .errors import InvalidBucketSpec, MalformedTimestamp, TickAnalyticsError, UnsortedInput
from .types import AsOfMatch, BatchResult, Event, Series, WindowResult, to_frame
from .utils.timestamps import parse_instant, make_instant, decompose_instant
from .utils.intervals import BucketSpec, BucketUnit, bucket, bucket_start, bucket_end
from .joins.asof import AsOfJoiner, asof_join
from .windows.range_window import AggregationKind, RangeWindowAggregator, range_window
from .config import QueryConfig, load_config
from .engine import QueryEngine

__version__ = "0.1.0"

__all__ = [
    "TickAnalyticsError",
    "MalformedTimestamp",
    "InvalidBucketSpec",
    "UnsortedInput",
    "Event",
    "Series",
    "WindowResult",
    "AsOfMatch",
    "BatchResult",
    "to_frame",
    "parse_instant",
    "make_instant",
    "decompose_instant",
    "BucketSpec",
    "BucketUnit",
    "bucket",
    "bucket_start",
    "bucket_end",
    "AsOfJoiner",
    "asof_join",
    "AggregationKind",
    "RangeWindowAggregator",
    "range_window",
    "QueryConfig",
    "load_config",
    "QueryEngine",
]
