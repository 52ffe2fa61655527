"""Range-based (time-duration) window aggregation."""

from .range_window import (
    AggregationKind,
    RangeWindowAggregator,
    parse_duration,
    range_window,
    rolling_frame,
    valid_only,
)

__all__ = [
    "AggregationKind",
    "RangeWindowAggregator",
    "parse_duration",
    "range_window",
    "rolling_frame",
    "valid_only",
]
