"""Error types raised by the time-series primitives.

An empty window is *not* an error: range-window results carry ``None`` as
their "no value" sentinel instead.
"""

from __future__ import annotations


class TickAnalyticsError(ValueError):
    """Base class for input errors raised by this package."""


class MalformedTimestamp(TickAnalyticsError):
    """Date/time components do not resolve to a valid calendar timestamp."""


class InvalidBucketSpec(TickAnalyticsError):
    """Bucket unit, multiplier, anchor or week start is not usable."""


class UnsortedInput(TickAnalyticsError):
    """A series handed to a join or window is not ascending by timestamp."""

    def __init__(self, message: str, key: object = None, position: int | None = None):
        super().__init__(message)
        self.key = key
        self.position = position
