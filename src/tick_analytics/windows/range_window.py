"""Range-based sliding-window aggregation.

For each event ``e`` the window covers every event of the same key with a
timestamp in ``[e.timestamp - duration, e.timestamp]`` (both ends
inclusive). The window is defined by elapsed time, not by row count, and
later events sharing ``e.timestamp`` are inside it as well.

Each aggregate is a ratio of two running sums that are updated as events
enter and leave the window:

| Kind  | Numerator      | Denominator | Result                      |
|-------|----------------|-------------|-----------------------------|
| sum   | value          | 1           | numerator                   |
| avg   | value          | 1           | numerator / denominator     |
| count | 1              | 1           | denominator                 |
| vwap  | value * size   | size        | numerator / denominator     |
| twap  | value * dt     | dt          | numerator / denominator     |

``dt`` is the gap in seconds to the previous event of the key (0 for the
first). Both window pointers only move forward, so a full pass is O(n)
regardless of ``duration``. A window with zero total weight yields
``aggregate=None`` rather than NaN/Inf.

The running sums are compensated (Neumaier), so a large term leaving the
window does not wipe out the small terms that remain. NaN or infinite
values and sizes are rejected up front with :class:`TickAnalyticsError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

import pandas as pd

from ..errors import TickAnalyticsError
from ..types import (
    BatchResult,
    Event,
    Series,
    WindowResult,
    ensure_finite,
    ensure_sorted,
    events_from_frame,
    partition_by_key,
)

LOGGER = logging.getLogger(__name__)


class AggregationKind(str, Enum):
    SUM = "sum"
    AVG = "avg"
    COUNT = "count"
    VWAP = "vwap"
    TWAP = "twap"


def parse_duration(duration: pd.Timedelta | str) -> pd.Timedelta:
    """Parse a window duration (Timedelta or offset string like "10min")."""
    td = pd.Timedelta(duration)
    if pd.isna(td):
        raise ValueError("Window duration must not be NaT")
    if td < pd.Timedelta(0):
        raise ValueError(f"Window duration must be non-negative, got {td}")
    return td


def _contributions(events: tuple[Event, ...], kind: AggregationKind) -> list[tuple[float, float]]:
    """Per-event (numerator, denominator) terms."""
    if kind in (AggregationKind.SUM, AggregationKind.AVG):
        return [(float(e.value), 1.0) for e in events]
    if kind is AggregationKind.COUNT:
        return [(1.0, 1.0) for _ in events]
    if kind is AggregationKind.VWAP:
        out = []
        for e in events:
            size = 0.0 if e.size is None else float(e.size)
            out.append((float(e.value) * size, size))
        return out

    out = []
    prev: Optional[pd.Timestamp] = None
    for e in events:
        dt = 0.0 if prev is None else (e.timestamp - prev).total_seconds()
        out.append((float(e.value) * dt, dt))
        prev = e.timestamp
    return out


class _RunningSum:
    """Neumaier-compensated sum supporting additions and removals."""

    __slots__ = ("total", "compensation")

    def __init__(self) -> None:
        self.total = 0.0
        self.compensation = 0.0

    def add(self, x: float) -> None:
        t = self.total + x
        if abs(self.total) >= abs(x):
            self.compensation += (self.total - t) + x
        else:
            self.compensation += (x - t) + self.total
        self.total = t

    def reset(self) -> None:
        self.total = 0.0
        self.compensation = 0.0

    @property
    def value(self) -> float:
        return self.total + self.compensation


@dataclass
class RangeWindowAggregator:
    """Trailing time-window aggregator over sorted series."""

    duration: pd.Timedelta | str = "10min"
    kind: AggregationKind | str = AggregationKind.AVG
    steps: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.duration = parse_duration(self.duration)
        kind = self.kind.value if isinstance(self.kind, AggregationKind) else str(self.kind).lower()
        try:
            self.kind = AggregationKind(kind)
        except ValueError:
            raise ValueError(
                f"Unknown aggregation kind {self.kind!r}. Expected one of {[k.value for k in AggregationKind]}"
            ) from None

    def _finish(self, num: float, den: float, weighted: int) -> Optional[float]:
        if self.kind is AggregationKind.SUM:
            return num if den else None
        if self.kind is AggregationKind.COUNT:
            return den
        if weighted == 0 or den == 0:
            return None
        return num / den

    def aggregate(self, series: Series) -> list[WindowResult]:
        """One WindowResult per event of ``series``, in input order.

        Raises:
            UnsortedInput: If the series is not ascending
            TickAnalyticsError: If a value or size is NaN or infinite
        """
        ensure_sorted(series)
        ensure_finite(series)
        events = series.events
        terms = _contributions(events, self.kind)

        results: list[WindowResult] = []
        n = len(events)
        num = _RunningSum()
        den = _RunningSum()
        weighted = 0  # events in window with non-zero denominator term
        start = 0
        end = 0  # first event not yet added

        for e in events:
            # peers sharing the current timestamp belong to the window too
            while end < n and events[end].timestamp <= e.timestamp:
                self.steps += 1
                n_i, d_i = terms[end]
                num.add(n_i)
                den.add(d_i)
                if d_i != 0:
                    weighted += 1
                end += 1

            lower = e.timestamp - self.duration
            while events[start].timestamp < lower:
                self.steps += 1
                n_s, d_s = terms[start]
                num.add(-n_s)
                den.add(-d_s)
                if d_s != 0:
                    weighted -= 1
                start += 1

            if weighted == 0:
                # drop accumulated rounding error once the window is weightless
                num.reset()
                den.reset()
            self.steps += 1
            results.append(
                WindowResult(
                    key=series.key,
                    timestamp=e.timestamp,
                    aggregate=self._finish(num.value, den.value, weighted),
                )
            )
        return results

    def aggregate_by_key(self, events: Iterable[Event]) -> BatchResult:
        """Aggregate every key's sub-series independently, collecting failures."""
        batch = BatchResult()
        for key, group in partition_by_key(events).items():
            try:
                batch.results[key] = self.aggregate(Series(key=key, events=tuple(group)))
            except TickAnalyticsError as e:
                LOGGER.warning("Window aggregation failed for key %r: %s", key, e)
                batch.errors[key] = e
        return batch


def range_window(
    series: Series,
    duration: pd.Timedelta | str,
    kind: AggregationKind | str = AggregationKind.AVG,
) -> list[WindowResult]:
    """Convenience wrapper around :meth:`RangeWindowAggregator.aggregate`."""
    return RangeWindowAggregator(duration=duration, kind=kind).aggregate(series)


def valid_only(results: Iterable[WindowResult]) -> list[WindowResult]:
    """Drop "no value" results; genuine zero aggregates are kept."""
    return [r for r in results if r.aggregate is not None]


def rolling_frame(
    df: pd.DataFrame,
    duration: pd.Timedelta | str,
    kind: AggregationKind | str = AggregationKind.VWAP,
    key_col: str = "ticker",
    value_col: str = "price",
    size_col: str | None = "volume",
    out_col: str | None = None,
) -> pd.DataFrame:
    """Add a trailing-window aggregate column to a tick DataFrame.

    Rows are processed in timestamp order within each key (stable for ties)
    and the result is aligned back to the original rows. "No value" is
    represented as ``<NA>`` in a nullable Float64 column.
    """
    agg = RangeWindowAggregator(duration=duration, kind=kind)
    out_col = out_col or f"{agg.kind.value}_{_duration_label(agg.duration)}"

    out = df.copy()
    ordered = out.sort_values([key_col, "timestamp"], kind="mergesort")
    events = events_from_frame(ordered, key_col=key_col, value_col=value_col, size_col=size_col)

    batch = agg.aggregate_by_key(events)
    batch.raise_first()

    values = [r.aggregate for r in batch.flatten()]
    out[out_col] = pd.Series(pd.array(values, dtype="Float64"), index=ordered.index)
    return out


def _duration_label(td: pd.Timedelta) -> str:
    seconds = int(td.total_seconds())
    if seconds and seconds % 3600 == 0:
        return f"{seconds // 3600}h"
    if seconds and seconds % 60 == 0:
        return f"{seconds // 60}min"
    return f"{seconds}s"
