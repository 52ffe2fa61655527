"""Point-in-time lookup and lead/lag deltas over a single series."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Hashable, Optional

import pandas as pd

from ..types import Event, Series, ensure_sorted


@dataclass(frozen=True)
class LagDelta:
    key: Hashable
    timestamp: pd.Timestamp
    value: float
    lagged: Optional[float]
    delta: Optional[float]


def value_as_of(series: Series, ts: pd.Timestamp) -> Optional[Event]:
    """Last event at or before ``ts`` (the latest one on ties), or None."""
    ensure_sorted(series)
    idx = bisect_right(series.timestamps, pd.Timestamp(ts))
    return series.events[idx - 1] if idx else None


def lag_deltas(series: Series, periods: int = 1) -> list[LagDelta]:
    """Compare each event with the one ``periods`` rows earlier.

    A negative ``periods`` looks ahead (lead). Events without a partner row
    get ``lagged=None`` and ``delta=None``.
    """
    ensure_sorted(series)
    events = series.events
    n = len(events)
    out: list[LagDelta] = []
    for i, e in enumerate(events):
        j = i - periods
        if 0 <= j < n:
            lagged = events[j].value
            delta = e.value - lagged
        else:
            lagged = None
            delta = None
        out.append(LagDelta(key=series.key, timestamp=e.timestamp, value=e.value, lagged=lagged, delta=delta))
    return out
