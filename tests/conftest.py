"""Shared fixtures for tick analytics tests."""

from __future__ import annotations

import pandas as pd
import pytest

from tick_analytics.types import Event, Series


def make_series(key, rows, base="2022-10-25 00:00:00", unit="s"):
    """Series from (offset, value[, size]) tuples relative to ``base``."""
    t0 = pd.Timestamp(base)
    events = []
    for row in rows:
        offset, value = row[0], row[1]
        size = row[2] if len(row) > 2 else None
        events.append(Event(key=key, timestamp=t0 + pd.Timedelta(offset, unit=unit), value=value, size=size))
    return Series(key=key, events=tuple(events))


@pytest.fixture
def series_factory():
    return make_series


@pytest.fixture
def meta_ticks() -> pd.DataFrame:
    """A morning of META trades with split integer date/time fields."""
    return pd.DataFrame(
        {
            "ticker": ["META"] * 8,
            "date": [20221025] * 8,
            "time": [
                93000000000000,
                94000000000000,
                94500000000000,
                94630000000000,
                95000000000000,
                100000000000000,
                104500000000000,
                105000000000000,
            ],
            "price": [133.10, 133.50, 133.70, 133.90, 134.00, 133.80, 133.40, 133.60],
            "volume": [100.0, 200.0, 300.0, 100.0, 400.0, 200.0, 500.0, 100.0],
        }
    )


@pytest.fixture
def meta_executions() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "ticker": ["META", "META"],
            "trade_time": pd.to_datetime(["2022-10-25 09:45", "2022-10-25 10:45"]),
            "shares": [10000.0, 5000.0],
            "price": [133.76, 133.44],
        }
    ).assign(timestamp=lambda d: d["trade_time"])
