"""Fixed-interval OHLCV bars from tick data.

Groups ticks into :class:`BucketSpec` intervals per key and produces
open/high/low/close, volume, VWAP and tick counts. Open/close follow
timestamp order; ties keep arrival order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional

import numpy as np
import pandas as pd

from ..types import Series, ensure_sorted
from ..utils.intervals import BucketSpec, bucket_end, bucket_series, bucket_start


@dataclass(frozen=True)
class BucketBar:
    key: Hashable
    start: pd.Timestamp
    end: pd.Timestamp
    open: float
    high: float
    low: float
    close: float
    volume: float
    vwap: Optional[float]
    tick_count: int


class BucketAggregator:
    """Aggregate ticks into fixed-interval OHLCV bars."""

    def __init__(self, spec: BucketSpec | None = None):
        """Initialize aggregator.

        Args:
            spec: Bucket definition (default: 1 hour, labelled by start)
        """
        self.spec = spec or BucketSpec()

    def aggregate(self, series: Series) -> list[BucketBar]:
        """Aggregate one key's sorted series into bars."""
        ensure_sorted(series)
        bars: list[BucketBar] = []
        current: list = []
        current_start: Optional[pd.Timestamp] = None

        for e in series.events:
            start = bucket_start(e.timestamp, self.spec)
            if current and start != current_start:
                bars.append(self._make_bar(series.key, current_start, current))
                current = []
            current_start = start
            current.append(e)
        if current:
            bars.append(self._make_bar(series.key, current_start, current))
        return bars

    def _make_bar(self, key: Hashable, start: pd.Timestamp, events: list) -> BucketBar:
        prices = [e.value for e in events]
        sizes = [0.0 if e.size is None else float(e.size) for e in events]
        volume = float(sum(sizes))
        vwap = sum(p * s for p, s in zip(prices, sizes)) / volume if volume else None
        return BucketBar(
            key=key,
            start=start,
            end=bucket_end(start, self.spec),
            open=prices[0],
            high=max(prices),
            low=min(prices),
            close=prices[-1],
            volume=volume,
            vwap=vwap,
            tick_count=len(events),
        )

    def add_bucket_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add ``bucket_start`` and ``bucket_end`` columns to tick rows."""
        df = df.copy()
        start_spec = BucketSpec(self.spec.unit, self.spec.multiplier, "start", self.spec.week_start)
        end_spec = BucketSpec(self.spec.unit, self.spec.multiplier, "end", self.spec.week_start)
        df["bucket_start"] = bucket_series(df["timestamp"], start_spec)
        df["bucket_end"] = bucket_series(df["timestamp"], end_spec)
        return df

    def aggregate_to_buckets(
        self,
        df: pd.DataFrame,
        key_col: str = "ticker",
        price_col: str = "price",
        volume_col: str = "volume",
    ) -> pd.DataFrame:
        """Aggregate tick rows to bar-level OHLCV.

        Returns:
            DataFrame with key, bucket (labelled per ``spec.anchor``), open,
            high, low, close, volume, vwap (NaN for zero volume), tick_count
        """
        if "bucket_start" not in df.columns:
            df = self.add_bucket_columns(df)

        df = df.sort_values("timestamp", kind="mergesort")
        df = df.assign(_notional=df[price_col] * df[volume_col])

        label = "bucket_start" if self.spec.anchor == "start" else "bucket_end"
        result = df.groupby([key_col, label], as_index=False).agg(
            open=(price_col, "first"),
            high=(price_col, "max"),
            low=(price_col, "min"),
            close=(price_col, "last"),
            volume=(volume_col, "sum"),
            notional=("_notional", "sum"),
            tick_count=(price_col, "count"),
        )
        result["vwap"] = result["notional"] / result["volume"].replace(0.0, np.nan)
        result = result.drop(columns=["notional"]).rename(columns={label: "bucket"})
        return result.sort_values([key_col, "bucket"]).reset_index(drop=True)

