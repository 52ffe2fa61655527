"""CSV readers for the tick feed, reference closes and execution log.

Provides chunked reading of large tick files with timestamp reconstruction
from the split integer date/time fields.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Hashable, Iterator

import pandas as pd

from ..types import Series
from ..utils.timestamps import DEFAULT_FRACTION_DIGITS, normalize_frame

LOGGER = logging.getLogger(__name__)


# Tick feed columns: ticker, YYYYMMDD date, HHMMSS[fraction] time, price, volume
TICK_COLUMNS = ["ticker", "date", "time", "price", "volume"]
TICK_DTYPES = {
    "ticker": "string",
    "date": "Int64",
    "time": "Int64",
    "price": "float64",
    "volume": "float64",
}

CLOSE_COLUMNS = ["ticker", "timestamp", "closing_price"]
EXECUTION_COLUMNS = ["ticker", "trade_time", "shares", "price"]


class TickReader:
    """Reader for tick-level CSV data with split date/time fields."""

    def __init__(
        self,
        chunk_size: int = 100000,
        fraction_digits: int = DEFAULT_FRACTION_DIGITS,
        errors: str = "drop",
    ):
        """Initialize reader.

        Args:
            chunk_size: Number of rows per chunk
            fraction_digits: Fraction-of-second digits in the time field
            errors: "drop" discards rows with malformed timestamps, "raise" fails
        """
        self.chunk_size = chunk_size
        self.fraction_digits = fraction_digits
        self.errors = errors

    def _prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        null_price = df["price"].isna()
        if null_price.any():
            LOGGER.debug("Dropping %d ticks without a price", int(null_price.sum()))
            df = df.loc[~null_price]
        df = normalize_frame(df, fraction_digits=self.fraction_digits, errors=self.errors)
        return df.assign(volume=df["volume"].fillna(0.0))

    def read_file(self, path: str | Path) -> pd.DataFrame:
        """Read an entire tick file.

        Args:
            path: File path

        Returns:
            DataFrame with tick columns plus ``timestamp``
        """
        df = pd.read_csv(path, usecols=TICK_COLUMNS, dtype=TICK_DTYPES)
        return self._prepare(df)

    def iter_chunks(self, path: str | Path) -> Iterator[pd.DataFrame]:
        """Iterate over a tick file in chunks.

        Yields:
            Normalized DataFrame chunks
        """
        reader = pd.read_csv(path, usecols=TICK_COLUMNS, dtype=TICK_DTYPES, chunksize=self.chunk_size)
        for chunk in reader:
            yield self._prepare(chunk)

    def validate_ticks(self, df: pd.DataFrame) -> pd.DataFrame:
        """Flag ticks with a non-positive price or negative volume.

        Returns:
            DataFrame with ``tick_valid`` column added
        """
        df = df.copy()
        df["tick_valid"] = (df["price"] > 0) & (df["volume"] >= 0)
        return df

    def get_file_stats(self, path: str | Path) -> dict:
        """Row count and timestamp range without loading the file fully."""
        path = Path(path)

        row_count = 0
        tickers: set[str] = set()
        min_ts = None
        max_ts = None

        for chunk in self.iter_chunks(path):
            if chunk.empty:
                continue
            row_count += len(chunk)
            tickers.update(str(t) for t in chunk["ticker"].dropna().unique())

            chunk_min = chunk["timestamp"].min()
            chunk_max = chunk["timestamp"].max()
            if min_ts is None or chunk_min < min_ts:
                min_ts = chunk_min
            if max_ts is None or chunk_max > max_ts:
                max_ts = chunk_max

        return {
            "path": str(path),
            "row_count": row_count,
            "tickers": sorted(tickers),
            "min_timestamp": min_ts,
            "max_timestamp": max_ts,
            "file_size_mb": round(path.stat().st_size / (1024 * 1024), 2),
        }


def read_ticks(
    path: str | Path,
    fraction_digits: int = DEFAULT_FRACTION_DIGITS,
    errors: str = "drop",
) -> pd.DataFrame:
    """Load and validate a tick file, stable-sorted by ticker and timestamp."""
    reader = TickReader(fraction_digits=fraction_digits, errors=errors)
    df = reader.validate_ticks(reader.read_file(path))
    invalid = int((~df["tick_valid"]).sum())
    if invalid:
        LOGGER.warning("%d ticks failed validation in %s", invalid, path)
    return df.sort_values(["ticker", "timestamp"], kind="mergesort").reset_index(drop=True)


def read_closing_prices(path: str | Path) -> pd.DataFrame:
    """Load the reference close series (ticker, timestamp, closing_price)."""
    df = pd.read_csv(path, usecols=CLOSE_COLUMNS, dtype={"ticker": "string", "closing_price": "float64"})
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df.sort_values(["ticker", "timestamp"], kind="mergesort").reset_index(drop=True)


def read_executions(path: str | Path) -> pd.DataFrame:
    """Load the execution log (ticker, trade_time, shares, price).

    ``trade_time`` is copied to ``timestamp`` so executions can be joined
    like any other event stream.
    """
    df = pd.read_csv(
        path,
        usecols=EXECUTION_COLUMNS,
        dtype={"ticker": "string", "shares": "float64", "price": "float64"},
    )
    df["trade_time"] = pd.to_datetime(df["trade_time"])
    df["timestamp"] = df["trade_time"]
    return df.sort_values(["ticker", "timestamp"], kind="mergesort").reset_index(drop=True)


def series_by_key(
    df: pd.DataFrame,
    key_col: str = "ticker",
    value_col: str = "price",
    size_col: str | None = "volume",
) -> dict[Hashable, Series]:
    """Split a tick frame into one sorted Series per key."""
    out: dict[Hashable, Series] = {}
    for key, g in df.groupby(key_col, sort=True):
        out[key] = Series.from_frame(g, key=key, value_col=value_col, size_col=size_col, sort=True)
    return out
