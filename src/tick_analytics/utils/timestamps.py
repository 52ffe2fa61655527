"""Timestamp reconstruction from split integer date/time fields.

Tick feeds deliver the trade date and time-of-day as separate integers:

| Field | Encoding                | Example            |
|-------|-------------------------|--------------------|
| date  | YYYYMMDD                | 20221025           |
| time  | HHMMSS + fraction digits| 94500123456789     |

The time field is zero-padded to ``6 + fraction_digits`` characters before
it is split, so 09:45:00.123456789 arrives as ``94500123456789`` and is read
as ``094500123456789``. No timezone conversion is performed: instants are
naive and local to the source feed.
"""

from __future__ import annotations

import logging
import operator
from datetime import date as _date
from typing import Any

import pandas as pd

from ..errors import MalformedTimestamp

LOGGER = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000
DEFAULT_FRACTION_DIGITS = 9


def _as_int(x: Any, name: str) -> int:
    if isinstance(x, bool):
        raise MalformedTimestamp(f"{name} must be an integer, got {x!r}")
    try:
        value = operator.index(x)
    except TypeError:
        if isinstance(x, str) and x.strip().isdigit():
            value = int(x.strip())
        elif isinstance(x, float) and x.is_integer():
            value = int(x)
        else:
            raise MalformedTimestamp(f"{name} must be an integer, got {x!r}") from None
    if value < 0:
        raise MalformedTimestamp(f"{name} must be non-negative, got {value}")
    return value


def _check_fraction_digits(fraction_digits: int) -> None:
    if not 0 <= fraction_digits <= 9:
        raise ValueError(f"fraction_digits must be in 0..9, got {fraction_digits}")


def make_instant(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    nanosecond: int = 0,
) -> pd.Timestamp:
    """Build a naive nanosecond instant from calendar components.

    Raises:
        MalformedTimestamp: If any component is out of range
    """
    if not 0 <= hour <= 23:
        raise MalformedTimestamp(f"hour out of range: {hour}")
    if not 0 <= minute <= 59:
        raise MalformedTimestamp(f"minute out of range: {minute}")
    if not 0 <= second <= 59:
        raise MalformedTimestamp(f"second out of range: {second}")
    if not 0 <= nanosecond < NANOS_PER_SECOND:
        raise MalformedTimestamp(f"nanosecond out of range: {nanosecond}")
    try:
        _date(year, month, day)
        return pd.Timestamp(
            year=year,
            month=month,
            day=day,
            hour=hour,
            minute=minute,
            second=second,
            microsecond=nanosecond // 1000,
            nanosecond=nanosecond % 1000,
        ).as_unit("ns")
    except (ValueError, OverflowError) as e:
        # pandas OutOfBoundsDatetime is a ValueError subclass
        raise MalformedTimestamp(f"invalid date {year:04d}-{month:02d}-{day:02d}: {e}") from e


def decompose_instant(ts: pd.Timestamp) -> tuple[int, int, int, int, int, int, int]:
    """Split an instant into (year, month, day, hour, minute, second, nanosecond)."""
    ts = pd.Timestamp(ts)
    return (
        ts.year,
        ts.month,
        ts.day,
        ts.hour,
        ts.minute,
        ts.second,
        ts.microsecond * 1000 + ts.nanosecond,
    )


def parse_instant(
    date: Any,
    time: Any,
    fraction_digits: int = DEFAULT_FRACTION_DIGITS,
) -> pd.Timestamp:
    """Reconstruct an instant from YYYYMMDD and zero-padded HHMMSS[fraction] ints.

    Args:
        date: Integer-encoded date (YYYYMMDD)
        time: Integer-encoded time of day, HHMMSS followed by
            ``fraction_digits`` fractional-second digits
        fraction_digits: Number of fractional digits in ``time`` (0..9)

    Returns:
        Naive pandas Timestamp with nanosecond resolution

    Raises:
        MalformedTimestamp: On any invalid component or over-wide time field
    """
    _check_fraction_digits(fraction_digits)
    d = _as_int(date, "date")
    t = _as_int(time, "time")

    if d > 99_999_999:
        raise MalformedTimestamp(f"date {d} is wider than YYYYMMDD")
    year, month, day = d // 10_000, (d // 100) % 100, d % 100

    width = 6 + fraction_digits
    padded = f"{t:0{width}d}"
    if len(padded) > width:
        raise MalformedTimestamp(
            f"time {t} is wider than {width} digits (HHMMSS + {fraction_digits} fraction digits)"
        )
    hour, minute, second = int(padded[0:2]), int(padded[2:4]), int(padded[4:6])
    frac = padded[6:]
    nanos = int(frac) * 10 ** (9 - fraction_digits) if frac else 0

    return make_instant(year, month, day, hour, minute, second, nanos)


def encode_instant(
    ts: pd.Timestamp,
    fraction_digits: int = DEFAULT_FRACTION_DIGITS,
) -> tuple[int, int]:
    """Inverse of :func:`parse_instant`; sub-resolution digits are truncated."""
    _check_fraction_digits(fraction_digits)
    year, month, day, hour, minute, second, nanos = decompose_instant(ts)
    date_int = year * 10_000 + month * 100 + day
    frac = nanos // 10 ** (9 - fraction_digits)
    time_int = (hour * 10_000 + minute * 100 + second) * 10**fraction_digits + frac
    return date_int, time_int


def normalize_frame(
    df: pd.DataFrame,
    date_col: str = "date",
    time_col: str = "time",
    fraction_digits: int = DEFAULT_FRACTION_DIGITS,
    errors: str = "raise",
    out_col: str = "timestamp",
) -> pd.DataFrame:
    """Add a reconstructed timestamp column to tick rows.

    Args:
        df: DataFrame with integer date and time columns
        date_col: Name of YYYYMMDD column
        time_col: Name of HHMMSS[fraction] column
        fraction_digits: Fraction digits carried by ``time_col``
        errors: "raise" to fail on the first bad row, "drop" to discard bad rows
        out_col: Name of the timestamp column to add

    Returns:
        Copy of ``df`` with ``out_col`` added (bad rows removed when dropping)
    """
    _check_fraction_digits(fraction_digits)
    if errors not in ("raise", "drop"):
        raise ValueError(f"errors must be 'raise' or 'drop', got {errors!r}")

    df = df.copy()
    width = 6 + fraction_digits

    dates = pd.to_numeric(df[date_col], errors="coerce").astype("float64")
    times = pd.to_numeric(df[time_col], errors="coerce").astype("float64")
    bad = (
        dates.isna()
        | times.isna()
        | (dates < 0)
        | (times < 0)
        | (dates % 1 != 0)
        | (times % 1 != 0)
        | (dates > 99_999_999)
        | (times >= 10**width)
    )

    d_str = dates.where(~bad, 19700101).astype("int64").astype(str).str.zfill(8)
    t_str = times.where(~bad, 0).astype("int64").astype(str).str.zfill(width)

    base = pd.to_datetime(d_str + t_str.str[:6], format="%Y%m%d%H%M%S", errors="coerce")
    bad = bad | base.isna()

    if fraction_digits:
        frac_ns = t_str.str[6:].astype("int64") * 10 ** (9 - fraction_digits)
        stamps = base + pd.to_timedelta(frac_ns, unit="ns")
    else:
        stamps = base

    if bad.any():
        if errors == "raise":
            idx = bad[bad].index[0]
            raise MalformedTimestamp(
                f"row {idx!r}: cannot build timestamp from "
                f"{date_col}={df.at[idx, date_col]!r}, {time_col}={df.at[idx, time_col]!r}"
            )
        LOGGER.warning("Dropping %d rows with malformed %s/%s", int(bad.sum()), date_col, time_col)

    df[out_col] = stamps
    if bad.any():
        df = df.loc[~bad]
    return df
