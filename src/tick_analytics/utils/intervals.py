"""Fixed-interval time bucketing.

Buckets are half-open ``[start, start + interval)`` and aligned to a fixed
origin so that the same instant always lands in the same bucket:

| Unit    | Origin                                            |
|---------|---------------------------------------------------|
| hour    | 1970-01-01 00:00                                  |
| day     | 1970-01-01 00:00                                  |
| week    | first ``week_start`` weekday on/before 1970-01-01 |
| month   | 1970-01                                           |
| quarter | 1970-01 (quarters are 3-month buckets)            |
| year    | 1970-01                                           |

With ``anchor="end"`` the bucket label is the exclusive end, i.e. the start
of the next bucket.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd

from ..errors import InvalidBucketSpec

EPOCH = pd.Timestamp("1970-01-01")
EPOCH_WEEKDAY = EPOCH.weekday()  # Thursday

NANOS_PER_HOUR = 3_600 * 1_000_000_000
NANOS_PER_DAY = 24 * NANOS_PER_HOUR


class BucketUnit(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


_UNIT_ALIASES = {
    "h": BucketUnit.HOUR,
    "hours": BucketUnit.HOUR,
    "d": BucketUnit.DAY,
    "days": BucketUnit.DAY,
    "w": BucketUnit.WEEK,
    "weeks": BucketUnit.WEEK,
    "months": BucketUnit.MONTH,
    "q": BucketUnit.QUARTER,
    "quarters": BucketUnit.QUARTER,
    "y": BucketUnit.YEAR,
    "years": BucketUnit.YEAR,
}

_FIXED_NANOS = {
    BucketUnit.HOUR: NANOS_PER_HOUR,
    BucketUnit.DAY: NANOS_PER_DAY,
    BucketUnit.WEEK: 7 * NANOS_PER_DAY,
}

_MONTHS_PER_UNIT = {
    BucketUnit.MONTH: 1,
    BucketUnit.QUARTER: 3,
    BucketUnit.YEAR: 12,
}


def parse_unit(unit: BucketUnit | str) -> BucketUnit:
    """Resolve a unit name or alias (case-insensitive)."""
    if isinstance(unit, BucketUnit):
        return unit
    if not isinstance(unit, str):
        raise InvalidBucketSpec(f"Unknown bucket unit: {unit!r}")
    name = unit.strip().lower()
    try:
        return BucketUnit(name)
    except ValueError:
        if name in _UNIT_ALIASES:
            return _UNIT_ALIASES[name]
    raise InvalidBucketSpec(
        f"Unknown bucket unit: {unit!r}. Expected one of {[u.value for u in BucketUnit]}"
    )


@dataclass(frozen=True)
class BucketSpec:
    """Bucket definition: ``multiplier`` x ``unit``, labelled by start or end.

    ``week_start`` is the weekday weeks begin on (0=Monday .. 6=Sunday); it is
    only consulted for week buckets.
    """

    unit: BucketUnit = BucketUnit.HOUR
    multiplier: int = 1
    anchor: str = "start"
    week_start: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", parse_unit(self.unit))
        if isinstance(self.multiplier, bool) or not isinstance(self.multiplier, (int, np.integer)):
            raise InvalidBucketSpec(f"multiplier must be an int, got {self.multiplier!r}")
        if self.multiplier < 1:
            raise InvalidBucketSpec(f"multiplier must be positive, got {self.multiplier}")
        if self.anchor not in ("start", "end"):
            raise InvalidBucketSpec(f"anchor must be 'start' or 'end', got {self.anchor!r}")
        if self.week_start not in range(7):
            raise InvalidBucketSpec(f"week_start must be 0..6, got {self.week_start!r}")

    @property
    def is_calendar(self) -> bool:
        return self.unit in _MONTHS_PER_UNIT

    @property
    def width_nanos(self) -> int:
        """Bucket width for fixed-length units."""
        return _FIXED_NANOS[self.unit] * int(self.multiplier)

    @property
    def width_months(self) -> int:
        """Bucket width for calendar units."""
        return _MONTHS_PER_UNIT[self.unit] * int(self.multiplier)

    @property
    def origin(self) -> pd.Timestamp:
        if self.unit is BucketUnit.WEEK:
            return EPOCH - pd.Timedelta(days=(EPOCH_WEEKDAY - self.week_start) % 7)
        return EPOCH


def _month_index(year: int, month: int) -> int:
    return (year - 1970) * 12 + (month - 1)


def _from_month_index(idx: int) -> pd.Timestamp:
    return pd.Timestamp(year=1970 + idx // 12, month=idx % 12 + 1, day=1)


def bucket_start(ts: pd.Timestamp, spec: BucketSpec) -> pd.Timestamp:
    """Start of the bucket containing ``ts``."""
    ts = pd.Timestamp(ts)
    if spec.is_calendar:
        step = spec.width_months
        idx = _month_index(ts.year, ts.month)
        return _from_month_index(idx // step * step)
    width = spec.width_nanos
    origin = spec.origin.value
    return pd.Timestamp(origin + (ts.value - origin) // width * width)


def bucket_end(ts: pd.Timestamp, spec: BucketSpec) -> pd.Timestamp:
    """Exclusive end of the bucket containing ``ts`` (next bucket start)."""
    ts = pd.Timestamp(ts)
    if spec.is_calendar:
        step = spec.width_months
        idx = _month_index(ts.year, ts.month)
        return _from_month_index(idx // step * step + step)
    return pd.Timestamp(bucket_start(ts, spec).value + spec.width_nanos)


def bucket(ts: pd.Timestamp, spec: BucketSpec) -> pd.Timestamp:
    """Bucket label for ``ts`` according to ``spec.anchor``."""
    if spec.anchor == "end":
        return bucket_end(ts, spec)
    return bucket_start(ts, spec)


def bucket_series(timestamps: pd.Series, spec: BucketSpec) -> pd.Series:
    """Vectorized :func:`bucket` over a datetime Series."""
    ts = pd.to_datetime(timestamps).astype("datetime64[ns]")

    if spec.is_calendar:
        step = spec.width_months
        idx = (ts.dt.year.to_numpy() - 1970) * 12 + (ts.dt.month.to_numpy() - 1)
        idx = np.floor_divide(idx, step) * step
        if spec.anchor == "end":
            idx = idx + step
        out = pd.to_datetime(
            {"year": 1970 + idx // 12, "month": idx % 12 + 1, "day": np.ones(len(idx), dtype="int64")}
        )
        return pd.Series(out.to_numpy(), index=ts.index, name=timestamps.name)

    width = spec.width_nanos
    origin = spec.origin.value
    nanos = ts.astype("int64").to_numpy()
    starts = origin + np.floor_divide(nanos - origin, width) * width
    if spec.anchor == "end":
        starts = starts + width
    return pd.Series(starts.astype("datetime64[ns]"), index=ts.index, name=timestamps.name)
