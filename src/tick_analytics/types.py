"""Typed records shared by the time-series primitives.

Events and series are immutable. Series are sorted ascending by timestamp
within a single key; ties keep arrival order. DataFrames only appear at the
hand-off boundary (see :func:`to_frame`).
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from typing import Any, Hashable, Iterable, Iterator, Optional, Sequence

import pandas as pd

from .errors import TickAnalyticsError, UnsortedInput


@dataclass(frozen=True)
class Event:
    """A single observation (trade, quote, close, execution) for one key."""

    key: Hashable
    timestamp: pd.Timestamp
    value: float
    size: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, pd.Timestamp):
            object.__setattr__(self, "timestamp", pd.Timestamp(self.timestamp))


@dataclass(frozen=True)
class Series:
    """Events for one key, ascending by timestamp."""

    key: Hashable
    events: tuple[Event, ...] = ()

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __getitem__(self, i: int) -> Event:
        return self.events[i]

    @property
    def timestamps(self) -> list[pd.Timestamp]:
        return [e.timestamp for e in self.events]

    @classmethod
    def from_events(
        cls,
        key: Hashable,
        events: Iterable[Event],
        sort: bool = False,
    ) -> "Series":
        """Build a series from events belonging to ``key``.

        Args:
            key: Partition key every event must carry
            events: Events in arrival order
            sort: Stable-sort by timestamp instead of validating order

        Returns:
            Series (validated ascending)
        """
        items = list(events)
        stray = [e.key for e in items if e.key != key]
        if stray:
            raise TickAnalyticsError(f"Series {key!r} received events for key {stray[0]!r}")
        if sort:
            items = sorted(items, key=lambda e: e.timestamp)
        series = cls(key=key, events=tuple(items))
        ensure_sorted(series)
        return series

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        key: Hashable,
        value_col: str = "price",
        size_col: str | None = "volume",
        timestamp_col: str = "timestamp",
        sort: bool = True,
    ) -> "Series":
        """Build a series from one key's rows of a DataFrame."""
        sizes: Sequence[Any]
        if size_col is not None and size_col in df.columns:
            sizes = df[size_col].tolist()
        else:
            sizes = [None] * len(df)
        events = [
            Event(key=key, timestamp=pd.Timestamp(ts), value=float(v), size=_opt_float(s))
            for ts, v, s in zip(df[timestamp_col], df[value_col], sizes)
        ]
        return cls.from_events(key, events, sort=sort)


@dataclass(frozen=True)
class WindowResult:
    """Range-window aggregate for one input event.

    ``aggregate`` is None when the window carries no weight ("no value").
    """

    key: Hashable
    timestamp: pd.Timestamp
    aggregate: Optional[float]

    @property
    def has_value(self) -> bool:
        return self.aggregate is not None


@dataclass(frozen=True)
class AsOfMatch:
    """A left event paired with its as-of right event (None when unmatched)."""

    key: Hashable
    timestamp: pd.Timestamp
    left: Event
    right: Optional[Event]

    @property
    def value(self) -> Optional[float]:
        return None if self.right is None else self.right.value

    @property
    def matched_at(self) -> Optional[pd.Timestamp]:
        return None if self.right is None else self.right.timestamp


@dataclass
class BatchResult:
    """Per-key results with per-key failures collected alongside."""

    results: dict[Hashable, Any] = field(default_factory=dict)
    errors: dict[Hashable, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_first(self) -> None:
        """Raise the first collected error, if any."""
        for err in self.errors.values():
            raise err

    def flatten(self) -> list[Any]:
        """Concatenate list results in key insertion order."""
        out: list[Any] = []
        for rows in self.results.values():
            out.extend(rows)
        return out


def ensure_sorted(series: Series) -> None:
    """Raise UnsortedInput if ``series`` is not ascending by timestamp."""
    events = series.events
    for i in range(1, len(events)):
        if events[i].timestamp < events[i - 1].timestamp:
            raise UnsortedInput(
                f"Series {series.key!r} out of order at position {i}: "
                f"{events[i].timestamp} < {events[i - 1].timestamp}",
                key=series.key,
                position=i,
            )


def ensure_finite(series: Series) -> None:
    """Raise TickAnalyticsError if any value or size in ``series`` is NaN or infinite."""
    for i, e in enumerate(series.events):
        if not math.isfinite(e.value) or (e.size is not None and not math.isfinite(e.size)):
            raise TickAnalyticsError(
                f"Series {series.key!r} has a non-finite value at position {i}: "
                f"value={e.value!r}, size={e.size!r}"
            )


def partition_by_key(events: Iterable[Event]) -> dict[Hashable, list[Event]]:
    """Group events by key, keeping arrival order within each key."""
    groups: dict[Hashable, list[Event]] = {}
    for e in events:
        groups.setdefault(e.key, []).append(e)
    return groups


def events_from_frame(
    df: pd.DataFrame,
    key_col: str = "ticker",
    value_col: str = "price",
    size_col: str | None = "volume",
    timestamp_col: str = "timestamp",
) -> list[Event]:
    """Convert tick rows to events in frame order."""
    has_size = size_col is not None and size_col in df.columns
    sizes = df[size_col].tolist() if has_size else [None] * len(df)
    return [
        Event(key=k, timestamp=pd.Timestamp(ts), value=float(v), size=_opt_float(s))
        for k, ts, v, s in zip(df[key_col], df[timestamp_col], df[value_col], sizes)
    ]


def to_frame(records: Iterable[Any]) -> pd.DataFrame:
    """Flatten dataclass records into a DataFrame for downstream reporting.

    Nested events (as-of matches) are expanded to ``left_*`` / ``right_*``
    columns.
    """
    rows: list[dict[str, Any]] = []
    for rec in records:
        row: dict[str, Any] = {}
        for f in fields(rec):
            val = getattr(rec, f.name)
            if isinstance(val, Event):
                for k, v in asdict(val).items():
                    row[f"{f.name}_{k}"] = v
            elif val is None and f.name in ("left", "right"):
                for k in ("key", "timestamp", "value", "size"):
                    row[f"{f.name}_{k}"] = None
            elif is_dataclass(val):
                row.update({f"{f.name}_{k}": v for k, v in asdict(val).items()})
            else:
                row[f.name] = val
        rows.append(row)
    return pd.DataFrame.from_records(rows)


def _opt_float(x: Any) -> Optional[float]:
    if x is None or pd.isna(x):
        return None
    return float(x)
