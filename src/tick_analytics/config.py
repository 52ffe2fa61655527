"""Query configuration.

Settings are passed explicitly into :class:`~tick_analytics.engine.QueryEngine`;
nothing is read from ambient global state. YAML layout (see
``config/default.yaml``)::

    tag: demo
    ingestion:
      fraction_digits: 9
      timestamp_errors: drop
      min_close_dates: 100
    buckets:
      unit: hour
      multiplier: 1
      week_start: 0
    joins:
      how: inner
    windows:
      duration: 10min
      kind: vwap
    execution:
      markout_horizons: [1min, 5min, 15min]
    engine:
      max_workers: 1
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from .analysis.execution import DEFAULT_MARKOUT_HORIZONS
from .utils.intervals import BucketSpec
from .windows.range_window import AggregationKind, parse_duration


@dataclass(frozen=True)
class QueryConfig:
    tag: Optional[str] = None

    # Ingestion
    fraction_digits: int = 9
    timestamp_errors: str = "drop"
    min_close_dates: int = 100

    # Buckets
    bucket_unit: str = "hour"
    bucket_multiplier: int = 1
    week_start: int = 0

    # As-of joins: "inner" drops unmatched left rows, "left" keeps them
    join_how: str = "inner"

    # Range windows
    window_duration: str = "10min"
    window_kind: str = "vwap"

    # Markouts
    markout_horizons: tuple[str, ...] = DEFAULT_MARKOUT_HORIZONS

    # Key-level parallelism
    max_workers: int = 1

    def bucket_spec(self, anchor: str = "start") -> BucketSpec:
        return BucketSpec(
            unit=self.bucket_unit,
            multiplier=self.bucket_multiplier,
            anchor=anchor,
            week_start=self.week_start,
        )

    def validate(self) -> "QueryConfig":
        """Raise ValueError on inconsistent settings; returns self."""
        if not 0 <= self.fraction_digits <= 9:
            raise ValueError(f"fraction_digits must be in 0..9, got {self.fraction_digits}")
        if self.timestamp_errors not in ("raise", "drop"):
            raise ValueError(f"timestamp_errors must be 'raise' or 'drop', got {self.timestamp_errors!r}")
        if self.join_how not in ("inner", "left"):
            raise ValueError(f"join_how must be 'inner' or 'left', got {self.join_how!r}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        self.bucket_spec()
        parse_duration(self.window_duration)
        AggregationKind(self.window_kind.lower())
        for h in self.markout_horizons:
            parse_duration(h)
        return self


# YAML section -> {yaml key: QueryConfig field}
_SECTIONS: dict[str, dict[str, str]] = {
    "ingestion": {
        "fraction_digits": "fraction_digits",
        "timestamp_errors": "timestamp_errors",
        "min_close_dates": "min_close_dates",
    },
    "buckets": {
        "unit": "bucket_unit",
        "multiplier": "bucket_multiplier",
        "week_start": "week_start",
    },
    "joins": {"how": "join_how"},
    "windows": {"duration": "window_duration", "kind": "window_kind"},
    "execution": {"markout_horizons": "markout_horizons"},
    "engine": {"max_workers": "max_workers"},
}


def config_from_dict(raw: dict[str, Any] | None) -> QueryConfig:
    """Build a validated QueryConfig from the nested YAML mapping."""
    raw = raw or {}
    values: dict[str, Any] = {}

    if "tag" in raw:
        values["tag"] = raw["tag"]
    for section, mapping in _SECTIONS.items():
        block = raw.get(section) or {}
        unknown = set(block) - set(mapping)
        if unknown:
            raise ValueError(f"Config section '{section}' has unknown keys: {sorted(unknown)}")
        for key, attr in mapping.items():
            if key in block:
                values[attr] = block[key]

    if "markout_horizons" in values:
        values["markout_horizons"] = tuple(str(h) for h in values["markout_horizons"])
    if "window_duration" in values:
        values["window_duration"] = str(values["window_duration"])

    return QueryConfig(**values).validate()


def load_config(config_path: str | Path | None = None) -> QueryConfig:
    """Load configuration from a YAML file (defaults when path is None)."""
    if config_path is None:
        return QueryConfig().validate()
    with open(config_path) as f:
        return config_from_dict(yaml.safe_load(f))


def with_overrides(config: QueryConfig, **overrides: Any) -> QueryConfig:
    """Copy of ``config`` with non-None overrides applied."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **changes).validate()
