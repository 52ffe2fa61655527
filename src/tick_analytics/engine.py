"""Query execution boundary.

:class:`QueryEngine` is the single place that turns a :class:`QueryConfig`
plus caller data into results. Work is split per key; each key is computed
independently (optionally on a thread pool), and a failing key is reported
in :class:`BatchResult.errors` without discarding the other keys.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Hashable, Optional

import pandas as pd

from .analysis.bars import BucketAggregator
from .analysis.execution import compute_markouts, compute_slippage
from .config import QueryConfig
from .errors import TickAnalyticsError
from .ingest.closing_prices import closing_prices_from_ticks
from .ingest.reader import read_ticks
from .joins.asof import AsOfJoiner
from .types import BatchResult, Event, Series, events_from_frame, partition_by_key, to_frame
from .windows.range_window import RangeWindowAggregator

LOGGER = logging.getLogger(__name__)


class QueryEngine:
    """Run the time-series primitives under an explicit configuration."""

    def __init__(self, config: QueryConfig | None = None):
        self.config = (config or QueryConfig()).validate()

    def _log(self, msg: str, *args: Any) -> None:
        if self.config.tag:
            LOGGER.info("[%s] " + msg, self.config.tag, *args)
        else:
            LOGGER.info(msg, *args)

    def run_per_key(
        self,
        groups: dict[Hashable, Any],
        fn: Callable[[Hashable, Any], Any],
    ) -> BatchResult:
        """Apply ``fn(key, payload)`` to every key, collecting failures.

        With ``max_workers > 1`` keys are fanned out to a thread pool. Each
        task owns one key and the batch is assembled afterwards, so no result
        slot is shared between workers. Results keep ``groups`` order.
        """
        batch = BatchResult()
        if self.config.max_workers > 1 and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                futures = {key: pool.submit(fn, key, payload) for key, payload in groups.items()}
            outcomes = {}
            for key, fut in futures.items():
                err = fut.exception()
                outcomes[key] = (None, err) if err is not None else (fut.result(), None)
        else:
            outcomes = {}
            for key, payload in groups.items():
                try:
                    outcomes[key] = (fn(key, payload), None)
                except TickAnalyticsError as e:
                    outcomes[key] = (None, e)

        for key, (result, err) in outcomes.items():
            if err is None:
                batch.results[key] = result
            elif isinstance(err, TickAnalyticsError):
                LOGGER.warning("Key %r failed: %s", key, err)
                batch.errors[key] = err
            else:
                raise err
        return batch

    def load_ticks(self, path: str | Path) -> pd.DataFrame:
        df = read_ticks(path, fraction_digits=self.config.fraction_digits, errors=self.config.timestamp_errors)
        self._log("Loaded %d ticks for %d tickers from %s", len(df), df["ticker"].nunique(), path)
        return df

    def window(
        self,
        events: list[Event],
        duration: pd.Timedelta | str | None = None,
        kind: str | None = None,
    ) -> BatchResult:
        """Range-window aggregate per key (config defaults for duration/kind)."""
        agg = RangeWindowAggregator(
            duration=duration if duration is not None else self.config.window_duration,
            kind=kind or self.config.window_kind,
        )
        groups = partition_by_key(events)
        self._log("Window %s over %s for %d keys", agg.kind.value, agg.duration, len(groups))
        return self.run_per_key(
            groups,
            lambda key, evs: RangeWindowAggregator(agg.duration, agg.kind).aggregate(
                Series(key=key, events=tuple(evs))
            ),
        )

    def asof(
        self,
        left_events: list[Event],
        right_events: list[Event],
        direction: str = "backward",
        offset: pd.Timedelta | str | None = None,
        how: str | None = None,
    ) -> BatchResult:
        """As-of join per key; unmatched-left handling defaults to config."""
        how = how or self.config.join_how
        offset_td = pd.Timedelta(offset) if offset is not None else pd.Timedelta(0)
        left_groups = partition_by_key(left_events)
        right_groups = partition_by_key(right_events)
        self._log("As-of %s join (%s) for %d keys", direction, how, len(left_groups))

        def _join(key: Hashable, evs: list[Event]) -> list:
            joiner = AsOfJoiner(direction=direction, offset=offset_td, how=how)
            return joiner.join(
                Series(key=key, events=tuple(evs)),
                Series(key=key, events=tuple(right_groups.get(key, ()))),
            )

        return self.run_per_key(left_groups, _join)

    def rolling_frame(
        self,
        ticks: pd.DataFrame,
        duration: pd.Timedelta | str | None = None,
        kind: str | None = None,
    ) -> pd.DataFrame:
        """Window aggregates as a DataFrame; keys that failed are omitted."""
        ordered = ticks.sort_values(["ticker", "timestamp"], kind="mergesort")
        batch = self.window(events_from_frame(ordered), duration=duration, kind=kind)
        return to_frame(batch.flatten())

    def bars(self, ticks: pd.DataFrame, anchor: str = "start") -> pd.DataFrame:
        return BucketAggregator(self.config.bucket_spec(anchor)).aggregate_to_buckets(ticks)

    def slippage(self, executions: pd.DataFrame, ticks: pd.DataFrame) -> pd.DataFrame:
        return compute_slippage(executions, ticks, how=self.config.join_how)

    def markouts(
        self,
        executions: pd.DataFrame,
        ticks: pd.DataFrame,
        horizons: Optional[tuple[str, ...]] = None,
    ) -> pd.DataFrame:
        return compute_markouts(executions, ticks, horizons=horizons or self.config.markout_horizons)

    def closing_prices(self, ticks: pd.DataFrame) -> pd.DataFrame:
        return closing_prices_from_ticks(ticks, min_dates=self.config.min_close_dates)
