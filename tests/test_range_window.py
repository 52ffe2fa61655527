"""Tests for range-based window aggregation."""
from __future__ import annotations

import math

import pandas as pd
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tick_analytics.errors import TickAnalyticsError, UnsortedInput
from tick_analytics.types import Event, Series
from tick_analytics.windows.range_window import (
    AggregationKind,
    RangeWindowAggregator,
    range_window,
    rolling_frame,
    valid_only,
)

from conftest import make_series


def _brute_force(series: Series, duration: pd.Timedelta, kind: str):
    """O(n^2) reference: rescan the whole series for every event."""
    events = series.events
    out = []
    for e in events:
        lo = e.timestamp - duration
        window = [(i, x) for i, x in enumerate(events) if lo <= x.timestamp <= e.timestamp]
        if kind == "vwap":
            num = sum(x.value * (x.size or 0.0) for _, x in window)
            den = sum(x.size or 0.0 for _, x in window)
        elif kind == "twap":
            num = den = 0.0
            for i, x in window:
                dt = 0.0 if i == 0 else (x.timestamp - events[i - 1].timestamp).total_seconds()
                num += x.value * dt
                den += dt
        else:
            num = sum(x.value for _, x in window)
            den = float(len(window))
        out.append(num / den if den else None)
    return out


class TestScenario:
    """Hand-computed trailing windows."""

    def test_ten_minute_vwap(self):
        trades = make_series(
            "META",
            [(0, 100.0, 10), (5, 102.0, 5), (15, 101.0, 20)],
            base="2022-10-25 09:00",
            unit="min",
        )
        out = range_window(trades, "10min", "vwap")
        assert [r.timestamp.strftime("%H:%M") for r in out] == ["09:00", "09:05", "09:15"]
        assert out[0].aggregate == pytest.approx(100.0)
        assert out[1].aggregate == pytest.approx((100 * 10 + 102 * 5) / 15)
        # 09:00 falls outside [09:05, 09:15]
        assert out[2].aggregate == pytest.approx(101.2)

    def test_both_ends_inclusive(self):
        s = make_series("A", [(0, 1.0), (600, 2.0)])
        out = range_window(s, "10min", "count")
        assert [r.aggregate for r in out] == [1.0, 2.0]
        out = range_window(s, pd.Timedelta(seconds=599), "count")
        assert [r.aggregate for r in out] == [1.0, 1.0]

    def test_sum_and_avg(self):
        s = make_series("A", [(0, 1.0), (30, 2.0), (60, 3.0), (120, 4.0)])
        sums = [r.aggregate for r in range_window(s, "60s", "sum")]
        avgs = [r.aggregate for r in range_window(s, "60s", AggregationKind.AVG)]
        assert sums == [1.0, 3.0, 6.0, 7.0]
        assert avgs == pytest.approx([1.0, 1.5, 2.0, 3.5])

    def test_peers_share_window(self):
        s = make_series("A", [(0, 1.0), (10, 2.0), (10, 4.0)])
        out = range_window(s, "0s", "sum")
        assert [r.aggregate for r in out] == [1.0, 6.0, 6.0]

    def test_first_event_alone(self):
        s = make_series("A", [(0, 5.0, 3)])
        assert range_window(s, "1h", "avg")[0].aggregate == 5.0
        assert range_window(s, "1h", "vwap")[0].aggregate == 5.0

    def test_twap(self):
        s = make_series("A", [(0, 10.0), (60, 20.0), (120, 30.0)])
        out = range_window(s, "5min", "twap")
        assert out[0].aggregate is None  # no elapsed time yet
        assert out[1].aggregate == pytest.approx(20.0)
        assert out[2].aggregate == pytest.approx(25.0)

    def test_zero_volume_is_no_value(self):
        s = make_series("A", [(0, 10.0, 0), (30, 11.0, 0), (1000, 12.0, 5)])
        out = range_window(s, "1min", "vwap")
        assert [r.aggregate for r in out] == [None, None, 12.0]
        assert not out[0].has_value

    def test_genuine_zero_kept(self):
        s = make_series("A", [(0, 0.0), (30, 0.0)])
        out = range_window(s, "1min", "avg")
        assert [r.aggregate for r in valid_only(out)] == [0.0, 0.0]

    def test_missing_size_counts_as_zero_weight(self):
        s = make_series("A", [(0, 10.0), (30, 20.0, 2)])
        out = range_window(s, "1min", "vwap")
        assert out[0].aggregate is None
        assert out[1].aggregate == 20.0

    def test_large_term_leaving_window_keeps_small_terms(self):
        s = make_series("A", [(0, 1e16), (5, 1.0), (100, 3.0)])
        out = range_window(s, "10s", "avg")
        assert [r.aggregate for r in out] == [1e16, (1e16 + 1.0) / 2, 3.0]

        s = make_series("A", [(0, 1e16), (100, 1.0), (200, 3.0)])
        assert [r.aggregate for r in range_window(s, "10s", "sum")] == [1e16, 1.0, 3.0]

    def test_input_not_mutated(self):
        s = make_series("A", [(0, 1.0, 1), (30, 2.0, 1)])
        before = s.events
        range_window(s, "1min", "vwap")
        assert s.events is before


class TestValidation:
    def test_unsorted(self):
        s = Series(
            key="A",
            events=(
                Event("A", pd.Timestamp("2022-10-25 10:00"), 1.0),
                Event("A", pd.Timestamp("2022-10-25 09:00"), 1.0),
            ),
        )
        with pytest.raises(UnsortedInput):
            range_window(s, "1min", "avg")

    def test_negative_duration(self):
        with pytest.raises(ValueError):
            RangeWindowAggregator(duration="-1min")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            RangeWindowAggregator(kind="median")

    def test_kind_case_insensitive(self):
        assert RangeWindowAggregator(kind="VWAP").kind is AggregationKind.VWAP

    @pytest.mark.parametrize(
        "row",
        [(0, float("nan"), 1), (0, float("inf"), 1), (0, 5.0, float("nan")), (0, 5.0, float("inf"))],
    )
    def test_non_finite_rejected(self, row):
        s = make_series("A", [row, (1000, 10.0, 1), (2000, 20.0, 1)])
        with pytest.raises(TickAnalyticsError, match="non-finite"):
            range_window(s, "10s", "vwap")

    def test_non_finite_key_isolated(self):
        bad = list(make_series("A", [(0, float("nan"), 1), (1000, 10.0, 1)]))
        good = list(make_series("B", [(0, 10.0, 1), (5, 20.0, 1)]))
        batch = RangeWindowAggregator("10s", "vwap").aggregate_by_key(bad + good)
        assert isinstance(batch.errors["A"], TickAnalyticsError)
        assert [r.aggregate for r in batch.results["B"]] == [10.0, 15.0]

    def test_by_key_collects_errors(self):
        good = list(make_series("B", [(0, 1.0), (10, 2.0)]))
        bad = [
            Event("A", pd.Timestamp("2022-10-25 10:00"), 1.0),
            Event("A", pd.Timestamp("2022-10-25 09:00"), 1.0),
        ]
        batch = RangeWindowAggregator("1min", "sum").aggregate_by_key(bad + good)
        assert set(batch.errors) == {"A"}
        assert [r.aggregate for r in batch.results["B"]] == [1.0, 3.0]


class TestLinearCost:
    @pytest.mark.parametrize("duration", ["1s", "1min", "1h", "30D"])
    def test_steps_independent_of_duration(self, duration):
        s = make_series("A", [(i, float(i % 7), 1 + i % 3) for i in range(2000)])
        agg = RangeWindowAggregator(duration, "vwap")
        agg.aggregate(s)
        assert agg.steps <= 3 * len(s)


prices = st.floats(min_value=1.0, max_value=1000.0, allow_nan=False, allow_infinity=False)
rows = st.lists(
    st.tuples(st.integers(0, 3600), prices, st.integers(0, 1000)),
    min_size=1,
    max_size=60,
)


class TestProperties:
    """Cross-checks against a brute-force rescan."""

    @settings(max_examples=200, deadline=None)
    @given(data=rows, seconds=st.integers(0, 900))
    def test_vwap_matches_brute_force(self, data, seconds):
        s = make_series("A", sorted(data, key=lambda r: r[0]))
        duration = pd.Timedelta(seconds=seconds)
        got = [r.aggregate for r in range_window(s, duration, "vwap")]
        expected = _brute_force(s, duration, "vwap")
        for g, e in zip(got, expected):
            if e is None:
                assert g is None
            else:
                assert math.isclose(g, e, rel_tol=1e-9, abs_tol=1e-6)

    @settings(max_examples=100, deadline=None)
    @given(data=rows, seconds=st.integers(0, 900), kind=st.sampled_from(["avg", "sum", "twap"]))
    def test_other_kinds_match_brute_force(self, data, seconds, kind):
        s = make_series("A", sorted(data, key=lambda r: r[0]))
        duration = pd.Timedelta(seconds=seconds)
        got = [r.aggregate for r in range_window(s, duration, kind)]
        expected = _brute_force(s, duration, kind)
        if kind == "sum":
            expected = [
                sum(x.value for x in s.events if e.timestamp - duration <= x.timestamp <= e.timestamp)
                for e in s.events
            ]
        for g, e in zip(got, expected):
            if e is None:
                assert g is None
            else:
                assert math.isclose(g, e, rel_tol=1e-9, abs_tol=1e-6)

    @settings(max_examples=100, deadline=None)
    @given(
        offsets=st.lists(st.integers(0, 10_000), min_size=1, max_size=50),
        value=prices,
        seconds=st.integers(0, 5000),
    )
    def test_constant_series_average(self, offsets, value, seconds):
        s = make_series("A", [(o, value) for o in sorted(offsets)])
        for r in range_window(s, pd.Timedelta(seconds=seconds), "avg"):
            assert math.isclose(r.aggregate, value, rel_tol=1e-9)


class TestRollingFrame:
    def test_aligned_to_original_rows(self):
        df = pd.DataFrame(
            {
                "ticker": ["B", "A", "B", "A"],
                "timestamp": pd.to_datetime(
                    ["2022-10-25 09:00", "2022-10-25 09:00", "2022-10-25 09:05", "2022-10-25 09:20"]
                ),
                "price": [10.0, 100.0, 20.0, 110.0],
                "volume": [1.0, 1.0, 3.0, 1.0],
            },
            index=[10, 11, 12, 13],
        )
        out = rolling_frame(df, "10min", "vwap")
        assert "vwap_10min" in out.columns
        assert out.loc[10, "vwap_10min"] == 10.0
        assert out.loc[11, "vwap_10min"] == 100.0
        assert out.loc[12, "vwap_10min"] == pytest.approx(17.5)
        assert out.loc[13, "vwap_10min"] == 110.0
        assert list(out.index) == [10, 11, 12, 13]

    def test_no_value_is_na(self):
        df = pd.DataFrame(
            {
                "ticker": ["A"],
                "timestamp": pd.to_datetime(["2022-10-25 09:00"]),
                "price": [10.0],
                "volume": [0.0],
            }
        )
        out = rolling_frame(df, "10min", "vwap", out_col="vwap")
        assert out["vwap"].isna().all()
