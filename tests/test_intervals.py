"""Tests for fixed-interval bucketing."""

import pandas as pd
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tick_analytics.errors import InvalidBucketSpec
from tick_analytics.utils.intervals import (
    BucketSpec,
    BucketUnit,
    bucket,
    bucket_end,
    bucket_series,
    bucket_start,
)

TS = pd.Timestamp("2022-10-25 09:45:12.5")  # a Tuesday


class TestBucketStart:
    """Tests for bucket boundaries per unit."""

    @pytest.mark.parametrize(
        "spec, start, end",
        [
            (BucketSpec("hour"), "2022-10-25 09:00", "2022-10-25 10:00"),
            (BucketSpec("hour", 4), "2022-10-25 08:00", "2022-10-25 12:00"),
            (BucketSpec("day"), "2022-10-25", "2022-10-26"),
            (BucketSpec("week"), "2022-10-24", "2022-10-31"),
            (BucketSpec("week", week_start=6), "2022-10-23", "2022-10-30"),
            (BucketSpec("month"), "2022-10-01", "2022-11-01"),
            (BucketSpec("month", 2), "2022-09-01", "2022-11-01"),
            (BucketSpec("quarter"), "2022-10-01", "2023-01-01"),
            (BucketSpec("year"), "2022-01-01", "2023-01-01"),
        ],
    )
    def test_boundaries(self, spec, start, end):
        assert bucket_start(TS, spec) == pd.Timestamp(start)
        assert bucket_end(TS, spec) == pd.Timestamp(end)

    def test_quarter_mid_year(self):
        spec = BucketSpec(BucketUnit.QUARTER)
        assert bucket_start(pd.Timestamp("2022-08-15"), spec) == pd.Timestamp("2022-07-01")

    def test_start_is_inclusive(self):
        spec = BucketSpec("hour")
        ts = pd.Timestamp("2022-10-25 10:00")
        assert bucket_start(ts, spec) == ts
        assert bucket_end(ts, spec) == pd.Timestamp("2022-10-25 11:00")

    def test_before_epoch(self):
        spec = BucketSpec("hour")
        assert bucket_start(pd.Timestamp("1969-12-31 23:30"), spec) == pd.Timestamp("1969-12-31 23:00")
        spec = BucketSpec("month", 5)
        ts = pd.Timestamp("1969-12-15")
        assert bucket_start(ts, spec) <= ts < bucket_end(ts, spec)

    def test_anchor_end(self):
        spec = BucketSpec("day", anchor="end")
        assert bucket(TS, spec) == pd.Timestamp("2022-10-26")
        assert bucket(TS, BucketSpec("day")) == pd.Timestamp("2022-10-25")

    def test_unit_aliases(self):
        assert BucketSpec("H").unit is BucketUnit.HOUR
        assert BucketSpec("Weeks").unit is BucketUnit.WEEK


class TestInvalidSpec:
    """Tests for bucket spec validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"unit": "minute"},
            {"unit": 5},
            {"unit": "hour", "multiplier": 0},
            {"unit": "hour", "multiplier": -2},
            {"unit": "hour", "multiplier": 1.5},
            {"unit": "hour", "multiplier": True},
            {"unit": "hour", "anchor": "middle"},
            {"unit": "week", "week_start": 7},
        ],
    )
    def test_rejected(self, kwargs):
        with pytest.raises(InvalidBucketSpec):
            BucketSpec(**kwargs)


class TestBucketSeries:
    """Vectorized bucketing matches the scalar functions."""

    @pytest.mark.parametrize(
        "spec",
        [
            BucketSpec("hour", 2),
            BucketSpec("day", anchor="end"),
            BucketSpec("week", week_start=2),
            BucketSpec("month", 3),
            BucketSpec("year", anchor="end"),
        ],
    )
    def test_matches_scalar(self, spec):
        ts = pd.Series(
            pd.to_datetime(["1969-06-30 12:00", "2022-10-25 09:45:12.5", "2022-12-31 23:59:59.999999999"], format="ISO8601")
        )
        out = bucket_series(ts, spec)
        assert out.tolist() == [bucket(t, spec) for t in ts]


_LOW = pd.Timestamp("1700-01-01").value
_HIGH = pd.Timestamp("2250-01-01").value

specs = st.builds(
    BucketSpec,
    unit=st.sampled_from(list(BucketUnit)),
    multiplier=st.integers(1, 5),
    anchor=st.sampled_from(["start", "end"]),
    week_start=st.integers(0, 6),
)


class TestBucketProperties:
    """Containment and monotonicity over random instants."""

    @settings(max_examples=300)
    @given(nanos=st.integers(_LOW, _HIGH), spec=specs)
    def test_contains_instant(self, nanos, spec):
        t = pd.Timestamp(nanos)
        start = bucket_start(t, spec)
        end = bucket_end(t, spec)
        assert start <= t < end
        assert bucket_start(start, spec) == start

    @settings(max_examples=300)
    @given(a=st.integers(_LOW, _HIGH), b=st.integers(_LOW, _HIGH), spec=specs)
    def test_monotonic(self, a, b, spec):
        t1, t2 = pd.Timestamp(min(a, b)), pd.Timestamp(max(a, b))
        assert bucket_start(t1, spec) <= bucket_start(t2, spec)
        assert bucket(t1, spec) <= bucket(t2, spec)
