"""
Tests for TVL change windows and latest-value extraction.
"""

import pytest

from aggregation.tvl_calculator import (
    DAY_SECONDS,
    calculate_changes,
    direct_deltas,
    extract_latest_tvl,
    find_closest_point,
    merge_changes,
    percent_change,
    sum_chain_tvls,
)
from data_sources.models import TvlPoint


NOW = 1_700_000_000.0


@pytest.fixture
def series():
    return (
        TvlPoint(NOW - 30 * DAY_SECONDS, 50.0),
        TvlPoint(NOW - 7 * DAY_SECONDS, 80.0),
        TvlPoint(NOW - DAY_SECONDS, 90.0),
        TvlPoint(NOW, 100.0),
    )


# ============================================================
# CLOSEST POINT
# ============================================================

class TestFindClosestPoint:

    def test_nearest(self, series):
        assert find_closest_point(series, NOW - 6 * DAY_SECONDS).value == 80.0

    def test_tie_keeps_first(self):
        points = (TvlPoint(0, 1.0), TvlPoint(20, 2.0))
        assert find_closest_point(points, 10).value == 1.0

    def test_empty(self):
        assert find_closest_point((), NOW) is None


# ============================================================
# CHANGES
# ============================================================

class TestCalculateChanges:

    def test_from_series(self, series):
        changes = calculate_changes(series=series, now=NOW)
        assert changes["1d"] == pytest.approx(11.111, rel=1e-3)
        assert changes["7d"] == pytest.approx(25.0)
        assert changes["30d"] == pytest.approx(100.0)
        # oldest point is the nearest to a year back
        assert changes["365d"] == pytest.approx(100.0)

    def test_two_point_day_over_day(self):
        t0 = NOW - DAY_SECONDS
        changes = calculate_changes(series=(TvlPoint(t0, 100.0), TvlPoint(t0 + DAY_SECONDS, 110.0)), now=NOW)
        assert changes["1d"] == pytest.approx(10.0)

    def test_direct_wins_per_window(self, series):
        changes = calculate_changes({"7d": -5.0}, series, now=NOW)
        assert changes["7d"] == -5.0
        assert changes["1d"] == pytest.approx(11.111, rel=1e-3)

    def test_now_defaults_to_last_point(self, series):
        assert calculate_changes(series=series) == calculate_changes(series=series, now=NOW)

    def test_zero_base_is_none(self):
        points = (TvlPoint(NOW - DAY_SECONDS, 0.0), TvlPoint(NOW, 10.0))
        assert calculate_changes(series=points, now=NOW)["1d"] is None

    def test_no_series(self):
        changes = calculate_changes(direct_deltas(change_1d=2.5))
        assert changes == {"1d": 2.5, "7d": None, "30d": None, "365d": None}

    def test_percent_change(self):
        assert percent_change(110.0, 100.0) == pytest.approx(10.0)
        assert percent_change(None, 100.0) is None
        assert percent_change(1.0, 0.0) is None


class TestDirectDeltas:

    def test_monthly_maps_to_30d(self):
        assert direct_deltas(1.0, 2.0, 3.0) == {"1d": 1.0, "7d": 2.0, "30d": 3.0, "365d": None}

    def test_non_numeric_dropped(self):
        assert direct_deltas("bad")["1d"] is None


class TestMergeChanges:

    def test_first_non_null_per_window(self):
        merged = merge_changes({"1d": None, "7d": 4.0}, None, {"1d": 1.0, "7d": 9.0, "30d": 2.0})
        assert merged == {"1d": 1.0, "7d": 4.0, "30d": 2.0, "365d": None}


# ============================================================
# LATEST
# ============================================================

class TestExtractLatestTvl:

    def test_series_last(self, series):
        assert extract_latest_tvl(series, tvl=5.0) == 100.0

    def test_zero_series_falls_back_to_scalar(self):
        assert extract_latest_tvl((TvlPoint(NOW, 0.0),), tvl=42.0) == 42.0

    def test_chain_sum(self):
        chain_tvls = {"Ethereum": 30.0, "Arbitrum": 12.0, "Ethereum-borrowed": 100.0}
        assert extract_latest_tvl(chain_tvls=chain_tvls) == 42.0
        assert sum_chain_tvls(chain_tvls) == 42.0

    def test_nothing(self):
        assert extract_latest_tvl() is None
