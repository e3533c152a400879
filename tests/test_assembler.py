"""Tests for comparison row assembly."""

from datetime import date

import pytest

from visitor_analytics.analytics.assembler import (
    assemble_comparison,
    get_selected_day_data,
)
from visitor_analytics.analytics.benchmark import BenchmarkState
from visitor_analytics.analytics.daily_grouper import group_by_day
from visitor_analytics.analytics.weekday_averager import compute_weekday_averages
from visitor_analytics.models import VisitorRecord, WeatherInfo

MONDAY = date(2024, 3, 4)
NEXT_MONDAY = date(2024, 3, 11)


@pytest.fixture
def records() -> list[VisitorRecord]:
    """Two Mondays with two hours each."""
    return [
        VisitorRecord.from_counts("04/03/2024 10:00", entering_visitors=10),
        VisitorRecord.from_counts("04/03/2024 11:00", entering_visitors=20),
        VisitorRecord.from_counts("11/03/2024 10:00", entering_visitors=30),
        VisitorRecord.from_counts("11/03/2024 11:00", entering_visitors=41),
    ]


@pytest.fixture
def weather() -> dict[str, WeatherInfo]:
    """Weather for the first Monday only."""
    return {"2024-03-04": WeatherInfo(date="2024-03-04", description="Fog")}


class TestGetSelectedDayData:
    """Tests for get_selected_day_data."""

    def test_daily_row_with_weather(self, records, weather) -> None:
        """A date with data yields its daily totals and weather."""
        rows = get_selected_day_data(MONDAY, group_by_day(records), weather)
        assert len(rows) == 1
        assert rows[0].metrics.entering_visitors == 30
        assert rows[0].weather.description == "Fog"
        assert not rows[0].is_average

    def test_daily_row_without_weather(self, records, weather) -> None:
        """Missing weather leaves the row undecorated."""
        rows = get_selected_day_data(NEXT_MONDAY, group_by_day(records), weather)
        assert rows[0].weather is None

    def test_unknown_date(self, records, weather) -> None:
        """A date without data yields no rows."""
        rows = get_selected_day_data(date(2024, 3, 5), group_by_day(records), weather)
        assert rows == []

    def test_no_date(self, records, weather) -> None:
        """None yields no rows."""
        assert get_selected_day_data(None, group_by_day(records), weather) == []

    def test_average_row(self, records, weather) -> None:
        """Averages are summed into one row labelled with the given date."""
        profile = compute_weekday_averages(MONDAY, records)
        rows = get_selected_day_data(
            MONDAY, group_by_day(records), weather, profile, use_averages=True
        )
        assert len(rows) == 1
        # 10:00 -> 20, 11:00 -> round(30.5) = 31
        assert rows[0].metrics.entering_visitors == 51
        assert rows[0].date == MONDAY
        assert rows[0].weather.description == "Fog"
        assert rows[0].is_average

    def test_average_without_profile_falls_back(self, records, weather) -> None:
        """Without a profile the literal daily data is used."""
        rows = get_selected_day_data(
            MONDAY, group_by_day(records), weather, None, use_averages=True
        )
        assert rows[0].metrics.entering_visitors == 30
        assert not rows[0].is_average


class TestAssembleComparison:
    """Tests for assemble_comparison."""

    def test_primary_only(self, records, weather) -> None:
        """Mode none yields the primary row only."""
        state = BenchmarkState(primary_date=MONDAY)
        rows = assemble_comparison(state, group_by_day(records), weather)
        assert [r.date for r in rows] == [MONDAY]

    def test_with_benchmark_date(self, records, weather) -> None:
        """Date mode appends the benchmark row."""
        state = BenchmarkState(primary_date=MONDAY)
        state.set_benchmark_date_enabled(True)
        state.select_benchmark_date(NEXT_MONDAY)
        rows = assemble_comparison(state, group_by_day(records), weather)
        assert [r.date for r in rows] == [MONDAY, NEXT_MONDAY]
        assert rows[1].metrics.entering_visitors == 71

    def test_pending_benchmark_date(self, records, weather) -> None:
        """Date mode without a chosen date adds nothing."""
        state = BenchmarkState(primary_date=MONDAY)
        state.set_benchmark_date_enabled(True)
        rows = assemble_comparison(state, group_by_day(records), weather)
        assert len(rows) == 1

    def test_with_weekday_average(self, records, weather) -> None:
        """Average mode appends the averaged row."""
        state = BenchmarkState(primary_date=NEXT_MONDAY)
        state.set_weekday_average_enabled(True)
        profile = compute_weekday_averages(NEXT_MONDAY, records)
        rows = assemble_comparison(state, group_by_day(records), weather, profile)
        assert len(rows) == 2
        assert not rows[0].is_average
        assert rows[1].is_average
        assert rows[1].date == NEXT_MONDAY
