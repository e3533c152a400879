"""Assembly of the comparison rows handed to presentation."""

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Optional

from visitor_analytics.analytics.benchmark import BenchmarkMode, BenchmarkState
from visitor_analytics.analytics.weekday_averager import HourlyAverageProfile
from visitor_analytics.models import ComparableDayView, DailyEntry, WeatherInfo
from visitor_analytics.utils.dates import format_api_date, same_day


def get_selected_day_data(
    day: Optional[date],
    daily_entries: Sequence[DailyEntry],
    weather: Mapping[str, WeatherInfo],
    profile: Optional[HourlyAverageProfile] = None,
    use_averages: bool = False,
) -> list[ComparableDayView]:
    """Build the row(s) describing a single date.

    With ``use_averages`` the hourly profile is summed into one row labelled
    with ``day``. Otherwise every daily entry displayed as ``day`` is
    returned.

    Args:
        day: Date to describe. None yields no rows.
        daily_entries: Output of the daily grouper.
        weather: Weather lookup keyed by API-formatted date.
        profile: Weekday average profile, required for ``use_averages``.
        use_averages: Describe the weekday average instead of the day itself.

    Returns:
        List of freshly built rows.
    """
    if day is None:
        return []

    if use_averages and profile is not None:
        return [
            ComparableDayView(
                date=day,
                metrics=profile.total(),
                weather=weather.get(format_api_date(day)),
                is_average=True,
            )
        ]

    return [
        ComparableDayView(
            date=entry.date,
            metrics=entry.metrics,
            weather=weather.get(format_api_date(entry.date)),
        )
        for entry in daily_entries
        if same_day(entry.date, day)
    ]


def assemble_comparison(
    state: BenchmarkState,
    daily_entries: Sequence[DailyEntry],
    weather: Mapping[str, WeatherInfo],
    profile: Optional[HourlyAverageProfile] = None,
) -> list[ComparableDayView]:
    """Rows for the primary date followed by its benchmark, if any."""
    rows = get_selected_day_data(state.primary_date, daily_entries, weather)

    if state.mode is BenchmarkMode.DATE and state.benchmark_date is not None:
        rows += get_selected_day_data(state.benchmark_date, daily_entries, weather)
    elif state.mode is BenchmarkMode.AVERAGE:
        rows += get_selected_day_data(
            state.primary_date,
            daily_entries,
            weather,
            profile=profile,
            use_averages=True,
        )
    return rows
