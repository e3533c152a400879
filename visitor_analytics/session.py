"""Single-day analysis session.

Ties the record stream, the benchmark selection and the weather overlay
together and derives the view model a presentation layer renders. Derived
data is memoized on its inputs: the daily grouping on the record set, the
weekday profile on the record set and the primary date. Toggling the
benchmark never recomputes either.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from visitor_analytics.analytics.assembler import assemble_comparison
from visitor_analytics.analytics.benchmark import (
    AvailableToggles,
    BenchmarkMode,
    BenchmarkState,
)
from visitor_analytics.analytics.daily_grouper import (
    available_dates,
    default_primary_date,
    group_by_day,
)
from visitor_analytics.analytics.weekday_averager import (
    HourlyAverageProfile,
    compute_weekday_averages,
)
from visitor_analytics.models import (
    ComparableDayView,
    DailyEntry,
    VisitorMetrics,
    VisitorRecord,
)
from visitor_analytics.utils.dates import (
    format_display_date,
    hour_sort_key,
    same_day,
    weekday_name,
)
from visitor_analytics.weather.overlay import WeatherOverlayCoordinator
from visitor_analytics.weather.provider import WeatherProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Memo(Generic[T]):
    """Caches the last computed value together with the key it was built for."""

    def __init__(self, compute: Callable[..., T]) -> None:
        self._compute = compute
        self._key: Optional[Hashable] = None
        self._value: Optional[T] = None
        self._filled = False
        self.computations = 0

    def get(self, key: Hashable, *args: Any) -> T:
        if self._filled and key == self._key:
            return self._value  # type: ignore[return-value]
        self._value = self._compute(*args)
        self._key = key
        self._filled = True
        self.computations += 1
        return self._value


class ViewStatus(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


@dataclass(frozen=True)
class DayAnalysisView:
    """Everything a presentation layer needs to render the day analysis.

    Attributes:
        status: Overall state; only ``ready`` views carry rows.
        error: Upstream data error, shown instead of the analysis.
        available_dates: Dates the pickers may offer.
        primary_date: Selected day.
        benchmark_mode: Current comparison mode.
        benchmark_date: Selected benchmark date, ``date`` mode only.
        selected_day_name: Weekday name of the primary date.
        available_toggles: Which benchmark toggles can be flipped.
        rows: Comparison rows (primary, then benchmark or average).
        raw_data: Hourly records behind the table; the weekday profile in
            ``average`` mode, otherwise the full record stream.
        benchmark_data: Hourly weekday averages in ``average`` mode.
        is_benchmarking: True unless the mode is ``none``.
        weather_loading: A weather pass is in flight.
        weather_error: Message of the last failed weather pass.
    """

    status: ViewStatus
    error: Optional[str] = None
    available_dates: tuple[date, ...] = ()
    primary_date: Optional[date] = None
    benchmark_mode: BenchmarkMode = BenchmarkMode.NONE
    benchmark_date: Optional[date] = None
    selected_day_name: str = ""
    available_toggles: AvailableToggles = field(
        default_factory=lambda: AvailableToggles(False, False)
    )
    rows: tuple[ComparableDayView, ...] = ()
    raw_data: tuple[VisitorRecord, ...] = ()
    benchmark_data: Optional[tuple[VisitorRecord, ...]] = None
    is_benchmarking: bool = False
    weather_loading: bool = False
    weather_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "error": self.error,
            "primary_date": _display(self.primary_date),
            "selected_day_name": self.selected_day_name,
            "benchmark_mode": self.benchmark_mode.value,
            "benchmark_date": _display(self.benchmark_date),
            "is_benchmarking": self.is_benchmarking,
            "rows": [row.to_dict() for row in self.rows],
            "weather_error": self.weather_error,
        }


def _display(value: Optional[date]) -> Optional[str]:
    return format_display_date(value) if value is not None else None


class DayAnalysisSession:
    """Interactive state for analysing one day of visitor traffic.

    Args:
        weather_provider: Optional weather source. Without one the rows
            carry no weather.
    """

    def __init__(self, weather_provider: Optional[WeatherProvider] = None) -> None:
        self.state = BenchmarkState()
        self.overlay = (
            WeatherOverlayCoordinator(weather_provider) if weather_provider else None
        )
        self._records: tuple[VisitorRecord, ...] = ()
        self._data_version = 0
        self.loading = False
        self.error: Optional[str] = None
        self._daily_memo: Memo[list[DailyEntry]] = Memo(group_by_day)
        self._average_memo: Memo[HourlyAverageProfile] = Memo(compute_weekday_averages)

    @property
    def records(self) -> tuple[VisitorRecord, ...]:
        return self._records

    def set_data(
        self,
        records: Iterable[VisitorRecord],
        loading: bool = False,
        error: Optional[str] = None,
    ) -> bool:
        """Replace the inputs supplied by the data loader.

        The first time data is available and no date has been chosen, the
        earliest date becomes the primary date.

        Returns:
            True if the primary date was seeded and weather should refresh.
        """
        self._records = tuple(records)
        self._data_version += 1
        self.loading = loading
        self.error = error
        logger.info(
            "Session data updated: %d records (version %d)",
            len(self._records),
            self._data_version,
        )

        if self.state.primary_date is None:
            first = default_primary_date(self.daily_entries)
            if first is not None:
                self.state.select_primary_date(first)
                logger.info("Defaulting primary date to %s", format_display_date(first))
                return True
        return False

    async def update_data(
        self,
        records: Iterable[VisitorRecord],
        loading: bool = False,
        error: Optional[str] = None,
    ) -> None:
        """Replace the inputs and refresh the weather if a date was seeded."""
        if self.set_data(records, loading=loading, error=error):
            await self.refresh_weather()

    @property
    def daily_entries(self) -> list[DailyEntry]:
        return self._daily_memo.get(self._data_version, self._records)

    @property
    def weekday_averages(self) -> Optional[HourlyAverageProfile]:
        primary = self.state.primary_date
        if primary is None:
            return None
        key = (self._data_version, format_display_date(primary))
        return self._average_memo.get(key, primary, self._records)

    async def refresh_weather(self) -> bool:
        """Start a weather pass for the current selection."""
        if self.overlay is None:
            return False
        return await self.overlay.refresh(self.state)

    async def _after_change(self, changed: bool) -> None:
        if changed:
            await self.refresh_weather()

    async def select_primary_date(self, value: Optional[date]) -> None:
        await self._after_change(self.state.select_primary_date(value))

    async def toggle_benchmark_date(self, enabled: bool) -> None:
        await self._after_change(self.state.set_benchmark_date_enabled(enabled))

    async def toggle_weekday_average(self, enabled: bool) -> None:
        await self._after_change(self.state.set_weekday_average_enabled(enabled))

    async def select_benchmark_date(self, value: Optional[date]) -> None:
        await self._after_change(self.state.select_benchmark_date(value))

    def hourly_breakdown(self, day: date) -> dict[str, VisitorMetrics]:
        """Per-hour totals for ``day``, hours in chronological order."""
        totals: dict[str, VisitorMetrics] = defaultdict(VisitorMetrics)
        for record in self._records:
            if same_day(record.date, day):
                totals[record.hour] = totals[record.hour] + record.metrics
        return {hour: totals[hour] for hour in sorted(totals, key=hour_sort_key)}

    def view(self) -> DayAnalysisView:
        """Build the view model for the current state."""
        if self.loading:
            return DayAnalysisView(status=ViewStatus.LOADING)
        if self.error:
            return DayAnalysisView(status=ViewStatus.ERROR, error=self.error)

        state = self.state
        entries = self.daily_entries
        primary = state.primary_date
        weather = self.overlay.lookup if self.overlay else {}
        profile = self.weekday_averages
        is_average = state.mode is BenchmarkMode.AVERAGE

        rows: Sequence[ComparableDayView] = ()
        if primary is not None and entries:
            rows = assemble_comparison(state, entries, weather, profile)

        profile_entries = profile.entries if profile is not None else ()
        return DayAnalysisView(
            status=ViewStatus.READY if rows else ViewStatus.EMPTY,
            available_dates=tuple(available_dates(entries)),
            primary_date=primary,
            benchmark_mode=state.mode,
            benchmark_date=(
                state.benchmark_date if state.mode is BenchmarkMode.DATE else None
            ),
            selected_day_name=weekday_name(primary) if primary else "",
            available_toggles=state.available_toggles(),
            rows=tuple(rows),
            raw_data=profile_entries if is_average else self._records,
            benchmark_data=profile_entries if is_average else None,
            is_benchmarking=state.is_benchmarking,
            weather_loading=self.overlay.loading if self.overlay else False,
            weather_error=self.overlay.error if self.overlay else None,
        )
