"""Tests for the weather overlay coordinator."""

import asyncio
from datetime import date
from typing import Optional

import pytest

from visitor_analytics.analytics.benchmark import BenchmarkState
from visitor_analytics.models import WeatherInfo
from visitor_analytics.utils.dates import format_api_date
from visitor_analytics.weather.overlay import (
    DEFAULT_ERROR_MESSAGE,
    WeatherOverlayCoordinator,
    dates_needing_weather,
)
from visitor_analytics.weather.provider import WeatherFetchResult

PRIMARY = date(2024, 3, 4)
BENCHMARK = date(2024, 3, 11)
THIRD = date(2024, 3, 18)


class FakeWeatherProvider:
    """In-memory provider recording every fetch."""

    def __init__(
        self,
        cache: Optional[dict[str, WeatherInfo]] = None,
        failures: Optional[dict[str, str]] = None,
    ) -> None:
        self.cache = cache or {}
        self.failures = failures or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.fetch_calls: list[tuple[str, str]] = []
        self.raise_on: Optional[Exception] = None

    def get_cached_weather_data(self, day: date) -> Optional[WeatherInfo]:
        return self.cache.get(format_api_date(day))

    async def fetch_weather_data(
        self, start_date: date, end_date: date
    ) -> WeatherFetchResult:
        key = format_api_date(start_date)
        self.fetch_calls.append((key, format_api_date(end_date)))
        if key in self.gates:
            await self.gates[key].wait()
        if self.raise_on is not None:
            raise self.raise_on
        if key in self.failures:
            return WeatherFetchResult.failure(self.failures[key])
        return WeatherFetchResult(
            lookup={key: WeatherInfo(date=key, temperature_max=12.5)}
        )


def _state(primary: Optional[date], benchmark: Optional[date] = None) -> BenchmarkState:
    state = BenchmarkState(primary_date=primary)
    if benchmark is not None:
        state.set_benchmark_date_enabled(True)
        state.select_benchmark_date(benchmark)
    return state


class TestDatesNeedingWeather:
    """Tests for dates_needing_weather."""

    def test_primary_only(self) -> None:
        """Without a benchmark only the primary date needs weather."""
        assert dates_needing_weather(_state(PRIMARY)) == [PRIMARY]

    def test_with_benchmark_date(self) -> None:
        """Date mode with a chosen date adds the benchmark date."""
        assert dates_needing_weather(_state(PRIMARY, BENCHMARK)) == [
            PRIMARY,
            BENCHMARK,
        ]

    def test_pending_benchmark_date(self) -> None:
        """Date mode without a chosen date only needs the primary."""
        state = _state(PRIMARY)
        state.set_benchmark_date_enabled(True)
        assert dates_needing_weather(state) == [PRIMARY]

    def test_average_mode(self) -> None:
        """Average mode has no extra date."""
        state = _state(PRIMARY)
        state.set_weekday_average_enabled(True)
        assert dates_needing_weather(state) == [PRIMARY]

    def test_no_primary(self) -> None:
        """Nothing is needed before a primary date exists."""
        assert dates_needing_weather(_state(None)) == []


class TestRefresh:
    """Tests for a single weather pass."""

    def test_fetches_single_day_ranges(self) -> None:
        """Each missing date is fetched with identical start and end."""
        provider = FakeWeatherProvider()
        coordinator = WeatherOverlayCoordinator(provider)
        assert asyncio.run(coordinator.refresh(_state(PRIMARY, BENCHMARK)))
        assert provider.fetch_calls == [
            ("2024-03-04", "2024-03-04"),
            ("2024-03-11", "2024-03-11"),
        ]
        assert set(coordinator.lookup) == {"2024-03-04", "2024-03-11"}
        assert coordinator.error is None
        assert not coordinator.loading

    def test_cache_hit_skips_fetch(self) -> None:
        """A cached date is never fetched in the same pass."""
        cached = WeatherInfo(date="2024-03-04", description="Clear sky")
        provider = FakeWeatherProvider(cache={"2024-03-04": cached})
        coordinator = WeatherOverlayCoordinator(provider)
        asyncio.run(coordinator.refresh(_state(PRIMARY, BENCHMARK)))
        assert provider.fetch_calls == [("2024-03-11", "2024-03-11")]
        assert coordinator.lookup["2024-03-04"] is cached

    def test_lookup_keyed_by_api_date(self) -> None:
        """Lookup keys use the API date format."""
        coordinator = WeatherOverlayCoordinator(FakeWeatherProvider())
        asyncio.run(coordinator.refresh(_state(PRIMARY)))
        assert list(coordinator.lookup) == ["2024-03-04"]

    def test_lookup_replaced_not_merged(self) -> None:
        """A new selection drops entries of the previous one."""
        coordinator = WeatherOverlayCoordinator(FakeWeatherProvider())
        asyncio.run(coordinator.refresh(_state(PRIMARY)))
        asyncio.run(coordinator.refresh(_state(THIRD)))
        assert list(coordinator.lookup) == ["2024-03-18"]

    def test_lookup_is_read_only(self) -> None:
        """The committed lookup cannot be mutated in place."""
        coordinator = WeatherOverlayCoordinator(FakeWeatherProvider())
        asyncio.run(coordinator.refresh(_state(PRIMARY)))
        with pytest.raises(TypeError):
            coordinator.lookup["2024-01-01"] = WeatherInfo(date="2024-01-01")

    def test_no_primary_date_is_skipped(self) -> None:
        """Without a primary date nothing is fetched."""
        provider = FakeWeatherProvider()
        coordinator = WeatherOverlayCoordinator(provider)
        assert not asyncio.run(coordinator.refresh(_state(None)))
        assert provider.fetch_calls == []
        assert coordinator.generation == 1

    def test_no_primary_date_clears_lookup(self) -> None:
        """Clearing the selection drops weather of the previous selection."""
        coordinator = WeatherOverlayCoordinator(FakeWeatherProvider())
        asyncio.run(coordinator.refresh(_state(PRIMARY)))
        assert list(coordinator.lookup) == ["2024-03-04"]

        asyncio.run(coordinator.refresh(_state(None)))
        assert dict(coordinator.lookup) == {}
        assert coordinator.error is None
        assert not coordinator.loading


class TestFailures:
    """Tests for aborted weather passes."""

    def test_second_date_failure_discards_first(self) -> None:
        """All-or-nothing: the first date's result is not committed."""
        provider = FakeWeatherProvider(failures={"2024-03-11": "Rate limited"})
        coordinator = WeatherOverlayCoordinator(provider)
        assert asyncio.run(coordinator.refresh(_state(PRIMARY, BENCHMARK)))
        assert "2024-03-04" not in coordinator.lookup
        assert coordinator.error == "Rate limited"
        assert not coordinator.loading

    def test_failure_keeps_previous_lookup(self) -> None:
        """An aborted pass leaves the last committed lookup untouched."""
        provider = FakeWeatherProvider()
        coordinator = WeatherOverlayCoordinator(provider)
        asyncio.run(coordinator.refresh(_state(THIRD)))
        provider.failures["2024-03-11"] = "Service down"
        asyncio.run(coordinator.refresh(_state(PRIMARY, BENCHMARK)))
        assert list(coordinator.lookup) == ["2024-03-18"]
        assert coordinator.error == "Service down"

    def test_first_date_failure_stops_pass(self) -> None:
        """Later dates are not requested after a failure."""
        provider = FakeWeatherProvider(failures={"2024-03-04": "Boom"})
        coordinator = WeatherOverlayCoordinator(provider)
        asyncio.run(coordinator.refresh(_state(PRIMARY, BENCHMARK)))
        assert provider.fetch_calls == [("2024-03-04", "2024-03-04")]

    def test_empty_failure_message(self) -> None:
        """A failure without message gets the default message."""
        provider = FakeWeatherProvider(failures={"2024-03-04": ""})
        coordinator = WeatherOverlayCoordinator(provider)
        asyncio.run(coordinator.refresh(_state(PRIMARY)))
        assert coordinator.error == DEFAULT_ERROR_MESSAGE

    def test_provider_exception_becomes_error(self) -> None:
        """An exception raised by the provider is surfaced as the error."""
        provider = FakeWeatherProvider()
        provider.raise_on = RuntimeError("connection reset")
        coordinator = WeatherOverlayCoordinator(provider)
        assert asyncio.run(coordinator.refresh(_state(PRIMARY)))
        assert coordinator.error == "connection reset"

    def test_error_cleared_by_next_pass(self) -> None:
        """A successful pass clears the previous error."""
        provider = FakeWeatherProvider(failures={"2024-03-04": "Boom"})
        coordinator = WeatherOverlayCoordinator(provider)
        asyncio.run(coordinator.refresh(_state(PRIMARY)))
        asyncio.run(coordinator.refresh(_state(THIRD)))
        assert coordinator.error is None
        assert list(coordinator.lookup) == ["2024-03-18"]


class TestSupersededPasses:
    """Tests for overlapping weather passes."""

    def test_stale_pass_cannot_overwrite_newer(self) -> None:
        """A slow earlier pass finishing last is discarded."""

        async def scenario():
            provider = FakeWeatherProvider()
            provider.gates["2024-03-04"] = asyncio.Event()
            coordinator = WeatherOverlayCoordinator(provider)

            slow = asyncio.create_task(coordinator.refresh(_state(PRIMARY)))
            await asyncio.sleep(0)
            assert coordinator.loading

            newer = await coordinator.refresh(_state(THIRD))
            assert not coordinator.loading

            provider.gates["2024-03-04"].set()
            stale = await slow
            return coordinator, newer, stale

        coordinator, newer, stale = asyncio.run(scenario())
        assert newer
        assert not stale
        assert list(coordinator.lookup) == ["2024-03-18"]
        assert not coordinator.loading

    def test_stale_failure_does_not_set_error(self) -> None:
        """A superseded pass that fails leaves the newer outcome alone."""

        async def scenario():
            provider = FakeWeatherProvider(failures={"2024-03-04": "Old failure"})
            provider.gates["2024-03-04"] = asyncio.Event()
            coordinator = WeatherOverlayCoordinator(provider)

            slow = asyncio.create_task(coordinator.refresh(_state(PRIMARY)))
            await asyncio.sleep(0)
            await coordinator.refresh(_state(THIRD))
            provider.gates["2024-03-04"].set()
            await slow
            return coordinator

        coordinator = asyncio.run(scenario())
        assert coordinator.error is None
        assert list(coordinator.lookup) == ["2024-03-18"]

    def test_loading_stays_while_newer_pass_runs(self) -> None:
        """An older pass finishing does not clear the newer pass's loading flag."""

        async def scenario():
            provider = FakeWeatherProvider()
            provider.gates["2024-03-04"] = asyncio.Event()
            provider.gates["2024-03-18"] = asyncio.Event()
            coordinator = WeatherOverlayCoordinator(provider)

            older = asyncio.create_task(coordinator.refresh(_state(PRIMARY)))
            await asyncio.sleep(0)
            newer = asyncio.create_task(coordinator.refresh(_state(THIRD)))
            await asyncio.sleep(0)

            provider.gates["2024-03-04"].set()
            await older
            still_loading = coordinator.loading

            provider.gates["2024-03-18"].set()
            await newer
            return coordinator, still_loading

        coordinator, still_loading = asyncio.run(scenario())
        assert still_loading
        assert not coordinator.loading
        assert list(coordinator.lookup) == ["2024-03-18"]

    def test_cleared_selection_supersedes_pass_in_flight(self) -> None:
        """Clearing the primary date discards a pass that finishes afterwards."""

        async def scenario():
            provider = FakeWeatherProvider()
            provider.gates["2024-03-04"] = asyncio.Event()
            coordinator = WeatherOverlayCoordinator(provider)

            slow = asyncio.create_task(coordinator.refresh(_state(PRIMARY)))
            await asyncio.sleep(0)
            await coordinator.refresh(_state(None))

            provider.gates["2024-03-04"].set()
            stale = await slow
            return coordinator, stale

        coordinator, stale = asyncio.run(scenario())
        assert not stale
        assert dict(coordinator.lookup) == {}
        assert not coordinator.loading
