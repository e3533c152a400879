"""Weather overlay for the currently selected dates.

Every change of the primary date, benchmark date or benchmark mode starts a
new pass. A pass walks the dates that need weather one at a time, serving
each from the provider's cache when possible and fetching it otherwise. The
lookup table is only replaced when every date of the pass succeeded, and
only if no newer pass has been started in the meantime.
"""

import logging
from collections.abc import Mapping
from datetime import date
from types import MappingProxyType
from typing import Optional

from visitor_analytics.analytics.benchmark import BenchmarkMode, BenchmarkState
from visitor_analytics.models import WeatherInfo
from visitor_analytics.utils.dates import format_api_date
from visitor_analytics.weather.provider import WeatherProvider

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to fetch weather data"


class WeatherFetchError(Exception):
    """A single date's fetch reported failure; aborts the current pass."""


def dates_needing_weather(state: BenchmarkState) -> list[date]:
    """Return the primary date plus the benchmark date in ``date`` mode."""
    if state.primary_date is None:
        return []
    dates = [state.primary_date]
    if state.mode is BenchmarkMode.DATE and state.benchmark_date is not None:
        dates.append(state.benchmark_date)
    return dates


class WeatherOverlayCoordinator:
    """Owns the weather lookup table for the current selection.

    Args:
        provider: Source of cached and fetched weather.
    """

    def __init__(self, provider: WeatherProvider) -> None:
        self.provider = provider
        self._lookup: Mapping[str, WeatherInfo] = MappingProxyType({})
        self._generation = 0
        self.loading = False
        self.error: Optional[str] = None

    @property
    def lookup(self) -> Mapping[str, WeatherInfo]:
        """Read-only view of the last committed lookup table."""
        return self._lookup

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def refresh(self, state: BenchmarkState) -> bool:
        """Run one weather pass for ``state``.

        Args:
            state: Selection whose dates need weather.

        A selection without dates still supersedes any pass in flight and
        leaves an empty lookup behind.

        Returns:
            True if this pass committed its outcome (lookup or error),
            False if there was nothing to fetch or it was superseded by a
            newer pass.
        """
        dates = dates_needing_weather(state)
        self._generation += 1
        if not dates:
            self._lookup = MappingProxyType({})
            self.loading = False
            self.error = None
            logger.debug("Weather pass %d has no dates", self._generation)
            return False

        generation = self._generation
        self.loading = True
        self.error = None

        try:
            gathered = await self._gather(dates)
        except WeatherFetchError as e:
            if not self._is_current(generation):
                logger.warning("Discarding failed stale weather pass %d", generation)
                return False
            self.error = str(e) or DEFAULT_ERROR_MESSAGE
            logger.warning("Weather pass %d failed: %s", generation, self.error)
            return True
        finally:
            if self._is_current(generation):
                self.loading = False

        if not self._is_current(generation):
            logger.warning(
                "Discarding stale weather pass %d (latest is %d)",
                generation,
                self._generation,
            )
            return False

        self._lookup = MappingProxyType(gathered)
        logger.info(
            "Weather pass %d committed %d entries", generation, len(gathered)
        )
        return True

    async def _gather(self, dates: list[date]) -> dict[str, WeatherInfo]:
        gathered: dict[str, WeatherInfo] = {}

        for day in dates:
            cached = self.provider.get_cached_weather_data(day)
            if cached is not None:
                logger.debug("Weather cache hit for %s", format_api_date(day))
                gathered[format_api_date(day)] = cached
                continue

            logger.debug("Weather cache miss for %s", format_api_date(day))
            try:
                result = await self.provider.fetch_weather_data(day, day)
            except Exception as e:
                raise WeatherFetchError(str(e) or DEFAULT_ERROR_MESSAGE) from e

            if not result.ok:
                raise WeatherFetchError(result.message or DEFAULT_ERROR_MESSAGE)
            gathered.update(result.lookup)

        return gathered
