"""Contract between the weather overlay and a weather data source."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Protocol

from visitor_analytics.models import WeatherInfo


class FetchStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class WeatherFetchResult:
    """Outcome of one fetch request.

    Attributes:
        lookup: Weather keyed by API-formatted date. Empty on error.
        status: Whether the request succeeded.
        message: Failure description; empty on success.
    """

    lookup: dict[str, WeatherInfo] = field(default_factory=dict)
    status: FetchStatus = FetchStatus.SUCCESS
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.SUCCESS

    @classmethod
    def failure(cls, message: str) -> "WeatherFetchResult":
        return cls(status=FetchStatus.ERROR, message=message)


class WeatherProvider(Protocol):
    """Weather source consumed by the overlay coordinator.

    The cache read has no side effects. Writing the cache is the provider's
    own business.
    """

    def get_cached_weather_data(self, day: date) -> Optional[WeatherInfo]:
        ...

    async def fetch_weather_data(
        self, start_date: date, end_date: date
    ) -> WeatherFetchResult:
        ...
