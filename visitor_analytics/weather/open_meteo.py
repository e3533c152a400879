"""Open-Meteo historical weather source.

Fetches daily weather from the Open-Meteo archive API and keeps results in
an in-memory TTL cache so that repeated selections of the same date do not
hit the network again.
"""

import logging
import time
from datetime import date
from typing import Any, Optional

import httpx
from cachetools import TTLCache

from visitor_analytics.models import WeatherInfo
from visitor_analytics.utils.config import WeatherConfig
from visitor_analytics.utils.dates import format_api_date
from visitor_analytics.weather.provider import WeatherFetchResult

logger = logging.getLogger(__name__)

DAILY_VARIABLES = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "weather_code",
)

# WMO weather interpretation codes.
WEATHER_CODE_DESCRIPTIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: Optional[int]) -> str:
    if code is None:
        return ""
    return WEATHER_CODE_DESCRIPTIONS.get(code, f"Unknown ({code})")


def parse_daily_response(payload: Any) -> dict[str, WeatherInfo]:
    """Turn an Open-Meteo ``daily`` block into weather keyed by API date.

    Raises:
        ValueError: If the payload has no usable ``daily`` block.
    """
    daily = payload.get("daily") if isinstance(payload, dict) else None
    if not isinstance(daily, dict) or not isinstance(daily.get("time"), list):
        raise ValueError("Weather response is missing daily data")

    def column(name: str) -> list:
        values = daily.get(name) or []
        return list(values) + [None] * (len(daily["time"]) - len(values))

    lookup: dict[str, WeatherInfo] = {}
    for key, t_max, t_min, rain, code in zip(
        daily["time"],
        column("temperature_2m_max"),
        column("temperature_2m_min"),
        column("precipitation_sum"),
        column("weather_code"),
    ):
        code = int(code) if code is not None else None
        lookup[key] = WeatherInfo(
            date=key,
            temperature_max=t_max,
            temperature_min=t_min,
            precipitation=rain,
            weather_code=code,
            description=describe_weather_code(code),
        )
    return lookup


class OpenMeteoWeatherService:
    """Weather provider backed by the Open-Meteo archive API.

    Args:
        config: Weather source settings.
        client: Optional pre-built async HTTP client. When omitted a client
            is created per request.
        cache: Optional cache mapping; defaults to a TTL cache sized from
            ``config``.
    """

    def __init__(
        self,
        config: Optional[WeatherConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.config = config or WeatherConfig()
        self.client = client
        self.cache = (
            cache
            if cache is not None
            else TTLCache(maxsize=self.config.cache_maxsize, ttl=self.config.cache_ttl)
        )

    def get_cached_weather_data(self, day: date) -> Optional[WeatherInfo]:
        """Return cached weather for ``day`` without touching the network."""
        return self.cache.get(format_api_date(day))

    def _params(self, start_date: date, end_date: date) -> dict:
        return {
            "latitude": self.config.latitude,
            "longitude": self.config.longitude,
            "start_date": format_api_date(start_date),
            "end_date": format_api_date(end_date),
            "daily": ",".join(DAILY_VARIABLES),
            "timezone": self.config.timezone,
        }

    async def _get(self, params: dict) -> httpx.Response:
        if self.client is not None:
            return await self.client.get(
                self.config.base_url, params=params, timeout=self.config.timeout
            )
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.get(self.config.base_url, params=params)

    async def fetch_weather_data(
        self, start_date: date, end_date: date
    ) -> WeatherFetchResult:
        """Fetch daily weather for an inclusive date range.

        Transport and HTTP failures are reported through the result status
        rather than raised.

        Args:
            start_date: First day of the range.
            end_date: Last day of the range.

        Returns:
            WeatherFetchResult with the lookup on success.
        """
        params = self._params(start_date, end_date)
        t0 = time.perf_counter()
        try:
            response = await self._get(params)
        except httpx.HTTPError as e:
            logger.warning(
                "Weather request %s..%s failed: %r",
                params["start_date"],
                params["end_date"],
                e,
            )
            return WeatherFetchResult.failure(f"Weather service unreachable: {e}")

        elapsed = time.perf_counter() - t0
        if response.status_code != 200:
            reason = _error_reason(response)
            logger.warning(
                "Weather request returned HTTP %d after %.2fs: %s",
                response.status_code,
                elapsed,
                reason,
            )
            return WeatherFetchResult.failure(
                f"Weather service error ({response.status_code}): {reason}"
            )

        try:
            lookup = parse_daily_response(response.json())
        except ValueError as e:
            logger.warning("Unusable weather response: %s", e)
            return WeatherFetchResult.failure(str(e))

        for key, info in lookup.items():
            self.cache[key] = info
        logger.debug(
            "Fetched weather for %s..%s in %.2fs (%d days)",
            params["start_date"],
            params["end_date"],
            elapsed,
            len(lookup),
        )
        return WeatherFetchResult(lookup=lookup)


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or "")[:300]
    if isinstance(payload, dict) and payload.get("reason"):
        return str(payload["reason"])
    return (response.text or "")[:300]
