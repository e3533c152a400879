"""Core data types for visitor day analysis.

Defines the raw visitor observation, the per-day aggregate derived from it,
and the comparable row handed to presentation.
"""

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Optional

from visitor_analytics.utils.dates import format_display_date, parse_timestamp

METRIC_FIELDS: tuple[str, ...] = (
    "entering_visitors",
    "leaving_visitors",
    "entering_men",
    "leaving_men",
    "entering_women",
    "leaving_women",
    "entering_groups",
    "leaving_groups",
    "passersby",
)


@dataclass(frozen=True)
class VisitorMetrics:
    """Directional visitor counts for a time slot, a day or an average.

    Attributes:
        entering_visitors: Total visitors walking in.
        leaving_visitors: Total visitors walking out.
        entering_men: Men walking in.
        leaving_men: Men walking out.
        entering_women: Women walking in.
        leaving_women: Women walking out.
        entering_groups: Groups walking in.
        leaving_groups: Groups walking out.
        passersby: People passing the entrance without entering.
    """

    entering_visitors: int = 0
    leaving_visitors: int = 0
    entering_men: int = 0
    leaving_men: int = 0
    entering_women: int = 0
    leaving_women: int = 0
    entering_groups: int = 0
    leaving_groups: int = 0
    passersby: int = 0

    def __add__(self, other: "VisitorMetrics") -> "VisitorMetrics":
        return VisitorMetrics(
            **{
                name: getattr(self, name) + getattr(other, name)
                for name in METRIC_FIELDS
            }
        )

    def as_dict(self) -> dict[str, int]:
        """Return the metrics keyed by field name."""
        return {name: getattr(self, name) for name in METRIC_FIELDS}

    @classmethod
    def total(cls, items) -> "VisitorMetrics":
        """Sum the metrics of every item (anything exposing ``metrics``)."""
        result = cls()
        for item in items:
            result = result + item.metrics
        return result


@dataclass(frozen=True)
class VisitorRecord:
    """A single counter observation.

    Several records may share the same date and hour; they are summed
    downstream rather than deduplicated.

    Attributes:
        timestamp: ``DD/MM/YYYY HH:MM`` string as exported by the counter.
        metrics: Visitor counts observed in this slot.
    """

    timestamp: str
    metrics: VisitorMetrics = field(default_factory=VisitorMetrics)

    def __post_init__(self) -> None:
        # Fail fast on malformed timestamps instead of at grouping time.
        parse_timestamp(self.timestamp)

    @property
    def date(self) -> date:
        return parse_timestamp(self.timestamp)[0]

    @property
    def hour(self) -> str:
        return parse_timestamp(self.timestamp)[1]

    @classmethod
    def from_counts(cls, timestamp: str, **counts: int) -> "VisitorRecord":
        """Build a record from keyword metric counts.

        Args:
            timestamp: ``DD/MM/YYYY HH:MM`` string.
            **counts: Any subset of :data:`METRIC_FIELDS`; missing ones are 0.

        Returns:
            New VisitorRecord.

        Raises:
            TypeError: If an unknown metric name is passed.
        """
        return cls(timestamp=timestamp, metrics=VisitorMetrics(**counts))

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, **self.metrics.as_dict()}


@dataclass(frozen=True)
class DailyEntry:
    """All visitor counts of one calendar date summed together."""

    date: date
    metrics: VisitorMetrics


@dataclass(frozen=True)
class WeatherInfo:
    """Weather summary for a single day.

    Attributes:
        date: API-formatted date key (``YYYY-MM-DD``).
        temperature_max: Daily maximum temperature in degrees Celsius.
        temperature_min: Daily minimum temperature in degrees Celsius.
        precipitation: Daily precipitation sum in millimetres.
        weather_code: WMO weather interpretation code.
        description: Human-readable description of ``weather_code``.
    """

    date: str
    temperature_max: Optional[float] = None
    temperature_min: Optional[float] = None
    precipitation: Optional[float] = None
    weather_code: Optional[int] = None
    description: str = ""

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ComparableDayView:
    """One row of the comparison table.

    Attributes:
        date: Date the row is labelled with.
        metrics: Daily totals, or summed weekday averages.
        weather: Weather for ``date`` when the overlay has it.
        is_average: True when the metrics come from the weekday profile.
    """

    date: date
    metrics: VisitorMetrics
    weather: Optional[WeatherInfo] = None
    is_average: bool = False

    def to_dict(self) -> dict:
        return {
            "date": format_display_date(self.date),
            "is_average": self.is_average,
            **self.metrics.as_dict(),
            "weather": self.weather.to_dict() if self.weather else None,
        }
