"""Date helpers shared by the grouping, averaging and weather layers.

Two formats matter at the boundary: the display format used for grouping
and equality (``DD/MM/YYYY``) and the API format used for weather lookup
keys (``YYYY-MM-DD``).
"""

from datetime import date, datetime, time
from functools import lru_cache

DISPLAY_DATE_FORMAT = "%d/%m/%Y"
API_DATE_FORMAT = "%Y-%m-%d"
HOUR_FORMAT = "%H:%M"

WEEKDAY_NAMES: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


class InvalidTimestampError(ValueError):
    """Raised when a record timestamp is not ``DD/MM/YYYY HH:MM``."""


def format_display_date(value: date) -> str:
    """Format a date for display and for equality checks."""
    return value.strftime(DISPLAY_DATE_FORMAT)


def format_api_date(value: date) -> str:
    """Format a date as the normalized weather lookup key."""
    return value.strftime(API_DATE_FORMAT)


def same_day(left: date, right: date) -> bool:
    return format_display_date(left) == format_display_date(right)


def weekday_index(value: date) -> int:
    """Return the weekday with Sunday as 0 and Saturday as 6."""
    return (value.weekday() + 1) % 7


def weekday_name(value: date) -> str:
    return WEEKDAY_NAMES[weekday_index(value)]


@lru_cache(maxsize=4096)
def parse_timestamp(timestamp: str) -> tuple[date, str]:
    """Split a counter timestamp into its date and hour label.

    Args:
        timestamp: String such as ``"01/03/2024 08:00"``.

    Returns:
        Tuple of the parsed date and the hour label (``"08:00"``).

    Raises:
        InvalidTimestampError: If the timestamp cannot be parsed.
    """
    parts = timestamp.strip().split(" ") if isinstance(timestamp, str) else []
    if len(parts) != 2:
        raise InvalidTimestampError(f"Invalid timestamp: {timestamp!r}")

    date_part, hour = parts
    try:
        parsed = datetime.strptime(date_part, DISPLAY_DATE_FORMAT).date()
        datetime.strptime(hour, HOUR_FORMAT)
    except ValueError as e:
        raise InvalidTimestampError(f"Invalid timestamp: {timestamp!r}") from e
    return parsed, hour


def parse_date(value: str) -> date:
    """Parse a user-supplied date in either display or API format.

    Raises:
        ValueError: If the value matches neither format.
    """
    for fmt in (API_DATE_FORMAT, DISPLAY_DATE_FORMAT):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(
        f"Invalid date {value!r}: expected YYYY-MM-DD or DD/MM/YYYY"
    )


def hour_sort_key(hour: str) -> time:
    """Chronological key for hour labels, so ``"8:00"`` sorts before ``"10:00"``."""
    return datetime.strptime(hour, HOUR_FORMAT).time()
