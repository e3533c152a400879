"""Daily aggregation of visitor counter records.

Collapses the flat record stream into one entry per calendar day. The
resulting list is also the set of dates a user can pick from.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from visitor_analytics.models import DailyEntry, VisitorMetrics, VisitorRecord
from visitor_analytics.utils.dates import format_display_date

logger = logging.getLogger(__name__)


def group_by_day(records: Iterable[VisitorRecord]) -> list[DailyEntry]:
    """Sum every record into a single entry per distinct date.

    Records may arrive in any order and several may share the same hour;
    all of them contribute to their day's totals.

    Args:
        records: Visitor records to aggregate.

    Returns:
        Daily entries sorted from the earliest to the latest date.
    """
    totals: dict[str, VisitorMetrics] = defaultdict(VisitorMetrics)
    dates: dict[str, date] = {}

    for record in records:
        day = record.date
        key = format_display_date(day)
        dates.setdefault(key, day)
        totals[key] = totals[key] + record.metrics

    entries = [DailyEntry(date=dates[key], metrics=totals[key]) for key in totals]
    entries.sort(key=lambda entry: entry.date)
    logger.debug("Grouped records into %d days", len(entries))
    return entries


def available_dates(entries: Iterable[DailyEntry]) -> list[date]:
    """Return the selectable dates in the order of ``entries``."""
    return [entry.date for entry in entries]


def default_primary_date(entries: list[DailyEntry]) -> date | None:
    """Return the earliest available date, or None when there is no data."""
    return entries[0].date if entries else None
