"""Hourly visitor profile for the weekday of a reference date.

Looks at every historical record falling on the same weekday as the
reference date, buckets them by hour label and averages each metric per
bucket. The result reads as "a typical day like the reference date".
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from visitor_analytics.models import METRIC_FIELDS, VisitorMetrics, VisitorRecord
from visitor_analytics.utils.dates import format_display_date, weekday_index

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


@dataclass
class _HourBucket:
    totals: VisitorMetrics = field(default_factory=VisitorMetrics)
    count: int = 0

    def add(self, metrics: VisitorMetrics) -> None:
        self.totals = self.totals + metrics
        self.count += 1

    def average(self) -> VisitorMetrics:
        return VisitorMetrics(
            **{
                name: round_half_up(getattr(self.totals, name) / self.count)
                for name in METRIC_FIELDS
            }
        )


@dataclass(frozen=True)
class HourlyAverageProfile:
    """Averaged hourly records for one weekday.

    Attributes:
        reference_date: Date the profile was computed for. Entry timestamps
            are labelled with this date.
        weekday: Weekday index of ``reference_date`` (Sunday is 0).
        entries: One averaged record per hour seen in the history, in
            the order hours first appeared.
        sample_days: Number of distinct historical dates that contributed.
    """

    reference_date: date
    weekday: int
    entries: tuple[VisitorRecord, ...] = ()
    sample_days: int = 0

    def __len__(self) -> int:
        return len(self.entries)

    def total(self) -> VisitorMetrics:
        """Sum the hourly averages into one day's worth of metrics."""
        return VisitorMetrics.total(self.entries)

    def by_hour(self) -> dict[str, VisitorMetrics]:
        return {entry.hour: entry.metrics for entry in self.entries}


def compute_weekday_averages(
    reference_date: date,
    records: Iterable[VisitorRecord],
) -> HourlyAverageProfile:
    """Build the hourly average profile for the weekday of ``reference_date``.

    Every metric is averaged and rounded on its own, so the rounded metrics
    need not add up to a rounded total. Hours that never occurred on this
    weekday produce no entry.

    Args:
        reference_date: Date whose weekday selects the history.
        records: Full record stream.

    Returns:
        HourlyAverageProfile labelled with ``reference_date``.
    """
    weekday = weekday_index(reference_date)
    buckets: dict[str, _HourBucket] = defaultdict(_HourBucket)
    contributing_days: set[date] = set()

    for record in records:
        if weekday_index(record.date) != weekday:
            continue
        buckets[record.hour].add(record.metrics)
        contributing_days.add(record.date)

    label = format_display_date(reference_date)
    entries = tuple(
        VisitorRecord(timestamp=f"{label} {hour}", metrics=bucket.average())
        for hour, bucket in buckets.items()
    )

    logger.debug(
        "Weekday %d profile for %s: %d hours from %d days",
        weekday,
        label,
        len(entries),
        len(contributing_days),
    )
    return HourlyAverageProfile(
        reference_date=reference_date,
        weekday=weekday,
        entries=entries,
        sample_days=len(contributing_days),
    )
