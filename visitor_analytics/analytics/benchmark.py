"""Benchmark selection state for the day comparison.

A day can be compared against nothing, against another explicit date, or
against the average of its weekday. The two benchmark toggles are mutually
exclusive, which the three-valued mode enforces by construction; every mode
change also clears any previously chosen benchmark date.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from visitor_analytics.utils.dates import same_day

logger = logging.getLogger(__name__)


class BenchmarkMode(str, Enum):
    """What the primary date is compared against."""

    NONE = "none"
    DATE = "date"
    AVERAGE = "average"


class BenchmarkTransitionError(ValueError):
    """Raised when a toggle is switched on while it is not offered."""


@dataclass(frozen=True)
class AvailableToggles:
    """Which benchmark toggles can currently be switched on or off."""

    benchmark_date: bool
    weekday_average: bool


class BenchmarkState:
    """Primary date, benchmark mode and benchmark date.

    Args:
        primary_date: Optional initial primary date.
    """

    def __init__(self, primary_date: Optional[date] = None) -> None:
        self._primary_date = primary_date
        self._mode = BenchmarkMode.NONE
        self._benchmark_date: Optional[date] = None

    @property
    def primary_date(self) -> Optional[date]:
        return self._primary_date

    @property
    def mode(self) -> BenchmarkMode:
        return self._mode

    @property
    def benchmark_date(self) -> Optional[date]:
        return self._benchmark_date

    @property
    def is_benchmarking(self) -> bool:
        return self._mode is not BenchmarkMode.NONE

    def _set_mode(self, mode: BenchmarkMode) -> None:
        if mode is not self._mode:
            logger.debug("Benchmark mode %s -> %s", self._mode.value, mode.value)
        self._mode = mode
        self._benchmark_date = None

    def select_primary_date(self, value: Optional[date]) -> bool:
        """Choose the primary date.

        A benchmark date picked against the previous primary date is
        dropped when the mode is ``date``.

        Args:
            value: New primary date, or None to clear it.

        Returns:
            True if the primary or benchmark date changed.
        """
        changed = not _dates_equal(self._primary_date, value)
        self._primary_date = value
        if self._mode is BenchmarkMode.DATE and self._benchmark_date is not None:
            self._benchmark_date = None
            changed = True
        if self._mode is BenchmarkMode.AVERAGE and value is None:
            self._set_mode(BenchmarkMode.NONE)
        return changed

    def available_toggles(self) -> AvailableToggles:
        """Report which toggles a user may flip in the current state.

        The weekday-average toggle is only offered once a primary date is
        set. Neither toggle can be switched on while the other is active.
        """
        return AvailableToggles(
            benchmark_date=self._mode is not BenchmarkMode.AVERAGE,
            weekday_average=(
                self._primary_date is not None
                and self._mode is not BenchmarkMode.DATE
            ),
        )

    def set_benchmark_date_enabled(self, enabled: bool) -> bool:
        """Switch the "benchmark date" toggle.

        Args:
            enabled: Desired toggle state.

        Returns:
            True if the state changed.

        Raises:
            BenchmarkTransitionError: If enabling while the weekday average
                is active.
        """
        if enabled:
            if self._mode is BenchmarkMode.DATE:
                return False
            if not self.available_toggles().benchmark_date:
                raise BenchmarkTransitionError(
                    "Benchmark date cannot be enabled while the weekday "
                    "average is active"
                )
            self._set_mode(BenchmarkMode.DATE)
            return True

        if self._mode is not BenchmarkMode.DATE:
            return False
        self._set_mode(BenchmarkMode.NONE)
        return True

    def set_weekday_average_enabled(self, enabled: bool) -> bool:
        """Switch the "weekday average" toggle.

        Args:
            enabled: Desired toggle state.

        Returns:
            True if the state changed.

        Raises:
            BenchmarkTransitionError: If enabling without a primary date or
                while the benchmark date toggle is active.
        """
        if enabled:
            if self._mode is BenchmarkMode.AVERAGE:
                return False
            if self._primary_date is None:
                raise BenchmarkTransitionError(
                    "Weekday average requires a primary date"
                )
            if not self.available_toggles().weekday_average:
                raise BenchmarkTransitionError(
                    "Weekday average cannot be enabled while a benchmark "
                    "date is active"
                )
            self._set_mode(BenchmarkMode.AVERAGE)
            return True

        if self._mode is not BenchmarkMode.AVERAGE:
            return False
        self._set_mode(BenchmarkMode.NONE)
        return True

    def select_benchmark_date(self, value: Optional[date]) -> bool:
        """Choose the benchmark date; ignored unless the mode is ``date``.

        Returns:
            True if the benchmark date changed.
        """
        if self._mode is not BenchmarkMode.DATE:
            logger.warning(
                "Ignoring benchmark date selection in mode '%s'", self._mode.value
            )
            return False
        changed = not _dates_equal(self._benchmark_date, value)
        self._benchmark_date = value
        return changed

    def __repr__(self) -> str:
        return (
            f"BenchmarkState(primary_date={self._primary_date!r}, "
            f"mode={self._mode.value!r}, benchmark_date={self._benchmark_date!r})"
        )


def _dates_equal(left: Optional[date], right: Optional[date]) -> bool:
    if left is None or right is None:
        return left is right
    return same_day(left, right)
