# src/lockin/study/aggregator.py

"""
Study-time analytics.

Pure functions over a snapshot of sessions. A session belongs to the calendar
day of its start, as seen in the given timezone (local time when tz is None);
it is never split across midnight or month boundaries.

Averages divide by every day of the period, including days without any
recorded work, so "average daily" means "per calendar day", not "per active
day".
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import datetime, tzinfo

from ..core.ports import SessionSource
from ..storage.models import Session


def _local(ts: datetime, tz: tzinfo | None) -> datetime:
    return ts.astimezone(tz) if tz is not None else ts.astimezone()


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be 1..12, got {month}.")


def days_in_month(year: int, month: int) -> int:
    _check_month(month)
    return calendar.monthrange(year, month)[1]


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def daily_totals_for_month(
    sessions: Iterable[Session], year: int, month: int, *, tz: tzinfo | None = None
) -> dict[int, int]:
    """Seconds per day-of-month; days without sessions are absent."""
    _check_month(month)
    totals: dict[int, int] = {}
    for s in sessions:
        d = _local(s.start, tz)
        if d.year == year and d.month == month:
            totals[d.day] = totals.get(d.day, 0) + s.duration_sec
    return totals


def average_daily_for_month(
    sessions: Iterable[Session], year: int, month: int, *, tz: tzinfo | None = None
) -> float:
    totals = daily_totals_for_month(sessions, year, month, tz=tz)
    return sum(totals.values()) / days_in_month(year, month)


def monthly_totals_for_year(sessions: Iterable[Session], year: int, *, tz: tzinfo | None = None) -> dict[int, int]:
    """Seconds per month (1..12); months without sessions are absent."""
    totals: dict[int, int] = {}
    for s in sessions:
        d = _local(s.start, tz)
        if d.year == year:
            totals[d.month] = totals.get(d.month, 0) + s.duration_sec
    return totals


def average_daily_for_year(sessions: Iterable[Session], year: int, *, tz: tzinfo | None = None) -> float:
    totals = monthly_totals_for_year(sessions, year, tz=tz)
    return sum(totals.values()) / days_in_year(year)


# ---- display helpers ----


def format_clock(seconds: float) -> str:
    """Countdown display, MM:SS (minutes keep growing past 59)."""
    sec = max(0, int(seconds))
    return f"{sec // 60:02d}:{sec % 60:02d}"


def format_hm(seconds: float) -> str:
    sec = max(0, int(seconds))
    return f"{sec // 3600}h {(sec % 3600) // 60}m"


def format_hours(seconds: float) -> str:
    return f"{seconds / 3600:.2f}"


class Aggregator:
    """
    Aggregates bound to a session source and a timezone.

    Every call reads a fresh snapshot; nothing is cached.
    """

    def __init__(self, sessions: SessionSource, *, tz: tzinfo | None = None) -> None:
        self._sessions = sessions
        self._tz = tz

    @property
    def tz(self) -> tzinfo | None:
        return self._tz

    def _snapshot(self) -> list[Session]:
        return list(self._sessions.get_sessions())

    def daily_totals_for_month(self, year: int, month: int) -> dict[int, int]:
        return daily_totals_for_month(self._snapshot(), year, month, tz=self._tz)

    def average_daily_for_month(self, year: int, month: int) -> float:
        return average_daily_for_month(self._snapshot(), year, month, tz=self._tz)

    def monthly_totals_for_year(self, year: int) -> dict[int, int]:
        return monthly_totals_for_year(self._snapshot(), year, tz=self._tz)

    def average_daily_for_year(self, year: int) -> float:
        return average_daily_for_year(self._snapshot(), year, tz=self._tz)

    def total_for_month(self, year: int, month: int) -> int:
        return sum(self.daily_totals_for_month(year, month).values())

    def daily_series_for_month(self, year: int, month: int) -> list[tuple[int, int]]:
        """Every day of the month with its total, zeros included."""
        totals = self.daily_totals_for_month(year, month)
        return [(day, totals.get(day, 0)) for day in range(1, days_in_month(year, month) + 1)]

    def monthly_series_for_year(self, year: int) -> list[tuple[int, int]]:
        totals = self.monthly_totals_for_year(year)
        return [(m, totals.get(m, 0)) for m in range(1, 13)]
