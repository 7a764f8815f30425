# src/weekly_planner/core/clock.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta


def weekday_of(day: date) -> int:
    """Weekday number with 0 = Sunday ... 6 = Saturday."""
    # date.weekday() is Monday-based (Monday = 0).
    return (day.weekday() + 1) % 7


class SystemClock:
    """Wall-clock calendar date of the local machine."""

    def today(self) -> date:
        return date.today()

    def weekday_of(self, day: date) -> int:
        return weekday_of(day)


@dataclass(slots=True)
class FixedClock:
    """Clock pinned to a given day (tests, demos, backfills)."""

    day: date

    def today(self) -> date:
        return self.day

    def weekday_of(self, day: date) -> int:
        return weekday_of(day)

    def advance(self, days: int = 1) -> date:
        self.day = self.day + timedelta(days=days)
        return self.day
