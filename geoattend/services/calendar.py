"""Instructional-day calendar: weekly off days plus explicit holidays."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Iterator
from zoneinfo import ZoneInfo

from geoattend.stores.base import HolidayStore, require_range

SUNDAY = 6


def local_today(tz_name: str) -> date:
    """Calendar date right now in the institution's timezone."""
    return datetime.now(ZoneInfo(tz_name)).date()


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


class HolidayCalendar:
    """Decides which days count towards attendance totals.

    A day is instructional when its weekday is not a weekly off day and it is
    not in the holiday set. The two rules are evaluated as one predicate, so a
    holiday that falls on an off day is excluded once, not twice.
    """

    def __init__(self, holidays: Iterable[date] = (), weekly_off_days: Iterable[int] = (SUNDAY,)):
        self.holidays = frozenset(holidays)
        self.weekly_off_days = frozenset(weekly_off_days)

    def is_instructional_day(self, day: date) -> bool:
        return day.weekday() not in self.weekly_off_days and day not in self.holidays

    def instructional_days(self, start: date, end: date) -> list[date]:
        require_range(start, end)
        return [d for d in iter_days(start, end) if self.is_instructional_day(d)]

    @classmethod
    async def load(cls, store: HolidayStore, start: date, end: date, weekly_off_days: Iterable[int] = (SUNDAY,)) -> "HolidayCalendar":
        """Snapshot of the holidays between ``start`` and ``end``."""
        holidays = await store.list_between(start, end)
        return cls((h.day for h in holidays), weekly_off_days)
