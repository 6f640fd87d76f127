"""Attendance statistics over a date range.

The ledger and the manual overrides are merged with one rule, applied in
two passes so the result does not depend on the order records are read in:

1. every ledger entry on an instructional day marks (student, day) present;
2. every override on an instructional day then sets that pair: present adds
   it (a no-op when the ledger already counted it), absent removes it
   whichever source contributed it.

Only one override can exist per (student, day), so pass 2 is itself
order-independent.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel

from geoattend.models.attendance import AttendanceEntry, AttendanceSource
from geoattend.models.override import OverrideEntry
from geoattend.services.calendar import HolidayCalendar
from geoattend.stores.base import AttendanceLedger, HolidayStore, ManualOverrideStore, require_range


class StudentStats(BaseModel):
    present: int
    total: int
    percentage: int


class AttendanceStats(BaseModel):
    start: date
    end: date
    instructional_days: list[date]
    per_student: dict[str, StudentStats]
    cohort_present: int
    cohort_total: int
    percentage: int


class RegisterRow(BaseModel):
    student_id: str
    day: date
    present: bool
    source: Optional[AttendanceSource] = None


def percent(part: int, whole: int) -> int:
    """Whole percent, halves rounded up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


@dataclass
class _Merged:
    roster: list[str]
    # (student_id, day) -> source that made the day count as present
    presence: dict[tuple[str, date], AttendanceSource]


def _merge(
    roster: Sequence[str],
    days: list[date],
    records: Iterable[AttendanceEntry],
    overrides: Iterable[OverrideEntry],
) -> _Merged:
    members = list(dict.fromkeys(roster))
    member_set = set(members)
    day_set = set(days)
    presence: dict[tuple[str, date], AttendanceSource] = {}

    for rec in records:
        if rec.student_id in member_set and rec.day in day_set:
            presence[(rec.student_id, rec.day)] = rec.source

    for ov in overrides:
        if ov.student_id not in member_set or ov.day not in day_set:
            continue
        key = (ov.student_id, ov.day)
        if ov.present:
            presence.setdefault(key, AttendanceSource.MANUAL)
        else:
            presence.pop(key, None)

    return _Merged(roster=members, presence=presence)


def compute_stats(
    roster: Sequence[str],
    start: date,
    end: date,
    calendar: HolidayCalendar,
    records: Iterable[AttendanceEntry],
    overrides: Iterable[OverrideEntry],
) -> AttendanceStats:
    days = calendar.instructional_days(start, end)
    merged = _merge(roster, days, records, overrides)

    total = len(days)
    counts = {s: 0 for s in merged.roster}
    for student_id, _ in merged.presence:
        counts[student_id] += 1

    per_student = {
        s: StudentStats(present=n, total=total, percentage=percent(n, total))
        for s, n in counts.items()
    }
    cohort_present = sum(counts.values())
    cohort_total = total * len(merged.roster)
    return AttendanceStats(
        start=start,
        end=end,
        instructional_days=days,
        per_student=per_student,
        cohort_present=cohort_present,
        cohort_total=cohort_total,
        percentage=percent(cohort_present, cohort_total),
    )


def build_register(
    roster: Sequence[str],
    start: date,
    end: date,
    calendar: HolidayCalendar,
    records: Iterable[AttendanceEntry],
    overrides: Iterable[OverrideEntry],
) -> list[RegisterRow]:
    """One row per roster member per instructional day, student-major."""
    days = calendar.instructional_days(start, end)
    merged = _merge(roster, days, records, overrides)
    rows = []
    for student_id in merged.roster:
        for day in days:
            source = merged.presence.get((student_id, day))
            rows.append(RegisterRow(student_id=student_id, day=day, present=source is not None, source=source))
    return rows


class AttendanceAggregator:
    """Loads a snapshot from the stores and runs the merge over it."""

    def __init__(
        self,
        ledger: AttendanceLedger,
        overrides: ManualOverrideStore,
        holidays: HolidayStore,
        weekly_off_days: Iterable[int],
    ):
        self.ledger = ledger
        self.overrides = overrides
        self.holidays = holidays
        self.weekly_off_days = tuple(weekly_off_days)

    async def _snapshot(self, start: date, end: date):
        require_range(start, end)
        calendar = await HolidayCalendar.load(self.holidays, start, end, self.weekly_off_days)
        records = await self.ledger.list_by_date_range(start, end)
        overrides = await self.overrides.list_by_date_range(start, end)
        return calendar, records, overrides

    async def compute_stats(
        self, roster: Sequence[str], start: date, end: date, student_id: Optional[str] = None
    ) -> AttendanceStats:
        if student_id is not None:
            roster = [s for s in roster if s == student_id]
        calendar, records, overrides = await self._snapshot(start, end)
        return compute_stats(roster, start, end, calendar, records, overrides)

    async def build_register(
        self, roster: Sequence[str], start: date, end: date, student_id: Optional[str] = None
    ) -> list[RegisterRow]:
        if student_id is not None:
            roster = [s for s in roster if s == student_id]
        calendar, records, overrides = await self._snapshot(start, end)
        return build_register(roster, start, end, calendar, records, overrides)
