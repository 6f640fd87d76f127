from __future__ import annotations

import asyncio
import os
from datetime import date, datetime, timezone
from typing import Optional

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest

from geoattend.geo import Anchor
from geoattend.models.attendance import AttendanceEntry, AttendanceEvidence, AttendanceSource
from geoattend.models.holiday import HolidayEntry
from geoattend.models.override import OverrideEntry
from geoattend.models.token import Token
from geoattend.models.user import Principal, UserRole
from geoattend.services.verification import AttendanceVerifier
from geoattend.stores.base import (
    AttendanceLedger,
    CreateOutcome,
    HolidayStore,
    ManualOverrideStore,
    TokenStore,
    require_range,
    require_student_id,
)

ANCHOR_LAT = 34.0803
ANCHOR_LON = 74.7777
TODAY = date(2024, 3, 1)  # a Friday
ROSTER = ["2401301", "2401302", "2401303"]


class InMemoryTokens(TokenStore):
    def __init__(self, token_length: int = 12):
        super().__init__(token_length)
        self.by_day: dict[date, Token] = {}

    async def _put(self, token: Token) -> None:
        self.by_day[token.day] = token

    async def get(self, day: date) -> Optional[Token]:
        return self.by_day.get(day)

    def seed(self, day: date, value: str) -> Token:
        token = Token(day=day, value=value, issued_at=datetime(2024, 1, 1))
        self.by_day[day] = token
        return token


class InMemoryLedger(AttendanceLedger):
    """Create-if-absent over a dict.

    ``try_create`` yields to the event loop before writing, so concurrent
    callers for one key all get past any earlier read before the first write
    lands. The check and the write below then run without a suspension point
    in between, which is what makes the create conditional.
    """

    def __init__(self):
        self.records: dict[tuple[str, date], AttendanceEntry] = {}

    async def try_create(self, student_id: str, day: date, evidence: AttendanceEvidence) -> CreateOutcome:
        await asyncio.sleep(0)
        key = (require_student_id(student_id), day)
        if key in self.records:
            return CreateOutcome.ALREADY_EXISTS
        self.records[key] = AttendanceEntry(
            student_id=key[0],
            day=day,
            device_id=evidence.device_id,
            captured_at=evidence.captured_at,
            location=evidence.location,
        )
        return CreateOutcome.CREATED

    async def get(self, student_id: str, day: date) -> Optional[AttendanceEntry]:
        return self.records.get((student_id, day))

    async def list_by_date_range(self, start: date, end: date) -> list[AttendanceEntry]:
        require_range(start, end)
        return sorted(
            (r for r in self.records.values() if start <= r.day <= end),
            key=lambda r: (r.day, r.student_id),
        )

    async def list_for_student(self, student_id: str) -> list[AttendanceEntry]:
        return sorted((r for r in self.records.values() if r.student_id == student_id), key=lambda r: r.day, reverse=True)

    async def delete(self, student_id: str, day: date) -> bool:
        return self.records.pop((student_id, day), None) is not None

    def seed(self, student_id: str, day: date) -> AttendanceEntry:
        entry = AttendanceEntry(
            student_id=student_id,
            day=day,
            device_id="device-seed",
            captured_at=datetime.combine(day, datetime.min.time()),
            source=AttendanceSource.AUTO,
        )
        self.records[(student_id, day)] = entry
        return entry


class InMemoryOverrides(ManualOverrideStore):
    def __init__(self):
        self.entries: dict[tuple[str, date], OverrideEntry] = {}

    async def _put(self, student_id: str, day: date, present: bool, recorded_by: Optional[str]) -> OverrideEntry:
        entry = OverrideEntry(
            student_id=student_id, day=day, present=present, recorded_at=datetime.now(timezone.utc), recorded_by=recorded_by
        )
        self.entries[(student_id, day)] = entry
        return entry

    async def get(self, student_id: str, day: date) -> Optional[OverrideEntry]:
        return self.entries.get((student_id, day))

    async def clear(self, student_id: str, day: date) -> bool:
        return self.entries.pop((student_id, day), None) is not None

    async def list_by_date_range(self, start: date, end: date) -> list[OverrideEntry]:
        require_range(start, end)
        return [e for e in self.entries.values() if start <= e.day <= end]


class InMemoryHolidays(HolidayStore):
    def __init__(self):
        self.entries: dict[date, HolidayEntry] = {}

    async def add(self, day: date, note: Optional[str] = None) -> HolidayEntry:
        entry = HolidayEntry(day=day, note=note)
        self.entries[day] = entry
        return entry

    async def remove(self, day: date) -> bool:
        return self.entries.pop(day, None) is not None

    async def list_between(self, start: date, end: date) -> list[HolidayEntry]:
        require_range(start, end)
        return sorted((h for h in self.entries.values() if start <= h.day <= end), key=lambda h: h.day)

    async def list_all(self) -> list[HolidayEntry]:
        return sorted(self.entries.values(), key=lambda h: h.day)


@pytest.fixture
def tokens():
    return InMemoryTokens()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def overrides():
    return InMemoryOverrides()


@pytest.fixture
def holidays():
    return InMemoryHolidays()


@pytest.fixture
def anchor():
    return Anchor(latitude=ANCHOR_LAT, longitude=ANCHOR_LON, radius_meters=200.0)


@pytest.fixture
def verifier(tokens, ledger, anchor):
    return AttendanceVerifier(tokens=tokens, ledger=ledger, anchor=anchor, today=lambda: TODAY)


@pytest.fixture
def admin():
    return Principal(id="a1", roll_number="admin", role=UserRole.ADMIN, full_name="Admin")


@pytest.fixture
def student():
    return Principal(id="s1", roll_number=ROSTER[0], role=UserRole.STUDENT, full_name="Student One")
