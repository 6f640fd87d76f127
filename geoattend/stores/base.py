"""Storage contracts for the attendance core.

Each store is an abstract class: the policy that does not depend on the
backend (token generation and validation, input shape checks) lives here,
and a backend subclass only supplies the reads and writes. The MongoDB
backend is in ``geoattend.stores.mongo``.
"""
from __future__ import annotations

import hmac
import logging
import secrets
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Sequence

from geoattend.exceptions import InvalidInputError
from geoattend.models.attendance import AttendanceEntry, AttendanceEvidence
from geoattend.models.holiday import HolidayEntry
from geoattend.models.override import OverrideEntry
from geoattend.models.token import Token

logger = logging.getLogger(__name__)

# Uppercase letters and digits without the look-alikes 0/O and 1/I, so a
# token read aloud or typed from a screen survives.
TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


class CreateOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


def require_student_id(student_id: str) -> str:
    if not isinstance(student_id, str) or not student_id.strip():
        raise InvalidInputError("Student id is required")
    return student_id.strip()


def require_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidInputError(f"Start date {start.isoformat()} is after end date {end.isoformat()}")


def generate_token_value(length: int) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class TokenStore(ABC):
    """Single verification token slot per calendar day."""

    def __init__(self, token_length: int = 12):
        self.token_length = token_length

    @abstractmethod
    async def _put(self, token: Token) -> None:
        """Write the token into its day's slot, replacing any previous one."""

    @abstractmethod
    async def get(self, day: date) -> Optional[Token]:
        ...

    async def issue(self, day: date) -> Token:
        token = Token(
            day=day,
            value=generate_token_value(self.token_length),
            issued_at=datetime.now(timezone.utc),
        )
        await self._put(token)
        logger.info("Issued attendance token for %s", day.isoformat())
        return token

    async def validate(self, day: date, presented: Optional[str]) -> bool:
        """True only when ``presented`` equals the token issued for exactly ``day``."""
        if not presented:
            return False
        token = await self.get(day)
        if token is None or token.day != day:
            return False
        return hmac.compare_digest(token.value.encode("utf-8"), presented.encode("utf-8"))


class AttendanceLedger(ABC):
    """Verified attendance, at most one entry per (student, day).

    ``try_create`` must be a conditional create performed by the backend in a
    single operation. Both outcomes are normal results for the caller.
    """

    @abstractmethod
    async def try_create(self, student_id: str, day: date, evidence: AttendanceEvidence) -> CreateOutcome:
        ...

    @abstractmethod
    async def get(self, student_id: str, day: date) -> Optional[AttendanceEntry]:
        ...

    async def exists(self, student_id: str, day: date) -> bool:
        return await self.get(student_id, day) is not None

    @abstractmethod
    async def list_by_date_range(self, start: date, end: date) -> list[AttendanceEntry]:
        """Snapshot of all entries with ``start <= day <= end``."""

    @abstractmethod
    async def list_for_student(self, student_id: str) -> list[AttendanceEntry]:
        ...

    @abstractmethod
    async def delete(self, student_id: str, day: date) -> bool:
        """Out-of-band recovery; returns False when nothing was stored."""


class ManualOverrideStore(ABC):
    """Administrator present/absent corrections keyed by (student, day).

    Only data shape is checked here; who may write is decided by the caller.
    """

    @abstractmethod
    async def _put(self, student_id: str, day: date, present: bool, recorded_by: Optional[str]) -> OverrideEntry:
        ...

    async def set_present(self, student_id: str, day: date, recorded_by: Optional[str] = None) -> OverrideEntry:
        entry = await self._put(require_student_id(student_id), day, True, recorded_by)
        logger.info("Manual override: %s present on %s (by %s)", entry.student_id, day.isoformat(), recorded_by)
        return entry

    async def set_absent(self, student_id: str, day: date, recorded_by: Optional[str] = None) -> OverrideEntry:
        entry = await self._put(require_student_id(student_id), day, False, recorded_by)
        logger.info("Manual override: %s absent on %s (by %s)", entry.student_id, day.isoformat(), recorded_by)
        return entry

    @abstractmethod
    async def get(self, student_id: str, day: date) -> Optional[OverrideEntry]:
        ...

    @abstractmethod
    async def clear(self, student_id: str, day: date) -> bool:
        ...

    @abstractmethod
    async def list_by_date_range(self, start: date, end: date) -> list[OverrideEntry]:
        ...


class HolidayStore(ABC):
    """Explicit holiday list. Weekly off days are configuration, not stored."""

    @abstractmethod
    async def add(self, day: date, note: Optional[str] = None) -> HolidayEntry:
        """Add ``day``; adding an existing day replaces its note."""

    @abstractmethod
    async def remove(self, day: date) -> bool:
        ...

    @abstractmethod
    async def list_between(self, start: date, end: date) -> list[HolidayEntry]:
        ...

    @abstractmethod
    async def list_all(self) -> list[HolidayEntry]:
        ...


class RosterSource(ABC):
    """Ordered, read-only set of student ids (roll numbers)."""

    @abstractmethod
    async def list_students(self) -> list[str]:
        ...


class StaticRoster(RosterSource):
    def __init__(self, students: Iterable[str]):
        seen: dict[str, None] = {}
        for s in students:
            seen.setdefault(s, None)
        self._students: Sequence[str] = tuple(seen)

    async def list_students(self) -> list[str]:
        return list(self._students)
