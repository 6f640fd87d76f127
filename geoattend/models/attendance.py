"""Ledger of verified attendance: at most one record per (student, day)."""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel


class AttendanceSource(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class LocationEvidence(BaseModel):
    latitude: float
    longitude: float
    accuracy_meters: float
    distance_meters: float


class AttendanceEvidence(BaseModel):
    """What the verification entry point captured from the student's device."""

    device_id: str
    location: LocationEvidence
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AttendanceEntry(BaseModel):
    student_id: str
    day: date
    device_id: str
    captured_at: datetime
    location: Optional[LocationEvidence] = None
    source: AttendanceSource = AttendanceSource.AUTO


class AttendanceRecord(Document):
    """Stored ledger entry. Created once by an insert guarded by a unique index; never updated."""

    student_id: str
    day: date
    device_id: str
    captured_at: datetime
    location: Optional[LocationEvidence] = None
    source: AttendanceSource = AttendanceSource.AUTO

    class Settings:
        name = "attendance_records"
        indexes = [
            IndexModel(
                [("student_id", ASCENDING), ("day", ASCENDING)],
                unique=True,
                name="student_day_unique",
            ),
            IndexModel([("day", ASCENDING)], name="day"),
        ]

    def to_entry(self) -> AttendanceEntry:
        return AttendanceEntry.model_validate(self, from_attributes=True)
