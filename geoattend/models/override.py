"""Administrator corrections that take precedence over the ledger in reports."""
from datetime import date, datetime, timezone
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

from geoattend.models.attendance import AttendanceSource


class OverrideEntry(BaseModel):
    student_id: str
    day: date
    present: bool
    source: AttendanceSource = AttendanceSource.MANUAL
    recorded_at: datetime
    recorded_by: Optional[str] = None


class ManualOverride(Document):
    student_id: str
    day: date
    present: bool
    source: AttendanceSource = AttendanceSource.MANUAL
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    recorded_by: Optional[str] = None  # admin roll number

    class Settings:
        name = "manual_overrides"
        indexes = [
            IndexModel(
                [("student_id", ASCENDING), ("day", ASCENDING)],
                unique=True,
                name="student_day_unique",
            ),
        ]

    def to_entry(self) -> OverrideEntry:
        return OverrideEntry.model_validate(self, from_attributes=True)


class OverrideRequest(BaseModel):
    student_id: str = Field(min_length=1)
    day: date
    present: bool
