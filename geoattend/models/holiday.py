"""Non-instructional days."""
import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field


class HolidayEntry(BaseModel):
    day: datetime.date
    note: Optional[str] = None


class Holiday(Document):
    """School holiday calendar entry; one per day."""
    day: Indexed(datetime.date, unique=True)
    note: Optional[str] = None
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))

    class Settings:
        name = "holidays"

    def to_entry(self) -> HolidayEntry:
        return HolidayEntry(day=self.day, note=self.note)


class HolidayCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    day: datetime.date
    note: Optional[str] = None
