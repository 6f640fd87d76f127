"""Per-day verification token shown to students as a QR code."""
from datetime import date, datetime, timezone

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class Token(BaseModel):
    day: date
    value: str
    issued_at: datetime


class AttendanceToken(Document):
    """One token slot per calendar day; re-issuing overwrites the slot."""

    day: Indexed(date, unique=True)
    value: str
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "attendance_tokens"

    def to_token(self) -> Token:
        return Token(day=self.day, value=self.value, issued_at=self.issued_at)


class TokenOut(BaseModel):
    day: date
    token: str
    issued_at: datetime
    mark_url: str
