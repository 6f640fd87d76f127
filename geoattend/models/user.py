"""Accounts: admins and students. A student's roll number is their attendance identity."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"


class User(Document):
    """User document; students appear on the default roster while active."""

    roll_number: Indexed(str, unique=True)
    hashed_password: str
    role: UserRole
    full_name: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "users"
        use_state_management = True


class UserCreate(BaseModel):
    roll_number: str = Field(min_length=1, pattern=r"^[A-Za-z0-9]+$")
    password: str = Field(min_length=6)
    role: UserRole = UserRole.STUDENT
    full_name: str


class UserOut(BaseModel):
    id: str
    roll_number: str
    role: UserRole
    full_name: str
    is_active: bool
    created_at: Optional[datetime] = None


class Principal(BaseModel):
    """Authenticated identity handed to route handlers."""

    id: str
    roll_number: str
    role: UserRole
    full_name: str

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=str(user.id), roll_number=user.roll_number, role=user.role, full_name=user.full_name)
