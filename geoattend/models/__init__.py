"""Beanie document models and Pydantic schemas."""
from geoattend.models.user import Principal, User, UserRole, UserCreate, UserOut
from geoattend.models.token import AttendanceToken, Token, TokenOut
from geoattend.models.attendance import (
    AttendanceEntry,
    AttendanceEvidence,
    AttendanceRecord,
    AttendanceSource,
    LocationEvidence,
)
from geoattend.models.override import ManualOverride, OverrideEntry, OverrideRequest
from geoattend.models.holiday import Holiday, HolidayCreate, HolidayEntry

__all__ = [
    "User",
    "UserRole",
    "UserCreate",
    "UserOut",
    "Principal",
    "AttendanceToken",
    "Token",
    "TokenOut",
    "AttendanceEntry",
    "AttendanceEvidence",
    "AttendanceRecord",
    "AttendanceSource",
    "LocationEvidence",
    "ManualOverride",
    "OverrideEntry",
    "OverrideRequest",
    "Holiday",
    "HolidayCreate",
    "HolidayEntry",
]
