"""Persistence for tokens, the attendance ledger, manual overrides, holidays and the roster."""
from geoattend.stores.base import (
    AttendanceLedger,
    CreateOutcome,
    HolidayStore,
    ManualOverrideStore,
    RosterSource,
    StaticRoster,
    TokenStore,
)

__all__ = [
    "AttendanceLedger",
    "CreateOutcome",
    "HolidayStore",
    "ManualOverrideStore",
    "RosterSource",
    "StaticRoster",
    "TokenStore",
]
