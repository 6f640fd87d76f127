"""Shared dependencies: JWT auth, role checks and the attendance stores."""
from datetime import date
from typing import Annotated, Optional

from beanie import PydanticObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from geoattend.config import settings
from geoattend.geo import Anchor
from geoattend.models.user import Principal, User, UserRole
from geoattend.security import decode_token
from geoattend.services.aggregator import AttendanceAggregator
from geoattend.services.calendar import local_today
from geoattend.services.verification import AttendanceVerifier
from geoattend.stores.base import (
    AttendanceLedger,
    HolidayStore,
    ManualOverrideStore,
    RosterSource,
    StaticRoster,
    TokenStore,
)
from geoattend.stores.mongo import (
    MongoAttendanceLedger,
    MongoHolidayStore,
    MongoManualOverrideStore,
    MongoRoster,
    MongoTokenStore,
)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Principal:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_token(credentials.credentials)
        user_id: str = payload.get("sub")
        if not user_id or payload.get("type") != "access":
            raise HTTPException(status_code=401, detail="Invalid token")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        oid = PydanticObjectId(user_id)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await User.get(oid)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return Principal.from_user(user)


def require_roles(*allowed: UserRole):
    async def checker(user: Annotated[Principal, Depends(get_current_user)]):
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return checker


# Stores; overridden in tests
def get_token_store() -> TokenStore:
    return MongoTokenStore(token_length=settings.token_length)


def get_ledger() -> AttendanceLedger:
    return MongoAttendanceLedger()


def get_override_store() -> ManualOverrideStore:
    return MongoManualOverrideStore()


def get_holiday_store() -> HolidayStore:
    return MongoHolidayStore()


def get_roster() -> RosterSource:
    configured = settings.roster_list()
    if configured:
        return StaticRoster(configured)
    return MongoRoster()


def get_today() -> date:
    return local_today(settings.timezone)


def get_anchor() -> Anchor:
    return Anchor(
        latitude=settings.anchor_latitude,
        longitude=settings.anchor_longitude,
        radius_meters=settings.anchor_radius_meters,
    )


def get_verifier(
    tokens: Annotated[TokenStore, Depends(get_token_store)],
    ledger: Annotated[AttendanceLedger, Depends(get_ledger)],
    anchor: Annotated[Anchor, Depends(get_anchor)],
    today: Annotated[date, Depends(get_today)],
) -> AttendanceVerifier:
    return AttendanceVerifier(
        tokens=tokens,
        ledger=ledger,
        anchor=anchor,
        today=lambda: today,
        enforce_current_day=settings.enforce_current_day,
    )


def get_aggregator(
    ledger: Annotated[AttendanceLedger, Depends(get_ledger)],
    overrides: Annotated[ManualOverrideStore, Depends(get_override_store)],
    holidays: Annotated[HolidayStore, Depends(get_holiday_store)],
) -> AttendanceAggregator:
    return AttendanceAggregator(ledger, overrides, holidays, settings.weekly_off_days)


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format (YYYY-MM-DD)")


# Type aliases for route injection
CurrentUser = Annotated[Principal, Depends(get_current_user)]
AdminOnly = Annotated[Principal, Depends(require_roles(UserRole.ADMIN))]
StudentOnly = Annotated[Principal, Depends(require_roles(UserRole.STUDENT))]
Tokens = Annotated[TokenStore, Depends(get_token_store)]
Ledger = Annotated[AttendanceLedger, Depends(get_ledger)]
Overrides = Annotated[ManualOverrideStore, Depends(get_override_store)]
Holidays = Annotated[HolidayStore, Depends(get_holiday_store)]
Roster = Annotated[RosterSource, Depends(get_roster)]
Today = Annotated[date, Depends(get_today)]
Verifier = Annotated[AttendanceVerifier, Depends(get_verifier)]
Aggregator = Annotated[AttendanceAggregator, Depends(get_aggregator)]
