"""Account management (admin-only). Active student accounts form the default roster."""
from datetime import datetime, timezone

from beanie import PydanticObjectId
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from geoattend.api.deps import AdminOnly
from geoattend.models.user import User, UserCreate, UserOut
from geoattend.security import get_password_hash

router = APIRouter()


class PasswordUpdate(BaseModel):
    password: str = Field(min_length=6)


class ActiveUpdate(BaseModel):
    is_active: bool


def _out(u: User) -> UserOut:
    return UserOut(
        id=str(u.id),
        roll_number=u.roll_number,
        role=u.role,
        full_name=u.full_name,
        is_active=u.is_active,
        created_at=u.created_at,
    )


async def _get_or_404(user_id: str) -> User:
    try:
        oid = PydanticObjectId(user_id)
    except Exception:
        raise HTTPException(status_code=404, detail="User not found")
    u = await User.get(oid)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


@router.get("/", response_model=list[UserOut])
async def list_users(admin: AdminOnly):
    users = await User.find_all().sort("roll_number").to_list()
    return [_out(u) for u in users]


@router.post("/", status_code=201, response_model=UserOut)
async def create_user(data: UserCreate, admin: AdminOnly):
    existing = await User.find_one(User.roll_number == data.roll_number)
    if existing:
        raise HTTPException(status_code=400, detail="Roll number already registered")
    u = User(
        roll_number=data.roll_number,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        full_name=data.full_name,
    )
    await u.insert()
    return _out(u)


@router.post("/{user_id}/set-password")
async def set_user_password(user_id: str, data: PasswordUpdate, admin: AdminOnly):
    """Set or reset a user's password (admin-only)."""
    u = await _get_or_404(user_id)
    u.hashed_password = get_password_hash(data.password)
    u.updated_at = datetime.now(timezone.utc)
    await u.save()
    return {"id": str(u.id)}


@router.patch("/{user_id}", response_model=UserOut)
async def set_user_active(user_id: str, data: ActiveUpdate, admin: AdminOnly):
    """Activate or deactivate an account; inactive students drop off the roster."""
    u = await _get_or_404(user_id)
    u.is_active = data.is_active
    u.updated_at = datetime.now(timezone.utc)
    await u.save()
    return _out(u)
