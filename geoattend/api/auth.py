"""JWT-based stateless authentication by roll number."""
from beanie import PydanticObjectId
from fastapi import APIRouter, HTTPException
from jose import JWTError
from pydantic import BaseModel

from geoattend.api.deps import CurrentUser
from geoattend.models.user import User
from geoattend.security import create_access_token, create_refresh_token, decode_token, verify_password

router = APIRouter()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    roll_number: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


def _issue(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(str(user.id), user.role.value),
        refresh_token=create_refresh_token(str(user.id)),
    )


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest):
    # roll numbers are alphanumeric; clients may send them with spaces or dashes
    roll = "".join(ch for ch in req.roll_number.strip() if ch.isalnum())
    user = await User.find_one(User.roll_number == roll)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(req.password.strip(), user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _issue(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(req: RefreshRequest):
    try:
        payload = decode_token(req.refresh_token)
        if payload.get("type") != "refresh":
            raise HTTPException(status_code=401, detail="Invalid token type")
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid refresh token")
    except JWTError:
        raise HTTPException(status_code=401, detail="Expired or invalid refresh token")

    user = await User.get(PydanticObjectId(user_id))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return _issue(user)


@router.get("/me")
async def me(user: CurrentUser):
    return user
