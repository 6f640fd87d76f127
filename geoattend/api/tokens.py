"""Per-day attendance token issuance and lookup (admin-only)."""
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException

from geoattend.api.deps import AdminOnly, Today, Tokens, parse_day
from geoattend.config import settings
from geoattend.models.token import Token, TokenOut

router = APIRouter()


def _out(token: Token) -> TokenOut:
    query = urlencode({"date": token.day.isoformat(), "token": token.value})
    return TokenOut(
        day=token.day,
        token=token.value,
        issued_at=token.issued_at,
        mark_url=f"{settings.public_base_url.rstrip('/')}/attendance/mark?{query}",
    )


@router.get("/today", response_model=TokenOut)
async def get_today_token(admin: AdminOnly, tokens: Tokens, today: Today):
    token = await tokens.get(today)
    if not token:
        raise HTTPException(status_code=404, detail="No token generated for today")
    return _out(token)


@router.get("/{date_str}", response_model=TokenOut)
async def get_token(date_str: str, admin: AdminOnly, tokens: Tokens):
    token = await tokens.get(parse_day(date_str))
    if not token:
        raise HTTPException(status_code=404, detail="No token generated for this date")
    return _out(token)


@router.post("/{date_str}", response_model=TokenOut, status_code=201)
async def issue_token(date_str: str, admin: AdminOnly, tokens: Tokens):
    """Generate (or regenerate) the token for a day. Records already marked are unaffected."""
    token = await tokens.issue(parse_day(date_str))
    return _out(token)
