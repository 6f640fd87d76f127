"""Manual present/absent corrections (admin-only)."""
from typing import List

from fastapi import APIRouter, HTTPException

from geoattend.api.deps import AdminOnly, Overrides, parse_day
from geoattend.models.override import OverrideEntry, OverrideRequest

router = APIRouter()


@router.get("/", response_model=List[OverrideEntry])
async def list_overrides(from_date: str, to_date: str, admin: AdminOnly, overrides: Overrides):
    return await overrides.list_by_date_range(parse_day(from_date), parse_day(to_date))


@router.put("/", response_model=OverrideEntry)
async def set_override(data: OverrideRequest, admin: AdminOnly, overrides: Overrides):
    if data.present:
        return await overrides.set_present(data.student_id, data.day, recorded_by=admin.roll_number)
    return await overrides.set_absent(data.student_id, data.day, recorded_by=admin.roll_number)


@router.delete("/{student_id}/{date_str}", status_code=204)
async def clear_override(student_id: str, date_str: str, admin: AdminOnly, overrides: Overrides):
    """Remove an override so the ledger alone decides that day again."""
    if not await overrides.clear(student_id, parse_day(date_str)):
        raise HTTPException(status_code=404, detail="Override not found")
    return None
