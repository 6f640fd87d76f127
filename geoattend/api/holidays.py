from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
import logging

from geoattend.api.deps import AdminOnly, CurrentUser, Holidays, parse_day
from geoattend.models.holiday import HolidayCreate, HolidayEntry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[HolidayEntry])
async def list_holidays(
    user: CurrentUser,
    holidays: Holidays,
    from_date: Optional[str] = Query(None),
    to_date: Optional[str] = Query(None),
):
    """List holidays, optionally limited to a date range."""
    if from_date and to_date:
        return await holidays.list_between(parse_day(from_date), parse_day(to_date))
    if from_date or to_date:
        raise HTTPException(status_code=400, detail="Provide both from_date and to_date, or neither")
    return await holidays.list_all()


@router.post("/", response_model=HolidayEntry, status_code=201)
async def create_holiday(data: HolidayCreate, admin: AdminOnly, holidays: Holidays):
    """Add a holiday; adding an existing day replaces its note."""
    entry = await holidays.add(data.day, data.note)
    logger.info("Holiday %s added by %s", data.day.isoformat(), admin.roll_number)
    return entry


@router.delete("/{date_str}", status_code=204)
async def delete_holiday(date_str: str, admin: AdminOnly, holidays: Holidays):
    day = parse_day(date_str)
    if not await holidays.remove(day):
        raise HTTPException(status_code=404, detail="Holiday not found")
    logger.info("Holiday %s removed by %s", day.isoformat(), admin.roll_number)
    return None
