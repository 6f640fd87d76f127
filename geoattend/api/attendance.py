from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from geoattend.api.deps import AdminOnly, Aggregator, Ledger, Roster, StudentOnly, Verifier, parse_day
from geoattend.models.attendance import AttendanceEntry
from geoattend.services.aggregator import AttendanceStats, RegisterRow
from geoattend.services.report import CSV_MEDIA_TYPE, EXCEL_MEDIA_TYPE, register_frame, to_csv, to_excel
from geoattend.services.verification import VerificationRequest, VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)

router = APIRouter()


class VerifyRequest(BaseModel):
    """Body posted by the student app after scanning the day's QR code."""

    day: date
    token: str = Field(min_length=1)
    device_id: str = Field(min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy_meters: Optional[float] = None


@router.post("/verify", response_model=VerificationResult)
async def verify_attendance(data: VerifyRequest, user: StudentOnly, verifier: Verifier):
    """Mark the signed-in student present for ``day``.

    Every policy outcome is a normal response; ``marked`` is answered with 201.
    """
    result = await verifier.verify(
        VerificationRequest(student_id=user.roll_number, **data.model_dump())
    )
    if result.status is VerificationStatus.MARKED:
        return JSONResponse(status_code=201, content=result.model_dump(mode="json"))
    return result


@router.get("/me", response_model=List[AttendanceEntry])
async def my_attendance(user: StudentOnly, ledger: Ledger):
    return await ledger.list_for_student(user.roll_number)


async def _roster_for(roster: Roster, student_id: Optional[str]) -> list[str]:
    students = await roster.list_students()
    if student_id is not None and student_id not in students:
        raise HTTPException(status_code=404, detail="Student not on roster")
    return students


@router.get("/stats", response_model=AttendanceStats)
async def attendance_stats(
    from_date: str,
    to_date: str,
    admin: AdminOnly,
    roster: Roster,
    aggregator: Aggregator,
    student_id: Optional[str] = Query(None),
):
    """Presence counts per student and for the cohort over instructional days."""
    d_from, d_to = parse_day(from_date), parse_day(to_date)
    students = await _roster_for(roster, student_id)
    return await aggregator.compute_stats(students, d_from, d_to, student_id=student_id)


@router.get("/register", response_model=List[RegisterRow])
async def attendance_register(
    from_date: str,
    to_date: str,
    admin: AdminOnly,
    roster: Roster,
    aggregator: Aggregator,
    student_id: Optional[str] = Query(None),
):
    """Flattened student x instructional-day table."""
    d_from, d_to = parse_day(from_date), parse_day(to_date)
    students = await _roster_for(roster, student_id)
    return await aggregator.build_register(students, d_from, d_to, student_id=student_id)


@router.get("/report")
async def download_attendance_report(
    from_date: str,
    to_date: str,
    admin: AdminOnly,
    roster: Roster,
    aggregator: Aggregator,
    student_id: Optional[str] = Query(None),
    format: str = Query("csv", enum=["csv", "excel"]),
):
    """Download the register for a date range as CSV or Excel."""
    d_from, d_to = parse_day(from_date), parse_day(to_date)
    students = await _roster_for(roster, student_id)
    rows = await aggregator.build_register(students, d_from, d_to, student_id=student_id)
    if student_id is not None:
        students = [student_id]
    df = register_frame(students, rows)
    filename = f"attendance_{from_date}_to_{to_date}"

    if format == "csv":
        return StreamingResponse(
            iter([to_csv(df)]),
            media_type=CSV_MEDIA_TYPE,
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
        )
    return StreamingResponse(
        to_excel(df),
        media_type=EXCEL_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
    )


@router.delete("/records/{student_id}/{date_str}", status_code=204)
async def delete_attendance_record(student_id: str, date_str: str, admin: AdminOnly, ledger: Ledger):
    """Out-of-band recovery: remove a ledger record so the student can mark again."""
    day = parse_day(date_str)
    if not await ledger.delete(student_id, day):
        raise HTTPException(status_code=404, detail="Attendance record not found")
    logger.warning("Attendance record %s/%s deleted by %s", student_id, day.isoformat(), admin.roll_number)
    return None
