"""MongoDB (Beanie) implementations of the attendance stores."""
from datetime import date, datetime, timezone
from typing import Optional

from beanie.operators import Set
from pymongo.errors import DuplicateKeyError, PyMongoError

from geoattend.exceptions import StoreUnavailableError
from geoattend.models.attendance import AttendanceEntry, AttendanceEvidence, AttendanceRecord
from geoattend.models.holiday import Holiday, HolidayEntry
from geoattend.models.override import ManualOverride, OverrideEntry
from geoattend.models.token import AttendanceToken, Token
from geoattend.models.user import User, UserRole
from geoattend.stores.base import (
    AttendanceLedger,
    CreateOutcome,
    HolidayStore,
    ManualOverrideStore,
    RosterSource,
    TokenStore,
    require_range,
    require_student_id,
)


class MongoTokenStore(TokenStore):
    async def _put(self, token: Token) -> None:
        await AttendanceToken.find_one(AttendanceToken.day == token.day).upsert(
            Set({AttendanceToken.value: token.value, AttendanceToken.issued_at: token.issued_at}),
            on_insert=AttendanceToken(day=token.day, value=token.value, issued_at=token.issued_at),
        )

    async def get(self, day: date) -> Optional[Token]:
        doc = await AttendanceToken.find_one(AttendanceToken.day == day)
        return doc.to_token() if doc else None


class MongoAttendanceLedger(AttendanceLedger):
    async def try_create(self, student_id: str, day: date, evidence: AttendanceEvidence) -> CreateOutcome:
        record = AttendanceRecord(
            student_id=require_student_id(student_id),
            day=day,
            device_id=evidence.device_id,
            captured_at=evidence.captured_at,
            location=evidence.location,
        )
        try:
            # the (student_id, day) unique index makes the insert the conditional write
            await record.insert()
        except DuplicateKeyError:
            return CreateOutcome.ALREADY_EXISTS
        except PyMongoError as e:
            raise StoreUnavailableError(f"Could not record attendance for {student_id} on {day.isoformat()}") from e
        return CreateOutcome.CREATED

    async def get(self, student_id: str, day: date) -> Optional[AttendanceEntry]:
        doc = await AttendanceRecord.find_one(
            AttendanceRecord.student_id == student_id, AttendanceRecord.day == day
        )
        return doc.to_entry() if doc else None

    async def exists(self, student_id: str, day: date) -> bool:
        count = await AttendanceRecord.find(
            AttendanceRecord.student_id == student_id, AttendanceRecord.day == day
        ).count()
        return count > 0

    async def list_by_date_range(self, start: date, end: date) -> list[AttendanceEntry]:
        require_range(start, end)
        docs = (
            await AttendanceRecord.find(AttendanceRecord.day >= start, AttendanceRecord.day <= end)
            .sort("+day", "+student_id")
            .to_list()
        )
        return [d.to_entry() for d in docs]

    async def list_for_student(self, student_id: str) -> list[AttendanceEntry]:
        docs = await AttendanceRecord.find(AttendanceRecord.student_id == student_id).sort("-day").to_list()
        return [d.to_entry() for d in docs]

    async def delete(self, student_id: str, day: date) -> bool:
        doc = await AttendanceRecord.find_one(
            AttendanceRecord.student_id == student_id, AttendanceRecord.day == day
        )
        if not doc:
            return False
        await doc.delete()
        return True


class MongoManualOverrideStore(ManualOverrideStore):
    async def _put(self, student_id: str, day: date, present: bool, recorded_by: Optional[str]) -> OverrideEntry:
        now = datetime.now(timezone.utc)
        await ManualOverride.find_one(
            ManualOverride.student_id == student_id, ManualOverride.day == day
        ).upsert(
            Set({
                ManualOverride.present: present,
                ManualOverride.recorded_at: now,
                ManualOverride.recorded_by: recorded_by,
            }),
            on_insert=ManualOverride(
                student_id=student_id,
                day=day,
                present=present,
                recorded_at=now,
                recorded_by=recorded_by,
            ),
        )
        return OverrideEntry(
            student_id=student_id, day=day, present=present, recorded_at=now, recorded_by=recorded_by
        )

    async def get(self, student_id: str, day: date) -> Optional[OverrideEntry]:
        doc = await ManualOverride.find_one(ManualOverride.student_id == student_id, ManualOverride.day == day)
        return doc.to_entry() if doc else None

    async def clear(self, student_id: str, day: date) -> bool:
        doc = await ManualOverride.find_one(ManualOverride.student_id == student_id, ManualOverride.day == day)
        if not doc:
            return False
        await doc.delete()
        return True

    async def list_by_date_range(self, start: date, end: date) -> list[OverrideEntry]:
        require_range(start, end)
        docs = (
            await ManualOverride.find(ManualOverride.day >= start, ManualOverride.day <= end)
            .sort("+day", "+student_id")
            .to_list()
        )
        return [d.to_entry() for d in docs]


class MongoHolidayStore(HolidayStore):
    async def add(self, day: date, note: Optional[str] = None) -> HolidayEntry:
        await Holiday.find_one(Holiday.day == day).upsert(
            Set({Holiday.note: note}),
            on_insert=Holiday(day=day, note=note),
        )
        return HolidayEntry(day=day, note=note)

    async def remove(self, day: date) -> bool:
        doc = await Holiday.find_one(Holiday.day == day)
        if not doc:
            return False
        await doc.delete()
        return True

    async def list_between(self, start: date, end: date) -> list[HolidayEntry]:
        require_range(start, end)
        docs = await Holiday.find(Holiday.day >= start, Holiday.day <= end).sort("day").to_list()
        return [h.to_entry() for h in docs]

    async def list_all(self) -> list[HolidayEntry]:
        docs = await Holiday.find_all().sort("day").to_list()
        return [h.to_entry() for h in docs]


class MongoRoster(RosterSource):
    """Active student accounts, ordered by roll number."""

    async def list_students(self) -> list[str]:
        students = (
            await User.find(User.role == UserRole.STUDENT, User.is_active == True)
            .sort("roll_number")
            .to_list()
        )
        return [s.roll_number for s in students]
