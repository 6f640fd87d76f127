"""Verification entry point: token, idempotency check, geofence, then a single conditional write."""
from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from geoattend.exceptions import InvalidInputError
from geoattend.geo import Anchor, is_within_range, validate_fix
from geoattend.models.attendance import AttendanceEvidence, LocationEvidence
from geoattend.stores.base import AttendanceLedger, CreateOutcome, TokenStore, require_student_id

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    MARKED = "marked"
    ALREADY_MARKED = "already_marked"
    INVALID_TOKEN = "invalid_token"
    OUTSIDE_RANGE = "outside_range"
    LOCATION_UNAVAILABLE = "location_unavailable"


class VerificationRequest(BaseModel):
    student_id: str
    day: date
    token: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy_meters: Optional[float] = None
    device_id: str


class VerificationResult(BaseModel):
    status: VerificationStatus
    student_id: str
    day: date
    distance_meters: Optional[float] = None
    accuracy_meters: Optional[float] = None


class AttendanceVerifier:
    """Marks a student present for a day after checking token and location.

    Policy rejections come back as a ``VerificationResult``; malformed input
    raises ``InvalidInputError`` before anything is read or written, and store
    failures propagate unchanged.
    """

    def __init__(
        self,
        tokens: TokenStore,
        ledger: AttendanceLedger,
        anchor: Anchor,
        today: Callable[[], date],
        enforce_current_day: bool = True,
    ):
        self.tokens = tokens
        self.ledger = ledger
        self.anchor = anchor
        self.today = today
        self.enforce_current_day = enforce_current_day

    def _check_input(self, req: VerificationRequest) -> bool:
        """Validate request shape. Returns False when the client reported no location fix."""
        require_student_id(req.student_id)
        if not req.token or not req.token.strip():
            raise InvalidInputError("Token is required")
        if not req.device_id or not req.device_id.strip():
            raise InvalidInputError("Device id is required")
        if req.latitude is None and req.longitude is None:
            return False
        validate_fix(req.latitude, req.longitude, req.accuracy_meters)
        return True

    def _result(self, req: VerificationRequest, status: VerificationStatus, **extra) -> VerificationResult:
        result = VerificationResult(status=status, student_id=req.student_id.strip(), day=req.day, **extra)
        logger.info(
            "Attendance %s for %s on %s%s",
            status.value,
            result.student_id,
            req.day.isoformat(),
            f" (distance {extra['distance_meters']:.1f} m)" if extra.get("distance_meters") is not None else "",
        )
        return result

    async def verify(self, req: VerificationRequest) -> VerificationResult:
        has_fix = self._check_input(req)
        student_id = req.student_id.strip()

        if self.enforce_current_day and req.day != self.today():
            return self._result(req, VerificationStatus.INVALID_TOKEN)
        if not await self.tokens.validate(req.day, req.token):
            return self._result(req, VerificationStatus.INVALID_TOKEN)

        if await self.ledger.exists(student_id, req.day):
            return self._result(req, VerificationStatus.ALREADY_MARKED)

        if not has_fix:
            return self._result(req, VerificationStatus.LOCATION_UNAVAILABLE)

        check = is_within_range(req.latitude, req.longitude, req.accuracy_meters, self.anchor)
        if not check.within_range:
            return self._result(
                req,
                VerificationStatus.OUTSIDE_RANGE,
                distance_meters=check.distance_meters,
                accuracy_meters=req.accuracy_meters,
            )

        evidence = AttendanceEvidence(
            device_id=req.device_id.strip(),
            location=LocationEvidence(
                latitude=req.latitude,
                longitude=req.longitude,
                accuracy_meters=req.accuracy_meters,
                distance_meters=check.distance_meters,
            ),
        )
        # exists() above is only a shortcut; the conditional create decides
        outcome = await self.ledger.try_create(student_id, req.day, evidence)
        status = VerificationStatus.MARKED if outcome is CreateOutcome.CREATED else VerificationStatus.ALREADY_MARKED
        return self._result(
            req, status, distance_meters=check.distance_meters, accuracy_meters=req.accuracy_meters
        )
