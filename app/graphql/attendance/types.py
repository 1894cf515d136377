from datetime import date, datetime
from typing import Optional

import strawberry

from app.models import Attendance as AttendanceModel
from app.models.enums import AccessResult as AccessResultEnum
from app.services.access_control import AccessDecision

AccessResult = strawberry.enum(AccessResultEnum)


@strawberry.type
class AttendanceRecord:
    id: int
    client_id: int
    subscription_id: Optional[int]
    date: date
    check_in_time: datetime
    access_result: AccessResult
    denial_reason: Optional[str]
    device_token: Optional[str]

    @classmethod
    def from_model(cls, attendance: AttendanceModel) -> "AttendanceRecord":
        return cls(
            id=attendance.id,
            client_id=attendance.client_id,
            subscription_id=attendance.subscription_id,
            date=attendance.date,
            check_in_time=attendance.check_in_time,
            access_result=AccessResult(attendance.access_result),
            denial_reason=attendance.denial_reason,
            device_token=attendance.device_token
        )


@strawberry.type
class AccessCheck:
    client_id: int
    granted: bool
    result: AccessResult
    reason: Optional[str]
    subscription_id: Optional[int]

    @classmethod
    def from_decision(cls, client_id: int, decision: AccessDecision) -> "AccessCheck":
        return cls(
            client_id=client_id,
            granted=decision.granted,
            result=decision.result,
            reason=decision.reason,
            subscription_id=decision.subscription_id
        )


@strawberry.input
class CheckInInput:
    client_id: int
    device_token: Optional[str] = None
    # Error reported by the fingerprint reader, if any
    device_error: Optional[str] = None


@strawberry.input
class FingerprintCheckInInput:
    fingerprint_id: str


@strawberry.type
class CheckInResponse:
    attendance: Optional[AttendanceRecord]
    granted: bool
    message: str
