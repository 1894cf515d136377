import strawberry
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import GymAccessError
from app.core.logging_config import get_logger
from app.crud.attendanceCrud import CheckInResult, record_check_in, record_fingerprint_check_in
from app.graphql.attendance.types import (
    AttendanceRecord, CheckInInput, CheckInResponse, FingerprintCheckInInput
)
from app.graphql.auth.permissions import IsAuthenticated

logger = get_logger("graphql.attendance.mutations")


def _check_in_response(result: CheckInResult) -> CheckInResponse:
    decision = result.decision
    return CheckInResponse(
        attendance=AttendanceRecord.from_model(result.attendance),
        granted=decision.granted,
        message="Access granted" if decision.granted else (decision.reason or decision.result.value)
    )


@strawberry.type
class AttendanceMutation:
    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def check_in(self, info: strawberry.Info, input: CheckInInput) -> CheckInResponse:
        """Evaluate access for a client and record the attempt."""
        db: AsyncSession = info.context.db

        try:
            result = await record_check_in(
                db=db,
                client_id=input.client_id,
                device_token=input.device_token,
                device_error=input.device_error
            )
            return _check_in_response(result)

        except GymAccessError as e:
            await db.rollback()
            logger.warning("Check-in for client %s failed: %s", input.client_id, e)
            return CheckInResponse(attendance=None, granted=False, message=str(e))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error during check-in: %s", e, exc_info=True)
            return CheckInResponse(attendance=None, granted=False, message="Check-in could not be recorded")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def check_in_by_fingerprint(self, info: strawberry.Info, input: FingerprintCheckInInput) -> CheckInResponse:
        """Check-in driven by the fingerprint reader's client token."""
        db: AsyncSession = info.context.db

        try:
            result = await record_fingerprint_check_in(db=db, fingerprint_id=input.fingerprint_id)
            return _check_in_response(result)

        except GymAccessError as e:
            await db.rollback()
            logger.warning("Fingerprint check-in failed: %s", e)
            return CheckInResponse(attendance=None, granted=False, message="Fingerprint not recognized")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error during fingerprint check-in: %s", e, exc_info=True)
            return CheckInResponse(attendance=None, granted=False, message="Check-in could not be recorded")
