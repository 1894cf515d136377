from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import gym_now, gym_today, normalize_to_gym_tz
from app.core.conversions import as_date
from app.core.logging_config import get_logger
from app.crud.clientsCrud import find_client_by_fingerprint, get_client
from app.models import AccessResult, Attendance
from app.services.access_control import AccessDecision, evaluate_access

logger = get_logger("crud.attendance")


@dataclass
class CheckInResult:
    attendance: Attendance
    decision: AccessDecision

    @property
    def granted(self) -> bool:
        return self.decision.granted


async def record_check_in(
    db: AsyncSession,
    client_id: int,
    device_token: Optional[str] = None,
    device_error: Optional[str] = None,
    now: Optional[datetime] = None,
    commit: bool = True
) -> CheckInResult:
    """
    Evaluate access and store the verdict as a new attendance row.

    Every call inserts a row, including repeated check-ins on the same day.
    When the device reports an error the attempt is recorded as
    DENIED_FINGERPRINT_ERROR without looking at subscriptions.
    """
    moment = normalize_to_gym_tz(now) if now else gym_now()

    if device_error:
        client = await get_client(db, client_id)
        decision = AccessDecision(AccessResult.DENIED_FINGERPRINT_ERROR, device_error)
        logger.warning("Device error on check-in for client %s: %s", client.id, device_error)
    else:
        decision = await evaluate_access(db, client_id, now=moment)

    attendance = Attendance(
        client_id=int(client_id),
        subscription_id=decision.subscription_id,
        date=moment.date(),
        check_in_time=moment,
        access_result=decision.result.value,
        denial_reason=decision.reason,
        device_token=device_token,
    )

    db.add(attendance)
    await db.flush()

    if commit:
        await db.commit()
        await db.refresh(attendance)

    return CheckInResult(attendance=attendance, decision=decision)


async def record_fingerprint_check_in(
    db: AsyncSession,
    fingerprint_id: str,
    now: Optional[datetime] = None,
    commit: bool = True
) -> CheckInResult:
    """Check in the client registered under a device fingerprint token."""
    client = await find_client_by_fingerprint(db, fingerprint_id)
    return await record_check_in(
        db,
        client.id,
        device_token=fingerprint_id,
        now=now,
        commit=commit
    )


async def has_checked_in_today(
    db: AsyncSession,
    client_id: int,
    today: Optional[date] = None,
    granted_only: bool = True
) -> bool:
    day = as_date(today) if today else gym_today()
    conditions = [Attendance.client_id == client_id, Attendance.date == day]
    if granted_only:
        conditions.append(Attendance.access_result == AccessResult.GRANTED.value)

    result = await db.execute(
        select(Attendance.id).where(and_(*conditions)).limit(1)
    )
    return result.first() is not None


async def count_granted_today(db: AsyncSession, today: Optional[date] = None) -> int:
    """Granted check-ins for the day, counting repeat visits separately."""
    day = as_date(today) if today else gym_today()
    result = await db.execute(
        select(func.count(Attendance.id)).where(
            and_(
                Attendance.date == day,
                Attendance.access_result == AccessResult.GRANTED.value
            )
        )
    )
    return result.scalar_one()


async def list_client_attendances(db: AsyncSession, client_id: int, limit: int = 50) -> List[Attendance]:
    client = await get_client(db, client_id)
    result = await db.execute(
        select(Attendance)
        .where(Attendance.client_id == client.id)
        .order_by(Attendance.check_in_time.desc(), Attendance.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_attendances_for_day(db: AsyncSession, day: Optional[date] = None) -> List[Attendance]:
    day = as_date(day) if day else gym_today()
    result = await db.execute(
        select(Attendance)
        .where(Attendance.date == day)
        .order_by(Attendance.check_in_time.asc(), Attendance.id.asc())
    )
    return list(result.scalars().all())
