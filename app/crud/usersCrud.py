from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.conversions import coerce_int
from app.core.errors import NotFoundError
from app.models import StaffAccount


async def get_staff_by_id(db: AsyncSession, staff_id: int) -> Optional[StaffAccount]:
    staff_id = coerce_int(staff_id)
    if staff_id is None:
        return None
    return await db.get(StaffAccount, staff_id)


async def get_staff_by_username(db: AsyncSession, username: str) -> Optional[StaffAccount]:
    res = await db.execute(select(StaffAccount).where(StaffAccount.username == username))
    return res.scalar_one_or_none()


async def require_staff(db: AsyncSession, staff_id: int) -> StaffAccount:
    """Load an active staff account or raise NotFoundError."""
    staff = await get_staff_by_id(db, staff_id)
    if staff is None or not staff.is_active:
        raise NotFoundError("Staff account", staff_id)
    return staff
