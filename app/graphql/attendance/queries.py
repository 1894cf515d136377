from typing import List, Optional

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.crud.attendanceCrud import (
    count_granted_today, has_checked_in_today,
    list_attendances_for_day, list_client_attendances
)
from app.graphql.attendance.types import AccessCheck, AttendanceRecord
from app.graphql.auth.permissions import IsAuthenticated
from app.services.access_control import evaluate_access


@strawberry.type
class AttendanceQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def evaluate_access(self, info: strawberry.Info, client_id: int) -> Optional[AccessCheck]:
        """Dry run: would this client be let in right now? Nothing is recorded."""
        db: AsyncSession = info.context.db
        try:
            decision = await evaluate_access(db=db, client_id=client_id)
        except NotFoundError:
            return None
        return AccessCheck.from_decision(client_id, decision)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def client_attendances(self, info: strawberry.Info, client_id: int, limit: int = 50) -> List[AttendanceRecord]:
        db: AsyncSession = info.context.db
        try:
            attendances = await list_client_attendances(db=db, client_id=client_id, limit=limit)
        except NotFoundError:
            return []
        return [AttendanceRecord.from_model(item) for item in attendances]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def attendances_today(self, info: strawberry.Info) -> List[AttendanceRecord]:
        db: AsyncSession = info.context.db
        attendances = await list_attendances_for_day(db=db)
        return [AttendanceRecord.from_model(item) for item in attendances]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def has_checked_in_today(self, info: strawberry.Info, client_id: int) -> bool:
        """True if the client already had a granted check-in today"""
        db: AsyncSession = info.context.db
        return await has_checked_in_today(db=db, client_id=client_id)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def granted_check_ins_today(self, info: strawberry.Info) -> int:
        db: AsyncSession = info.context.db
        return await count_granted_today(db=db)
