from typing import List

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.crud.paymentsCrud import get_subscription_payments
from app.graphql.auth.permissions import IsAuthenticated
from app.graphql.payments.types import PaymentRecord


@strawberry.type
class PaymentsQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def subscription_payments(self, info: strawberry.Info, subscription_id: int) -> List[PaymentRecord]:
        """Payments recorded against a subscription, oldest first"""
        db: AsyncSession = info.context.db
        try:
            payments = await get_subscription_payments(db=db, subscription_id=subscription_id)
        except NotFoundError:
            return []
        return [PaymentRecord.from_data(payment) for payment in payments]
