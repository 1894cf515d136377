import strawberry
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import GymAccessError
from app.core.logging_config import get_logger
from app.crud.paymentsCrud import get_subscription_payments, record_payment
from app.crud.subscriptionsCrud import get_subscription_data
from app.graphql.auth.permissions import IsAuthenticated
from app.graphql.payments.types import PaymentRecord, PaymentResponse, RecordPaymentInput
from app.graphql.subscriptions.types import Subscription

logger = get_logger("graphql.payments.mutations")


@strawberry.type
class PaymentMutation:
    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def record_payment(self, info: strawberry.Info, input: RecordPaymentInput) -> PaymentResponse:
        """Record a full or partial payment against a subscription."""
        db: AsyncSession = info.context.db

        try:
            payment = await record_payment(
                db=db,
                subscription_id=input.subscription_id,
                amount=input.amount,
                method=input.method.value if input.method else None,
                notes=input.notes,
                processed_by=info.context.account_id
            )

            payments = await get_subscription_payments(db=db, subscription_id=input.subscription_id)
            payment_data = next(item for item in payments if item.id == payment.id)
            subscription_data = await get_subscription_data(db=db, subscription_id=input.subscription_id)

            return PaymentResponse(
                payment=PaymentRecord.from_data(payment_data),
                subscription=Subscription.from_data(subscription_data),
                message="Payment recorded"
            )

        except GymAccessError as e:
            await db.rollback()
            logger.warning("Payment on subscription %s rejected: %s", input.subscription_id, e)
            return PaymentResponse(payment=None, subscription=None, message=f"Error recording payment: {e}")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error recording payment: %s", e, exc_info=True)
            return PaymentResponse(payment=None, subscription=None, message="Error recording payment")
