from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utc_now
from app.core.config import get_settings
from app.core.conversions import to_decimal
from app.core.errors import ValidationError
from app.core.logging_config import get_logger
from app.crud.subscriptionsCrud import get_subscription
from app.crud.usersCrud import require_staff
from app.models import Payment, PaymentMethod, Subscription
from app.models.membershipsModel import CENT

logger = get_logger("crud.payments")


@dataclass
class PaymentData:
    id: int
    subscription_id: int
    amount: float
    method: str
    notes: Optional[str]
    processed_by: Optional[int]
    payment_date: datetime
    percentage_of_total: float
    is_initial_payment: bool


def _resolve_amount(amount: Decimal | float | int | str) -> Decimal:
    """Validate an amount and round it to cents, the precision amounts are stored at."""
    value = to_decimal(amount)
    if value is None or not value.is_finite():
        raise ValidationError(f"Payment amount must be greater than zero (got {amount})")
    try:
        value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Payment amount is out of range (got {amount})") from None
    if value <= 0:
        raise ValidationError(f"Payment amount must be at least 0.01 (got {amount})")
    return value


def _resolve_method(method: Optional[str]) -> str:
    raw = method or get_settings().default_payment_method
    try:
        return PaymentMethod(str(raw).upper()).value
    except ValueError:
        raise ValidationError(f"Unknown payment method: {raw}") from None


def _payment_to_data(payment: Payment, subscription: Subscription, first_payment_id: Optional[int]) -> PaymentData:
    return PaymentData(
        id=payment.id,
        subscription_id=payment.subscription_id,
        amount=float(payment.amount),
        method=payment.method,
        notes=payment.notes,
        processed_by=payment.processed_by,
        payment_date=payment.payment_date,
        percentage_of_total=float(payment.percentage_of(subscription.total_price)),
        is_initial_payment=payment.id == first_payment_id,
    )


async def record_payment(
    db: AsyncSession,
    *,
    subscription_id: int,
    amount: Decimal | float | int | str,
    method: Optional[str] = None,
    notes: Optional[str] = None,
    processed_by: Optional[int] = None,
    paid_at: Optional[datetime] = None,
    commit: bool = True
) -> Payment:
    """
    Append a payment and reconcile the subscription balance.

    The subscription row stays locked from the read of amount_paid until the
    commit, so concurrent payments on the same subscription serialize.
    Overpayment leaves a negative remaining_balance (credit).
    """
    amount_value = _resolve_amount(amount)
    method_value = _resolve_method(method)

    subscription = await get_subscription(db, subscription_id, lock=True)
    if processed_by is not None:
        await require_staff(db, processed_by)

    payment = Payment(
        subscription_id=subscription.id,
        amount=amount_value,
        method=method_value,
        notes=notes,
        processed_by=processed_by,
        payment_date=paid_at or utc_now(),
    )
    subscription.apply_payment(amount_value)

    db.add(payment)
    await db.flush()

    logger.info(
        "Payment %s of %s (%s) recorded on subscription %s; paid=%s remaining=%s",
        payment.id,
        amount_value,
        method_value,
        subscription.id,
        subscription.amount_paid,
        subscription.remaining_balance,
    )

    if commit:
        await db.commit()
        await db.refresh(payment)

    return payment


async def list_payments(db: AsyncSession, subscription_id: int) -> List[Payment]:
    """Payments of a subscription in the order they were recorded."""
    result = await db.execute(
        select(Payment)
        .where(Payment.subscription_id == subscription_id)
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
    )
    return list(result.scalars().all())


async def get_subscription_payments(db: AsyncSession, subscription_id: int) -> List[PaymentData]:
    subscription = await get_subscription(db, subscription_id)
    payments = await list_payments(db, subscription.id)
    first_payment_id = payments[0].id if payments else None
    return [_payment_to_data(payment, subscription, first_payment_id) for payment in payments]
