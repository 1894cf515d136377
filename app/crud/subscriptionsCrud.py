from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy import select, and_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.clock import gym_today, utc_now
from app.core.conversions import as_date, coerce_int
from app.core.errors import (
    InvalidTransitionError, NotFoundError, SubscriptionConflictError, ValidationError
)
from app.core.logging_config import get_logger
from app.crud.clientsCrud import get_client
from app.models import Subscription, SubscriptionPlan, SubscriptionStatus

logger = get_logger("crud.subscriptions")

ACTIVE = SubscriptionStatus.ACTIVE
EXPIRED = SubscriptionStatus.EXPIRED
SUSPENDED = SubscriptionStatus.SUSPENDED
CANCELLED = SubscriptionStatus.CANCELLED

# Status changes accepted by update_status. Renewal and the expiry sweep
# write EXPIRED directly and do not go through this table.
ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    ACTIVE: frozenset({EXPIRED, SUSPENDED, CANCELLED}),
    SUSPENDED: frozenset({ACTIVE, EXPIRED, CANCELLED}),
    EXPIRED: frozenset({CANCELLED}),
    CANCELLED: frozenset(),
}


@dataclass
class SubscriptionData:
    id: int
    client_id: int
    plan_id: int
    start_date: date
    end_date: date
    status: str
    plan_name: str
    client_name: str
    total_price: float
    amount_paid: float
    remaining_balance: float
    is_fully_paid: bool
    payment_percentage: float
    remaining_days: int


def _subscription_to_data(subscription: Subscription, today: date) -> SubscriptionData:
    """Map Subscription model to SubscriptionData DTO; plan and client must be loaded."""
    plan_name = getattr(subscription.plan, "name", None) if subscription.plan else None
    client_name = getattr(subscription.client, "full_name", None) if subscription.client else None
    return SubscriptionData(
        id=subscription.id,
        client_id=subscription.client_id,
        plan_id=subscription.plan_id,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        status=subscription.status,
        plan_name=plan_name or "Unnamed plan",
        client_name=client_name or "Unnamed client",
        total_price=float(subscription.total_price),
        amount_paid=float(subscription.amount_paid),
        remaining_balance=float(subscription.remaining_balance),
        is_fully_paid=subscription.is_fully_paid,
        payment_percentage=float(subscription.payment_percentage),
        remaining_days=(subscription.end_date - today).days + 1 if subscription.end_date >= today else 0,
    )


def _parse_status(value: str | SubscriptionStatus) -> SubscriptionStatus:
    try:
        return SubscriptionStatus(str(getattr(value, "value", value)).upper())
    except ValueError:
        raise ValidationError(f"Unknown subscription status: {value}") from None


def _validate_plan(plan: SubscriptionPlan) -> None:
    if not plan.is_available:
        raise ValidationError(f"Plan '{plan.name}' is not available")
    if plan.price is None or Decimal(plan.price) <= 0:
        raise ValidationError(f"Plan '{plan.name}' must have a positive price")
    if plan.duration_months is None or plan.duration_months <= 0:
        raise ValidationError(f"Plan '{plan.name}' must last at least one month")


async def get_subscription_plan(db: AsyncSession, plan_id: int) -> SubscriptionPlan:
    plan = None
    normalized_id = coerce_int(plan_id)
    if normalized_id is not None:
        plan = await db.get(SubscriptionPlan, normalized_id)
    if plan is None:
        raise NotFoundError("Subscription plan", plan_id)
    return plan


def _subscription_stmt(subscription_id: int, lock: bool = False):
    stmt = select(Subscription).where(Subscription.id == subscription_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


async def get_subscription(db: AsyncSession, subscription_id: int, lock: bool = False) -> Subscription:
    """
    Load a subscription or raise NotFoundError.

    With lock=True the row is selected FOR UPDATE and the identity-map copy is
    refreshed, so the caller works on the latest committed balance.
    """
    normalized_id = coerce_int(subscription_id)
    subscription = None
    if normalized_id is not None:
        result = await db.execute(_subscription_stmt(normalized_id, lock))
        subscription = result.scalar_one_or_none()
    if subscription is None:
        raise NotFoundError("Subscription", subscription_id)
    return subscription


async def get_subscription_data(db: AsyncSession, subscription_id: int, today: Optional[date] = None) -> SubscriptionData:
    result = await db.execute(
        select(Subscription)
        .options(
            selectinload(Subscription.client),
            selectinload(Subscription.plan)
        )
        .where(Subscription.id == coerce_int(subscription_id))
        .execution_options(populate_existing=True)
    )
    subscription = result.scalar_one_or_none()
    if subscription is None:
        raise NotFoundError("Subscription", subscription_id)
    return _subscription_to_data(subscription, today or gym_today())


async def list_client_subscriptions(db: AsyncSession, client_id: int) -> List[Subscription]:
    """All subscriptions of a client, newest first."""
    result = await db.execute(
        select(Subscription)
        .where(Subscription.client_id == client_id)
        .order_by(Subscription.id.desc())
    )
    return list(result.scalars().all())


async def _find_overlapping_active(
    db: AsyncSession,
    client_id: int,
    start_date: date,
    end_date: date,
    exclude_id: Optional[int] = None
) -> Optional[Subscription]:
    conditions = [
        Subscription.client_id == client_id,
        Subscription.status == ACTIVE.value,
        Subscription.start_date <= end_date,
        Subscription.end_date >= start_date,
    ]
    if exclude_id is not None:
        conditions.append(Subscription.id != exclude_id)
    result = await db.execute(
        select(Subscription).where(and_(*conditions)).order_by(Subscription.id.desc())
    )
    return result.scalars().first()


async def _ensure_no_overlap(
    db: AsyncSession,
    client_id: int,
    start_date: date,
    end_date: date,
    exclude_id: Optional[int] = None
) -> None:
    overlapping = await _find_overlapping_active(db, client_id, start_date, end_date, exclude_id)
    if overlapping is not None:
        raise SubscriptionConflictError(
            f"Client {client_id} already has active subscription {overlapping.id} "
            f"({overlapping.start_date} to {overlapping.end_date})"
        )


async def create_subscription(
    db: AsyncSession,
    client_id: int,
    plan_id: int,
    start_date: Optional[date] = None,
    created_by: Optional[int] = None,
    commit: bool = True
) -> Subscription:
    """
    Create an ACTIVE subscription for a client from a plan.

    The plan price is copied into total_price; later plan edits do not touch
    existing subscriptions. A client may not hold two ACTIVE subscriptions
    with overlapping date ranges.
    """
    client = await get_client(db, client_id, lock=True)
    plan = await get_subscription_plan(db, plan_id)
    _validate_plan(plan)

    start = as_date(start_date) if start_date else gym_today()
    end = plan.calculate_end_date(start)

    await _ensure_no_overlap(db, client.id, start, end)

    total_price = Decimal(plan.price)
    subscription = Subscription(
        client_id=client.id,
        plan_id=plan.id,
        start_date=start,
        end_date=end,
        status=ACTIVE.value,
        total_price=total_price,
        amount_paid=Decimal("0"),
        remaining_balance=total_price,
        created_by=created_by,
    )

    db.add(subscription)
    await db.flush()

    logger.info(
        "Created subscription %s for client %s on plan %s (%s to %s, total %s)",
        subscription.id, client.id, plan.id, start, end, total_price
    )

    if commit:
        await db.commit()
        await db.refresh(subscription)

    return subscription


async def expire_old_subscriptions(
    db: AsyncSession,
    now: Optional[date | datetime] = None,
    commit: bool = True
) -> int:
    """
    Move ACTIVE subscriptions whose end_date is before today to EXPIRED.

    Safe to repeat: a second run with the same date finds nothing to change.
    SUSPENDED and CANCELLED subscriptions are never touched.
    """
    today = as_date(now) if now else gym_today()

    result = await db.execute(
        update(Subscription)
        .where(
            and_(
                Subscription.status == ACTIVE.value,
                Subscription.end_date < today
            )
        )
        .values(status=EXPIRED.value, updated_at=utc_now())
        .execution_options(synchronize_session="evaluate")
    )
    expired_count = result.rowcount or 0

    logger.info("Expiry sweep as of %s transitioned %d subscriptions", today, expired_count)

    if commit:
        await db.commit()

    return expired_count


async def count_expirable_subscriptions(db: AsyncSession, now: Optional[date | datetime] = None) -> int:
    """Number of subscriptions the next sweep would expire."""
    today = as_date(now) if now else gym_today()
    result = await db.execute(
        select(Subscription.id).where(
            and_(
                Subscription.status == ACTIVE.value,
                Subscription.end_date < today
            )
        )
    )
    return len(result.all())


async def update_status(
    db: AsyncSession,
    subscription_id: int,
    new_status: str | SubscriptionStatus,
    commit: bool = True
) -> Subscription:
    """Administrative status change, restricted to ALLOWED_TRANSITIONS."""
    target = _parse_status(new_status)
    subscription = await get_subscription(db, subscription_id, lock=True)
    current = _parse_status(subscription.status)

    if current == target:
        return subscription

    if target not in ALLOWED_TRANSITIONS[current]:
        logger.warning(
            "Rejected status change %s -> %s on subscription %s",
            current.value, target.value, subscription.id
        )
        raise InvalidTransitionError(current.value, target.value)

    if target == ACTIVE:
        # Reactivation must not leave the client with two overlapping ACTIVE subscriptions
        await get_client(db, subscription.client_id, lock=True)
        await _ensure_no_overlap(
            db, subscription.client_id, subscription.start_date, subscription.end_date,
            exclude_id=subscription.id
        )

    subscription.status = target.value
    await db.flush()

    logger.info("Subscription %s status %s -> %s", subscription.id, current.value, target.value)

    if commit:
        await db.commit()
        await db.refresh(subscription)

    return subscription


async def renew_subscription(
    db: AsyncSession,
    subscription_id: int,
    new_plan_id: int,
    today: Optional[date] = None,
    created_by: Optional[int] = None,
    commit: bool = True
) -> Subscription:
    """
    Close the current subscription and start the next one on a new plan.

    The current subscription becomes EXPIRED whatever its status was. The new
    one starts the day after the current end_date, or today if that day has
    already passed.
    """
    today = today or gym_today()
    current = await get_subscription(db, subscription_id, lock=True)
    plan = await get_subscription_plan(db, new_plan_id)
    _validate_plan(plan)

    new_start = max(current.end_date + timedelta(days=1), today)
    new_end = plan.calculate_end_date(new_start)

    await get_client(db, current.client_id, lock=True)
    await _ensure_no_overlap(db, current.client_id, new_start, new_end, exclude_id=current.id)

    previous_status = current.status
    current.status = EXPIRED.value
    await db.flush()

    renewed = await create_subscription(
        db=db,
        client_id=current.client_id,
        plan_id=plan.id,
        start_date=new_start,
        created_by=created_by,
        commit=False
    )

    logger.info(
        "Renewed subscription %s (was %s) into %s starting %s",
        current.id, previous_status, renewed.id, new_start
    )

    if commit:
        await db.commit()
        await db.refresh(renewed)

    return renewed


async def get_active_subscriptions(db: AsyncSession, today: Optional[date] = None, limit: int = 100) -> List[SubscriptionData]:
    """ACTIVE subscriptions whose date range contains today"""
    today = today or gym_today()

    result = await db.execute(
        select(Subscription)
        .options(
            selectinload(Subscription.client),
            selectinload(Subscription.plan)
        )
        .where(
            and_(
                Subscription.status == ACTIVE.value,
                Subscription.start_date <= today,
                Subscription.end_date >= today
            )
        )
        .order_by(Subscription.end_date.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    subscriptions = result.scalars().all()

    return [_subscription_to_data(sub, today) for sub in subscriptions]


async def get_expiring_subscriptions(db: AsyncSession, days_ahead: int = 7, today: Optional[date] = None) -> List[SubscriptionData]:
    """ACTIVE subscriptions ending within the next N days"""
    today = today or gym_today()
    horizon = today + timedelta(days=days_ahead)

    result = await db.execute(
        select(Subscription)
        .options(
            selectinload(Subscription.client),
            selectinload(Subscription.plan)
        )
        .where(
            and_(
                Subscription.status == ACTIVE.value,
                Subscription.end_date.between(today, horizon)
            )
        )
        .order_by(Subscription.end_date.asc())
        .execution_options(populate_existing=True)
    )
    subscriptions = result.scalars().all()

    return [_subscription_to_data(sub, today) for sub in subscriptions]


async def get_client_subscriptions_data(db: AsyncSession, client_id: int, today: Optional[date] = None) -> List[SubscriptionData]:
    client = await get_client(db, client_id)
    today = today or gym_today()

    result = await db.execute(
        select(Subscription)
        .options(
            selectinload(Subscription.client),
            selectinload(Subscription.plan)
        )
        .where(Subscription.client_id == client.id)
        .order_by(Subscription.id.desc())
        .execution_options(populate_existing=True)
    )
    return [_subscription_to_data(sub, today) for sub in result.scalars().all()]
