"""
Access authorization for gym entry.

`decide_access` is a pure function over a client's subscriptions and a
calendar date; `evaluate_access` loads the data and calls it. Nothing here
writes to the database, so both can be used for dry-run checks.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import gym_now, normalize_to_gym_tz
from app.core.conversions import as_date
from app.core.logging_config import get_logger
from app.crud.clientsCrud import get_client
from app.crud.subscriptionsCrud import list_client_subscriptions
from app.models import AccessResult, Subscription, SubscriptionStatus

logger = get_logger("services.access_control")

NO_SUBSCRIPTION_REASON = "No active subscription found"
UNPAID_REASON = "No payment made for subscription"
SUSPENDED_REASON = "Subscription is suspended by admin"
CANCELLED_REASON = "Subscription was cancelled"
UNKNOWN_REASON = "Unknown error occurred"


@dataclass(frozen=True)
class AccessDecision:
    result: AccessResult
    reason: Optional[str] = None
    subscription: Optional[Subscription] = None

    @property
    def granted(self) -> bool:
        return self.result == AccessResult.GRANTED

    @property
    def subscription_id(self) -> Optional[int]:
        return self.subscription.id if self.subscription is not None else None


def select_subscription(subscriptions: Iterable[Subscription], as_of: date) -> Optional[Subscription]:
    """
    Current subscription if there is one, otherwise the diagnostic one.

    Current means ACTIVE with as_of inside the inclusive date range. Without a
    current subscription the most recently created one (highest id) explains
    the denial. Ties between several current subscriptions also go to the
    highest id.
    """
    candidates = list(subscriptions)
    if not candidates:
        return None

    current = [sub for sub in candidates if sub.is_current(as_of)]
    pool = current or candidates
    return max(pool, key=lambda sub: sub.id)


def decide_access(subscriptions: Iterable[Subscription], as_of: date | datetime) -> AccessDecision:
    """Evaluate the entry rules in order; the first matching rule wins."""
    day = as_date(as_of)
    subscription = select_subscription(subscriptions, day)

    if subscription is None:
        return AccessDecision(AccessResult.DENIED_NO_SUBSCRIPTION, NO_SUBSCRIPTION_REASON)

    status = subscription.status
    in_range = subscription.covers(day)

    if day > subscription.end_date:
        return AccessDecision(
            AccessResult.DENIED_EXPIRED,
            f"Subscription expired on {subscription.end_date.isoformat()}",
            subscription,
        )

    if status == SubscriptionStatus.ACTIVE and in_range and not subscription.has_payment:
        return AccessDecision(AccessResult.DENIED_UNPAID, UNPAID_REASON, subscription)

    if status == SubscriptionStatus.SUSPENDED:
        return AccessDecision(AccessResult.DENIED_SUSPENDED, SUSPENDED_REASON, subscription)

    if status == SubscriptionStatus.ACTIVE and in_range:
        # Any positive payment is enough; the balance may still be open
        return AccessDecision(AccessResult.GRANTED, None, subscription)

    if status == SubscriptionStatus.CANCELLED:
        return AccessDecision(AccessResult.DENIED_CANCELLED, CANCELLED_REASON, subscription)

    if status == SubscriptionStatus.EXPIRED:
        return AccessDecision(
            AccessResult.DENIED_EXPIRED,
            f"Subscription was closed before {subscription.end_date.isoformat()}",
            subscription,
        )

    if status == SubscriptionStatus.ACTIVE and day < subscription.start_date:
        return AccessDecision(
            AccessResult.DENIED_NOT_STARTED,
            f"Subscription starts on {subscription.start_date.isoformat()}",
            subscription,
        )

    logger.warning(
        "Unclassified access state for subscription %s (status=%s, %s to %s, as_of=%s)",
        subscription.id, status, subscription.start_date, subscription.end_date, day
    )
    return AccessDecision(AccessResult.DENIED_FINGERPRINT_ERROR, UNKNOWN_REASON, subscription)


async def evaluate_access(
    db: AsyncSession,
    client_id: int,
    now: Optional[date | datetime] = None
) -> AccessDecision:
    """Load the client's subscriptions and decide whether they may enter now."""
    client = await get_client(db, client_id)
    subscriptions = await list_client_subscriptions(db, client.id)
    if isinstance(now, datetime):
        # Same calendar day as record_check_in for the same instant
        now = normalize_to_gym_tz(now)
    decision = decide_access(subscriptions, now or gym_now())

    if decision.granted:
        logger.info("Access granted to client %s on subscription %s", client.id, decision.subscription_id)
    else:
        logger.info(
            "Access denied to client %s: %s (%s)",
            client.id, decision.result.value, decision.reason
        )
    return decision
