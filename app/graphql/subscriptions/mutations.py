from datetime import date
from typing import Optional

import strawberry
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import gym_today
from app.core.errors import GymAccessError
from app.core.logging_config import get_logger
from app.crud.subscriptionsCrud import (
    create_subscription,
    get_subscription_data,
    renew_subscription,
    update_status,
)
from app.graphql.auth.permissions import IsAdmin, IsAuthenticated
from app.graphql.subscriptions.types import (
    CreateSubscriptionInput, ExpirySweepResponse, RenewSubscriptionInput,
    Subscription, SubscriptionResponse, UpdateSubscriptionStatusInput
)
from app.services.subscription_maintenance import SubscriptionMaintenanceService

logger = get_logger("graphql.subscriptions.mutations")


async def _subscription_response(db: AsyncSession, subscription_id: int, message: str) -> SubscriptionResponse:
    data = await get_subscription_data(db=db, subscription_id=subscription_id)
    return SubscriptionResponse(subscription=Subscription.from_data(data), message=message)


@strawberry.type
class SubscriptionMutation:
    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_subscription(self, info: strawberry.Info, input: CreateSubscriptionInput) -> SubscriptionResponse:
        """Create a new subscription from a plan"""
        db: AsyncSession = info.context.db

        try:
            subscription = await create_subscription(
                db=db,
                client_id=input.client_id,
                plan_id=input.plan_id,
                start_date=input.start_date,
                created_by=info.context.account_id
            )
            return await _subscription_response(db, subscription.id, "Subscription created")

        except GymAccessError as e:
            await db.rollback()
            logger.warning("Create subscription failed for client %s: %s", input.client_id, e)
            return SubscriptionResponse(subscription=None, message=f"Error creating subscription: {e}")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating subscription: %s", e, exc_info=True)
            return SubscriptionResponse(subscription=None, message="Error creating subscription")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def renew_subscription(self, info: strawberry.Info, input: RenewSubscriptionInput) -> SubscriptionResponse:
        """Close a subscription and start the next one on a plan."""
        db: AsyncSession = info.context.db

        try:
            logger.info(f"Renewing subscription {input.subscription_id} on plan {input.plan_id}")
            renewed = await renew_subscription(
                db=db,
                subscription_id=input.subscription_id,
                new_plan_id=input.plan_id,
                created_by=info.context.account_id
            )
            return await _subscription_response(db, renewed.id, "Subscription renewed")

        except GymAccessError as e:
            await db.rollback()
            logger.warning("Renewal of subscription %s failed: %s", input.subscription_id, e)
            return SubscriptionResponse(subscription=None, message=f"Error renewing subscription: {e}")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error renewing subscription: %s", e, exc_info=True)
            return SubscriptionResponse(subscription=None, message="Error renewing subscription")

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def update_subscription_status(self, info: strawberry.Info, input: UpdateSubscriptionStatusInput) -> SubscriptionResponse:
        """Administrative status change (suspend, reactivate, cancel, expire)."""
        db: AsyncSession = info.context.db

        try:
            subscription = await update_status(
                db=db,
                subscription_id=input.subscription_id,
                new_status=input.status
            )
            return await _subscription_response(db, subscription.id, f"Subscription is now {subscription.status}")

        except GymAccessError as e:
            await db.rollback()
            return SubscriptionResponse(subscription=None, message=str(e))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error updating subscription status: %s", e, exc_info=True)
            return SubscriptionResponse(subscription=None, message="Error updating subscription status")

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def expire_old_subscriptions(self, info: strawberry.Info, as_of: Optional[date] = None) -> ExpirySweepResponse:
        """Run the expiry sweep now."""
        db: AsyncSession = info.context.db
        day = as_of or gym_today()

        try:
            stats = await SubscriptionMaintenanceService(db).run_expiry_sweep(as_of=day)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Expiry sweep failed: %s", e, exc_info=True)
            return ExpirySweepResponse(expired_count=0, as_of=day, message="Expiry sweep failed")

        return ExpirySweepResponse(
            expired_count=stats["expired_count"],
            as_of=day,
            message=f"{stats['expired_count']} subscriptions expired"
        )
