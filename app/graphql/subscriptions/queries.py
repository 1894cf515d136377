from typing import List, Optional

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.crud.subscriptionsCrud import (
    get_active_subscriptions, get_client_subscriptions_data,
    get_expiring_subscriptions, get_subscription_data
)
from app.graphql.subscriptions.types import Subscription
from app.graphql.auth.permissions import IsAuthenticated
from app.core.conversions import coerce_int


@strawberry.type
class SubscriptionsQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def subscription(self, info: strawberry.Info, subscription_id: int) -> Optional[Subscription]:
        """Get subscription by ID"""
        db: AsyncSession = info.context.db

        subscription_id = coerce_int(subscription_id)
        if subscription_id is None:
            return None

        try:
            data = await get_subscription_data(db=db, subscription_id=subscription_id)
        except NotFoundError:
            return None
        return Subscription.from_data(data)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def client_subscriptions(self, info: strawberry.Info, client_id: int) -> List[Subscription]:
        """Subscription history of a client, newest first"""
        db: AsyncSession = info.context.db
        try:
            subscriptions_data = await get_client_subscriptions_data(db=db, client_id=client_id)
        except NotFoundError:
            return []
        return [Subscription.from_data(sub_data) for sub_data in subscriptions_data]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def active_subscriptions(self, info: strawberry.Info, limit: int = 100) -> List[Subscription]:
        """Get list of subscriptions valid today"""
        db: AsyncSession = info.context.db
        subscriptions_data = await get_active_subscriptions(db=db, limit=limit)
        return [Subscription.from_data(sub_data) for sub_data in subscriptions_data]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def expiring_subscriptions(self, info: strawberry.Info, days_ahead: int = 7) -> List[Subscription]:
        """Get subscriptions expiring in the next N days"""
        db: AsyncSession = info.context.db
        subscriptions_data = await get_expiring_subscriptions(db=db, days_ahead=days_ahead)
        return [Subscription.from_data(sub_data) for sub_data in subscriptions_data]
