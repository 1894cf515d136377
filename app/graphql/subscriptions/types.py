from datetime import date
from typing import Optional

import strawberry

from app.crud.subscriptionsCrud import SubscriptionData
from app.models.enums import SubscriptionStatus as SubscriptionStatusEnum

SubscriptionStatus = strawberry.enum(SubscriptionStatusEnum)


@strawberry.type
class Subscription:
    id: int
    client_id: int
    plan_id: int
    start_date: date
    end_date: date
    status: SubscriptionStatus
    plan_name: str
    client_name: str
    total_price: float
    amount_paid: float
    remaining_balance: float
    is_fully_paid: bool
    payment_percentage: float
    remaining_days: int

    @classmethod
    def from_data(cls, data: SubscriptionData) -> "Subscription":
        return cls(
            id=data.id,
            client_id=data.client_id,
            plan_id=data.plan_id,
            start_date=data.start_date,
            end_date=data.end_date,
            status=SubscriptionStatus(data.status),
            plan_name=data.plan_name,
            client_name=data.client_name,
            total_price=data.total_price,
            amount_paid=data.amount_paid,
            remaining_balance=data.remaining_balance,
            is_fully_paid=data.is_fully_paid,
            payment_percentage=data.payment_percentage,
            remaining_days=data.remaining_days
        )


@strawberry.input
class CreateSubscriptionInput:
    client_id: int
    plan_id: int
    start_date: Optional[date] = None


@strawberry.input
class RenewSubscriptionInput:
    subscription_id: int
    plan_id: int


@strawberry.input
class UpdateSubscriptionStatusInput:
    subscription_id: int
    status: SubscriptionStatus


@strawberry.type
class SubscriptionResponse:
    subscription: Optional[Subscription]
    message: str


@strawberry.type
class ExpirySweepResponse:
    expired_count: int
    as_of: date
    message: str
