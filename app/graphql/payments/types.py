from datetime import datetime
from typing import Optional

import strawberry

from app.crud.paymentsCrud import PaymentData
from app.graphql.subscriptions.types import Subscription
from app.models.enums import PaymentMethod as PaymentMethodEnum

PaymentMethod = strawberry.enum(PaymentMethodEnum)


@strawberry.type
class PaymentRecord:
    id: int
    subscription_id: int
    amount: float
    method: PaymentMethod
    notes: Optional[str]
    processed_by: Optional[int]
    payment_date: datetime
    percentage_of_total: float
    is_initial_payment: bool

    @classmethod
    def from_data(cls, data: PaymentData) -> "PaymentRecord":
        return cls(
            id=data.id,
            subscription_id=data.subscription_id,
            amount=data.amount,
            method=PaymentMethod(data.method),
            notes=data.notes,
            processed_by=data.processed_by,
            payment_date=data.payment_date,
            percentage_of_total=data.percentage_of_total,
            is_initial_payment=data.is_initial_payment
        )


@strawberry.input
class RecordPaymentInput:
    subscription_id: int
    amount: float
    method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


@strawberry.type
class PaymentResponse:
    payment: Optional[PaymentRecord]
    subscription: Optional[Subscription]
    message: str
