"""
Subscription plan, subscription and payment models
Amounts are Numeric(12, 2) and handled as Decimal throughout
"""
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, List, TYPE_CHECKING

from dateutil.relativedelta import relativedelta
from sqlalchemy import (
    Date, ForeignKey, Integer, Numeric, String, Text, Boolean,
    CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from app.db.postgresql import Base, BigIntPK
from app.models.enums import PaymentMethod, SubscriptionStatus, sql_in

if TYPE_CHECKING:
    from app.models.clientModel import Client

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


class SubscriptionPlan(Base):
    """Plan templates from which subscriptions are created"""

    __tablename__ = "subscription_plans"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    duration_months: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    subscriptions: Mapped[List["Subscription"]] = relationship(back_populates="plan")

    def calculate_end_date(self, start_date: Optional[date]) -> Optional[date]:
        """Inclusive last day: start + duration_months months - 1 day."""
        if self.duration_months is None or start_date is None:
            return None
        return start_date + relativedelta(months=self.duration_months) - timedelta(days=1)

    @property
    def price_per_month(self) -> Decimal:
        if self.price is None or not self.duration_months:
            return ZERO
        return Decimal(self.price) / self.duration_months

    @property
    def display_name(self) -> str:
        return f"{self.name} - {Decimal(self.price or 0):.2f} MAD"

    @property
    def is_available(self) -> bool:
        return bool(self.is_active)


class Subscription(Base):
    """A client's subscription to a plan over an inclusive date range"""

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    plan_id: Mapped[int] = mapped_column(ForeignKey("subscription_plans.id"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    # Snapshot of the plan price at creation
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("staff_accounts.id"))
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="subscriptions")
    plan: Mapped["SubscriptionPlan"] = relationship(back_populates="subscriptions")
    payments: Mapped[List["Payment"]] = relationship(
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(SubscriptionStatus)})", name="ck_subscription_status"),
        Index("idx_subscriptions_client", "client_id", "status", "end_date"),
        Index("idx_subscriptions_active", "status", "end_date", postgresql_where="status = 'ACTIVE'"),
    )

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def is_current(self, day: date) -> bool:
        """ACTIVE and the inclusive date range contains the day."""
        return self.status == SubscriptionStatus.ACTIVE and self.covers(day)

    def apply_payment(self, amount: Decimal) -> None:
        # Columns hold cents; keep all three in step so the balance identity survives storage
        amount = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
        self.amount_paid = Decimal(self.amount_paid or ZERO) + amount
        self.remaining_balance = Decimal(self.total_price or ZERO) - self.amount_paid

    @property
    def has_payment(self) -> bool:
        return Decimal(self.amount_paid or ZERO) > ZERO

    @property
    def is_fully_paid(self) -> bool:
        return Decimal(self.remaining_balance or ZERO) <= ZERO

    @property
    def payment_percentage(self) -> Decimal:
        total = Decimal(self.total_price or ZERO)
        if total == ZERO:
            return ZERO
        return Decimal(self.amount_paid or ZERO) / total * HUNDRED


class Payment(Base):
    """Append-only payment records against a subscription"""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    subscription_id: Mapped[int] = mapped_column(ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    processed_by: Mapped[Optional[int]] = mapped_column(ForeignKey("staff_accounts.id"))
    payment_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    subscription: Mapped["Subscription"] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(f"method IN ({sql_in(PaymentMethod)})", name="ck_payment_method"),
        Index("idx_payments_subscription", "subscription_id", "payment_date"),
    )

    def percentage_of(self, total_price: Optional[Decimal]) -> Decimal:
        """Share of the subscription total covered by this payment."""
        total = Decimal(total_price or ZERO)
        if total == ZERO:
            return ZERO
        return Decimal(self.amount) / total * HUNDRED
