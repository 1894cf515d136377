from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import NotFoundError, ValidationError
from app.crud.paymentsCrud import get_subscription_payments, list_payments, record_payment
from app.crud.subscriptionsCrud import _subscription_stmt, create_subscription, get_subscription
from app.models import Payment, PaymentMethod


@pytest.fixture
async def subscription(db, gym_client, monthly_plan):
    return await create_subscription(db, gym_client.id, monthly_plan.id, start_date=date(2024, 1, 1))


class TestRecordPayment:
    async def test_partial_payment_updates_balance(self, db, subscription):
        payment = await record_payment(db, subscription_id=subscription.id, amount=250, method="CASH")

        reloaded = await get_subscription(db, subscription.id, lock=True)
        assert payment.amount == Decimal("250")
        assert reloaded.amount_paid == Decimal("250")
        assert reloaded.remaining_balance == Decimal("250")
        assert reloaded.is_fully_paid is False
        assert reloaded.payment_percentage == Decimal("50")

    async def test_balance_matches_payment_sum_after_each_payment(self, db, subscription):
        for amount in ("100.00", "150.50", "49.50"):
            await record_payment(db, subscription_id=subscription.id, amount=amount)

            reloaded = await get_subscription(db, subscription.id, lock=True)
            payments = await list_payments(db, subscription.id)
            paid = sum((p.amount for p in payments), Decimal("0"))
            assert reloaded.amount_paid == paid
            assert reloaded.total_price - reloaded.amount_paid == reloaded.remaining_balance

        assert reloaded.remaining_balance == Decimal("200")

    async def test_overpayment_leaves_credit(self, db, subscription):
        await record_payment(db, subscription_id=subscription.id, amount=300)
        await record_payment(db, subscription_id=subscription.id, amount=300)

        reloaded = await get_subscription(db, subscription.id, lock=True)
        assert reloaded.amount_paid == Decimal("600")
        assert reloaded.remaining_balance == Decimal("-100")
        assert reloaded.is_fully_paid is True

    async def test_default_method_comes_from_settings(self, db, subscription):
        payment = await record_payment(db, subscription_id=subscription.id, amount=100)
        assert payment.method == PaymentMethod.CASH

    async def test_method_is_case_insensitive(self, db, subscription):
        payment = await record_payment(db, subscription_id=subscription.id, amount=100, method="card")
        assert payment.method == PaymentMethod.CARD

    async def test_stores_actor_notes_and_date(self, db, subscription, staff):
        paid_at = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
        payment = await record_payment(
            db,
            subscription_id=subscription.id,
            amount=100,
            method="TRANSFER",
            notes="bank ref 7781",
            processed_by=staff.id,
            paid_at=paid_at,
        )

        assert payment.processed_by == staff.id
        assert payment.notes == "bank ref 7781"
        assert payment.payment_date.replace(tzinfo=None) == paid_at.replace(tzinfo=None)

    async def test_sub_cent_amount_is_rounded_to_cents(self, db, subscription):
        payment = await record_payment(db, subscription_id=subscription.id, amount="0.005")

        reloaded = await get_subscription(db, subscription.id, lock=True)
        assert payment.amount == Decimal("0.01")
        assert reloaded.amount_paid == Decimal("0.01")
        assert reloaded.remaining_balance == Decimal("499.99")
        assert reloaded.total_price - reloaded.amount_paid == reloaded.remaining_balance

    async def test_float_amounts_keep_the_balance_exact(self, db, subscription):
        for amount in (0.1, 0.2, 33.333):
            await record_payment(db, subscription_id=subscription.id, amount=amount)

        reloaded = await get_subscription(db, subscription.id, lock=True)
        assert reloaded.amount_paid == Decimal("33.63")
        assert reloaded.remaining_balance == Decimal("466.37")

    @pytest.mark.parametrize("amount", [0, -5, "0.00", "0.004", "abc", "NaN", "1e40", None])
    async def test_rejects_invalid_amounts(self, db, subscription, amount):
        with pytest.raises(ValidationError):
            await record_payment(db, subscription_id=subscription.id, amount=amount)

        reloaded = await get_subscription(db, subscription.id, lock=True)
        assert reloaded.amount_paid == Decimal("0")
        assert await list_payments(db, subscription.id) == []

    async def test_rejects_unknown_method(self, db, subscription):
        with pytest.raises(ValidationError):
            await record_payment(db, subscription_id=subscription.id, amount=100, method="BITCOIN")

    async def test_unknown_subscription(self, db):
        with pytest.raises(NotFoundError):
            await record_payment(db, subscription_id=12345, amount=100)

    async def test_unknown_staff_member(self, db, subscription):
        with pytest.raises(NotFoundError):
            await record_payment(db, subscription_id=subscription.id, amount=100, processed_by=77)


class TestPaymentHistory:
    async def test_history_marks_initial_payment_and_share(self, db, subscription):
        first = await record_payment(
            db, subscription_id=subscription.id, amount=250,
            paid_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        )
        second = await record_payment(
            db, subscription_id=subscription.id, amount=125,
            paid_at=datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
        )

        history = await get_subscription_payments(db, subscription.id)

        assert [item.id for item in history] == [first.id, second.id]
        assert [item.is_initial_payment for item in history] == [True, False]
        assert history[0].percentage_of_total == 50.0
        assert history[1].percentage_of_total == 25.0

    async def test_history_of_unknown_subscription(self, db):
        with pytest.raises(NotFoundError):
            await get_subscription_payments(db, 999)

    def test_percentage_of_zero_total(self):
        payment = Payment(amount=Decimal("100"), method="CASH")
        assert payment.percentage_of(Decimal("0")) == Decimal("0")

    def test_payment_links_only_to_its_subscription(self):
        assert set(inspect(Payment).relationships.keys()) == {"subscription"}


class TestConcurrentPayments:
    def test_balance_read_locks_the_subscription_row(self):
        locked = str(_subscription_stmt(1, lock=True).compile(dialect=postgresql.dialect()))
        plain = str(_subscription_stmt(1).compile(dialect=postgresql.dialect()))

        assert "FOR UPDATE" in locked
        assert "FOR UPDATE" not in plain

    async def test_payment_from_stale_session_keeps_earlier_payment(self, engine, subscription):
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with session_factory() as front_desk, session_factory() as kiosk:
            # The kiosk reads the balance before the front desk takes a payment
            stale = await get_subscription(kiosk, subscription.id)
            assert stale.amount_paid == Decimal("0")
            await kiosk.commit()

            await record_payment(front_desk, subscription_id=subscription.id, amount=250, method="CASH")
            await record_payment(kiosk, subscription_id=subscription.id, amount=250, method="CARD")

        async with session_factory() as fresh:
            reloaded = await get_subscription(fresh, subscription.id)
            payments = await list_payments(fresh, subscription.id)

        assert len(payments) == 2
        assert reloaded.amount_paid == Decimal("500")
        assert reloaded.remaining_balance == Decimal("0")
        assert reloaded.is_fully_paid is True
