import os

# Settings are read once at import time; point them at SQLite before any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DB_SCHEMA"] = ""
os.environ["GYM_TIMEZONE"] = "UTC"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_TO_FILE"] = "false"

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.auth.hashing import hash_password
from app.db.postgresql import Base
from app.models import Client, StaffAccount, StaffRole, Subscription, SubscriptionPlan, SubscriptionStatus


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def staff(db):
    account = StaffAccount(
        username="frontdesk",
        full_name="Front Desk",
        password_hash=hash_password("desk-pass", rounds=4),
        role=StaffRole.STAFF.value,
    )
    db.add(account)
    await db.commit()
    return account


@pytest.fixture
async def admin(db):
    account = StaffAccount(
        username="manager",
        full_name="Gym Manager",
        password_hash=hash_password("manager-pass", rounds=4),
        role=StaffRole.ADMIN.value,
    )
    db.add(account)
    await db.commit()
    return account


@pytest.fixture
async def gym_client(db):
    client = Client(full_name="Amina Benali", phone="0600000001", fingerprint_id="fp-0001")
    db.add(client)
    await db.commit()
    return client


@pytest.fixture
async def other_client(db):
    client = Client(full_name="Youssef Alaoui", phone="0600000002")
    db.add(client)
    await db.commit()
    return client


@pytest.fixture
async def monthly_plan(db):
    plan = SubscriptionPlan(name="Monthly", price=Decimal("500.00"), duration_months=1, is_active=True)
    db.add(plan)
    await db.commit()
    return plan


@pytest.fixture
async def quarterly_plan(db):
    plan = SubscriptionPlan(name="Quarterly", price=Decimal("1350.00"), duration_months=3, is_active=True)
    db.add(plan)
    await db.commit()
    return plan


@pytest.fixture
def add_subscription(db):
    """Insert a subscription row directly, bypassing the creation rules."""

    async def _add(
        client,
        plan,
        start_date: date,
        end_date: date,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        amount_paid: Decimal = Decimal("0"),
    ) -> Subscription:
        total = Decimal(plan.price)
        subscription = Subscription(
            client_id=client.id,
            plan_id=plan.id,
            start_date=start_date,
            end_date=end_date,
            status=status.value,
            total_price=total,
            amount_paid=amount_paid,
            remaining_balance=total - amount_paid,
        )
        db.add(subscription)
        await db.commit()
        return subscription

    return _add
