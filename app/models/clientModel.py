"""
Gym clients
"""
from datetime import date, datetime, timezone
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import Date, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from app.db.postgresql import Base, BigIntPK
from app.models.enums import Gender, sql_in

if TYPE_CHECKING:
    from app.models.membershipsModel import Subscription
    from app.models.attendanceModel import Attendance


class Client(Base):
    """A gym client and their access identity"""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200))
    gender: Mapped[Optional[str]] = mapped_column(String(10))
    birth_date: Mapped[Optional[date]] = mapped_column(Date)
    # Opaque token assigned by the fingerprint device
    fingerprint_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    subscriptions: Mapped[List["Subscription"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )
    attendances: Mapped[List["Attendance"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(f"gender IN ({sql_in(Gender)})", name="ck_client_gender"),
    )
