"""
Check-in audit records. Rows are inserted once and never updated.
"""
import datetime as dt
from typing import Optional, TYPE_CHECKING
from sqlalchemy import Date, ForeignKey, String, Text, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from app.db.postgresql import Base, BigIntPK
from app.models.enums import AccessResult, sql_in

if TYPE_CHECKING:
    from app.models.clientModel import Client
    from app.models.membershipsModel import Subscription


class Attendance(Base):
    """One gym-entry attempt and its verdict"""

    __tablename__ = "attendances"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    subscription_id: Mapped[Optional[int]] = mapped_column(ForeignKey("subscriptions.id", ondelete="SET NULL"))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    check_in_time: Mapped[dt.datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    access_result: Mapped[str] = mapped_column(String(40), nullable=False)
    denial_reason: Mapped[Optional[str]] = mapped_column(Text)
    device_token: Mapped[Optional[str]] = mapped_column(String(100))

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="attendances")
    subscription: Mapped[Optional["Subscription"]] = relationship()

    __table_args__ = (
        CheckConstraint(f"access_result IN ({sql_in(AccessResult)})", name="ck_attendance_access_result"),
        Index("idx_attendances_client_date", "client_id", "date"),
        Index("idx_attendances_date_result", "date", "access_result"),
    )

    @property
    def granted(self) -> bool:
        return self.access_result == AccessResult.GRANTED
