"""
Staff accounts that operate the front desk
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Boolean, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP

from app.db.postgresql import Base, BigIntPK
from app.models.enums import StaffRole, sql_in


class StaffAccount(Base):
    """Login accounts for admins and staff; recorded as the actor on payments"""

    __tablename__ = "staff_accounts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint(f"role IN ({sql_in(StaffRole)})", name="ck_staff_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == StaffRole.ADMIN
