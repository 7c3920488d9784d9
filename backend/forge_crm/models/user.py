from datetime import datetime

from sqlalchemy import Boolean, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from forge_crm.db.base import Base, TimestampMixin, UUIDMixin

ROLES = ("SUPER_ADMIN", "ADMIN", "MANAGER", "SALES_REP", "MARKETING_REP")
ADMIN_ROLES = ("SUPER_ADMIN", "ADMIN")


class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)  # soft deactivation
    exclude_from_reporting: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Null means onboarding has not started: no grace period applies.
    hired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    monthly_quota: Mapped[float | None] = mapped_column(Numeric(18, 2), nullable=True)
    manager_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
