"""Performance alert records, exclusions and the permanent email log."""
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from forge_crm.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin


class AlertRecord(Base, UUIDMixin, CreatedAtMixin):
    """One alert sent to one user for one period. Append-only."""

    __tablename__ = "alert_records"
    __table_args__ = (
        UniqueConstraint("user_id", "alert_kind", "period", name="uq_alert_records_user_kind_period"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    alert_kind: Mapped[str] = mapped_column(String(50), nullable=False)  # quota-red, task-yellow, ...
    period: Mapped[str] = mapped_column(String(32), nullable=False)  # 2026-10, 2026-W42, 2026-10-17
    severity: Mapped[str] = mapped_column(String(10), nullable=False)  # RED, YELLOW, GREEN
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )


class AlertExclusion(Base, UUIDMixin, TimestampMixin):
    """Window during which a user receives no performance alerts (leave, training, ...)."""

    __tablename__ = "alert_exclusions"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="end_after_start"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )


class EmailLog(Base, UUIDMixin, CreatedAtMixin):
    """Every alert send attempt, successful or not. Never deleted."""

    __tablename__ = "email_logs"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    alert_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False)
    period: Mapped[str] = mapped_column(String(32), nullable=False)
    recipient_to: Mapped[str] = mapped_column(String(255), nullable=False)
    recipients_cc: Mapped[list[str]] = mapped_column(ARRAY(String(255)), nullable=False, default=list)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    provider_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # sent, failed
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
