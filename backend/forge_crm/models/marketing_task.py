"""Marketing task model with recorded outcomes."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from forge_crm.db.base import Base, TimestampMixin, UUIDMixin

MARKETING_TASK_TYPES = (
    "LINKEDIN_OUTREACH",
    "COLD_EMAIL",
    "SOCIAL_POST",
    "BLOG_POST",
    "EMAIL_CAMPAIGN",
    "EVENT",
    "WEBINAR",
    "CONTENT_CREATION",
    "OTHER",
)
MARKETING_OUTCOMES = ("SUCCESS", "PARTIAL", "FAILED")


class MarketingTask(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "marketing_tasks"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PLANNED")  # PLANNED, COMPLETED
    # Null until the rep records how the task landed.
    outcome: Mapped[str | None] = mapped_column(String(20), nullable=True)
    task_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    lead_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_template: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    template_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    template_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
