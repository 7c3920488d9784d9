"""Pipeline models: deals and leads owned by a rep."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from forge_crm.db.base import Base, TimestampMixin, UUIDMixin

DEAL_STAGES = (
    "PROSPECTING",
    "QUALIFICATION",
    "PROPOSAL",
    "NEGOTIATION",
    "CLOSED_WON",
    "CLOSED_LOST",
)
CLOSED_STAGES = ("CLOSED_WON", "CLOSED_LOST")

LEAD_STATUSES = ("NEW", "CONTACTED", "QUALIFIED", "UNQUALIFIED")


class Deal(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "deals"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    stage: Mapped[str] = mapped_column(String(50), nullable=False, default="PROSPECTING", index=True)
    amount_total: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Lead(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "leads"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="NEW")
    is_converted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
