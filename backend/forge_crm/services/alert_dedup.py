"""At-most-one alert per (user, kind, period).

The unique constraint on alert_records is what actually guarantees this;
has_sent() is only a fast path that saves a mail send in the common case.
Two overlapping runs can both pass has_sent(), and the loser of the insert
race gets a ConflictError, which callers treat as "already sent".

The insert runs inside a SAVEPOINT so that losing the race only rolls back
the savepoint. The run's session and everything loaded through it stay
usable for the remaining users.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forge_crm.core.exceptions import ConflictError
from forge_crm.models.alert import AlertRecord, EmailLog

logger = logging.getLogger(__name__)


class AlertDeduplicator:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def has_sent(self, user_id: uuid.UUID, alert_kind: str, period: str) -> bool:
        result = await self.db.execute(
            select(AlertRecord.id).where(
                AlertRecord.user_id == user_id,
                AlertRecord.alert_kind == str(alert_kind),
                AlertRecord.period == period,
            )
        )
        return result.scalar_one_or_none() is not None

    async def record_sent(
        self,
        user_id: uuid.UUID,
        alert_kind: str,
        severity: str,
        period: str,
        sent_at: datetime | None = None,
    ) -> AlertRecord:
        """Insert and commit the alert record.

        Raises:
            ConflictError: a record for the same (user, kind, period) exists.
        """
        record = AlertRecord(
            user_id=user_id,
            alert_kind=str(alert_kind),
            severity=str(severity),
            period=period,
            sent_at=sent_at or datetime.now(timezone.utc),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(record)
        except IntegrityError as exc:
            # Constraint names differ per backend; the row itself is the evidence.
            if not await self.has_sent(user_id, alert_kind, period):
                raise
            logger.info("record_sent: %s/%s/%s already recorded by another run", user_id, alert_kind, period)
            raise ConflictError(user_id, str(alert_kind), period) from exc
        await self.db.commit()
        return record

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 50) -> list[AlertRecord]:
        result = await self.db.execute(
            select(AlertRecord)
            .where(AlertRecord.user_id == user_id)
            .order_by(AlertRecord.sent_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class EmailLogStore:
    """Permanent log of every alert email attempt."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        *,
        user_id: uuid.UUID,
        alert_kind: str,
        severity: str,
        period: str,
        recipient_to: str,
        recipients_cc: list[str],
        subject: str,
        provider_message_id: str | None,
        error_message: str | None = None,
    ) -> EmailLog:
        entry = EmailLog(
            user_id=user_id,
            alert_kind=str(alert_kind),
            severity=str(severity),
            period=period,
            recipient_to=recipient_to,
            recipients_cc=list(recipients_cc),
            subject=subject,
            provider_message_id=provider_message_id,
            status="failed" if error_message else "sent",
            error_message=error_message,
        )
        self.db.add(entry)
        await self.db.commit()
        return entry
