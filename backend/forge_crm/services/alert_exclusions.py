"""Alert exclusion windows (leave, training, ...)."""
import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forge_crm.core.exceptions import ValidationError
from forge_crm.models.alert import AlertExclusion

logger = logging.getLogger(__name__)


def validate_window(start_date: datetime, end_date: datetime) -> None:
    if start_date.tzinfo is None or end_date.tzinfo is None:
        raise ValidationError("start_date and end_date must carry a timezone")
    if end_date <= start_date:
        raise ValidationError("end_date must be after start_date")


class ExclusionStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_excluded(self, user_id: uuid.UUID, now: datetime) -> bool:
        """True when *now* falls inside any [start_date, end_date] window for the user."""
        result = await self.db.execute(
            select(AlertExclusion.id)
            .where(
                AlertExclusion.user_id == user_id,
                AlertExclusion.start_date <= now,
                AlertExclusion.end_date >= now,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_windows(self, user_id: uuid.UUID | None = None) -> list[AlertExclusion]:
        stmt = select(AlertExclusion).order_by(AlertExclusion.start_date.desc())
        if user_id is not None:
            stmt = stmt.where(AlertExclusion.user_id == user_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get(self, exclusion_id: uuid.UUID) -> AlertExclusion | None:
        result = await self.db.execute(
            select(AlertExclusion).where(AlertExclusion.id == exclusion_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        user_id: uuid.UUID,
        start_date: datetime,
        end_date: datetime,
        reason: str,
        created_by: uuid.UUID | None = None,
    ) -> AlertExclusion:
        validate_window(start_date, end_date)
        exclusion = AlertExclusion(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            created_by=created_by,
        )
        self.db.add(exclusion)
        await self.db.commit()
        await self.db.refresh(exclusion)
        logger.info("Alert exclusion %s created for user %s", exclusion.id, user_id)
        return exclusion

    async def update(
        self,
        exclusion: AlertExclusion,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        reason: str | None = None,
    ) -> AlertExclusion:
        validate_window(start_date or exclusion.start_date, end_date or exclusion.end_date)
        if start_date is not None:
            exclusion.start_date = start_date
        if end_date is not None:
            exclusion.end_date = end_date
        if reason is not None:
            exclusion.reason = reason
        await self.db.commit()
        await self.db.refresh(exclusion)
        return exclusion

    async def delete(self, exclusion: AlertExclusion) -> None:
        await self.db.delete(exclusion)
        await self.db.commit()
        logger.info("Alert exclusion %s deleted", exclusion.id)
