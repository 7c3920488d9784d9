"""Raw per-user numbers for the alert families, read straight from the database.

Nothing here classifies or decides; callers get plain dicts, lists and
floats and hand them to the pure rules in forge_crm.rules.

Every query runs on a short-lived session of its own, opened from the
session factory. The runner may cancel a slow fetch on timeout, and a
cancelled query only takes down its own connection, never the session the
run records alerts and email logs on.
"""
import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from forge_crm.models.activity import Activity, Task
from forge_crm.models.deal import CLOSED_STAGES, Deal, Lead
from forge_crm.models.marketing_task import MarketingTask
from forge_crm.models.user import User
from forge_crm.rules.periods import days_since
from forge_crm.rules.severity import StaleItem

logger = logging.getLogger(__name__)

_ACTIVITY_KEYS = {"CALL": "calls", "EMAIL": "emails", "MEETING": "meetings", "NOTE": "notes"}


class SqlMetricSource:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load_candidates(self, roles: list[str] | tuple[str, ...]) -> list[User]:
        """Active users holding one of *roles*, oldest first.

        The rows come back detached; every column is loaded, so the runner
        can read them without a session.
        """
        async with self.session_factory() as db:
            result = await db.execute(
                select(User)
                .where(User.role.in_(list(roles)), User.is_active.is_(True))
                .order_by(User.created_at)
            )
            return list(result.scalars().all())

    async def count_activities(self, user_id: uuid.UUID, since: datetime) -> dict[str, int]:
        """Activity counts by type since *since*: {calls, emails, meetings, notes}."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Activity.type, func.count(Activity.id))
                .where(Activity.user_id == user_id, Activity.created_at >= since)
                .group_by(Activity.type)
            )
            rows = result.all()
        counts = {key: 0 for key in _ACTIVITY_KEYS.values()}
        for activity_type, count in rows:
            key = _ACTIVITY_KEYS.get(activity_type)
            if key:
                counts[key] = int(count)
        return counts

    async def count_activities_between(self, user_id: uuid.UUID, start: datetime, end: datetime) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.count(Activity.id)).where(
                    Activity.user_id == user_id,
                    Activity.created_at >= start,
                    Activity.created_at < end,
                )
            )
            return int(result.scalar_one() or 0)

    async def team_activity_total(self, roles: list[str] | tuple[str, ...], since: datetime) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.count(Activity.id))
                .join(User, User.id == Activity.user_id)
                .where(
                    Activity.created_at >= since,
                    User.role.in_(list(roles)),
                    User.exclude_from_reporting.is_(False),
                )
            )
            return int(result.scalar_one() or 0)

    async def sum_won_revenue(self, user_id: uuid.UUID, start: datetime, end: datetime) -> float:
        """Sum of CLOSED_WON deal amounts closed in [start, end)."""
        closed = func.coalesce(Deal.closed_at, Deal.updated_at)
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.coalesce(func.sum(Deal.amount_total), 0)).where(
                    Deal.owner_id == user_id,
                    Deal.stage == "CLOSED_WON",
                    closed >= start,
                    closed < end,
                )
            )
            return float(result.scalar_one() or 0)

    async def closed_deal_counts(self, user_id: uuid.UUID, start: datetime, end: datetime) -> tuple[int, int]:
        """(won, closed) deal counts for deals closed in [start, end)."""
        closed = func.coalesce(Deal.closed_at, Deal.updated_at)
        async with self.session_factory() as db:
            result = await db.execute(
                select(Deal.stage, func.count(Deal.id))
                .where(
                    Deal.owner_id == user_id,
                    Deal.stage.in_(list(CLOSED_STAGES)),
                    closed >= start,
                    closed < end,
                )
                .group_by(Deal.stage)
            )
            by_stage = {stage: int(count) for stage, count in result.all()}
        return by_stage.get("CLOSED_WON", 0), sum(by_stage.values())

    async def task_completion(self, user_id: uuid.UUID, start: datetime, end: datetime) -> tuple[int, int]:
        """(created, completed) counts for tasks created in [start, end)."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Task.completed, func.count(Task.id))
                .where(Task.user_id == user_id, Task.created_at >= start, Task.created_at < end)
                .group_by(Task.completed)
            )
            by_state = {bool(done): int(count) for done, count in result.all()}
        return sum(by_state.values()), by_state.get(True, 0)

    async def list_overdue_tasks(self, user_id: uuid.UUID, now: datetime) -> list[dict]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Task)
                .where(Task.user_id == user_id, Task.completed.is_(False), Task.due_date < now)
                .order_by(Task.due_date.asc())
            )
            tasks = result.scalars().all()
        return [
            {
                "id": str(task.id),
                "title": task.title,
                "due_date": task.due_date.isoformat(),
                "days_overdue": days_since(task.due_date, now),
            }
            for task in tasks
        ]

    async def list_open_pipeline(self, user_id: uuid.UUID, now: datetime) -> tuple[list[StaleItem], list[StaleItem]]:
        """Open deals and unconverted leads with their days since last update."""
        async with self.session_factory() as db:
            deals = await db.execute(
                select(Deal.id, Deal.name, Deal.updated_at).where(
                    Deal.owner_id == user_id,
                    Deal.stage.notin_(list(CLOSED_STAGES)),
                )
            )
            leads = await db.execute(
                select(Lead.id, Lead.name, Lead.updated_at).where(
                    Lead.owner_id == user_id,
                    Lead.is_converted.is_(False),
                    Lead.status != "UNQUALIFIED",
                )
            )
            deal_rows, lead_rows = deals.all(), leads.all()
        return (
            [StaleItem(str(i), name, days_since(updated, now)) for i, name, updated in deal_rows],
            [StaleItem(str(i), name, days_since(updated, now)) for i, name, updated in lead_rows],
        )

    async def list_marketing_tasks(self, user_id: uuid.UUID, start: datetime, end: datetime) -> list[MarketingTask]:
        """Completed, non-template marketing tasks dated in [start, end)."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(MarketingTask).where(
                    MarketingTask.user_id == user_id,
                    MarketingTask.status == "COMPLETED",
                    MarketingTask.is_template.is_(False),
                    MarketingTask.task_date >= start,
                    MarketingTask.task_date < end,
                )
            )
            return list(result.scalars().all())

    async def count_missing_outcomes(self, user_id: uuid.UUID, now: datetime, older_than_days: int = 3) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.count(MarketingTask.id)).where(
                    MarketingTask.user_id == user_id,
                    MarketingTask.status == "COMPLETED",
                    MarketingTask.is_template.is_(False),
                    MarketingTask.outcome.is_(None),
                    MarketingTask.task_date <= now - timedelta(days=older_than_days),
                )
            )
            return int(result.scalar_one() or 0)

    async def closed_deal_outcomes(self, user_id: uuid.UUID, since: datetime) -> list[tuple[datetime, bool]]:
        closed = func.coalesce(Deal.closed_at, Deal.updated_at)
        async with self.session_factory() as db:
            result = await db.execute(
                select(closed, Deal.stage).where(
                    Deal.owner_id == user_id,
                    Deal.stage.in_(list(CLOSED_STAGES)),
                    closed >= since,
                )
            )
            return [(closed_at, stage == "CLOSED_WON") for closed_at, stage in result.all()]
