"""Celery tasks for the scheduled performance alert runs.

Each task opens its own engine on a fresh event loop, runs one alert
family and returns the JSON run report.
"""
import asyncio
import logging

from sqlalchemy.pool import NullPool

from forge_crm.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _run_family(family_name: str) -> dict:
    from forge_crm.core.config import settings
    from forge_crm.db.session import create_engine_for, create_session_factory
    from forge_crm.services.alert_jobs import run_family

    # NullPool: connections must not outlive this task's event loop.
    engine = create_engine_for(
        settings.DATABASE_URL,
        poolclass=NullPool,
        connect_args={"command_timeout": settings.ALERT_IO_TIMEOUT_SECONDS},
    )
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as db:
            report = await run_family(family_name, db, session_factory=session_factory)
    finally:
        await engine.dispose()
    return report.to_dict()


def run_alert_family(family_name: str) -> dict:
    logger.info("%s: starting alert run", family_name)
    try:
        report = asyncio.run(_run_family(family_name))
    except Exception as exc:
        logger.exception("%s alert run failed: %s", family_name, exc)
        return {"status": "error", "family": family_name, "error": str(exc)}
    logger.info(
        "%s: complete, processed=%d summary=%s",
        family_name, report["processed"], report["summary"],
    )
    return report


@celery_app.task(name="forge_crm.workers.alert_tasks.quota_check")
def quota_check():
    """Daily 09:00 UTC. Monthly quota attainment, deduplicated per month."""
    return run_alert_family("quota")


@celery_app.task(name="forge_crm.workers.alert_tasks.activity_check")
def activity_check():
    """Friday 16:00 UTC. Weekly activity volume against role targets."""
    return run_alert_family("activity")


@celery_app.task(name="forge_crm.workers.alert_tasks.task_check")
def task_check():
    """Daily 08:00 UTC. Overdue follow-up tasks, deduplicated per day."""
    return run_alert_family("task")


@celery_app.task(name="forge_crm.workers.alert_tasks.stale_check")
def stale_check():
    """Daily 08:30 UTC. Idle deals and leads."""
    return run_alert_family("stale")


@celery_app.task(name="forge_crm.workers.alert_tasks.marketing_weekly")
def marketing_weekly():
    """Monday 09:00 UTC. Marketing success rate over the last 7 days."""
    return run_alert_family("marketing-weekly")


@celery_app.task(name="forge_crm.workers.alert_tasks.marketing_monthly")
def marketing_monthly():
    """1st of the month 09:00 UTC. Review of the previous month with team rank."""
    return run_alert_family("marketing-monthly")


@celery_app.task(name="forge_crm.workers.alert_tasks.monthly_review")
def monthly_review():
    """1st of the month 08:00 UTC. Sales review of the previous month: quota, win rate, team rank."""
    return run_alert_family("monthly-review")
