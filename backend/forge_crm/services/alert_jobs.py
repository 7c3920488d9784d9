"""Entry points that wire the alert runner to the database and the mailer."""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from forge_crm.core.config import settings
from forge_crm.core.exceptions import UnauthorizedError
from forge_crm.core.security import verify_cron_secret
from forge_crm.db.session import AsyncSessionLocal
from forge_crm.services.alert_dedup import AlertDeduplicator, EmailLogStore
from forge_crm.services.alert_exclusions import ExclusionStore
from forge_crm.services.alert_families import get_family
from forge_crm.services.alert_runner import AlertRunner, RunReport
from forge_crm.services.email import get_mailer
from forge_crm.services.metrics import SqlMetricSource
from forge_crm.services.recipients import RecipientPolicy

logger = logging.getLogger(__name__)


def build_runner(
    family_name: str,
    db: AsyncSession,
    mailer=None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AlertRunner:
    """Alert bookkeeping goes through *db*; metric reads open their own sessions.

    Raises ValidationError for an unknown family.
    """
    return AlertRunner(
        family=get_family(family_name),
        source=SqlMetricSource(session_factory or AsyncSessionLocal),
        dedup=AlertDeduplicator(db),
        exclusions=ExclusionStore(db),
        mailer=mailer or get_mailer(),
        recipients=RecipientPolicy.from_settings(),
        email_log=EmailLogStore(db),
        io_timeout=settings.ALERT_IO_TIMEOUT_SECONDS,
    )


async def run_family(
    family_name: str,
    db: AsyncSession,
    mailer=None,
    now: datetime | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> RunReport:
    runner = build_runner(family_name, db, mailer, session_factory)
    return await runner.run(now=now)


async def trigger(
    family_name: str,
    authorization: str | None,
    db: AsyncSession,
    mailer=None,
    now: datetime | None = None,
) -> RunReport:
    """Externally triggered run. The credential is checked before anything else happens.

    Raises:
        UnauthorizedError: the bearer secret did not verify.
        ValidationError: unknown family.
    """
    if not verify_cron_secret(authorization):
        logger.warning("Rejected %s cron trigger: bad credential", family_name)
        raise UnauthorizedError("invalid cron credential")
    return await run_family(family_name, db, mailer=mailer, now=now)
