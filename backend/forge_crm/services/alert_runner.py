"""Performance alert runner.

One parameterized loop serves every alert family (quota, activity, task,
stale pipeline, marketing weekly/monthly, monthly sales review). For each
eligible user:

    skip checks -> fetch metrics -> classify -> period key -> dedup check
    -> CC + grace-period subject -> send -> record sent -> outcome

Per-user failures (mail delivery, metric fetch timeout, dedup race) end up
in the run report. Anything else, e.g. the database going away, propagates
and aborts the run; users already processed keep their recorded state.
"""
import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable

from forge_crm.core.exceptions import ConflictError, DeliveryError, ValidationError
from forge_crm.rules.periods import Cadence, period_key
from forge_crm.rules.severity import Classification, Severity
from forge_crm.services.alert_templates import EmailContent
from forge_crm.services.recipients import RecipientPolicy

logger = logging.getLogger(__name__)

# ─── Outcome statuses ───
ALERT_SENT = "alert_sent"
ALREADY_SENT = "already_sent"
NO_ALERT = "no_alert_needed"
EMAIL_FAILED = "email_failed"
FETCH_FAILED = "fetch_failed"
EXCLUDED = "excluded"
SKIPPED_ROLE = "skipped_role"
SKIPPED_REPORTING = "skipped_reporting"


@dataclass(frozen=True)
class AlertFamily:
    """What varies between alert families; the loop itself never does."""

    name: str
    cadence: Cadence
    roles: tuple[str, ...]
    # (source, user, now, context) -> metrics dict
    fetch: Callable[[Any, Any, datetime, dict], Awaitable[dict]]
    # (metrics, user, context) -> Classification | None, must be pure
    classify: Callable[[dict, Any, dict], Classification | None]
    # (user_name, severity, metrics) -> EmailContent
    compose: Callable[[str, Severity, dict], EmailContent]
    # (source, eligible_users, now) -> run-wide context, e.g. team averages
    prepare: Callable[[Any, list, datetime], Awaitable[dict]] | None = None
    # Date whose bucket the period key uses; defaults to now.
    period_anchor: Callable[[datetime], datetime | date] | None = None
    always_cc_leadership: bool = False
    always_cc_hr: bool = False
    # Metric echoed into every per-user outcome, e.g. "overdue_count".
    report_metric: str | None = None


@dataclass
class RunReport:
    family: str
    period: str
    timestamp: datetime
    results: list[dict] = field(default_factory=list)
    extra: dict = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return len(self.results)

    def summary(self) -> dict[str, int]:
        return dict(Counter(r["status"] for r in self.results))

    def to_dict(self) -> dict:
        return {
            "success": True,
            "family": self.family,
            "period": self.period,
            "processed": self.processed,
            "summary": self.summary(),
            "results": self.results,
            "timestamp": self.timestamp.isoformat(),
            **self.extra,
        }


class AlertRunner:
    def __init__(
        self,
        family: AlertFamily,
        source,
        dedup,
        exclusions,
        mailer,
        recipients: RecipientPolicy,
        email_log=None,
        io_timeout: float = 15.0,
    ):
        self.family = family
        self.source = source
        self.dedup = dedup
        self.exclusions = exclusions
        self.mailer = mailer
        self.recipients = recipients
        self.email_log = email_log
        self.io_timeout = io_timeout

    def _static_skip(self, user) -> str | None:
        if user.role not in self.family.roles:
            return SKIPPED_ROLE
        if getattr(user, "exclude_from_reporting", False):
            return SKIPPED_REPORTING
        return None

    def _outcome(self, user, status: str, classification: Classification | None = None,
                 metrics: dict | None = None) -> dict:
        outcome = {"user_id": str(user.id), "user_name": user.name, "status": status}
        if classification is not None:
            outcome["alert_kind"] = classification.kind.value
            outcome["severity"] = classification.severity.value
        if metrics is not None and self.family.report_metric:
            outcome[self.family.report_metric] = metrics.get(self.family.report_metric)
        return outcome

    async def run(self, users: list | None = None, now: datetime | None = None) -> RunReport:
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            raise ValidationError("run time must be timezone-aware")

        if users is None:
            users = await self.source.load_candidates(self.family.roles)

        eligible = [u for u in users if self._static_skip(u) is None]
        context = await self.family.prepare(self.source, eligible, now) if self.family.prepare else {}

        anchor = self.family.period_anchor(now) if self.family.period_anchor else now
        period = period_key(anchor, self.family.cadence)
        logger.info("alert run %s: period=%s users=%d", self.family.name, period, len(users))

        report = RunReport(
            family=self.family.name,
            period=period,
            timestamp=now,
            extra={k: v for k, v in context.items() if not k.startswith("_")},
        )
        for user in users:
            report.results.append(await self._process(user, now, period, context))

        logger.info("alert run %s complete: %s", self.family.name, report.summary())
        return report

    async def _process(self, user, now: datetime, period: str, context: dict) -> dict:
        skip = self._static_skip(user)
        if skip:
            return self._outcome(user, skip)

        if await self.exclusions.is_excluded(user.id, now):
            logger.info("alert run %s: user %s excluded", self.family.name, user.id)
            return self._outcome(user, EXCLUDED)

        try:
            metrics = await asyncio.wait_for(
                self.family.fetch(self.source, user, now, context), self.io_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("alert run %s: metric fetch timed out for user %s", self.family.name, user.id)
            return self._outcome(user, FETCH_FAILED)

        classification = self.family.classify(metrics, user, context)
        if classification is None:
            return self._outcome(user, NO_ALERT, metrics=metrics)

        kind = classification.kind.value
        severity = classification.severity
        if await self.dedup.has_sent(user.id, kind, period):
            return self._outcome(user, ALREADY_SENT, classification, metrics)

        content = self.family.compose(user.name, severity, metrics)
        cc = self.recipients.resolve_cc(
            severity,
            manager_email=getattr(user, "manager_email", None),
            always_cc_leadership=self.family.always_cc_leadership,
            always_cc_hr=self.family.always_cc_hr,
        )
        subject = self.recipients.apply_grace_period(content.subject, user.hired_at, now)

        try:
            message_id = await asyncio.wait_for(
                self.mailer.send(user.email, cc, subject, content.html, content.text),
                self.io_timeout,
            )
        except (DeliveryError, asyncio.TimeoutError) as exc:
            error = str(exc) or "mail send timed out"
            logger.warning("alert run %s: %s to %s failed: %s", self.family.name, kind, user.email, error)
            await self._log_email(user, kind, severity, period, cc, subject, None, error)
            return self._outcome(user, EMAIL_FAILED, classification, metrics)

        await self._log_email(user, kind, severity, period, cc, subject, message_id, None)

        # Mail is out; if recording fails below, the next run may resend (at-least-once).
        try:
            await self.dedup.record_sent(user.id, kind, severity.value, period)
        except ConflictError:
            return self._outcome(user, ALREADY_SENT, classification, metrics)

        logger.info("alert run %s: %s sent to %s (%s)", self.family.name, kind, user.email, message_id)
        return self._outcome(user, ALERT_SENT, classification, metrics)

    async def _log_email(self, user, kind, severity, period, cc, subject, message_id, error) -> None:
        if self.email_log is None:
            return
        await self.email_log.record(
            user_id=user.id,
            alert_kind=kind,
            severity=Severity(severity).value,
            period=period,
            recipient_to=user.email,
            recipients_cc=cc,
            subject=subject,
            provider_message_id=message_id,
            error_message=error,
        )
