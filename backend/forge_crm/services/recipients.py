"""CC routing by severity and the onboarding grace-period subject marker."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from forge_crm.core.config import settings
from forge_crm.rules.severity import Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecipientPolicy:
    hr_email: str
    leadership_email: str
    manager_email: str
    grace_period_days: int = 14
    onboarding_prefix: str = "[ONBOARDING] "

    @classmethod
    def from_settings(cls) -> "RecipientPolicy":
        return cls(
            hr_email=settings.HR_EMAIL,
            leadership_email=settings.LEADERSHIP_EMAIL,
            manager_email=settings.MANAGER_EMAIL,
            grace_period_days=settings.GRACE_PERIOD_DAYS,
            onboarding_prefix=settings.ONBOARDING_SUBJECT_PREFIX,
        )

    def resolve_cc(
        self,
        severity: Severity,
        manager_email: str | None = None,
        always_cc_leadership: bool = False,
        always_cc_hr: bool = False,
    ) -> list[str]:
        """RED escalates to HR + leadership, YELLOW goes to the manager, GREEN to HR.

        ``manager_email`` overrides the default manager list for YELLOW.
        ``always_cc_leadership`` adds leadership on every tier (marketing weekly).
        ``always_cc_hr`` adds HR on every tier (monthly sales review).
        """
        severity = Severity(severity)
        if severity == Severity.RED:
            cc = [self.hr_email, self.leadership_email]
        elif severity == Severity.YELLOW:
            cc = [manager_email or self.manager_email]
        else:
            cc = [self.hr_email]

        if always_cc_hr and self.hr_email not in cc:
            cc.insert(0, self.hr_email)
        if always_cc_leadership and self.leadership_email not in cc:
            cc.insert(0, self.leadership_email)
        return [addr for addr in cc if addr]

    def in_grace_period(self, hired_at: datetime | None, now: datetime) -> bool:
        # A null hire date means full accountability, not an open-ended grace period.
        if hired_at is None:
            return False
        if hired_at.tzinfo is None:
            hired_at = hired_at.replace(tzinfo=timezone.utc)
        return now - hired_at < timedelta(days=self.grace_period_days)

    def grace_days_remaining(self, hired_at: datetime | None, now: datetime) -> int:
        if not self.in_grace_period(hired_at, now):
            return 0
        if hired_at.tzinfo is None:
            hired_at = hired_at.replace(tzinfo=timezone.utc)
        remaining = hired_at + timedelta(days=self.grace_period_days) - now
        return max(0, remaining.days + (1 if remaining.seconds else 0))

    def apply_grace_period(self, subject: str, hired_at: datetime | None, now: datetime) -> str:
        if self.in_grace_period(hired_at, now):
            return f"{self.onboarding_prefix}{subject}"
        return subject
