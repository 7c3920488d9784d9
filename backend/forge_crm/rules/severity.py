"""Severity classification for performance alerts.

Every classifier here is pure: it takes numbers already fetched from the
database and returns a Classification (alert kind + severity tier) or None
when the metric sits inside the quiet band and no alert should go out.
"""
import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


class Severity(str, enum.Enum):
    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"

    @property
    def rank(self) -> int:
        """0 is the most urgent tier."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.RED: 0, Severity.YELLOW: 1, Severity.GREEN: 2}


class AlertKind(str, enum.Enum):
    QUOTA_RED = "quota-red"
    QUOTA_YELLOW = "quota-yellow"
    QUOTA_GREEN = "quota-green"
    ACTIVITY_RED = "activity-red"
    ACTIVITY_GREEN = "activity-green"
    TASK_RED = "task-red"
    TASK_YELLOW = "task-yellow"
    STALE_RED = "stale-red"
    STALE_YELLOW = "stale-yellow"
    MARKETING_RED = "marketing-red"
    MARKETING_YELLOW = "marketing-yellow"
    MARKETING_GREEN = "marketing-green"
    MARKETING_MONTHLY = "marketing-monthly"
    MONTHLY_REVIEW_RED = "monthly-red"
    MONTHLY_REVIEW_YELLOW = "monthly-yellow"
    MONTHLY_REVIEW_GREEN = "monthly-green"


@dataclass(frozen=True)
class Classification:
    kind: AlertKind
    severity: Severity
    ratio: float | None = None  # percentage the decision was based on, if any


# ─── Thresholds ───

QUOTA_GREEN_PCT = 100.0
QUOTA_YELLOW_PCT = 80.0
QUOTA_RED_PCT = 50.0
QUOTA_RED_MAX_DAYS_REMAINING = 10

ACTIVITY_RED_PCT = 50.0
ACTIVITY_GREEN_PCT = 150.0

TASK_RED_COUNT = 3

MARKETING_RED_PCT = 15.0
MARKETING_GREEN_PCT_WEEKLY = 50.0
MARKETING_GREEN_PCT_MONTHLY = 40.0

# Category-level noise guards for the marketing breakdown
WORST_MIN_OUTCOMES = 3
WORST_MAX_PCT = 30.0
TEMPLATE_MIN_OUTCOMES = 2
TEMPLATE_TOP_PCT = 70.0
TEMPLATE_BOTTOM_PCT = 30.0

MARKETING_TYPE_LABELS = {
    "LINKEDIN_OUTREACH": "LinkedIn Outreach",
    "COLD_EMAIL": "Cold Email",
    "SOCIAL_POST": "Social Posts",
    "BLOG_POST": "Blog Posts",
    "EMAIL_CAMPAIGN": "Email Campaigns",
    "EVENT": "Events",
    "WEBINAR": "Webinars",
    "CONTENT_CREATION": "Content Creation",
    "OTHER": "Other",
}


def ratio_pct(actual: float, target: float) -> float:
    """actual / target as a percentage; 0 when the target is not positive."""
    if target is None or target <= 0:
        return 0.0
    return float(actual) / float(target) * 100.0


# ─── Quota ───

def classify_quota_ratio(ratio: float, days_remaining: int) -> Classification | None:
    if ratio >= QUOTA_GREEN_PCT:
        return Classification(AlertKind.QUOTA_GREEN, Severity.GREEN, ratio)
    if ratio >= QUOTA_YELLOW_PCT:
        return Classification(AlertKind.QUOTA_YELLOW, Severity.YELLOW, ratio)
    if ratio < QUOTA_RED_PCT and days_remaining < QUOTA_RED_MAX_DAYS_REMAINING:
        return Classification(AlertKind.QUOTA_RED, Severity.RED, ratio)
    return None


def classify_quota(actual: float, target: float, days_remaining: int) -> Classification | None:
    """Classify won revenue against the monthly quota target."""
    return classify_quota_ratio(ratio_pct(actual, target), days_remaining)


def classify_monthly_review(actual: float, target: float) -> Classification:
    """Last month's quota attainment. The review always produces a tier."""
    ratio = ratio_pct(actual, target)
    if ratio >= QUOTA_GREEN_PCT:
        return Classification(AlertKind.MONTHLY_REVIEW_GREEN, Severity.GREEN, ratio)
    if ratio >= QUOTA_YELLOW_PCT:
        return Classification(AlertKind.MONTHLY_REVIEW_YELLOW, Severity.YELLOW, ratio)
    return Classification(AlertKind.MONTHLY_REVIEW_RED, Severity.RED, ratio)


# ─── Activity ───

def expected_activities(
    role: str,
    expected_by_role: Mapping[str, int],
    default_expected: int,
) -> int:
    return expected_by_role.get(role, default_expected)


def classify_activity(
    actual_count: int,
    role: str,
    expected_by_role: Mapping[str, int],
    default_expected: int,
) -> Classification | None:
    """Classify a week's activity count against the role's expected count.

    The role table is passed in so new roles only need configuration.
    A role with no positive expectation is never alerted.
    """
    expected = expected_activities(role, expected_by_role, default_expected)
    if expected <= 0:
        return None
    ratio = ratio_pct(actual_count, expected)
    if ratio < ACTIVITY_RED_PCT:
        return Classification(AlertKind.ACTIVITY_RED, Severity.RED, ratio)
    if ratio > ACTIVITY_GREEN_PCT:
        return Classification(AlertKind.ACTIVITY_GREEN, Severity.GREEN, ratio)
    return None


# ─── Tasks ───

def classify_tasks(overdue_count: int) -> Classification | None:
    """Raw overdue count, no ratio involved."""
    if overdue_count >= TASK_RED_COUNT:
        return Classification(AlertKind.TASK_RED, Severity.RED)
    if overdue_count >= 1:
        return Classification(AlertKind.TASK_YELLOW, Severity.YELLOW)
    return None


# ─── Stale pipeline ───

@dataclass(frozen=True)
class StaleItem:
    id: Any
    name: str
    days_idle: int


def split_stale(
    items: Iterable[StaleItem],
    red_after_days: int,
    yellow_from_days: int,
) -> tuple[list[StaleItem], list[StaleItem]]:
    """Partition idle items into (red, yellow); items idle less than yellow_from_days are dropped."""
    red: list[StaleItem] = []
    yellow: list[StaleItem] = []
    for item in items:
        if item.days_idle > red_after_days:
            red.append(item)
        elif item.days_idle >= yellow_from_days:
            yellow.append(item)
    return red, yellow


def classify_stale(red_count: int, yellow_count: int) -> Classification | None:
    if red_count > 0:
        return Classification(AlertKind.STALE_RED, Severity.RED)
    if yellow_count > 0:
        return Classification(AlertKind.STALE_YELLOW, Severity.YELLOW)
    return None


# ─── Marketing ───

def classify_marketing(
    success_count: int,
    with_outcome_count: int,
    monthly: bool = False,
) -> Classification:
    """Success rate over tasks that have a recorded outcome.

    Marketing always produces a tier. The GREEN bar is lower for the
    monthly review than for the weekly check.
    """
    ratio = ratio_pct(success_count, with_outcome_count)
    green_pct = MARKETING_GREEN_PCT_MONTHLY if monthly else MARKETING_GREEN_PCT_WEEKLY

    if ratio < MARKETING_RED_PCT:
        severity = Severity.RED
    elif ratio >= green_pct:
        severity = Severity.GREEN
    else:
        severity = Severity.YELLOW

    if monthly:
        kind = AlertKind.MARKETING_MONTHLY
    else:
        kind = {
            Severity.RED: AlertKind.MARKETING_RED,
            Severity.YELLOW: AlertKind.MARKETING_YELLOW,
            Severity.GREEN: AlertKind.MARKETING_GREEN,
        }[severity]
    return Classification(kind, severity, ratio)


@dataclass
class TypeStats:
    type: str
    display_name: str
    count: int = 0
    with_outcome: int = 0
    successes: int = 0
    leads_generated: int = 0

    @property
    def success_rate(self) -> float:
        return ratio_pct(self.successes, self.with_outcome)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "display_name": self.display_name,
            "count": self.count,
            "with_outcome": self.with_outcome,
            "successes": self.successes,
            "success_rate": round(self.success_rate, 1),
            "leads_generated": self.leads_generated,
        }


@dataclass
class TemplateStats:
    template_name: str
    with_outcome: int = 0
    successes: int = 0
    leads_generated: int = 0

    @property
    def success_rate(self) -> float:
        return ratio_pct(self.successes, self.with_outcome)


@dataclass
class MarketingSummary:
    tasks_completed: int
    with_outcome: int
    successes: int
    leads_generated: int
    by_type: list[TypeStats] = field(default_factory=list)
    best_performing: str | None = None
    worst_performing: str | None = None
    top_templates: list[TemplateStats] = field(default_factory=list)
    bottom_templates: list[TemplateStats] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        return ratio_pct(self.successes, self.with_outcome)


def _get(task: Any, name: str) -> Any:
    if isinstance(task, Mapping):
        return task.get(name)
    return getattr(task, name, None)


def summarize_marketing(tasks: Iterable[Any]) -> MarketingSummary:
    """Bucket marketing tasks by type and pick the best/worst categories.

    Tasks may be ORM rows or plain dicts with type, outcome, lead_generated
    and optionally template_id / template_name.
    """
    buckets: dict[str, TypeStats] = {}
    templates: dict[Any, TemplateStats] = {}
    total = with_outcome = successes = leads = 0

    for task in tasks:
        task_type = _get(task, "type") or "OTHER"
        outcome = _get(task, "outcome")
        lead = bool(_get(task, "lead_generated"))

        stats = buckets.get(task_type)
        if stats is None:
            stats = TypeStats(task_type, MARKETING_TYPE_LABELS.get(task_type, task_type.title()))
            buckets[task_type] = stats

        total += 1
        stats.count += 1
        if lead:
            leads += 1
            stats.leads_generated += 1
        if outcome is not None:
            with_outcome += 1
            stats.with_outcome += 1
            if outcome == "SUCCESS":
                successes += 1
                stats.successes += 1

        template_id = _get(task, "template_id")
        if template_id is not None:
            tpl = templates.get(template_id)
            if tpl is None:
                tpl = TemplateStats(_get(task, "template_name") or "Unknown Template")
                templates[template_id] = tpl
            if lead:
                tpl.leads_generated += 1
            if outcome is not None:
                tpl.with_outcome += 1
                if outcome == "SUCCESS":
                    tpl.successes += 1

    # Stable order: known types first in catalogue order, then anything else.
    order = {t: i for i, t in enumerate(MARKETING_TYPE_LABELS)}
    by_type = sorted(buckets.values(), key=lambda s: (order.get(s.type, len(order)), s.type))

    best = None
    for stats in by_type:
        if stats.success_rate <= 0:
            continue
        if best is None or stats.success_rate > best.success_rate:
            best = stats

    worst = None
    for stats in by_type:
        if stats.with_outcome < WORST_MIN_OUTCOMES or stats.success_rate >= WORST_MAX_PCT:
            continue
        if worst is None or stats.success_rate < worst.success_rate:
            worst = stats

    # One weak category is not also the best one.
    if best is not None and best is worst:
        best = None

    rated = [t for t in templates.values() if t.with_outcome >= TEMPLATE_MIN_OUTCOMES]
    top = sorted((t for t in rated if t.success_rate >= TEMPLATE_TOP_PCT), key=lambda t: -t.success_rate)[:3]
    bottom = sorted((t for t in rated if t.success_rate < TEMPLATE_BOTTOM_PCT), key=lambda t: t.success_rate)[:3]

    return MarketingSummary(
        tasks_completed=total,
        with_outcome=with_outcome,
        successes=successes,
        leads_generated=leads,
        by_type=by_type,
        best_performing=best.type if best else None,
        worst_performing=worst.type if worst else None,
        top_templates=top,
        bottom_templates=bottom,
    )
