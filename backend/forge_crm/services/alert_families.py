"""Alert family definitions: which metrics, which classifier, which cadence.

Thresholds that vary by deployment (role activity targets, stale-day
windows, default quota) are read from settings when the family table is
built, and passed into the pure classifiers.
"""
import logging
from collections.abc import Mapping
from datetime import timedelta, timezone

from forge_crm.core.config import settings
from forge_crm.core.exceptions import ValidationError
from forge_crm.rules.periods import (
    Cadence,
    days_remaining_in_month,
    month_range,
    previous_month,
    week_start,
)
from forge_crm.rules.severity import (
    classify_activity,
    classify_marketing,
    classify_monthly_review,
    classify_quota,
    classify_stale,
    classify_tasks,
    expected_activities,
    ratio_pct,
    split_stale,
    summarize_marketing,
)
from forge_crm.services import alert_templates
from forge_crm.services.alert_runner import AlertFamily

logger = logging.getLogger(__name__)

MARKETING_ROLES = ("MARKETING_REP",)


def _summary_metrics(summary) -> dict:
    return {
        "tasks_completed": summary.tasks_completed,
        "with_outcome": summary.with_outcome,
        "successes": summary.successes,
        "leads_generated": summary.leads_generated,
        "ratio": summary.success_rate,
        "by_type": [s.to_dict() for s in summary.by_type],
        "best_performing": summary.best_performing,
        "worst_performing": summary.worst_performing,
        "top_templates": [
            {"template_name": t.template_name, "success_rate": t.success_rate} for t in summary.top_templates
        ],
        "bottom_templates": [
            {"template_name": t.template_name, "success_rate": t.success_rate} for t in summary.bottom_templates
        ],
    }


# ─── Quota (daily check, monthly bucket) ───

def quota_family(roles: tuple[str, ...], default_quota: float) -> AlertFamily:
    async def fetch(source, user, now, context):
        today = now.astimezone(timezone.utc)
        start, end = month_range(today.year, today.month)
        target = float(user.monthly_quota) if user.monthly_quota is not None else default_quota
        actual = await source.sum_won_revenue(user.id, start, end)
        return {
            "target": target,
            "actual": actual,
            "ratio": ratio_pct(actual, target),
            "days_remaining": days_remaining_in_month(today),
        }

    def classify(metrics, user, context):
        return classify_quota(metrics["actual"], metrics["target"], metrics["days_remaining"])

    return AlertFamily(
        name="quota",
        cadence=Cadence.MONTHLY,
        roles=roles,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_quota,
        report_metric="ratio",
    )


# ─── Activity (weekly) ───

def activity_family(
    roles: tuple[str, ...],
    expected_by_role: Mapping[str, int],
    default_expected: int,
) -> AlertFamily:
    async def prepare(source, users, now):
        total = await source.team_activity_total(roles, week_start(now))
        return {"team_average": round(total / len(users)) if users else 0}

    async def fetch(source, user, now, context):
        breakdown = await source.count_activities(user.id, week_start(now))
        return {
            "actual": sum(breakdown.values()),
            "expected": expected_activities(user.role, expected_by_role, default_expected),
            "breakdown": breakdown,
            "team_average": context.get("team_average", 0),
        }

    def classify(metrics, user, context):
        return classify_activity(metrics["actual"], user.role, expected_by_role, default_expected)

    return AlertFamily(
        name="activity",
        cadence=Cadence.WEEKLY,
        roles=roles,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_activity,
        prepare=prepare,
        report_metric="actual",
    )


# ─── Overdue tasks (daily) ───

def task_family(roles: tuple[str, ...]) -> AlertFamily:
    async def fetch(source, user, now, context):
        tasks = await source.list_overdue_tasks(user.id, now)
        return {"overdue_tasks": tasks, "overdue_count": len(tasks)}

    def classify(metrics, user, context):
        return classify_tasks(metrics["overdue_count"])

    return AlertFamily(
        name="task",
        cadence=Cadence.DAILY,
        roles=roles,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_tasks,
        report_metric="overdue_count",
    )


# ─── Stale pipeline (daily) ───

def stale_family(
    roles: tuple[str, ...],
    deal_red_days: int,
    deal_yellow_days: int,
    lead_red_days: int,
    lead_yellow_days: int,
) -> AlertFamily:
    async def fetch(source, user, now, context):
        deals, leads = await source.list_open_pipeline(user.id, now)
        red_deals, yellow_deals = split_stale(deals, deal_red_days, deal_yellow_days)
        red_leads, yellow_leads = split_stale(leads, lead_red_days, lead_yellow_days)
        red = bool(red_deals or red_leads)
        shown_deals, shown_leads = (red_deals, red_leads) if red else (yellow_deals, yellow_leads)
        return {
            "red_count": len(red_deals) + len(red_leads),
            "yellow_count": len(yellow_deals) + len(yellow_leads),
            "deals": [{"id": d.id, "name": d.name, "days_idle": d.days_idle} for d in shown_deals],
            "leads": [{"id": ld.id, "name": ld.name, "days_idle": ld.days_idle} for ld in shown_leads],
        }

    def classify(metrics, user, context):
        return classify_stale(metrics["red_count"], metrics["yellow_count"])

    return AlertFamily(
        name="stale",
        cadence=Cadence.DAILY,
        roles=roles,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_stale,
        report_metric="red_count",
    )


# ─── Marketing weekly (rolling 7 days, weekly bucket) ───

def marketing_weekly_family() -> AlertFamily:
    async def fetch(source, user, now, context):
        since = (now - timedelta(days=7)).replace(hour=0, minute=0, second=0, microsecond=0)
        tasks = await source.list_marketing_tasks(user.id, since, now + timedelta(seconds=1))
        metrics = _summary_metrics(summarize_marketing(tasks))
        metrics["missing_outcomes"] = await source.count_missing_outcomes(user.id, now)
        return metrics

    def classify(metrics, user, context):
        return classify_marketing(metrics["successes"], metrics["with_outcome"], monthly=False)

    return AlertFamily(
        name="marketing-weekly",
        cadence=Cadence.WEEKLY,
        roles=MARKETING_ROLES,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_marketing_weekly,
        always_cc_leadership=True,
        report_metric="ratio",
    )


# ─── Marketing monthly review (previous calendar month) ───

def marketing_monthly_family() -> AlertFamily:
    async def prepare(source, users, now):
        month = previous_month(now)
        summaries = {}
        for user in users:
            tasks = await source.list_marketing_tasks(user.id, month["start"], month["end"])
            summaries[user.id] = summarize_marketing(tasks)

        ranked = sorted(users, key=lambda u: -summaries[u.id].success_rate)
        successes = sum(s.successes for s in summaries.values())
        with_outcome = sum(s.with_outcome for s in summaries.values())
        return {
            "month_name": month["name"],
            "team_success_rate": ratio_pct(successes, with_outcome),
            "_summaries": summaries,
            "_ranks": {u.id: i + 1 for i, u in enumerate(ranked)},
            "_team_size": len(users),
        }

    async def fetch(source, user, now, context):
        metrics = _summary_metrics(context["_summaries"][user.id])
        metrics.update({
            "month_name": context["month_name"],
            "team_rank": context["_ranks"][user.id],
            "team_size": context["_team_size"],
            "team_success_rate": context["team_success_rate"],
        })
        return metrics

    def classify(metrics, user, context):
        return classify_marketing(metrics["successes"], metrics["with_outcome"], monthly=True)

    return AlertFamily(
        name="marketing-monthly",
        cadence=Cadence.MONTHLY,
        roles=MARKETING_ROLES,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_marketing_monthly,
        prepare=prepare,
        period_anchor=lambda now: previous_month(now)["start"],
        report_metric="ratio",
    )


# ─── Monthly sales review (previous calendar month) ───

def monthly_review_family(roles: tuple[str, ...], default_quota: float, stale_deal_days: int) -> AlertFamily:
    async def prepare(source, users, now):
        month = previous_month(now)
        attainment = {}
        for user in users:
            target = float(user.monthly_quota) if user.monthly_quota is not None else default_quota
            actual = await source.sum_won_revenue(user.id, month["start"], month["end"])
            attainment[user.id] = (target, actual)

        ranked = sorted(users, key=lambda u: -ratio_pct(attainment[u.id][1], attainment[u.id][0]))
        return {
            "month_name": month["name"],
            "_month": month,
            "_attainment": attainment,
            "_ranks": {u.id: i + 1 for i, u in enumerate(ranked)},
            "_team_size": len(users),
        }

    async def fetch(source, user, now, context):
        month = context["_month"]
        start, end = month["start"], month["end"]
        target, actual = context["_attainment"][user.id]
        won, closed = await source.closed_deal_counts(user.id, start, end)
        tasks_created, tasks_completed = await source.task_completion(user.id, start, end)
        open_deals, _ = await source.list_open_pipeline(user.id, now)
        return {
            "month_name": context["month_name"],
            "target": target,
            "actual": actual,
            "ratio": ratio_pct(actual, target),
            "deals_won": won,
            "deals_closed": closed,
            "win_rate": ratio_pct(won, closed),
            "average_deal_size": actual / won if won else 0.0,
            "activities": await source.count_activities_between(user.id, start, end),
            "stale_deals": sum(1 for d in open_deals if d.days_idle > stale_deal_days),
            # No tasks created means nothing was left undone.
            "task_completion_rate": ratio_pct(tasks_completed, tasks_created) if tasks_created else 100.0,
            "team_rank": context["_ranks"][user.id],
            "team_size": context["_team_size"],
        }

    def classify(metrics, user, context):
        return classify_monthly_review(metrics["actual"], metrics["target"])

    return AlertFamily(
        name="monthly-review",
        cadence=Cadence.MONTHLY,
        roles=roles,
        fetch=fetch,
        classify=classify,
        compose=alert_templates.compose_monthly_review,
        prepare=prepare,
        period_anchor=lambda now: previous_month(now)["start"],
        always_cc_hr=True,
        report_metric="ratio",
    )


def build_families() -> dict[str, AlertFamily]:
    roles = tuple(settings.MONITORED_ROLES)
    families = [
        quota_family(roles, settings.DEFAULT_MONTHLY_QUOTA),
        activity_family(roles, settings.EXPECTED_ACTIVITIES_BY_ROLE, settings.DEFAULT_EXPECTED_ACTIVITIES),
        task_family(roles),
        stale_family(
            roles,
            deal_red_days=settings.STALE_DEAL_RED_DAYS,
            deal_yellow_days=settings.STALE_DEAL_YELLOW_DAYS,
            lead_red_days=settings.STALE_LEAD_RED_DAYS,
            lead_yellow_days=settings.STALE_LEAD_YELLOW_DAYS,
        ),
        marketing_weekly_family(),
        marketing_monthly_family(),
        monthly_review_family(roles, settings.DEFAULT_MONTHLY_QUOTA, settings.STALE_DEAL_RED_DAYS),
    ]
    return {f.name: f for f in families}


FAMILIES = build_families()


def get_family(name: str) -> AlertFamily:
    try:
        return FAMILIES[name]
    except KeyError:
        raise ValidationError(f"Unknown alert family '{name}'") from None
