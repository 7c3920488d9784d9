"""Tests for the pure severity classifiers in forge_crm.rules.severity."""
import pytest

from forge_crm.rules.severity import (
    AlertKind,
    Severity,
    StaleItem,
    classify_activity,
    classify_marketing,
    classify_monthly_review,
    classify_quota,
    classify_quota_ratio,
    classify_stale,
    classify_tasks,
    ratio_pct,
    split_stale,
    summarize_marketing,
)

EXPECTED_BY_ROLE = {"SALES_REP": 20, "MARKETING_REP": 15}


# ─── Ratio ────────────────────────────────────────────────────────────────────

def test_ratio_pct_zero_target_is_zero():
    """A zero or negative target never divides; the ratio is 0."""
    assert ratio_pct(500, 0) == 0.0
    assert ratio_pct(500, -10) == 0.0


def test_ratio_pct_percentage():
    assert ratio_pct(3200, 3000) == pytest.approx(106.666, rel=1e-3)


# ─── Quota ────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("actual, kind", [
    (3000, AlertKind.MONTHLY_REVIEW_GREEN),
    (2400, AlertKind.MONTHLY_REVIEW_YELLOW),
    (2399, AlertKind.MONTHLY_REVIEW_RED),
    (0, AlertKind.MONTHLY_REVIEW_RED),
])
def test_monthly_review_always_has_a_tier(actual, kind):
    """100% and up is GREEN, 80% and up YELLOW, anything lower RED."""
    assert classify_monthly_review(actual, 3000).kind == kind


def test_quota_at_target_is_green():
    """Exactly 100% of quota is GREEN."""
    result = classify_quota(3000, 3000, days_remaining=20)
    assert result.kind == AlertKind.QUOTA_GREEN
    assert result.severity == Severity.GREEN


def test_quota_over_target_is_green():
    result = classify_quota(3200, 3000, days_remaining=5)
    assert result.severity == Severity.GREEN
    assert result.ratio == pytest.approx(106.67, rel=1e-3)


def test_quota_eighty_percent_is_yellow():
    """80% inclusive is the YELLOW floor."""
    result = classify_quota_ratio(80.0, days_remaining=20)
    assert result.kind == AlertKind.QUOTA_YELLOW


def test_quota_below_half_late_in_month_is_red():
    """Under 50% with fewer than 10 days left escalates to RED."""
    result = classify_quota_ratio(49.9, days_remaining=9)
    assert result.kind == AlertKind.QUOTA_RED
    assert result.severity == Severity.RED


def test_quota_below_half_early_in_month_is_silent():
    """Under 50% with 10 or more days left sends nothing yet."""
    assert classify_quota_ratio(10.0, days_remaining=10) is None


def test_quota_quiet_band_is_silent():
    """Between 50% and 80% never alerts."""
    assert classify_quota_ratio(65.0, days_remaining=2) is None


def test_quota_zero_target_never_green():
    """A missing target gives a 0 ratio; with days to go there is no alert."""
    assert classify_quota(5000, 0, days_remaining=15) is None


# ─── Activity ─────────────────────────────────────────────────────────────────

def test_activity_under_half_expected_is_red():
    result = classify_activity(9, "SALES_REP", EXPECTED_BY_ROLE, 15)
    assert result.kind == AlertKind.ACTIVITY_RED


def test_activity_over_one_and_half_expected_is_green():
    result = classify_activity(31, "SALES_REP", EXPECTED_BY_ROLE, 15)
    assert result.kind == AlertKind.ACTIVITY_GREEN


def test_activity_exactly_one_and_half_is_silent():
    """150% is not strictly above the GREEN bar."""
    assert classify_activity(30, "SALES_REP", EXPECTED_BY_ROLE, 15) is None


def test_activity_unknown_role_uses_default():
    """Roles without an entry fall back to the default expectation."""
    result = classify_activity(7, "SUPPORT", EXPECTED_BY_ROLE, 15)
    assert result.kind == AlertKind.ACTIVITY_RED


def test_activity_non_positive_expectation_never_alerts():
    assert classify_activity(0, "SALES_REP", {"SALES_REP": 0}, 15) is None


# ─── Tasks ────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("count,expected", [
    (0, None),
    (1, AlertKind.TASK_YELLOW),
    (2, AlertKind.TASK_YELLOW),
    (3, AlertKind.TASK_RED),
    (4, AlertKind.TASK_RED),
])
def test_task_thresholds(count, expected):
    result = classify_tasks(count)
    assert (result.kind if result else None) == expected


# ─── Stale pipeline ───────────────────────────────────────────────────────────

def test_split_stale_bands():
    """Over red_after_days is red; from yellow_from_days up to red_after_days is yellow."""
    items = [
        StaleItem("a", "Fresh", 2),
        StaleItem("b", "Borderline", 7),
        StaleItem("c", "At limit", 14),
        StaleItem("d", "Rotting", 15),
    ]
    red, yellow = split_stale(items, red_after_days=14, yellow_from_days=7)
    assert [i.id for i in red] == ["d"]
    assert [i.id for i in yellow] == ["b", "c"]


def test_classify_stale_red_wins_over_yellow():
    assert classify_stale(1, 5).kind == AlertKind.STALE_RED
    assert classify_stale(0, 2).kind == AlertKind.STALE_YELLOW
    assert classify_stale(0, 0) is None


# ─── Marketing ────────────────────────────────────────────────────────────────

def test_marketing_weekly_bands():
    assert classify_marketing(1, 10).kind == AlertKind.MARKETING_RED
    assert classify_marketing(3, 10).kind == AlertKind.MARKETING_YELLOW
    assert classify_marketing(5, 10).kind == AlertKind.MARKETING_GREEN


def test_marketing_monthly_green_bar_is_lower():
    """40% is GREEN for the monthly review but only YELLOW weekly."""
    monthly = classify_marketing(4, 10, monthly=True)
    weekly = classify_marketing(4, 10, monthly=False)
    assert monthly.severity == Severity.GREEN
    assert monthly.kind == AlertKind.MARKETING_MONTHLY
    assert weekly.severity == Severity.YELLOW


def test_marketing_no_outcomes_is_red():
    """No recorded outcomes means a 0% rate, which is RED."""
    assert classify_marketing(0, 0).severity == Severity.RED


def _tasks(task_type, outcomes, template=None):
    return [
        {
            "type": task_type,
            "outcome": outcome,
            "lead_generated": outcome == "SUCCESS",
            "template_id": template[0] if template else None,
            "template_name": template[1] if template else None,
        }
        for outcome in outcomes
    ]


def test_summarize_marketing_breakdown_and_guards():
    """by_type lists only used categories; worst needs 3+ outcomes."""
    tasks = (
        _tasks("LINKEDIN_OUTREACH", [None] * 10)
        + _tasks("COLD_EMAIL", ["SUCCESS"] + ["FAILED"] * 7)
        + _tasks("SOCIAL_POST", ["FAILED", "FAILED"])
    )
    summary = summarize_marketing(tasks)

    assert summary.tasks_completed == 20
    assert summary.with_outcome == 10
    assert summary.successes == 1
    assert summary.success_rate == pytest.approx(10.0)
    assert [s.type for s in summary.by_type] == ["LINKEDIN_OUTREACH", "COLD_EMAIL", "SOCIAL_POST"]
    assert all(s.count > 0 for s in summary.by_type)
    # SOCIAL_POST is 0% but only has 2 outcomes
    assert summary.worst_performing == "COLD_EMAIL"
    # COLD_EMAIL is the only category above 0%, and it is already the worst
    assert summary.best_performing is None


def test_summarize_marketing_best_tie_keeps_first():
    tasks = _tasks("WEBINAR", ["SUCCESS", "FAILED"]) + _tasks("COLD_EMAIL", ["SUCCESS", "FAILED"])
    assert summarize_marketing(tasks).best_performing == "COLD_EMAIL"


def test_summarize_marketing_zero_rate_is_never_best():
    """With no successes anywhere there is no best category."""
    tasks = _tasks("WEBINAR", ["FAILED", "FAILED"]) + _tasks("EVENT", ["FAILED"])
    assert summarize_marketing(tasks).best_performing is None


def test_summarize_marketing_best_and_worst_differ():
    tasks = _tasks("COLD_EMAIL", ["SUCCESS"] + ["FAILED"] * 4) + _tasks("WEBINAR", ["SUCCESS", "SUCCESS"])
    summary = summarize_marketing(tasks)
    assert summary.worst_performing == "COLD_EMAIL"
    assert summary.best_performing == "WEBINAR"


def test_summarize_marketing_templates():
    """Templates need 2+ outcomes; top is 70%+, bottom under 30%."""
    tasks = (
        _tasks("COLD_EMAIL", ["SUCCESS", "SUCCESS", "SUCCESS"], template=("t1", "Warm intro"))
        + _tasks("COLD_EMAIL", ["FAILED", "FAILED"], template=("t2", "Hard sell"))
        + _tasks("COLD_EMAIL", ["SUCCESS"], template=("t3", "One-off"))
    )
    summary = summarize_marketing(tasks)
    assert [t.template_name for t in summary.top_templates] == ["Warm intro"]
    assert [t.template_name for t in summary.bottom_templates] == ["Hard sell"]


def test_summarize_marketing_empty():
    summary = summarize_marketing([])
    assert summary.tasks_completed == 0
    assert summary.by_type == []
    assert summary.best_performing is None
    assert summary.worst_performing is None
