"""Tests for alert family fetch/classify wiring."""
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from forge_crm.core.exceptions import ValidationError
from forge_crm.rules.periods import Cadence
from forge_crm.rules.severity import AlertKind, StaleItem
from forge_crm.services.alert_families import (
    FAMILIES,
    activity_family,
    get_family,
    quota_family,
    stale_family,
)

NOW = datetime(2026, 10, 16, 16, 0, tzinfo=timezone.utc)


def _user(role="SALES_REP", monthly_quota=None):
    return SimpleNamespace(id=uuid.uuid4(), name="Casey", role=role, monthly_quota=monthly_quota)


# ─── Registry ─────────────────────────────────────────────────────────────────

def test_all_families_registered():
    assert set(FAMILIES) == {
        "quota", "activity", "task", "stale", "marketing-weekly", "marketing-monthly", "monthly-review",
    }
    assert FAMILIES["task"].cadence == Cadence.DAILY
    assert FAMILIES["activity"].cadence == Cadence.WEEKLY
    assert FAMILIES["quota"].cadence == Cadence.MONTHLY
    assert FAMILIES["marketing-weekly"].always_cc_leadership is True
    assert FAMILIES["monthly-review"].always_cc_hr is True


def test_unknown_family_rejected():
    with pytest.raises(ValidationError):
        get_family("horoscope")


# ─── Quota ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_quota_uses_user_target_over_default():
    family = quota_family(("SALES_REP",), default_quota=3000.0)
    source = SimpleNamespace(sum_won_revenue=AsyncMock(return_value=900.0))

    metrics = await family.fetch(source, _user(monthly_quota=1000), NOW, {})

    assert metrics["target"] == 1000.0
    assert metrics["ratio"] == pytest.approx(90.0)
    assert metrics["days_remaining"] == 15
    assert family.classify(metrics, None, {}).kind == AlertKind.QUOTA_YELLOW
    start, end = source.sum_won_revenue.await_args.args[1:]
    assert (start.month, end.month) == (10, 11)


@pytest.mark.asyncio
async def test_quota_month_follows_utc_date_for_non_utc_now():
    """22:00 on 31 October at UTC-5 is already 1 November in UTC."""
    family = quota_family(("SALES_REP",), default_quota=3000.0)
    source = SimpleNamespace(sum_won_revenue=AsyncMock(return_value=0.0))
    now = datetime(2026, 10, 31, 22, 0, tzinfo=timezone(timedelta(hours=-5)))

    metrics = await family.fetch(source, _user(), now, {})

    start, end = source.sum_won_revenue.await_args.args[1:]
    assert (start.month, end.month) == (11, 12)
    assert metrics["days_remaining"] == 29


# ─── Activity ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_activity_team_average_and_role_threshold():
    family = activity_family(("SALES_REP", "MARKETING_REP"), {"SALES_REP": 20, "MARKETING_REP": 15}, 15)
    source = SimpleNamespace(
        team_activity_total=AsyncMock(return_value=45),
        count_activities=AsyncMock(return_value={"calls": 3, "emails": 2, "meetings": 1, "notes": 1}),
    )
    users = [_user(), _user(), _user(role="MARKETING_REP")]

    context = await family.prepare(source, users, NOW)
    metrics = await family.fetch(source, users[2], NOW, context)

    assert context == {"team_average": 15}
    assert metrics["actual"] == 7
    assert metrics["expected"] == 15
    assert family.classify(metrics, users[2], context).kind == AlertKind.ACTIVITY_RED
    since = source.count_activities.await_args.args[1]
    assert since == datetime(2026, 10, 12, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_activity_prepare_with_no_users():
    family = activity_family(("SALES_REP",), {"SALES_REP": 20}, 15)
    source = SimpleNamespace(team_activity_total=AsyncMock(return_value=0))
    assert await family.prepare(source, [], NOW) == {"team_average": 0}


# ─── Stale ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_stale_red_lists_only_red_items():
    family = stale_family(("SALES_REP",), deal_red_days=14, deal_yellow_days=7,
                          lead_red_days=7, lead_yellow_days=3)
    deals = [StaleItem("d1", "Initech pilot", 16), StaleItem("d2", "Umbrella upsell", 8)]
    leads = [StaleItem("l1", "Hooli", 4)]
    source = SimpleNamespace(list_open_pipeline=AsyncMock(return_value=(deals, leads)))

    metrics = await family.fetch(source, _user(), NOW, {})

    assert metrics["red_count"] == 1
    assert metrics["yellow_count"] == 2
    assert [d["name"] for d in metrics["deals"]] == ["Initech pilot"]
    assert metrics["leads"] == []
    assert family.classify(metrics, None, {}).kind == AlertKind.STALE_RED


@pytest.mark.asyncio
async def test_stale_yellow_when_nothing_red():
    family = stale_family(("SALES_REP",), 14, 7, 7, 3)
    source = SimpleNamespace(list_open_pipeline=AsyncMock(return_value=(
        [StaleItem("d2", "Umbrella upsell", 8)], [StaleItem("l1", "Hooli", 3)],
    )))

    metrics = await family.fetch(source, _user(), NOW, {})

    assert family.classify(metrics, None, {}).kind == AlertKind.STALE_YELLOW
    assert len(metrics["deals"]) == 1 and len(metrics["leads"]) == 1
