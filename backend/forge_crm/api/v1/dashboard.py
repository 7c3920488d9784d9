"""Personal dashboard numbers for the signed-in rep."""
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends

from forge_crm.core.config import settings
from forge_crm.core.deps import get_current_user
from forge_crm.db.session import AsyncSessionLocal
from forge_crm.rules.periods import days_remaining_in_month, month_range
from forge_crm.rules.severity import ratio_pct
from forge_crm.rules.streaks import LOOKBACK_DAYS, compute_streak
from forge_crm.services.metrics import SqlMetricSource

router = APIRouter()


def get_metric_source() -> SqlMetricSource:
    return SqlMetricSource(AsyncSessionLocal)


@router.get("/me", summary="Quota progress and win/loss streak for the current user")
async def my_dashboard(
    source: SqlMetricSource = Depends(get_metric_source),
    current_user=Depends(get_current_user),
):
    now = datetime.now(timezone.utc)
    start, end = month_range(now.year, now.month)

    target = float(current_user.monthly_quota) if current_user.monthly_quota is not None \
        else settings.DEFAULT_MONTHLY_QUOTA
    actual = await source.sum_won_revenue(current_user.id, start, end)
    outcomes = await source.closed_deal_outcomes(current_user.id, now - timedelta(days=LOOKBACK_DAYS))

    return {
        "quota": {
            "target": target,
            "actual": actual,
            "percentage": round(ratio_pct(actual, target), 1),
            "days_remaining": days_remaining_in_month(now),
        },
        "streak": compute_streak(outcomes, now),
    }
