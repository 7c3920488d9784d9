"""Win/loss streak over recently closed deals (dashboard only, not alerted on)."""
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone

LOOKBACK_DAYS = 30


def compute_streak(
    outcomes: Iterable[tuple[datetime, bool]],
    now: datetime,
    lookback_days: int = LOOKBACK_DAYS,
) -> dict:
    """Length of the current run of winning (or losing) days.

    Each calendar day collapses to one result: the outcome with the latest
    timestamp that day. Days without a closed deal neither break nor extend
    the run. Only the last ``lookback_days`` days are scanned.

    Returns: {"type": "win" | "loss" | None, "count": int}
    """
    cutoff = now - timedelta(days=lookback_days)
    latest: dict[date, tuple[datetime, bool]] = {}

    for closed_at, won in outcomes:
        if closed_at.tzinfo is None:
            closed_at = closed_at.replace(tzinfo=timezone.utc)
        if closed_at < cutoff or closed_at > now:
            continue
        day = closed_at.astimezone(timezone.utc).date()
        current = latest.get(day)
        if current is None or closed_at >= current[0]:
            latest[day] = (closed_at, won)

    if not latest:
        return {"type": None, "count": 0}

    days = sorted(latest, reverse=True)
    first = latest[days[0]][1]
    count = 0
    for day in days:
        if latest[day][1] != first:
            break
        count += 1

    return {"type": "win" if first else "loss", "count": count}
