"""Calendar helpers and deduplication period keys.

Keys depend only on the calendar date (UTC), never on time of day, so every
cron invocation on the same day lands in the same bucket.
"""
import calendar
import enum
from datetime import date, datetime, timedelta, timezone


class Cadence(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def _calendar_date(now: datetime | date) -> date:
    if isinstance(now, datetime):
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return now.date()
    return now


def monthly_key(now: datetime | date) -> str:
    d = _calendar_date(now)
    return f"{d.year:04d}-{d.month:02d}"


def weekly_key(now: datetime | date) -> str:
    """ISO week of the Monday that starts the current week, e.g. 2026-W42."""
    d = _calendar_date(now)
    monday = d - timedelta(days=d.weekday())
    iso_year, iso_week, _ = monday.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def daily_key(now: datetime | date) -> str:
    d = _calendar_date(now)
    return f"{monthly_key(d)}-{d.day:02d}"


_KEYERS = {
    Cadence.DAILY: daily_key,
    Cadence.WEEKLY: weekly_key,
    Cadence.MONTHLY: monthly_key,
}


def period_key(now: datetime | date, cadence: Cadence | str) -> str:
    """Stable dedup bucket for *now* at the given cadence."""
    return _KEYERS[Cadence(cadence)](now)


# ─── Ranges ───

def days_remaining_in_month(now: datetime | date) -> int:
    d = _calendar_date(now)
    last_day = calendar.monthrange(d.year, d.month)[1]
    return last_day - d.day


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar month in UTC."""
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def week_start(now: datetime | date) -> datetime:
    """Monday 00:00 UTC of the current week."""
    d = _calendar_date(now)
    monday = d - timedelta(days=d.weekday())
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def previous_month(now: datetime | date) -> dict:
    """Year, month, display name and [start, end) of the month before *now*."""
    d = _calendar_date(now)
    year, month = (d.year - 1, 12) if d.month == 1 else (d.year, d.month - 1)
    start, end = month_range(year, month)
    return {
        "year": year,
        "month": month,
        "name": f"{calendar.month_name[month]} {year}",
        "start": start,
        "end": end,
    }


def days_since(then: datetime, now: datetime) -> int:
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    return int((now - then).total_seconds() // 86400)
