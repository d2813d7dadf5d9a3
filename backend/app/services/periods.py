"""Reporting periods shared by the revenue and filing analytics.

Rows are bucketed in Python rather than with `date_trunc`, so the same
code runs on PostgreSQL and the SQLite test database.

Bucket keys:
    daily    2025-06-01
    weekly   2025-W22   (ISO week)
    monthly  2025-06
    yearly   2025
"""

from datetime import date, datetime, time, timedelta

from app.middleware.exceptions import ValidationFailedError
from app.schemas.common import Period


def period_key(moment: datetime | date, period: Period) -> str:
    if period == Period.DAILY:
        return moment.strftime("%Y-%m-%d")
    if period == Period.WEEKLY:
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    if period == Period.YEARLY:
        return str(moment.year)
    return moment.strftime("%Y-%m")


def date_window(
    start: date | None,
    end: date | None,
    default_days: int,
    today: date | None = None,
) -> tuple[date, date]:
    """Resolve an optional inclusive [start, end] range.

    Without both bounds the window is the last `default_days` days.
    """
    if start is None or end is None:
        end = today or datetime.utcnow().date()
        start = end - timedelta(days=default_days)
    if start > end:
        raise ValidationFailedError(
            "Invalid date range", errors=["startDate must not be after endDate"]
        )
    return start, end


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Datetime bounds covering every moment of the days `start`..`end`."""
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)
