import calendar
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Naive UTC timestamp; matches what SQLite hands back on reads."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(value: datetime, months: int) -> datetime:
    """
    Calendar month arithmetic, clamped to the end of the target month.
    Example: 2025-08-31 + 6 months -> 2026-02-28.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Normalises client-supplied timestamps to the naive UTC stored in the database."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
