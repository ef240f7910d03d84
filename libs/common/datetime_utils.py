"""Datetime utilities.

Timestamps are stored timezone-aware in UTC. Calendar rules (coupon expiry
dates, category discount windows, order code dates) are evaluated in the
business timezone from ``TIMEZONE``.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def local_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_local(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(local_tz())


def local_today(now: Optional[datetime] = None) -> date:
    """Calendar date in the business timezone."""
    return to_local(now or utc_now()).date()


def end_of_local_day(day: date) -> datetime:
    """Last representable instant of ``day`` in the business timezone."""
    return datetime.combine(day, time.max, tzinfo=local_tz())


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC instants where ``day`` starts and ends in the business timezone."""
    start = datetime.combine(day, time.min, tzinfo=local_tz())
    return start.astimezone(timezone.utc), end_of_local_day(day).astimezone(timezone.utc)
