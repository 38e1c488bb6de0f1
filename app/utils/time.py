"""Time utilities (IST)."""

import calendar
from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")


def now_ist_naive() -> datetime:
    """
    Current time in IST, returned as naive datetime for DB storage.
    """
    return datetime.now(IST).replace(tzinfo=None)


def today_ist() -> date:
    """Current calendar date in IST."""
    return now_ist_naive().date()


def add_months(start: date, months: int) -> date:
    """
    Shift a date forward by whole calendar months.

    The day is clamped to the last day of the target month, so
    2026-01-31 + 1 month is 2026-02-28.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def to_ist(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """Convert datetime to IST timezone-aware value."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return dt.astimezone(IST)


def to_ist_iso(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> str:
    """Convert datetime to IST and return ISO string with offset."""
    return to_ist(dt, naive_assumed_tz=naive_assumed_tz).isoformat()


def to_ist_iso_db(dt: datetime) -> str:
    """
    Convert datetime to IST ISO string.

    DB timestamps in this app are stored as naive IST, so naive values are
    interpreted as IST (not UTC) here.
    """
    return to_ist_iso(dt, naive_assumed_tz=IST)
