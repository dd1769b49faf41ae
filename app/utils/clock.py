"""Clock and date helpers.

All timestamps are stored as naive UTC datetimes. Durations are integer
milliseconds computed from differences of those timestamps, and calendar
dates (for daily logs and emails) are rendered in ``APP_TIMEZONE``.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
import os

import pytz

APP_TIMEZONE = os.environ.get("APP_TIMEZONE", "UTC")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 string (or pass through a datetime).

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")
    return to_naive_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


def elapsed_ms(start: datetime, end: datetime) -> int:
    return (end - start) // timedelta(milliseconds=1)


def local_date(value: datetime, tz_name: Optional[str] = None) -> str:
    """Calendar date (YYYY-MM-DD) of a naive UTC timestamp in the app timezone."""
    tz = pytz.timezone(tz_name or APP_TIMEZONE)
    return pytz.utc.localize(value).astimezone(tz).strftime("%Y-%m-%d")


def format_local(value: datetime, tz_name: Optional[str] = None) -> str:
    tz = pytz.timezone(tz_name or APP_TIMEZONE)
    return pytz.utc.localize(value).astimezone(tz).strftime("%Y-%m-%d %H:%M %Z")
