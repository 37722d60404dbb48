"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone, timedelta
from typing import Optional, Union
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (pymongo returns naive UTC by default)"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Returns:
        Datetime object in UTC
    """
    return ensure_utc(date_parser.isoparse(iso_string))


def coerce_datetime(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Accept datetimes or ISO strings from stored documents"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return parse_iso(value)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from start to end"""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600


def days_ago(now: datetime, days: int) -> datetime:
    return ensure_utc(now) - timedelta(days=days)


def start_of_week(now: datetime) -> datetime:
    """Sunday 00:00 of the week containing ``now``"""
    now = ensure_utc(now)
    days_since_sunday = (now.weekday() + 1) % 7
    start = now - timedelta(days=days_since_sunday)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)
