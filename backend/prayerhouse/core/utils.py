"""
Utility functions for the application.

Date-keys are `YYYY-MM-DD` strings built from a date's local calendar fields.
They are the set/map keys for every calendar and streak computation, so the
same helpers are used for reads, writes and writability checks.
"""
import calendar
from typing import Any, Dict, List, Optional, Union
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo
from prayerhouse.core.config import settings


def service_timezone() -> ZoneInfo:
    """Timezone used for local dates."""
    return ZoneInfo(settings.TIMEZONE)


def to_date_key(d: Union[date, datetime]) -> str:
    """Convert a date or datetime to a zero-padded local `YYYY-MM-DD` key."""
    if isinstance(d, datetime):
        if d.tzinfo is not None:
            d = d.astimezone(service_timezone())
        d = d.date()
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def from_date_key(key: str) -> date:
    """Parse a date-key back into a date."""
    parts = key.split("-") if isinstance(key, str) else []
    if len(parts) != 3 or len(parts[0]) != 4 or len(parts[1]) != 2 or len(parts[2]) != 2:
        raise ValueError(f"Invalid date key: {key!r}")
    return date(int(parts[0]), int(parts[1]), int(parts[2]))


def local_today(tz: Optional[ZoneInfo] = None) -> date:
    """Today's date in the service timezone."""
    return datetime.now(tz or service_timezone()).date()


def is_writable_date(key: str, today: Union[date, str]) -> bool:
    """Only today and yesterday can be written; older dates are read-only."""
    if isinstance(today, str):
        today = from_date_key(today)
    yesterday = today - timedelta(days=1)
    return key == to_date_key(today) or key == to_date_key(yesterday)


def month_date_keys(year: int, month: int) -> List[str]:
    """All date-keys of a calendar month."""
    days = calendar.monthrange(year, month)[1]
    return [to_date_key(date(year, month, day)) for day in range(1, days + 1)]


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response
