"""
Gratitude streak and calendar aggregation.

Pure functions over the set of date-keys a user has entries for. Nothing
here touches the database; callers fetch the keys once and pass them in.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Union
from prayerhouse.core.utils import to_date_key, from_date_key, month_date_keys

GLOW_MIN_OPACITY = 0.05
GLOW_MAX_OPACITY = 0.4


@dataclass
class GratitudeCalendar:
    """Derived view state for one calendar month."""
    year: int
    month: int
    today: str
    dates: List[str]
    month_entry_count: int
    days_in_month: int
    completion_ratio: float
    glow_opacity: float
    is_full_month: bool
    current_streak: int
    longest_streak: int


def _as_date(today: Union[date, str]) -> date:
    return from_date_key(today) if isinstance(today, str) else today


def current_streak(dates: Iterable[str], today: Union[date, str]) -> int:
    """
    Count consecutive days ending today.
    Returns 0 if today itself has no entry.
    """
    entry_set = set(dates)
    cursor = _as_date(today)
    count = 0
    while to_date_key(cursor) in entry_set:
        count += 1
        cursor -= timedelta(days=1)
    return count


def longest_streak(dates: Iterable[str]) -> int:
    """
    Longest run of consecutive days anywhere in the history.

    Runs chain on absolute day differences, so they continue across month
    and year boundaries.
    """
    ordered = sorted({from_date_key(key) for key in dates})
    if not ordered:
        return 0

    best = 1
    run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            run += 1
            best = max(best, run)
        else:
            run = 1
    return best


def month_completion(dates: Iterable[str], year: int, month: int) -> float:
    """Share of the month's days that have an entry."""
    keys = month_date_keys(year, month)
    entry_set = set(dates)
    present = sum(1 for key in keys if key in entry_set)
    return present / len(keys) if keys else 0.0


def glow_opacity(ratio: float) -> float:
    """Calendar glow intensity, interpolated between the opacity bounds."""
    return min(GLOW_MAX_OPACITY, GLOW_MIN_OPACITY + ratio * (GLOW_MAX_OPACITY - GLOW_MIN_OPACITY))


def is_full_month(dates: Iterable[str], year: int, month: int) -> bool:
    """True when every day of the month has an entry."""
    entry_set = set(dates)
    keys = month_date_keys(year, month)
    present = [key for key in keys if key in entry_set]
    return len(present) > 0 and len(present) == len(keys)


def build_calendar(dates: Iterable[str], year: int, month: int, today: Union[date, str]) -> GratitudeCalendar:
    """Assemble the month view: present days, completion, glow and streaks."""
    entry_set = set(dates)
    keys = month_date_keys(year, month)
    present = [key for key in keys if key in entry_set]
    ratio = len(present) / len(keys) if keys else 0.0
    today_date = _as_date(today)

    return GratitudeCalendar(
        year=year,
        month=month,
        today=to_date_key(today_date),
        dates=present,
        month_entry_count=len(present),
        days_in_month=len(keys),
        completion_ratio=ratio,
        glow_opacity=glow_opacity(ratio),
        is_full_month=is_full_month(entry_set, year, month),
        current_streak=current_streak(entry_set, today_date),
        longest_streak=longest_streak(entry_set),
    )
