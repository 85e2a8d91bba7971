"""
Tests for date-key helpers.
"""
import pytest
from datetime import date, datetime, timezone
from prayerhouse.core.utils import to_date_key, from_date_key, is_writable_date, month_date_keys


def test_date_key_is_zero_padded():
    assert to_date_key(date(2024, 3, 5)) == "2024-03-05"


def test_aware_datetime_uses_local_calendar_day():
    """16:00 UTC is already the next day in Seoul."""
    moment = datetime(2024, 1, 1, 16, 0, tzinfo=timezone.utc)
    assert to_date_key(moment) == "2024-01-02"


def test_naive_datetime_keeps_its_fields():
    assert to_date_key(datetime(2024, 12, 31, 23, 59)) == "2024-12-31"


def test_from_date_key_roundtrip_single_value():
    assert from_date_key("2024-02-29") == date(2024, 2, 29)


@pytest.mark.parametrize("key", ["2024-2-1", "20240201", "", "2024/02/01", "2024-02-30"])
def test_from_date_key_rejects_malformed(key):
    with pytest.raises(ValueError):
        from_date_key(key)


def test_only_today_and_yesterday_are_writable():
    today = date(2024, 3, 1)
    assert is_writable_date("2024-03-01", today)
    assert is_writable_date("2024-02-29", today)
    assert not is_writable_date("2024-02-28", today)
    assert not is_writable_date("2024-03-02", today)


def test_writable_accepts_date_key_for_today():
    assert is_writable_date("2024-12-31", "2025-01-01")


def test_month_date_keys_handles_leap_february():
    keys = month_date_keys(2024, 2)
    assert len(keys) == 29
    assert keys[0] == "2024-02-01"
    assert keys[-1] == "2024-02-29"
    assert len(month_date_keys(2023, 2)) == 28
