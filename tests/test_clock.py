from datetime import datetime, timedelta, timezone

from pathgate.services.clock import day_key, ensure_utc, month_key


def test_day_key_utc():
    t = datetime(2026, 3, 10, 23, 59, 59, tzinfo=timezone.utc)
    assert day_key(t) == "2026-03-10"
    assert day_key(t + timedelta(seconds=1)) == "2026-03-11"


def test_day_key_in_configured_zone():
    t = datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc)
    # 01:30 next day in India
    assert day_key(t, "Asia/Kolkata") == "2026-03-11"
    assert day_key(t, "UTC") == "2026-03-10"


def test_month_key_rolls_over_year():
    assert month_key(datetime(2025, 12, 31, 23, 0, tzinfo=timezone.utc)) == (2025, 12)
    assert month_key(datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)) == (2026, 1)


def test_naive_datetime_taken_as_utc():
    naive = datetime(2026, 3, 10, 12, 0)
    assert ensure_utc(naive) == datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
    assert day_key(naive) == "2026-03-10"


def test_ensure_utc_converts_offsets_and_strings():
    ist = timezone(timedelta(hours=5, minutes=30))
    value = ensure_utc(datetime(2026, 3, 11, 1, 30, tzinfo=ist))
    assert value == datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc)
    assert value.tzinfo == timezone.utc
    assert ensure_utc("2026-03-10T12:00:00") == datetime(
        2026, 3, 10, 12, 0, tzinfo=timezone.utc
    )
    assert ensure_utc(None) is None
