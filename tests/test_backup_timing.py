from datetime import datetime, timedelta, timezone

import pytest

from backup.timing import next_tick_at, next_wait

HOUR = timedelta(hours=1)


def test_first_wait_aligns_to_top_of_hour():
    now = datetime(2024, 1, 1, 10, 17, 30, tzinfo=timezone.utc)
    assert next_wait(now, HOUR) == timedelta(minutes=42, seconds=30)
    assert next_tick_at(now, HOUR) == datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc)


def test_first_wait_on_boundary_waits_full_interval():
    now = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
    assert next_wait(now, HOUR) == HOUR


def test_first_wait_multi_hour_frequency_aligns_to_utc_day():
    now = datetime(2024, 6, 2, 3, 0, 0, tzinfo=timezone.utc)
    assert next_wait(now, timedelta(minutes=240)) == timedelta(hours=1)


def test_first_wait_converts_other_timezones():
    plus_two = timezone(timedelta(hours=2))
    now = datetime(2024, 1, 1, 12, 45, 0, tzinfo=plus_two)
    assert next_wait(now, HOUR) == timedelta(minutes=15)


def test_naive_datetime_is_treated_as_utc():
    naive = datetime(2024, 1, 1, 10, 59, 0)
    assert next_wait(naive, HOUR) == timedelta(minutes=1)


def test_subsequent_wait_subtracts_processing_time():
    now = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
    assert next_wait(now, timedelta(minutes=5), timedelta(seconds=10)) == timedelta(minutes=4, seconds=50)


def test_slow_tick_fires_next_immediately():
    now = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
    assert next_wait(now, timedelta(minutes=5), timedelta(minutes=7)) == timedelta(0)


def test_non_positive_frequency_rejected():
    with pytest.raises(ValueError):
        next_wait(datetime(2024, 1, 1, tzinfo=timezone.utc), timedelta(0))
