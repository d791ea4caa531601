"""
backend/tests/test_lock_time.py

Purpose:
    Sunday-noon lock deadline in league time (America/New_York by default),
    across the DST switch, plus the countdown labels.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, "backend")

from app.utils.lock_time import (
    LOCKED_LABEL,
    format_lock_time,
    format_time_until_lock,
    is_before_lock_time,
    next_lock_time,
    time_until_lock,
)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_midweek_locks_next_sunday_noon_eastern():
    # Wednesday 2026-10-21 11:00 EDT
    lock = next_lock_time(_utc(2026, 10, 21, 15, 0))
    assert lock == _utc(2026, 10, 25, 16, 0)
    assert lock.tzinfo == timezone.utc


def test_sunday_morning_locks_same_day():
    lock = next_lock_time(_utc(2026, 10, 25, 15, 59))
    assert lock == _utc(2026, 10, 25, 16, 0)


def test_sunday_at_noon_rolls_to_next_week_across_dst_end():
    # DST ends 2026-11-01, so noon that Sunday is 17:00 UTC
    lock = next_lock_time(_utc(2026, 10, 25, 16, 0))
    assert lock == _utc(2026, 11, 1, 17, 0)


def test_naive_input_is_treated_as_utc():
    assert next_lock_time(datetime(2026, 10, 21, 15, 0)) == _utc(2026, 10, 25, 16, 0)


def test_format_lock_time_shows_league_timezone():
    assert format_lock_time(_utc(2026, 10, 25, 16, 0)) == "Sunday, Oct 25, 12:00 PM EDT"
    assert format_lock_time(_utc(2026, 11, 1, 17, 0)) == "Sunday, Nov 1, 12:00 PM EST"


def test_is_before_lock_time():
    lock = _utc(2026, 10, 25, 16, 0)
    assert is_before_lock_time(lock, now=lock - timedelta(seconds=1))
    assert not is_before_lock_time(lock, now=lock)


def test_time_until_lock_never_negative():
    lock = _utc(2026, 10, 25, 16, 0)
    assert time_until_lock(lock, now=lock + timedelta(hours=2)) == timedelta(0)


def test_countdown_labels():
    now = _utc(2026, 10, 21, 12, 0)
    assert format_time_until_lock(now + timedelta(days=2, hours=3, minutes=10), now) == "2d 3h"
    assert format_time_until_lock(now + timedelta(hours=3, minutes=15), now) == "3h 15m"
    assert format_time_until_lock(now + timedelta(minutes=45), now) == "45m"
    assert format_time_until_lock(now - timedelta(minutes=1), now) == LOCKED_LABEL
    assert format_time_until_lock(now, now) == "Locked"
