"""Week lock-time helpers in league-local time (Sunday noon Eastern by default)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.config import settings
from app.utils import ensure_utc, utcnow

LOCKED_LABEL = "Locked"


def _league_tz() -> ZoneInfo:
    return ZoneInfo(settings.LEAGUE_TIMEZONE)


def next_lock_time(from_dt: datetime | None = None) -> datetime:
    """Next lock deadline (LOCK_WEEKDAY at LOCK_HOUR:00 league time) as aware UTC.

    On the lock weekday itself, today's deadline counts while it is still ahead;
    otherwise the following week's is used.
    """
    tz = _league_tz()
    local = ensure_utc(from_dt or utcnow()).astimezone(tz)

    days_ahead = (settings.LOCK_WEEKDAY - local.weekday()) % 7
    if days_ahead == 0 and local.hour >= settings.LOCK_HOUR:
        days_ahead = 7

    lock_date = (local + timedelta(days=days_ahead)).date()
    # Build from the wall-clock date so DST shifts keep the lock at noon local
    lock_local = datetime(
        lock_date.year, lock_date.month, lock_date.day, settings.LOCK_HOUR, tzinfo=tz,
    )
    return lock_local.astimezone(timezone.utc)


def format_lock_time(lock_time: datetime) -> str:
    """Display form, e.g. Sunday, Oct 25, 12:00 PM EDT."""
    local = ensure_utc(lock_time).astimezone(_league_tz())
    hour = local.strftime("%I").lstrip("0") or "12"
    return (
        f"{local.strftime('%A')}, {local.strftime('%b')} {local.day}, "
        f"{hour}:{local.strftime('%M %p')} {local.tzname()}"
    )


def is_before_lock_time(lock_time: datetime, now: datetime | None = None) -> bool:
    return ensure_utc(now or utcnow()) < ensure_utc(lock_time)


def time_until_lock(lock_time: datetime, now: datetime | None = None) -> timedelta:
    """Remaining time before the deadline, never negative."""
    remaining = ensure_utc(lock_time) - ensure_utc(now or utcnow())
    return max(remaining, timedelta(0))


def format_time_until_lock(lock_time: datetime, now: datetime | None = None) -> str:
    """Countdown label: 2d 3h, 3h 15m, 45m, or Locked once past."""
    remaining = time_until_lock(lock_time, now)
    if remaining <= timedelta(0):
        return LOCKED_LABEL

    total_minutes = int(remaining.total_seconds() // 60)
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
