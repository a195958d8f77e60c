"""
Clock and calendar helpers.

Week boundaries are the most recent Sunday at local midnight. The boundary is
rebuilt from the calendar date rather than by subtracting a duration from the
current instant, so every instant of a week maps to the same timestamp even
when a DST transition falls inside that week.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo, UTC
from typing import Protocol

SECONDS_PER_DAY = 24 * 60 * 60


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning timezone-aware UTC instants."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Return ``value`` as an aware datetime."""
    # Naive values are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def get_week_start(now: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Return the start of the week containing ``now``.

    Args:
        now: Any instant inside the week.
        tz: Zone whose calendar defines the week; system local time when None.

    Returns:
        Aware datetime for Sunday 00:00 local time.
    """
    local = ensure_aware(now).astimezone(tz)
    # weekday(): Monday=0 ... Sunday=6
    sunday = local.date() - timedelta(days=(local.weekday() + 1) % 7)
    midnight = datetime.combine(sunday, time.min)
    if tz is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=tz)


def is_same_week(stored: datetime | None, now: datetime, tz: tzinfo | None = None) -> bool:
    """True when ``stored`` equals the current week boundary exactly."""
    if stored is None:
        return False
    return ensure_aware(stored) == get_week_start(now, tz)


def days_between(start: datetime, end: datetime) -> float:
    """Elapsed wall-clock days from ``start`` to ``end`` (fractional)."""
    delta = ensure_aware(end) - ensure_aware(start)
    return delta.total_seconds() / SECONDS_PER_DAY
