"""Tick timing for the backup scheduler."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ZERO = timedelta(0)


def next_wait(now: datetime, frequency: timedelta, last_elapsed: Optional[timedelta] = None) -> timedelta:
    """Return how long the scheduler should sleep before the next tick.

    Without *last_elapsed* (first tick) the wait runs to the next multiple of
    *frequency* counted from the Unix epoch in UTC, strictly after *now*.
    Afterwards it is *frequency* minus the time the previous tick took,
    never negative.
    """

    if frequency <= _ZERO:
        raise ValueError("frequency must be positive")
    if last_elapsed is not None:
        return max(frequency - last_elapsed, _ZERO)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    offset = (now - _EPOCH) % frequency
    return frequency - offset


def next_tick_at(now: datetime, frequency: timedelta) -> datetime:
    return now + next_wait(now, frequency)


__all__ = ["next_tick_at", "next_wait"]
