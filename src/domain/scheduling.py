"""
Driver schedule conflicts.

A driver may not hold two active trips whose departures fall within
``window`` of each other.  Pure functions, no I/O.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable


def departure(trip_date: date, departure_time: time) -> datetime:
    return datetime.combine(trip_date, departure_time)


def conflicts(a: datetime, b: datetime, window: timedelta) -> bool:
    return abs(a - b) < window


def first_conflict(
    candidate: datetime,
    booked: Iterable[tuple[int, datetime]],
    window: timedelta,
) -> int | None:
    """Return the id of the first booked trip clashing with *candidate*."""
    for trip_id, start in booked:
        if conflicts(candidate, start, window):
            return trip_id
    return None
