"""
Driver availability.

A driver announces a current location and a window of time in which they
can take trips.  Trips are matched against both: the departure must fall
inside the window and the pickup must mention the driver's location.
Pure functions, no I/O.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from .errors import ValidationError


def wall_clock(value: Optional[datetime]) -> Optional[datetime]:
    """Drop any UTC offset; trip departures are stored as local wall-clock time."""
    if value is None or value.tzinfo is None:
        return value
    return value.replace(tzinfo=None)


def validate_window(
    available_from: Optional[datetime], available_to: Optional[datetime]
) -> None:
    if (available_from is None) != (available_to is None):
        raise ValidationError("available_from and available_to must be set together")
    if available_from is not None and available_from > available_to:
        raise ValidationError("available_from must not be after available_to")


def within_window(
    departure: datetime,
    available_from: Optional[datetime],
    available_to: Optional[datetime],
) -> bool:
    """Inclusive on both ends.  An unset window matches nothing."""
    if available_from is None or available_to is None:
        return False
    return available_from <= departure <= available_to


def _words(text: str) -> str:
    return " ".join(re.split(r"[\s,]+", text.strip().lower()))


def location_matches(pickup_location: str, current_location: Optional[str]) -> bool:
    """Case-insensitive containment, commas treated as spaces.

    A driver who has not given a location matches every pickup.
    """
    if not current_location or not current_location.strip():
        return True
    return _words(current_location) in _words(pickup_location)
