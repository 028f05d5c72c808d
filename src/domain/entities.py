"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Trip``: enforces valid lifecycle transitions
  (pending -> assigned -> in_progress -> completed | cancelled) and keeps
  ``driver_id`` bound exactly while the trip is assigned or later.
- ``Party`` is the tagged union {company, driver} used for raters and
  rated parties.
- ``Principal`` is the explicit caller identity handed to every service
  operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import (
    DRIVER_BOUND_STATUSES,
    PartyType,
    TRIP_TRANSITIONS,
    TripStatus,
    UserRole,
)
from .errors import InvalidStateError


class InvalidStateTransition(InvalidStateError):
    """Raised when a trip status change violates the state machine."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: UserRole


@dataclass(frozen=True)
class Party:
    type: PartyType
    id: int

    @classmethod
    def company(cls, company_id: int) -> Party:
        return cls(PartyType.COMPANY, company_id)

    @classmethod
    def driver(cls, driver_id: int) -> Party:
        return cls(PartyType.DRIVER, driver_id)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Trip:
    id: Optional[int] = None
    company_id: int = 0
    driver_id: Optional[int] = None
    status: TripStatus = TripStatus.PENDING

    def can_transition_to(self, new_status: TripStatus) -> bool:
        return new_status in TRIP_TRANSITIONS.get(self.status, set())

    def transition_to(
        self, new_status: TripStatus, driver_id: Optional[int] = None
    ) -> None:
        """Move to *new_status* if the transition is legal, else raise.

        ``driver_id`` is required when assigning; it is cleared on
        cancellation so the driver stays bound only while the trip is
        assigned, in progress or completed.
        """
        if not self.can_transition_to(new_status):
            raise InvalidStateTransition(
                f"Cannot transition trip from {self.status.value} "
                f"to {new_status.value}"
            )
        if new_status == TripStatus.ASSIGNED:
            if driver_id is None:
                raise InvalidStateTransition("Assigning a trip requires a driver")
            self.driver_id = driver_id
        elif new_status not in DRIVER_BOUND_STATUSES:
            self.driver_id = None
        self.status = new_status
