"""Domain enumerations and state-transition rules."""

import enum


class TripStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.PENDING: {TripStatus.ASSIGNED, TripStatus.CANCELLED},
    TripStatus.ASSIGNED: {TripStatus.IN_PROGRESS, TripStatus.CANCELLED},
    TripStatus.IN_PROGRESS: {TripStatus.COMPLETED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}

# Statuses in which a trip carries a driver
DRIVER_BOUND_STATUSES = frozenset(
    {TripStatus.ASSIGNED, TripStatus.IN_PROGRESS, TripStatus.COMPLETED}
)


class RequestType(str, enum.Enum):
    COMPANY_TO_DRIVER = "company_to_driver"
    DRIVER_TO_COMPANY = "driver_to_company"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Decision(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    COMPANY = "company"
    DRIVER = "driver"


class PartyType(str, enum.Enum):
    COMPANY = "company"
    DRIVER = "driver"


class VehicleType(str, enum.Enum):
    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    BUS = "bus"
