"""
Trip lifecycle service.

Owns every status change a trip goes through after it is created::

    pending --accept--> assigned --start--> in_progress --complete--> completed
    pending|assigned --cancel--> cancelled
    pending --delete--> (removed)

Status changes are validated by the ``Trip`` entity state machine; the
assignment edge lives in ``TripRequestService`` because it is driven by an
accepted request.  Notifications and ratings are side effects: they run in
savepoints and never undo the transition that triggered them.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain import availability, scheduling
from src.domain.entities import Party, Principal, Trip
from src.domain.enums import RequestStatus, TripStatus, UserRole
from src.domain.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.infrastructure.models import TripModel
from src.infrastructure.repositories import (
    CompanyRepository,
    DriverRepository,
    TripRepository,
    TripRequestRepository,
)
from src.services.notifications import EventPublisher, NotificationService
from src.services.profiles import ProfileResolver
from src.services.ratings import RatingService

logger = logging.getLogger(__name__)

# Fields a company may set on create / edit while the trip is pending.
EDITABLE_FIELDS = (
    "pickup_location",
    "destination",
    "trip_date",
    "departure_time",
    "passenger_count",
    "vehicle_type",
    "company_price",
    "driver_price",
    "visa_number",
)
REQUIRED_FIELDS = (
    "pickup_location",
    "destination",
    "trip_date",
    "departure_time",
    "vehicle_type",
)


def apply_transition(
    model: TripModel, new_status: TripStatus, driver_id: Optional[int] = None
) -> None:
    """Run *model* through the entity state machine and copy the result back."""
    trip = Trip(
        id=model.id,
        company_id=model.company_id,
        driver_id=model.driver_id,
        status=TripStatus(model.status),
    )
    trip.transition_to(new_status, driver_id)
    model.status = trip.status
    model.driver_id = trip.driver_id


def ensure_can_transition(model: TripModel, new_status: TripStatus) -> None:
    trip = Trip(status=TripStatus(model.status))
    if not trip.can_transition_to(new_status):
        raise InvalidStateError(
            f"Trip {model.id} is {trip.status.value} and cannot become "
            f"{new_status.value}"
        )


def describe(trip: TripModel) -> str:
    return f"from {trip.pickup_location} to {trip.destination} on {trip.trip_date}"


def _clean_visa(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def _editable(fields: dict[str, Any]) -> dict[str, Any]:
    values = {
        k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None
    }
    if "visa_number" in values:
        # Blank visa numbers are stored as NULL so they never collide.
        values["visa_number"] = _clean_visa(values["visa_number"])
    return values


class TripService:
    def __init__(
        self, session: AsyncSession, publisher: Optional[EventPublisher] = None
    ):
        self.session = session
        self.trips = TripRepository(session)
        self.requests = TripRequestRepository(session)
        self.companies = CompanyRepository(session)
        self.drivers = DriverRepository(session)
        self.profiles = ProfileResolver(session)
        self.notifications = NotificationService(session, publisher)
        self.ratings = RatingService(session, publisher)

    # ── Company side ─────────────────────────────────────────────────

    async def create_trip(self, principal: Principal, fields: dict[str, Any]) -> TripModel:
        company = await self.profiles.company_for(principal)
        values = _editable(fields)
        missing = [f for f in REQUIRED_FIELDS if values.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if values.get("passenger_count", 1) < 1:
            raise ValidationError("passenger_count must be at least 1")
        await self._ensure_visa_available(values.get("visa_number"))

        trip = await self.trips.create(
            TripModel(company_id=company.id, status=TripStatus.PENDING, **values)
        )
        logger.info("Company %s created trip %s", company.id, trip.id)
        return trip

    async def update_trip(
        self, principal: Principal, trip_id: int, fields: dict[str, Any]
    ) -> TripModel:
        company = await self.profiles.company_for(principal)
        trip = await self._get_owned(trip_id, company.id, lock=True)
        if TripStatus(trip.status) != TripStatus.PENDING:
            raise InvalidStateError(
                "Cannot update trip that is already assigned or in progress"
            )

        values = _editable(fields)
        if values.get("visa_number") and values["visa_number"] != trip.visa_number:
            await self._ensure_visa_available(values["visa_number"])

        for key, value in values.items():
            setattr(trip, key, value)
        await self.trips.save()
        return trip

    async def delete_trip(self, principal: Principal, trip_id: int) -> None:
        company = await self.profiles.company_for(principal)
        trip = await self._get_owned(trip_id, company.id, lock=True)
        if TripStatus(trip.status) != TripStatus.PENDING:
            raise NotFoundError("Trip not found or cannot be deleted")
        await self.trips.delete(trip)
        logger.info("Company %s deleted trip %s", company.id, trip_id)

    async def cancel_trip(self, principal: Principal, trip_id: int) -> TripModel:
        company = await self.profiles.company_for(principal)
        trip = await self.trips.get_for_update(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        if trip.company_id != company.id:
            raise ForbiddenError("Not authorized to cancel this trip")

        previous_driver_id = trip.driver_id
        apply_transition(trip, TripStatus.CANCELLED)
        for request in await self.requests.list_pending_for_trip(trip.id):
            request.status = RequestStatus.REJECTED
        await self.session.flush()
        logger.info("Company %s cancelled trip %s", company.id, trip.id)

        if previous_driver_id is not None:
            driver = await self.drivers.get_by_id(previous_driver_id)
            if driver is not None:
                await self.notifications.emit(
                    driver.user_id,
                    "Trip Cancelled",
                    f"The trip {describe(trip)} has been cancelled by the company.",
                )
        return trip

    # ── Driver side ──────────────────────────────────────────────────

    async def start_trip(self, principal: Principal, trip_id: int) -> TripModel:
        driver = await self.profiles.driver_for(principal)
        trip = await self._get_assigned_to(trip_id, driver.id, TripStatus.ASSIGNED)

        apply_transition(trip, TripStatus.IN_PROGRESS)
        await self.session.flush()
        logger.info("Driver %s started trip %s", driver.id, trip.id)

        await self._notify_company(
            trip,
            "Trip Started",
            f"Trip {describe(trip)} has been started by the driver.",
        )
        return trip

    async def complete_trip(
        self,
        principal: Principal,
        trip_id: int,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> TripModel:
        driver = await self.profiles.driver_for(principal)
        trip = await self._get_assigned_to(trip_id, driver.id, TripStatus.IN_PROGRESS)

        apply_transition(trip, TripStatus.COMPLETED)
        await self.session.flush()
        logger.info("Driver %s completed trip %s", driver.id, trip.id)

        if rating is not None:
            await self._rate_company_quietly(trip, driver.id, rating, comment)

        await self._notify_company(
            trip,
            "Trip Completed",
            f"Trip {describe(trip)} has been completed by the driver.",
        )
        return trip

    async def _rate_company_quietly(
        self, trip: TripModel, driver_id: int, score: int, comment: Optional[str]
    ) -> None:
        try:
            async with self.session.begin_nested():
                await self.ratings.record_rating(
                    trip.id,
                    Party.driver(driver_id),
                    Party.company(trip.company_id),
                    score,
                    comment,
                )
        except DomainError as exc:
            logger.warning("Trip %s completed without rating: %s", trip.id, exc.message)
        except Exception:
            logger.exception("Trip %s completed but saving the rating failed", trip.id)

    # ── Reads ────────────────────────────────────────────────────────

    async def get_trip(self, principal: Principal, trip_id: int) -> TripModel:
        trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")

        if principal.role == UserRole.ADMIN:
            return trip
        if principal.role == UserRole.COMPANY:
            company = await self.profiles.company_for(principal)
            if trip.company_id != company.id:
                raise ForbiddenError("Unauthorized")
            return trip

        driver = await self.profiles.driver_for(principal)
        if trip.driver_id != driver.id and TripStatus(trip.status) != TripStatus.PENDING:
            raise ForbiddenError("Unauthorized")
        return trip

    async def list_trips(
        self, principal: Principal, status: Optional[TripStatus] = None
    ) -> list[TripModel]:
        if principal.role == UserRole.ADMIN:
            return await self.trips.list_all(status)
        if principal.role == UserRole.COMPANY:
            return await self.list_company_trips(principal, status)
        return await self.list_driver_trips(principal, status)

    async def list_company_trips(
        self, principal: Principal, status: Optional[TripStatus] = None
    ) -> list[TripModel]:
        company = await self.profiles.company_for(principal)
        return await self.trips.list_by_company(company.id, status)

    async def list_driver_trips(
        self, principal: Principal, status: Optional[TripStatus] = None
    ) -> list[TripModel]:
        driver = await self.profiles.driver_for(principal)
        return await self.trips.list_by_driver(driver.id, status)

    async def list_available_trips(self, principal: Principal) -> list[TripModel]:
        """Open trips for the driver's vehicle type.

        Narrowed to the driver's availability window and location once those
        have been set with ``update_availability``.
        """
        driver = await self.profiles.driver_for(principal)
        trips = await self.trips.list_available(driver.vehicle_type, driver.id)
        if driver.available_from is not None:
            trips = [
                t
                for t in trips
                if availability.within_window(
                    scheduling.departure(t.trip_date, t.departure_time),
                    driver.available_from,
                    driver.available_to,
                )
            ]
        return [
            t
            for t in trips
            if availability.location_matches(t.pickup_location, driver.current_location)
        ]

    # ── Helpers ──────────────────────────────────────────────────────

    async def _get_owned(
        self, trip_id: int, company_id: int, lock: bool = False
    ) -> TripModel:
        # Writers that touch trip_requests lock the trip row first.
        if lock:
            trip = await self.trips.get_for_update(trip_id)
        else:
            trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        if trip.company_id != company_id:
            raise ForbiddenError("Not authorized to modify this trip")
        return trip

    async def _get_assigned_to(
        self, trip_id: int, driver_id: int, expected: TripStatus
    ) -> TripModel:
        trip = await self.trips.get_for_update(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        if trip.driver_id != driver_id:
            raise ForbiddenError("Only the assigned driver can change this trip")
        if TripStatus(trip.status) != expected:
            raise InvalidStateError(
                f"Trip is {TripStatus(trip.status).value}, expected {expected.value}"
            )
        return trip

    async def _ensure_visa_available(self, visa_number: Optional[str]) -> None:
        if visa_number and await self.trips.get_by_visa_number(visa_number):
            raise ConflictError("A trip with this visa number already exists")

    async def _notify_company(self, trip: TripModel, title: str, message: str) -> None:
        company = await self.companies.get_by_id(trip.company_id)
        if company is None:
            logger.warning("Trip %s has no company to notify", trip.id)
            return
        await self.notifications.emit(company.user_id, title, message)
