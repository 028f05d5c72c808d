"""
Trip request negotiation.

Requests flow in both directions:

* ``company_to_driver`` -- a company asks a specific driver to take a trip;
  the driver responds.
* ``driver_to_company`` -- a driver asks for a posted trip; the owning
  company responds.  A driver holds at most one such pending request.

Accepting a request assigns the driver to the trip.  The assignment is a
compare-and-swap on ``trips.status = 'pending'`` under a row lock, so of two
concurrent accepts exactly one wins; every other pending request for the
trip is then rejected.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain import scheduling
from src.domain.entities import Principal
from src.domain.enums import (
    Decision,
    RequestStatus,
    RequestType,
    TripStatus,
    UserRole,
)
from src.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from src.infrastructure.models import TripModel, TripRequestModel
from src.infrastructure.repositories import (
    CompanyRepository,
    DriverRepository,
    TripRepository,
    TripRequestRepository,
)
from src.services.notifications import EventPublisher, NotificationService
from src.services.profiles import ProfileResolver
from src.services.trips import describe, ensure_can_transition

logger = logging.getLogger(__name__)


class TripRequestService:
    def __init__(
        self,
        session: AsyncSession,
        publisher: Optional[EventPublisher] = None,
        conflict_window: Optional[timedelta] = None,
    ):
        self.session = session
        self.trips = TripRepository(session)
        self.requests = TripRequestRepository(session)
        self.companies = CompanyRepository(session)
        self.drivers = DriverRepository(session)
        self.profiles = ProfileResolver(session)
        self.notifications = NotificationService(session, publisher)
        self.conflict_window = conflict_window or timedelta(
            hours=settings.schedule_conflict_window_hours
        )

    # ── Creation ─────────────────────────────────────────────────────

    async def request_driver(
        self, principal: Principal, trip_id: int, driver_id: int
    ) -> TripRequestModel:
        """Company-initiated request for *driver_id* to take *trip_id*."""
        company = await self.profiles.company_for(principal)
        trip = await self._get_trip(trip_id)
        if trip.company_id != company.id:
            raise ForbiddenError("Not authorized to request drivers for this trip")
        self._ensure_open(trip)

        driver = await self.drivers.get_by_id(driver_id)
        if driver is None:
            raise NotFoundError("Driver not found")
        if await self.requests.find_pending(trip.id, driver.id):
            raise ConflictError("A request already exists for this trip and driver")

        request = await self.requests.create(
            TripRequestModel(
                trip_id=trip.id,
                driver_id=driver.id,
                company_id=company.id,
                request_type=RequestType.COMPANY_TO_DRIVER,
                status=RequestStatus.PENDING,
            )
        )
        logger.info(
            "Company %s requested driver %s for trip %s", company.id, driver.id, trip.id
        )

        await self.notifications.emit(
            driver.user_id,
            "New Trip Request",
            f"You have a new trip request from {company.company_name} "
            f"for the trip {describe(trip)}.",
        )
        return request

    async def request_trip(self, principal: Principal, trip_id: int) -> TripRequestModel:
        """Driver-initiated request to take *trip_id*."""
        driver = await self.profiles.driver_for(principal)
        trip = await self._get_trip(trip_id)
        self._ensure_open(trip)

        if await self.requests.find_pending(trip.id, driver.id):
            raise ConflictError("A request for this trip already exists")
        if await self.requests.count_pending_driver_initiated(driver.id) > 0:
            raise ConflictError(
                "You already have a pending trip request; cancel it or wait "
                "for the company to respond"
            )

        request = await self.requests.create(
            TripRequestModel(
                trip_id=trip.id,
                driver_id=driver.id,
                company_id=trip.company_id,
                request_type=RequestType.DRIVER_TO_COMPANY,
                status=RequestStatus.PENDING,
            )
        )
        logger.info("Driver %s requested trip %s", driver.id, trip.id)

        company = await self.companies.get_by_id(trip.company_id)
        if company is not None:
            await self.notifications.emit(
                company.user_id,
                "New Trip Request",
                f"{driver.full_name} has requested to take your trip {describe(trip)}.",
            )
        return request

    # ── Resolution ───────────────────────────────────────────────────

    async def respond_to_request(
        self, principal: Principal, request_id: int, decision: Decision
    ) -> TripRequestModel:
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise NotFoundError("Trip request not found")
        await self._ensure_receiver(principal, request)

        # Trip row before request row, the same order cancel_trip and
        # delete_trip use, so concurrent writers queue instead of deadlocking.
        trip = await self.trips.get_for_update(request.trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        request = await self.requests.get_for_update(request_id)
        if request is None:
            raise NotFoundError("Trip request not found")
        if RequestStatus(request.status) != RequestStatus.PENDING:
            raise InvalidStateError(
                f"Trip request is already {RequestStatus(request.status).value}"
            )

        if decision == Decision.ACCEPT:
            await self._assign(trip, request)
            title, verb = "Trip Request Accepted", "accepted"
        else:
            request.status = RequestStatus.REJECTED
            await self.session.flush()
            title, verb = "Trip Request Rejected", "rejected"
        logger.info("Trip request %s %s", request.id, verb)

        await self._notify_initiator(
            request,
            title,
            f"Your request for the trip {describe(trip)} has been {verb}.",
        )
        return request

    async def _assign(self, trip: TripModel, request: TripRequestModel) -> None:
        ensure_can_transition(trip, TripStatus.ASSIGNED)
        await self._ensure_driver_free(request.driver_id, trip)

        if not await self.trips.assign_driver_if_pending(trip.id, request.driver_id):
            raise ConflictError("Trip was assigned by a concurrent request")
        await self.session.refresh(trip)

        request.status = RequestStatus.ACCEPTED
        await self.session.flush()
        rejected = await self.requests.reject_other_pending(trip.id, request.id)
        logger.info(
            "Driver %s assigned to trip %s (%d competing requests rejected)",
            request.driver_id,
            trip.id,
            rejected,
        )

    async def _ensure_driver_free(self, driver_id: int, trip: TripModel) -> None:
        candidate = scheduling.departure(trip.trip_date, trip.departure_time)
        booked = [
            (other.id, scheduling.departure(other.trip_date, other.departure_time))
            for other in await self.trips.list_active_for_driver(driver_id)
            if other.id != trip.id
        ]
        clash = scheduling.first_conflict(candidate, booked, self.conflict_window)
        if clash is not None:
            raise ConflictError(
                f"Driver already has a conflicting trip ({clash}) at this time"
            )

    # ── Withdrawal ───────────────────────────────────────────────────

    async def cancel_request(self, principal: Principal, request_id: int) -> None:
        """The creator withdraws its own pending request (row is deleted)."""
        request = await self.requests.get_for_update(request_id)
        if request is None:
            raise NotFoundError("Trip request not found")

        request_type = RequestType(request.request_type)
        if request_type == RequestType.COMPANY_TO_DRIVER:
            company = await self.profiles.company_for(principal)
            if request.company_id != company.id:
                raise ForbiddenError("Not authorized to cancel this request")
        else:
            driver = await self.profiles.driver_for(principal)
            if request.driver_id != driver.id:
                raise ForbiddenError("Not authorized to cancel this request")

        if RequestStatus(request.status) != RequestStatus.PENDING:
            raise InvalidStateError("Only pending requests can be cancelled")

        await self.requests.delete(request)
        logger.info("Trip request %s withdrawn by its creator", request_id)

    # ── Reads ────────────────────────────────────────────────────────

    async def list_requests(
        self, principal: Principal, request_type: Optional[RequestType] = None
    ) -> list[TripRequestModel]:
        if principal.role == UserRole.COMPANY:
            return await self.list_company_requests(principal, request_type)
        return await self.list_driver_requests(principal, request_type)

    async def list_company_requests(
        self, principal: Principal, request_type: Optional[RequestType] = None
    ) -> list[TripRequestModel]:
        """Pending requests the company sent or received, newest first."""
        company = await self.profiles.company_for(principal)
        return await self.requests.list_for_company(company.id, request_type)

    async def list_driver_requests(
        self, principal: Principal, request_type: Optional[RequestType] = None
    ) -> list[TripRequestModel]:
        driver = await self.profiles.driver_for(principal)
        return await self.requests.list_for_driver(driver.id, request_type)

    # ── Helpers ──────────────────────────────────────────────────────

    async def _get_trip(self, trip_id: int) -> TripModel:
        trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    @staticmethod
    def _ensure_open(trip: TripModel) -> None:
        if TripStatus(trip.status) != TripStatus.PENDING:
            raise InvalidStateError("Trip is no longer open for requests")

    async def _ensure_receiver(
        self, principal: Principal, request: TripRequestModel
    ) -> None:
        """Only the counterparty of the initiator may accept or reject."""
        if RequestType(request.request_type) == RequestType.COMPANY_TO_DRIVER:
            if principal.role != UserRole.DRIVER:
                raise ForbiddenError("Cannot respond to a request you made")
            driver = await self.profiles.driver_for(principal)
            if request.driver_id != driver.id:
                raise ForbiddenError("Unauthorized")
        else:
            if principal.role != UserRole.COMPANY:
                raise ForbiddenError("Cannot respond to a request you made")
            company = await self.profiles.company_for(principal)
            if request.company_id != company.id:
                raise ForbiddenError("Unauthorized")

    async def _notify_initiator(
        self, request: TripRequestModel, title: str, message: str
    ) -> None:
        if RequestType(request.request_type) == RequestType.DRIVER_TO_COMPANY:
            recipient = await self.drivers.get_by_id(request.driver_id)
        else:
            recipient = await self.companies.get_by_id(request.company_id)
        if recipient is not None:
            await self.notifications.emit(recipient.user_id, title, message)
