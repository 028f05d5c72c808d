"""
Driver availability.

Drivers publish where they are and when they can drive; companies use that
to find drivers worth sending a ``company_to_driver`` request to.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain import availability, scheduling
from src.domain.entities import Principal
from src.domain.enums import TripStatus
from src.domain.errors import ForbiddenError, InvalidStateError, NotFoundError
from src.infrastructure.models import DriverModel
from src.infrastructure.repositories import DriverRepository, TripRepository
from src.services.profiles import ProfileResolver

logger = logging.getLogger(__name__)


class DriverService:
    def __init__(
        self, session: AsyncSession, conflict_window: Optional[timedelta] = None
    ):
        self.session = session
        self.drivers = DriverRepository(session)
        self.trips = TripRepository(session)
        self.profiles = ProfileResolver(session)
        self.conflict_window = conflict_window or timedelta(
            hours=settings.schedule_conflict_window_hours
        )

    async def update_availability(
        self,
        principal: Principal,
        current_location: Optional[str],
        available_from: Optional[datetime],
        available_to: Optional[datetime],
    ) -> DriverModel:
        driver = await self.profiles.driver_for(principal)
        available_from = availability.wall_clock(available_from)
        available_to = availability.wall_clock(available_to)
        availability.validate_window(available_from, available_to)

        driver.current_location = (current_location or "").strip() or None
        driver.available_from = available_from
        driver.available_to = available_to
        await self.session.flush()
        logger.info(
            "Driver %s available at %r from %s to %s",
            driver.id,
            driver.current_location,
            available_from,
            available_to,
        )
        return driver

    async def list_available_drivers(
        self, principal: Principal, trip_id: int
    ) -> list[DriverModel]:
        """Drivers a company could ask to take *trip_id* right now.

        Approved, right vehicle type, free at the departure time, near the
        pickup, and not already negotiating this trip.
        """
        company = await self.profiles.company_for(principal)
        trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        if trip.company_id != company.id:
            raise ForbiddenError("Not authorized to view drivers for this trip")
        if TripStatus(trip.status) != TripStatus.PENDING:
            raise InvalidStateError("Trip is no longer open for requests")

        departure = scheduling.departure(trip.trip_date, trip.departure_time)
        candidates = [
            d
            for d in await self.drivers.list_candidates(trip.vehicle_type, trip.id)
            if availability.within_window(departure, d.available_from, d.available_to)
            and availability.location_matches(trip.pickup_location, d.current_location)
        ]

        booked: dict[int, list[tuple[int, datetime]]] = defaultdict(list)
        for other in await self.trips.list_active_for_drivers([d.id for d in candidates]):
            booked[other.driver_id].append(
                (other.id, scheduling.departure(other.trip_date, other.departure_time))
            )
        return [
            d
            for d in candidates
            if scheduling.first_conflict(departure, booked[d.id], self.conflict_window)
            is None
        ]
