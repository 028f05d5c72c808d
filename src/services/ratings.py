"""
Rating aggregator.

A rating is recorded once per (trip, rater, rated).  After the insert the
rated party's profile row is locked and its ``rating`` / ``rating_count``
are recomputed from a fresh ``AVG`` / ``COUNT`` over all of its ratings, so
concurrent writers converge on the same value instead of drifting.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import Party, Principal
from src.domain.enums import PartyType, TripStatus
from src.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from src.domain.ratings import summarize, validate_score
from src.infrastructure.models import CompanyModel, DriverModel, RatingModel, TripModel
from src.infrastructure.repositories import (
    CompanyRepository,
    DriverRepository,
    RatingRepository,
    TripRepository,
)
from src.services.notifications import EventPublisher, NotificationService
from src.services.profiles import ProfileResolver

logger = logging.getLogger(__name__)


class RatingService:
    def __init__(
        self, session: AsyncSession, publisher: Optional[EventPublisher] = None
    ):
        self.session = session
        self.ratings = RatingRepository(session)
        self.trips = TripRepository(session)
        self.companies = CompanyRepository(session)
        self.drivers = DriverRepository(session)
        self.profiles = ProfileResolver(session)
        self.notifications = NotificationService(session, publisher)

    async def record_rating(
        self,
        trip_id: int,
        rater: Party,
        rated: Party,
        score: int,
        comment: Optional[str] = None,
    ) -> RatingModel:
        validate_score(score)
        if await self.ratings.find(trip_id, rater, rated) is not None:
            raise ConflictError("This trip has already been rated")

        # Lock first: concurrent raters of the same party queue here.
        profile = await self._lock_profile(rated)

        rating = await self.ratings.create(
            RatingModel(
                trip_id=trip_id,
                rater_type=rater.type,
                rater_id=rater.id,
                rated_type=rated.type,
                rated_id=rated.id,
                rating=score,
                comment=comment,
            )
        )

        average, count = summarize(*await self.ratings.aggregate_for(rated))
        profile.rating = average
        profile.rating_count = count
        await self.session.flush()

        logger.info(
            "Trip %s: %s %s rated %s %s with %d (avg %.2f over %d)",
            trip_id,
            rater.type.value,
            rater.id,
            rated.type.value,
            rated.id,
            score,
            average,
            count,
        )

        await self.notifications.emit(
            profile.user_id,
            "New Rating Received",
            f"You have received a {score}-star rating for trip #{trip_id}.",
        )
        return rating

    async def _lock_profile(self, party: Party) -> CompanyModel | DriverModel:
        if party.type == PartyType.COMPANY:
            profile = await self.companies.get_for_update(party.id)
        else:
            profile = await self.drivers.get_for_update(party.id)
        if profile is None:
            raise NotFoundError(f"{party.type.value.capitalize()} not found")
        return profile

    # ── Post-completion rating by either party ───────────────────────

    async def rate_driver(
        self,
        principal: Principal,
        trip_id: int,
        score: int,
        comment: Optional[str] = None,
    ) -> RatingModel:
        company = await self.profiles.company_for(principal)
        trip = await self._trip(trip_id)
        if trip.company_id != company.id:
            raise ForbiddenError("Not authorized to rate this trip")
        self._ensure_completed(trip)
        return await self.record_rating(
            trip.id, Party.company(company.id), Party.driver(trip.driver_id), score, comment
        )

    async def rate_company(
        self,
        principal: Principal,
        trip_id: int,
        score: int,
        comment: Optional[str] = None,
    ) -> RatingModel:
        driver = await self.profiles.driver_for(principal)
        trip = await self._trip(trip_id)
        if trip.driver_id != driver.id:
            raise ForbiddenError("Not authorized to rate this trip")
        self._ensure_completed(trip)
        return await self.record_rating(
            trip.id, Party.driver(driver.id), Party.company(trip.company_id), score, comment
        )

    async def _trip(self, trip_id: int) -> TripModel:
        trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    @staticmethod
    def _ensure_completed(trip: TripModel) -> None:
        if trip.status != TripStatus.COMPLETED:
            raise InvalidStateError("Only completed trips can be rated")

    async def ratings_for(self, party: Party) -> list[RatingModel]:
        return await self.ratings.list_for_party(party)
