"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    CompanyModel,
    DriverModel,
    NotificationModel,
    RatingModel,
    TripModel,
    TripRequestModel,
    UserModel,
)
from src.domain.entities import Party
from src.domain.enums import (
    RequestStatus,
    RequestType,
    TripStatus,
    VehicleType,
)
from src.domain.errors import ConflictError


class CompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, company_id: int) -> Optional[CompanyModel]:
        return await self.session.get(CompanyModel, company_id)

    async def get_by_user_id(self, user_id: int) -> Optional[CompanyModel]:
        result = await self.session.execute(
            select(CompanyModel).where(CompanyModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, company_id: int) -> Optional[CompanyModel]:
        """SELECT ... FOR UPDATE to serialise rating aggregation."""
        result = await self.session.execute(
            select(CompanyModel)
            .where(CompanyModel.id == company_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_by_user_id(self, user_id: int) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, driver_id: int) -> Optional[DriverModel]:
        """SELECT ... FOR UPDATE to serialise rating aggregation."""
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.id == driver_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_candidates(
        self, vehicle_type: VehicleType, trip_id: int
    ) -> list[DriverModel]:
        """Approved drivers of *vehicle_type* with an availability window and
        no pending or accepted request on *trip_id*."""
        engaged = select(TripRequestModel.driver_id).where(
            TripRequestModel.trip_id == trip_id,
            TripRequestModel.status.in_(
                [RequestStatus.PENDING, RequestStatus.ACCEPTED]
            ),
        )
        result = await self.session.execute(
            select(DriverModel)
            .join(UserModel, UserModel.id == DriverModel.user_id)
            .where(
                UserModel.is_approved.is_(True),
                DriverModel.vehicle_type == vehicle_type,
                DriverModel.available_from.is_not(None),
                DriverModel.available_to.is_not(None),
                DriverModel.id.not_in(engaged),
            )
            .order_by(DriverModel.rating.desc(), DriverModel.id)
        )
        return list(result.scalars().all())


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, trip: TripModel) -> TripModel:
        self.session.add(trip)
        await self.save()
        return trip

    async def save(self) -> None:
        """Flush pending trip changes; the only unique column is ``visa_number``."""
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("A trip with this visa number already exists") from exc

    async def get_by_id(self, trip_id: int) -> Optional[TripModel]:
        return await self.session.get(TripModel, trip_id)

    async def get_for_update(self, trip_id: int) -> Optional[TripModel]:
        """SELECT ... FOR UPDATE so concurrent accepts queue on the trip row."""
        result = await self.session.execute(
            select(TripModel)
            .where(TripModel.id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_visa_number(self, visa_number: str) -> Optional[TripModel]:
        result = await self.session.execute(
            select(TripModel).where(TripModel.visa_number == visa_number)
        )
        return result.scalar_one_or_none()

    async def list_all(self, status: TripStatus | None = None) -> list[TripModel]:
        query = select(TripModel)
        if status:
            query = query.where(TripModel.status == status)
        result = await self.session.execute(
            query.order_by(TripModel.created_at.desc(), TripModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_company(
        self, company_id: int, status: TripStatus | None = None
    ) -> list[TripModel]:
        query = select(TripModel).where(TripModel.company_id == company_id)
        if status:
            query = query.where(TripModel.status == status)
        result = await self.session.execute(
            query.order_by(TripModel.created_at.desc(), TripModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_driver(
        self, driver_id: int, status: TripStatus | None = None
    ) -> list[TripModel]:
        query = select(TripModel).where(TripModel.driver_id == driver_id)
        if status:
            query = query.where(TripModel.status == status)
        result = await self.session.execute(
            query.order_by(TripModel.trip_date, TripModel.departure_time)
        )
        return list(result.scalars().all())

    async def list_active_for_driver(self, driver_id: int) -> list[TripModel]:
        """Trips that currently occupy the driver (assigned or in progress)."""
        result = await self.session.execute(
            select(TripModel).where(
                TripModel.driver_id == driver_id,
                TripModel.status.in_([TripStatus.ASSIGNED, TripStatus.IN_PROGRESS]),
            )
        )
        return list(result.scalars().all())

    async def list_active_for_drivers(self, driver_ids: list[int]) -> list[TripModel]:
        if not driver_ids:
            return []
        result = await self.session.execute(
            select(TripModel).where(
                TripModel.driver_id.in_(driver_ids),
                TripModel.status.in_([TripStatus.ASSIGNED, TripStatus.IN_PROGRESS]),
            )
        )
        return list(result.scalars().all())

    async def list_available(
        self, vehicle_type: VehicleType, driver_id: int
    ) -> list[TripModel]:
        """Pending trips for *vehicle_type* the driver has no pending request on."""
        requested = select(TripRequestModel.trip_id).where(
            TripRequestModel.driver_id == driver_id,
            TripRequestModel.status == RequestStatus.PENDING,
        )
        result = await self.session.execute(
            select(TripModel)
            .where(
                TripModel.status == TripStatus.PENDING,
                TripModel.vehicle_type == vehicle_type,
                TripModel.id.not_in(requested),
            )
            .order_by(TripModel.trip_date, TripModel.departure_time)
        )
        return list(result.scalars().all())

    async def assign_driver_if_pending(self, trip_id: int, driver_id: int) -> bool:
        """Compare-and-swap: assign only while the row is still ``pending``.

        Returns False when another transaction won the race.
        """
        result = await self.session.execute(
            update(TripModel)
            .where(TripModel.id == trip_id, TripModel.status == TripStatus.PENDING)
            .values(driver_id=driver_id, status=TripStatus.ASSIGNED)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    async def delete(self, trip: TripModel) -> None:
        await self.session.execute(
            delete(TripRequestModel).where(TripRequestModel.trip_id == trip.id)
        )
        await self.session.delete(trip)
        await self.session.flush()


class TripRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, request: TripRequestModel) -> TripRequestModel:
        self.session.add(request)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("A pending request already exists") from exc
        return request

    async def get_by_id(self, request_id: int) -> Optional[TripRequestModel]:
        return await self.session.get(TripRequestModel, request_id)

    async def get_for_update(self, request_id: int) -> Optional[TripRequestModel]:
        result = await self.session.execute(
            select(TripRequestModel)
            .where(TripRequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_pending(
        self, trip_id: int, driver_id: int
    ) -> Optional[TripRequestModel]:
        result = await self.session.execute(
            select(TripRequestModel).where(
                TripRequestModel.trip_id == trip_id,
                TripRequestModel.driver_id == driver_id,
                TripRequestModel.status == RequestStatus.PENDING,
            )
        )
        return result.scalars().first()

    async def count_pending_driver_initiated(self, driver_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(TripRequestModel)
            .where(
                TripRequestModel.driver_id == driver_id,
                TripRequestModel.request_type == RequestType.DRIVER_TO_COMPANY,
                TripRequestModel.status == RequestStatus.PENDING,
            )
        )
        return result.scalar() or 0

    async def reject_other_pending(self, trip_id: int, keep_id: int) -> int:
        """Reject every pending request for *trip_id* except *keep_id*."""
        result = await self.session.execute(
            update(TripRequestModel)
            .where(
                TripRequestModel.trip_id == trip_id,
                TripRequestModel.id != keep_id,
                TripRequestModel.status == RequestStatus.PENDING,
            )
            .values(status=RequestStatus.REJECTED)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def list_pending_for_trip(self, trip_id: int) -> list[TripRequestModel]:
        result = await self.session.execute(
            select(TripRequestModel).where(
                TripRequestModel.trip_id == trip_id,
                TripRequestModel.status == RequestStatus.PENDING,
            )
        )
        return list(result.scalars().all())

    async def list_for_company(
        self, company_id: int, request_type: RequestType | None = None
    ) -> list[TripRequestModel]:
        query = select(TripRequestModel).where(
            TripRequestModel.company_id == company_id,
            TripRequestModel.status == RequestStatus.PENDING,
        )
        if request_type:
            query = query.where(TripRequestModel.request_type == request_type)
        result = await self.session.execute(
            query.order_by(
                TripRequestModel.created_at.desc(), TripRequestModel.id.desc()
            )
        )
        return list(result.scalars().all())

    async def list_for_driver(
        self, driver_id: int, request_type: RequestType | None = None
    ) -> list[TripRequestModel]:
        query = select(TripRequestModel).where(
            TripRequestModel.driver_id == driver_id,
            TripRequestModel.status == RequestStatus.PENDING,
        )
        if request_type:
            query = query.where(TripRequestModel.request_type == request_type)
        result = await self.session.execute(
            query.order_by(
                TripRequestModel.created_at.desc(), TripRequestModel.id.desc()
            )
        )
        return list(result.scalars().all())

    async def delete(self, request: TripRequestModel) -> None:
        await self.session.delete(request)
        await self.session.flush()


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rating: RatingModel) -> RatingModel:
        self.session.add(rating)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("This trip has already been rated") from exc
        return rating

    async def find(
        self, trip_id: int, rater: Party, rated: Party
    ) -> Optional[RatingModel]:
        result = await self.session.execute(
            select(RatingModel).where(
                RatingModel.trip_id == trip_id,
                RatingModel.rater_type == rater.type,
                RatingModel.rater_id == rater.id,
                RatingModel.rated_type == rated.type,
                RatingModel.rated_id == rated.id,
            )
        )
        return result.scalar_one_or_none()

    async def aggregate_for(self, rated: Party) -> tuple[Optional[float], int]:
        """Fresh ``AVG`` / ``COUNT`` over every rating the party received."""
        result = await self.session.execute(
            select(func.avg(RatingModel.rating), func.count(RatingModel.id)).where(
                RatingModel.rated_type == rated.type,
                RatingModel.rated_id == rated.id,
            )
        )
        average, count = result.one()
        return average, count or 0

    async def list_for_party(self, rated: Party) -> list[RatingModel]:
        result = await self.session.execute(
            select(RatingModel)
            .where(
                RatingModel.rated_type == rated.type,
                RatingModel.rated_id == rated.id,
            )
            .order_by(RatingModel.id)
        )
        return list(result.scalars().all())


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, notification: NotificationModel) -> NotificationModel:
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def list_for_user(self, user_id: int) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
