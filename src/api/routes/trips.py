"""
Trip endpoints
==============

POST   /api/v1/trips                      -- company posts a trip
GET    /api/v1/trips                      -- trips visible to the caller
GET    /api/v1/trips/available            -- open trips matching the driver
GET    /api/v1/trips/{trip_id}            -- trip detail
GET    /api/v1/trips/{trip_id}/available-drivers -- drivers free for the trip
PUT    /api/v1/trips/{trip_id}            -- company edits a pending trip
DELETE /api/v1/trips/{trip_id}            -- company removes a pending trip
POST   /api/v1/trips/{trip_id}/cancel     -- company cancels
PUT    /api/v1/trips/{trip_id}/start      -- assigned driver starts
PUT    /api/v1/trips/{trip_id}/complete   -- assigned driver completes
POST   /api/v1/trips/{trip_id}/rate-driver
POST   /api/v1/trips/{trip_id}/rate-company
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_principal, get_publisher
from src.api.middleware import limiter
from src.api.schemas import (
    CompleteTripRequest,
    DriverResponse,
    MessageResponse,
    RatingRequest,
    RatingResponse,
    TripCreateRequest,
    TripResponse,
    TripUpdateRequest,
)
from src.config import settings
from src.domain.entities import Principal
from src.domain.enums import TripStatus
from src.infrastructure.events import NotificationPublisher
from src.services.drivers import DriverService
from src.services.ratings import RatingService
from src.services.trips import TripService

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", status_code=201, response_model=TripResponse, summary="Create a trip")
@limiter.limit(settings.rate_limit)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await TripService(db).create_trip(principal, body.model_dump())


@router.get("", response_model=list[TripResponse], summary="List the caller's trips")
@limiter.limit(settings.rate_limit)
async def list_trips(
    request: Request,
    status: Optional[TripStatus] = None,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await TripService(db).list_trips(principal, status)


@router.get(
    "/available",
    response_model=list[TripResponse],
    summary="Open trips for the calling driver's vehicle type",
)
@limiter.limit(settings.rate_limit)
async def list_available_trips(
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await TripService(db).list_available_trips(principal)


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await TripService(db).get_trip(principal, trip_id)


@router.get(
    "/{trip_id}/available-drivers",
    response_model=list[DriverResponse],
    summary="Drivers the owning company could request for a pending trip",
)
@limiter.limit(settings.rate_limit)
async def list_available_drivers(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await DriverService(db).list_available_drivers(principal, trip_id)


@router.put("/{trip_id}", response_model=TripResponse, summary="Edit a pending trip")
@limiter.limit(settings.rate_limit)
async def update_trip(
    request: Request,
    trip_id: int,
    body: TripUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await TripService(db).update_trip(
        principal, trip_id, body.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{trip_id}", response_model=MessageResponse, summary="Delete a pending trip"
)
@limiter.limit(settings.rate_limit)
async def delete_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    await TripService(db).delete_trip(principal, trip_id)
    return MessageResponse(message="Trip deleted successfully")


@router.post("/{trip_id}/cancel", response_model=TripResponse, summary="Cancel a trip")
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await TripService(db, publisher).cancel_trip(principal, trip_id)


@router.put("/{trip_id}/start", response_model=TripResponse, summary="Start a trip")
@limiter.limit(settings.rate_limit)
async def start_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await TripService(db, publisher).start_trip(principal, trip_id)


@router.put(
    "/{trip_id}/complete",
    response_model=TripResponse,
    summary="Complete a trip, optionally rating the company",
)
@limiter.limit(settings.rate_limit)
async def complete_trip(
    request: Request,
    trip_id: int,
    body: Optional[CompleteTripRequest] = None,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    body = body or CompleteTripRequest()
    return await TripService(db, publisher).complete_trip(
        principal, trip_id, body.rating, body.comment
    )


@router.post(
    "/{trip_id}/rate-driver",
    status_code=201,
    response_model=RatingResponse,
    summary="Company rates the driver of a completed trip",
)
@limiter.limit(settings.rate_limit)
async def rate_driver(
    request: Request,
    trip_id: int,
    body: RatingRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await RatingService(db, publisher).rate_driver(
        principal, trip_id, body.rating, body.comment
    )


@router.post(
    "/{trip_id}/rate-company",
    status_code=201,
    response_model=RatingResponse,
    summary="Driver rates the company of a completed trip",
)
@limiter.limit(settings.rate_limit)
async def rate_company(
    request: Request,
    trip_id: int,
    body: RatingRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await RatingService(db, publisher).rate_company(
        principal, trip_id, body.rating, body.comment
    )
