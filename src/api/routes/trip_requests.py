"""
Trip request endpoints
======================

POST /api/v1/trip-requests                 -- company asks a driver
POST /api/v1/driver/trip-requests          -- driver asks for a trip
GET  /api/v1/trip-requests?type=           -- requests involving the caller
PUT  /api/v1/trip-requests/{id}/accept     -- receiver accepts
PUT  /api/v1/trip-requests/{id}/reject     -- receiver rejects
POST /api/v1/trip-requests/cancel          -- creator withdraws
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_principal, get_publisher
from src.api.middleware import limiter
from src.api.schemas import (
    CancelRequestBody,
    DriverRequestCreate,
    MessageResponse,
    TripRequestCreate,
    TripRequestResponse,
)
from src.config import settings
from src.domain.entities import Principal
from src.domain.enums import Decision, RequestType
from src.infrastructure.events import NotificationPublisher
from src.services.trip_requests import TripRequestService

router = APIRouter(tags=["trip-requests"])


@router.post(
    "/trip-requests",
    status_code=201,
    response_model=TripRequestResponse,
    summary="Company requests a driver for its trip",
)
@limiter.limit(settings.rate_limit)
async def request_driver(
    request: Request,
    body: DriverRequestCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await TripRequestService(db, publisher).request_driver(
        principal, body.trip_id, body.driver_id
    )


@router.post(
    "/driver/trip-requests",
    status_code=201,
    response_model=TripRequestResponse,
    summary="Driver requests an open trip",
)
@limiter.limit(settings.rate_limit)
async def request_trip(
    request: Request,
    body: TripRequestCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await TripRequestService(db, publisher).request_trip(principal, body.trip_id)


@router.get(
    "/trip-requests",
    response_model=list[TripRequestResponse],
    summary="Requests sent or received by the caller",
)
@limiter.limit(settings.rate_limit)
async def list_requests(
    request: Request,
    request_type: Optional[RequestType] = Query(None, alias="type"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await TripRequestService(db).list_requests(principal, request_type)


@router.put(
    "/trip-requests/{request_id}/accept",
    response_model=TripRequestResponse,
    summary="Accept a request and assign the driver",
)
@limiter.limit(settings.rate_limit)
async def accept_request(
    request: Request,
    request_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await TripRequestService(db, publisher).respond_to_request(
        principal, request_id, Decision.ACCEPT
    )


@router.put(
    "/trip-requests/{request_id}/reject",
    response_model=TripRequestResponse,
    summary="Reject a request",
)
@limiter.limit(settings.rate_limit)
async def reject_request(
    request: Request,
    request_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    publisher: NotificationPublisher = Depends(get_publisher),
):
    return await TripRequestService(db, publisher).respond_to_request(
        principal, request_id, Decision.REJECT
    )


@router.post(
    "/trip-requests/cancel",
    response_model=MessageResponse,
    summary="Withdraw a pending request you created",
)
@limiter.limit(settings.rate_limit)
async def cancel_request(
    request: Request,
    body: CancelRequestBody,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    await TripRequestService(db).cancel_request(principal, body.request_id)
    return MessageResponse(message="Trip request cancelled successfully")
