"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.enums import (
    PartyType,
    RequestStatus,
    RequestType,
    TripStatus,
    VehicleType,
)


# ── Requests ──────────────────────────────────────────────────────────


class TripCreateRequest(BaseModel):
    pickup_location: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    trip_date: date
    departure_time: time
    passenger_count: int = Field(1, ge=1, le=100)
    vehicle_type: VehicleType
    company_price: Optional[float] = Field(None, ge=0)
    driver_price: Optional[float] = Field(None, ge=0)
    visa_number: Optional[str] = Field(None, max_length=64)


class TripUpdateRequest(BaseModel):
    pickup_location: Optional[str] = Field(None, min_length=1, max_length=255)
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    trip_date: Optional[date] = None
    departure_time: Optional[time] = None
    passenger_count: Optional[int] = Field(None, ge=1, le=100)
    vehicle_type: Optional[VehicleType] = None
    company_price: Optional[float] = Field(None, ge=0)
    driver_price: Optional[float] = Field(None, ge=0)
    visa_number: Optional[str] = Field(None, max_length=64)


class CompleteTripRequest(BaseModel):
    # Out-of-range ratings are dropped by the service, not rejected here:
    # completing the trip must not depend on the rating.
    rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=1000)


class RatingRequest(BaseModel):
    rating: int
    comment: Optional[str] = Field(None, max_length=1000)


class DriverRequestCreate(BaseModel):
    trip_id: int
    driver_id: int


class TripRequestCreate(BaseModel):
    trip_id: int


class CancelRequestBody(BaseModel):
    request_id: int = Field(..., alias="requestId")

    model_config = {"populate_by_name": True}


class AvailabilityUpdate(BaseModel):
    current_location: Optional[str] = Field(None, max_length=255)
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None


# ── Responses ─────────────────────────────────────────────────────────


class TripResponse(BaseModel):
    id: int
    company_id: int
    driver_id: Optional[int] = None
    pickup_location: str
    destination: str
    trip_date: date
    departure_time: time
    passenger_count: int
    vehicle_type: VehicleType
    company_price: Optional[float] = None
    driver_price: Optional[float] = None
    visa_number: Optional[str] = None
    status: TripStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None
    vehicle_type: VehicleType
    vehicle_plate: Optional[str] = None
    current_location: Optional[str] = None
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None
    rating: float
    rating_count: int

    model_config = {"from_attributes": True}


class TripRequestResponse(BaseModel):
    id: int
    trip_id: int
    driver_id: int
    company_id: int
    request_type: RequestType
    status: RequestStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RatingResponse(BaseModel):
    id: int
    trip_id: int
    rater_type: PartyType
    rater_id: int
    rated_type: PartyType
    rated_id: int
    rating: int
    comment: Optional[str] = None

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UnreadCountResponse(BaseModel):
    count: int


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    kind: str
