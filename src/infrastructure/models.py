"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``          -- accounts owned by the auth service (read-only here)
* ``companies``      -- trip-requesting companies, with aggregated rating
* ``drivers``        -- drivers, with vehicle type, availability window and
                        aggregated rating
* ``trips``          -- transportation jobs posted by companies
* ``trip_requests``  -- company<->driver proposals for a trip
* ``ratings``        -- 1-5 scores one party leaves for another
* ``notifications``  -- per-user inbox entries

Indexes
-------
* **Partial unique** on ``trip_requests`` so a (trip, driver) pair has at
  most one pending request and a driver at most one pending
  driver-initiated request.
* **B-Tree** on status / owner columns used by the listing queries.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)

from .database import Base
from src.domain.enums import (
    PartyType,
    RequestStatus,
    RequestType,
    TripStatus,
    UserRole,
    VehicleType,
)


def _enum(enum_cls, name: str) -> Enum:
    """Store enum *values* (lower-case strings), not member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(_enum(UserRole, "userrole"), nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CompanyModel(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    company_name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    phone = Column(String(50), nullable=True)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), nullable=False)
    vehicle_plate = Column(String(20), nullable=True)
    current_location = Column(String(255), nullable=True)
    available_from = Column(DateTime, nullable=True)
    available_to = Column(DateTime, nullable=True)
    rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_drivers_available", "vehicle_type", "available_from", "available_to"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)

    pickup_location = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    trip_date = Column(Date, nullable=False)
    departure_time = Column(Time, nullable=False)
    passenger_count = Column(Integer, default=1, nullable=False)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), nullable=False)
    company_price = Column(Float, nullable=True)
    driver_price = Column(Float, nullable=True)
    visa_number = Column(String(64), unique=True, nullable=True)

    status = Column(
        _enum(TripStatus, "tripstatus"),
        default=TripStatus.PENDING,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_trips_status", "status"),
        Index("idx_trips_company", "company_id"),
        Index("idx_trips_driver", "driver_id"),
        CheckConstraint(
            "(driver_id IS NOT NULL) = "
            "(status IN ('assigned', 'in_progress', 'completed'))",
            name="chk_trips_driver_bound",
        ),
    )


_PENDING = text("status = 'pending'")
_PENDING_DRIVER_INITIATED = text(
    "status = 'pending' AND request_type = 'driver_to_company'"
)


class TripRequestModel(Base):
    __tablename__ = "trip_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(
        Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False
    )
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    request_type = Column(_enum(RequestType, "requesttype"), nullable=False)
    status = Column(
        _enum(RequestStatus, "requeststatus"),
        default=RequestStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index(
            "uq_trip_requests_pending_pair",
            "trip_id",
            "driver_id",
            unique=True,
            postgresql_where=_PENDING,
            sqlite_where=_PENDING,
        ),
        Index(
            "uq_trip_requests_driver_pending",
            "driver_id",
            unique=True,
            postgresql_where=_PENDING_DRIVER_INITIATED,
            sqlite_where=_PENDING_DRIVER_INITIATED,
        ),
        Index("idx_trip_requests_trip", "trip_id"),
        Index("idx_trip_requests_company", "company_id"),
    )


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    rater_type = Column(_enum(PartyType, "partytype"), nullable=False)
    rater_id = Column(Integer, nullable=False)
    rated_type = Column(_enum(PartyType, "partytype"), nullable=False)
    rated_id = Column(Integer, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "trip_id",
            "rater_type",
            "rater_id",
            "rated_type",
            "rated_id",
            name="uq_ratings_trip_rater_rated",
        ),
        CheckConstraint("rating >= 1 AND rating <= 5", name="chk_rating_range"),
        Index("idx_ratings_rated", "rated_type", "rated_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_notifications_user_read", "user_id", "is_read"),)
