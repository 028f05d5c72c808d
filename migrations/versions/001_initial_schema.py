"""Initial schema: accounts, profiles, trips, requests, ratings, notifications.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


# Shared between tables, so created once up front.
userrole = postgresql.ENUM("admin", "company", "driver", name="userrole", create_type=False)
vehicletype = postgresql.ENUM("sedan", "suv", "van", "bus", name="vehicletype", create_type=False)
tripstatus = postgresql.ENUM(
    "pending",
    "assigned",
    "in_progress",
    "completed",
    "cancelled",
    name="tripstatus",
    create_type=False,
)
requesttype = postgresql.ENUM(
    "company_to_driver", "driver_to_company", name="requesttype", create_type=False
)
requeststatus = postgresql.ENUM(
    "pending", "accepted", "rejected", name="requeststatus", create_type=False
)
partytype = postgresql.ENUM("company", "driver", name="partytype", create_type=False)

ENUMS = (userrole, vehicletype, tripstatus, requesttype, requeststatus, partytype)


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("role", userrole, nullable=False),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── companies ─────────────────────────────────────────────────────
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), unique=True, nullable=False
        ),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), unique=True, nullable=False
        ),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("vehicle_type", vehicletype, nullable=False),
        sa.Column("vehicle_plate", sa.String(20), nullable=True),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("trip_date", sa.Date, nullable=False),
        sa.Column("departure_time", sa.Time, nullable=False),
        sa.Column("passenger_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("vehicle_type", vehicletype, nullable=False),
        sa.Column("company_price", sa.Float, nullable=True),
        sa.Column("driver_price", sa.Float, nullable=True),
        sa.Column("visa_number", sa.String(64), unique=True, nullable=True),
        sa.Column("status", tripstatus, nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        # A driver is bound exactly while the trip is assigned or later.
        sa.CheckConstraint(
            "(driver_id IS NOT NULL) = "
            "(status IN ('assigned', 'in_progress', 'completed'))",
            name="chk_trips_driver_bound",
        ),
    )
    op.create_index("idx_trips_status", "trips", ["status"])
    op.create_index("idx_trips_company", "trips", ["company_id"])
    op.create_index("idx_trips_driver", "trips", ["driver_id"])

    # ── trip_requests ─────────────────────────────────────────────────
    op.create_table(
        "trip_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "trip_id",
            sa.Integer,
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=False),
        sa.Column(
            "company_id", sa.Integer, sa.ForeignKey("companies.id"), nullable=False
        ),
        sa.Column("request_type", requesttype, nullable=False),
        sa.Column("status", requeststatus, nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "uq_trip_requests_pending_pair",
        "trip_requests",
        ["trip_id", "driver_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index(
        "uq_trip_requests_driver_pending",
        "trip_requests",
        ["driver_id"],
        unique=True,
        postgresql_where=sa.text(
            "status = 'pending' AND request_type = 'driver_to_company'"
        ),
    )
    op.create_index("idx_trip_requests_trip", "trip_requests", ["trip_id"])
    op.create_index("idx_trip_requests_company", "trip_requests", ["company_id"])

    # ── ratings ───────────────────────────────────────────────────────
    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer, sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("rater_type", partytype, nullable=False),
        sa.Column("rater_id", sa.Integer, nullable=False),
        sa.Column("rated_type", partytype, nullable=False),
        sa.Column("rated_id", sa.Integer, nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "trip_id",
            "rater_type",
            "rater_id",
            "rated_type",
            "rated_id",
            name="uq_ratings_trip_rater_rated",
        ),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="chk_rating_range"),
    )
    op.create_index("idx_ratings_rated", "ratings", ["rated_type", "rated_id"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_notifications_user_read", "notifications", ["user_id", "is_read"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("ratings")
    op.drop_table("trip_requests")
    op.drop_table("trips")
    op.drop_table("drivers")
    op.drop_table("companies")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
