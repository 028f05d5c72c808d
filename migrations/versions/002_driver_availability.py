"""Driver availability: current location and availability window.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("drivers", sa.Column("current_location", sa.String(255), nullable=True))
    op.add_column("drivers", sa.Column("available_from", sa.DateTime, nullable=True))
    op.add_column("drivers", sa.Column("available_to", sa.DateTime, nullable=True))
    op.create_index(
        "idx_drivers_available",
        "drivers",
        ["vehicle_type", "available_from", "available_to"],
    )


def downgrade() -> None:
    op.drop_index("idx_drivers_available", table_name="drivers")
    op.drop_column("drivers", "available_to")
    op.drop_column("drivers", "available_from")
    op.drop_column("drivers", "current_location")
