"""Initial schema: bookings table read and updated by the tracking core.

Revision ID: 001
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("assigned_driver_uid", sa.String(128), nullable=True),
        sa.Column("assigned_driver_name", sa.String(200), nullable=True),
        sa.Column("passenger_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("passenger_email", sa.String(255), nullable=True),
        sa.Column("booker_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("booker_email", sa.String(255), nullable=True),
        sa.Column("pickup_location", sa.String(500), nullable=False, server_default=""),
        sa.Column("dropoff_location", sa.String(500), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "Requested",
                "Confirmed",
                "Scheduled",
                "InProgress",
                "Completed",
                "Cancelled",
                "NoShow",
                name="bookingstatus",
            ),
            nullable=False,
            server_default="Requested",
        ),
        sa.Column(
            "current_ride_status",
            sa.Enum(
                "Scheduled",
                "OnRoute",
                "Arrived",
                "PassengerOnboard",
                "Completed",
                "Cancelled",
                name="ridestatus",
            ),
            nullable=True,
        ),
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
    )
    op.create_index("idx_bookings_driver", "bookings", ["assigned_driver_uid"])
    op.create_index(
        "idx_bookings_ride_status", "bookings", ["current_ride_status"]
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.execute("DROP TYPE IF EXISTS ridestatus")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
