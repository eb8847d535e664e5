"""
SQLAlchemy ORM models.

Tables
------
* ``bookings`` -- confirmed rides with driver assignment and both the
  driver-facing ride status and the public booking status.

Indexes
-------
* **B-Tree** on ``assigned_driver_uid`` and ``current_ride_status`` for the
  driver views and the broadcast enrichment look-ups.
"""

import uuid

from sqlalchemy import Column, DateTime, Enum, Index, String, func

from .database import Base
from src.domain.enums import BookingStatus, RideStatus


def _new_booking_id() -> str:
    return uuid.uuid4().hex


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(64), primary_key=True, default=_new_booking_id)

    assigned_driver_uid = Column(String(128), nullable=True)
    assigned_driver_name = Column(String(200), nullable=True)

    passenger_name = Column(String(200), nullable=False, default="")
    passenger_email = Column(String(255), nullable=True)
    booker_name = Column(String(200), nullable=False, default="")
    booker_email = Column(String(255), nullable=True)

    pickup_location = Column(String(500), nullable=False, default="")
    dropoff_location = Column(String(500), nullable=True)

    status = Column(
        Enum(BookingStatus, values_callable=lambda e: [m.value for m in e]),
        default=BookingStatus.REQUESTED,
        nullable=False,
    )
    # NULL until a driver first reports progress; treated as Scheduled.
    current_ride_status = Column(
        Enum(RideStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_driver", "assigned_driver_uid"),
        Index("idx_bookings_ride_status", "current_ride_status"),
    )
