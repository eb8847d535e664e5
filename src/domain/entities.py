"""
Domain entities for real-time tracking.

``LocationSample`` is a value object: a newer sample for the same ride
replaces the older one wholesale.  ``Ride`` mirrors the slice of the booking
aggregate the tracking core reads; the ORM ``BookingModel`` exposes the same
attribute names so either can be handed to the authorization gate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple, Optional

from .enums import STAFF_ROLES, BookingStatus, CallerRole, RideStatus


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class LocationSample:
    ride_id: str
    latitude: float
    longitude: float
    timestamp: datetime
    heading: Optional[float] = None
    speed: Optional[float] = None
    accuracy: Optional[float] = None


@dataclass(frozen=True)
class LocationEntry:
    driver_uid: str
    sample: LocationSample
    received_at: float  # store clock reading, seconds


class ActiveLocation(NamedTuple):
    driver_uid: str
    sample: LocationSample
    age_seconds: float


@dataclass(frozen=True)
class CallerIdentity:
    """Per-request caller claims; never persisted."""

    role: Optional[CallerRole] = None
    driver_uid: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_driver(self) -> bool:
        return self.role == CallerRole.DRIVER


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: str
    assigned_driver_uid: Optional[str] = None
    assigned_driver_name: Optional[str] = None
    passenger_name: str = ""
    passenger_email: Optional[str] = None
    booker_name: str = ""
    booker_email: Optional[str] = None
    pickup_location: str = ""
    dropoff_location: Optional[str] = None
    status: BookingStatus = BookingStatus.SCHEDULED
    current_ride_status: Optional[RideStatus] = None


def effective_ride_status(ride) -> RideStatus:
    """A booking without a ride status has not left ``Scheduled`` yet."""
    status = getattr(ride, "current_ride_status", None)
    if status is None:
        return RideStatus.SCHEDULED
    return RideStatus(status)
