"""Pydantic request / response schemas for the REST API and realtime events."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from src.domain.enums import BookingStatus, RideStatus


class CamelModel(BaseModel):
    """Serialises as camelCase on the wire; accepts either case on input."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# ── Requests ──────────────────────────────────────────────────────────


class LocationUpdateRequest(CamelModel):
    ride_id: str = Field(..., min_length=1, max_length=64)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: Optional[datetime] = Field(
        None, description="Device time of the fix; defaults to receipt time."
    )
    heading: Optional[float] = Field(None, ge=0, lt=360)
    speed: Optional[float] = Field(None, ge=0)
    accuracy: Optional[float] = Field(None, ge=0)


class RideStatusUpdateRequest(CamelModel):
    new_status: RideStatus


# ── Responses ─────────────────────────────────────────────────────────


class LocationUpdateResponse(CamelModel):
    message: str = "Location updated"
    ride_id: str
    timestamp: datetime


class RideStatusUpdateResponse(CamelModel):
    success: bool = True
    ride_id: str
    new_status: RideStatus
    booking_status: BookingStatus
    timestamp: datetime


class LocationResponse(CamelModel):
    ride_id: str
    latitude: float
    longitude: float
    timestamp: datetime
    heading: Optional[float] = None
    speed: Optional[float] = None
    accuracy: Optional[float] = None
    age_seconds: float
    driver_uid: Optional[str] = None
    driver_name: Optional[str] = None


class PassengerLocationResponse(CamelModel):
    ride_id: str
    tracking_active: bool
    message: Optional[str] = None
    current_status: Optional[RideStatus] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: Optional[datetime] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    accuracy: Optional[float] = None
    age_seconds: Optional[float] = None
    driver_uid: Optional[str] = None
    driver_name: Optional[str] = None


class ActiveRideLocation(CamelModel):
    ride_id: str
    driver_uid: str
    driver_name: Optional[str] = None
    passenger_name: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    current_status: RideStatus
    latitude: float
    longitude: float
    timestamp: datetime
    heading: Optional[float] = None
    speed: Optional[float] = None
    accuracy: Optional[float] = None
    age_seconds: float


class ActiveLocationsResponse(CamelModel):
    count: int
    locations: list[ActiveRideLocation]
    timestamp: datetime


class RideLocationsResponse(CamelModel):
    requested: int
    found: int
    locations: list[ActiveRideLocation]
    timestamp: datetime


class RealtimeStatsResponse(CamelModel):
    active_connections: int
    total_groups: int
    total_connections_ever: int
    total_messages_sent: int
    tracked_rides: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
