"""
Driver endpoints
================

POST /api/v1/driver/location/update       -- push a GPS sample (rate limited per ride)
POST /api/v1/driver/rides/{ride_id}/status -- advance the ride status
GET  /api/v1/driver/location/{ride_id}     -- latest sample for a ride
"""

from fastapi import APIRouter, Depends, Request

from src.api.auth import driver_only, get_caller
from src.api.dependencies import get_bookings, get_tracking
from src.api.middleware import limiter
from src.api.schemas import (
    ErrorResponse,
    LocationResponse,
    LocationUpdateRequest,
    LocationUpdateResponse,
    RideStatusUpdateRequest,
    RideStatusUpdateResponse,
)
from src.config import settings
from src.domain.entities import CallerIdentity
from src.domain.exceptions import NotFound
from src.infrastructure.repositories import BookingRepository
from src.realtime.events import utcnow
from src.services.tracking import TrackingService

router = APIRouter(prefix="/driver", tags=["driver"])


@router.post(
    "/location/update",
    response_model=LocationUpdateResponse,
    summary="Push the driver's current location",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown ride or not assigned"},
        409: {"model": ErrorResponse, "description": "Ride not in a trackable status"},
        429: {"model": ErrorResponse, "description": "Too soon after the last update"},
    },
)
@limiter.limit(settings.api_rate_limit)
async def update_location(
    request: Request,
    body: LocationUpdateRequest,
    caller: CallerIdentity = Depends(driver_only),
    bookings: BookingRepository = Depends(get_bookings),
    tracking: TrackingService = Depends(get_tracking),
):
    await tracking.record_location(
        caller,
        bookings,
        ride_id=body.ride_id,
        latitude=body.latitude,
        longitude=body.longitude,
        timestamp=body.timestamp,
        heading=body.heading,
        speed=body.speed,
        accuracy=body.accuracy,
    )
    return LocationUpdateResponse(ride_id=body.ride_id, timestamp=utcnow())


@router.post(
    "/rides/{ride_id}/status",
    response_model=RideStatusUpdateResponse,
    summary="Update ride status",
    description=(
        "Validates the transition against the ride state machine, persists "
        "both ride and booking status, broadcasts ``RideStatusChanged`` and, "
        "on Completed / Cancelled, stops location tracking."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid status transition"},
        403: {"model": ErrorResponse, "description": "Not the assigned driver"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    },
)
@limiter.limit(settings.api_rate_limit)
async def update_ride_status(
    request: Request,
    ride_id: str,
    body: RideStatusUpdateRequest,
    caller: CallerIdentity = Depends(driver_only),
    bookings: BookingRepository = Depends(get_bookings),
    tracking: TrackingService = Depends(get_tracking),
):
    _, change = await tracking.update_ride_status(
        caller, bookings, ride_id, body.new_status
    )
    return RideStatusUpdateResponse(
        ride_id=ride_id,
        new_status=change.ride_status,
        booking_status=change.booking_status,
        timestamp=utcnow(),
    )


@router.get(
    "/location/{ride_id}",
    response_model=LocationResponse,
    summary="Latest location for a ride",
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse, "description": "Unknown ride or no recent location"},
    },
)
@limiter.limit(settings.api_rate_limit)
async def get_ride_location(
    request: Request,
    ride_id: str,
    caller: CallerIdentity = Depends(get_caller),
    bookings: BookingRepository = Depends(get_bookings),
    tracking: TrackingService = Depends(get_tracking),
):
    ride, entry = await tracking.read_location(caller, bookings, ride_id)
    if entry is None:
        raise NotFound("No recent location data")
    sample = entry.sample
    return LocationResponse(
        ride_id=sample.ride_id,
        latitude=sample.latitude,
        longitude=sample.longitude,
        timestamp=sample.timestamp,
        heading=sample.heading,
        speed=sample.speed,
        accuracy=sample.accuracy,
        age_seconds=round(tracking.store.age_seconds(entry), 1),
        driver_uid=ride.assigned_driver_uid,
        driver_name=ride.assigned_driver_name,
    )
