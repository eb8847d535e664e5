"""
Passenger endpoints
===================

GET /api/v1/passenger/rides/{ride_id}/location -- driver position for the caller's own ride

Before the driver starts tracking the response is ``trackingActive: false``
with the current ride status, never a 404, so the app can tell "not
started yet" apart from "not yours" (403).
"""

from fastapi import APIRouter, Depends, Request

from src.api.auth import get_caller
from src.api.dependencies import get_bookings, get_tracking
from src.api.middleware import limiter
from src.api.schemas import ErrorResponse, PassengerLocationResponse
from src.config import settings
from src.domain.entities import CallerIdentity, effective_ride_status
from src.infrastructure.repositories import BookingRepository
from src.services.tracking import TrackingService

router = APIRouter(prefix="/passenger", tags=["passenger"])


@router.get(
    "/rides/{ride_id}/location",
    response_model=PassengerLocationResponse,
    response_model_exclude_none=True,
    summary="Driver location for a passenger's ride",
    responses={
        403: {"model": ErrorResponse, "description": "Not the caller's booking"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    },
)
@limiter.limit(settings.api_rate_limit)
async def get_passenger_ride_location(
    request: Request,
    ride_id: str,
    caller: CallerIdentity = Depends(get_caller),
    bookings: BookingRepository = Depends(get_bookings),
    tracking: TrackingService = Depends(get_tracking),
):
    ride, entry = await tracking.read_location(caller, bookings, ride_id)
    if entry is None:
        return PassengerLocationResponse(
            ride_id=ride_id,
            tracking_active=False,
            message="Driver has not started tracking yet",
            current_status=effective_ride_status(ride),
        )

    sample = entry.sample
    return PassengerLocationResponse(
        ride_id=ride_id,
        tracking_active=True,
        current_status=effective_ride_status(ride),
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
