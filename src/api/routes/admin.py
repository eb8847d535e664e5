"""
Admin / observability endpoints
===============================

GET /api/v1/admin/locations         -- every actively tracked ride
GET /api/v1/admin/locations/rides   -- batch lookup (?rideIds=a,b,c)
GET /api/v1/admin/realtime/stats    -- realtime connection statistics
GET /api/v1/admin/health            -- simple health check
"""

from fastapi import APIRouter, Depends, Query, Request

from src.api.auth import staff_only
from src.api.dependencies import get_bookings, get_tracking
from src.api.middleware import limiter
from src.api.schemas import (
    ActiveLocationsResponse,
    ErrorResponse,
    HealthResponse,
    RealtimeStatsResponse,
    RideLocationsResponse,
)
from src.config import settings
from src.domain.entities import CallerIdentity
from src.domain.exceptions import TrackingError
from src.infrastructure.repositories import BookingRepository
from src.realtime.events import location_update_payload, utcnow
from src.services.tracking import TrackingService

router = APIRouter(prefix="/admin", tags=["admin"])


class MissingRideIds(TrackingError):
    """``rideIds`` query parameter absent or blank."""


@router.get(
    "/locations",
    response_model=ActiveLocationsResponse,
    summary="List all actively tracked rides",
)
@limiter.limit(settings.api_rate_limit)
async def get_active_locations(
    request: Request,
    caller: CallerIdentity = Depends(staff_only),
    bookings: BookingRepository = Depends(get_bookings),
    tracking: TrackingService = Depends(get_tracking),
):
    rows = await tracking.active_locations(bookings)
    locations = [location_update_payload(active, ride) for active, ride in rows]
    return ActiveLocationsResponse(
        count=len(locations), locations=locations, timestamp=utcnow()
    )


@router.get(
    "/locations/rides",
    response_model=RideLocationsResponse,
    summary="Locations for specific rides",
    responses={400: {"model": ErrorResponse, "description": "rideIds missing"}},
)
@limiter.limit(settings.api_rate_limit)
async def get_ride_locations(
    request: Request,
    ride_ids: str | None = Query(None, alias="rideIds"),
    caller: CallerIdentity = Depends(staff_only),
    bookings: BookingRepository = Depends(get_bookings),
    tracking: TrackingService = Depends(get_tracking),
):
    ids = [i.strip() for i in (ride_ids or "").split(",") if i.strip()]
    if not ids:
        raise MissingRideIds("rideIds query parameter is required")

    rows = await tracking.locations_for(bookings, ids)
    locations = [location_update_payload(active, ride) for active, ride in rows]
    return RideLocationsResponse(
        requested=len(ids),
        found=len(locations),
        locations=locations,
        timestamp=utcnow(),
    )


@router.get(
    "/realtime/stats",
    response_model=RealtimeStatsResponse,
    summary="Realtime connection statistics",
)
async def get_realtime_stats(
    caller: CallerIdentity = Depends(staff_only),
    tracking: TrackingService = Depends(get_tracking),
):
    return RealtimeStatsResponse(
        **tracking.registry.get_stats(), tracked_rides=len(tracking.store)
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
