"""
FastAPI application factory.

* Builds the tracking core once (location store, subscription registry,
  authorization gate, status machine, per-ride locks) and keeps it on
  ``app.state``.
* Starts / stops the location broadcaster via lifespan events.
* Maps tracking rejections to HTTP statuses and applies rate-limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, driver, passenger, realtime
from src.config import settings
from src.domain.authorization import AuthorizationGate
from src.domain.exceptions import (
    InactiveRide,
    InvalidTransition,
    NotFound,
    RateLimited,
    TrackingError,
    Unauthorized,
)
from src.domain.ride_status import RideStatusMachine
from src.infrastructure.database import async_session_factory
from src.infrastructure.location_store import LocationStore
from src.infrastructure.locks import AsyncKeyedLock
from src.realtime.registry import SubscriptionRegistry
from src.services.tracking import TrackingService
from src.workers.broadcaster import BroadcastScheduler

logging.basicConfig(level=settings.log_level)

_STATUS_CODES: dict[type, int] = {
    RateLimited: 429,
    InactiveRide: 409,
    InvalidTransition: 400,
    Unauthorized: 403,
    NotFound: 404,
}


async def _tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 400
    )
    body = {"error": str(exc)}
    if isinstance(exc, InvalidTransition):
        body["currentStatus"] = exc.current.value
        body["requestedStatus"] = exc.requested.value
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the broadcaster on startup; stop on shutdown."""
    await app.state.broadcaster.start()
    yield
    await app.state.broadcaster.stop()


def create_app(session_factory=None) -> FastAPI:
    app = FastAPI(
        title="Dispatch Ride Tracking API",
        description=(
            "Real-time driver location and ride-status tracking for a "
            "chauffeured-ride dispatch operation: rate-limited location "
            "ingest, ride status state machine, role-based access and "
            "WebSocket fan-out to ride, driver and admin groups."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Tracking core
    store = LocationStore(
        min_interval_seconds=settings.location_min_update_interval_seconds,
        ttl_seconds=settings.location_ttl_seconds,
    )
    gate = AuthorizationGate()
    registry = SubscriptionRegistry(gate)
    app.state.store = store
    app.state.registry = registry
    app.state.tracking = TrackingService(
        store, registry, gate, RideStatusMachine(), AsyncKeyedLock()
    )
    app.state.broadcaster = BroadcastScheduler(
        store, registry, session_factory or async_session_factory
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(TrackingError, _tracking_error_handler)

    # Routers
    app.include_router(driver.router, prefix="/api/v1")
    app.include_router(passenger.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(realtime.router)

    return app
