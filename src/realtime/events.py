"""
Realtime event protocol.

Every server frame is ``{"event": <name>, "data": {...}}``.  Group events
(``LocationUpdate``, ``RideStatusChanged``, ``TrackingStopped``) fan out to
``ride:{id}``, ``driver:{uid}`` and ``admin`` concurrently; a failure on one
group is logged and never reaches the other groups or the caller that
triggered it.  ``SubscriptionConfirmed``, ``Error`` and ``Pong`` go to the
requesting connection only.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from src.api.schemas import ActiveRideLocation, CamelModel
from src.domain.entities import ActiveLocation
from src.domain.enums import RideStatus
from src.domain.exceptions import TransientBroadcastFailure
from src.domain.groups import fanout_groups
from src.domain.ride_status import StatusChange

logger = logging.getLogger(__name__)

LOCATION_UPDATE = "LocationUpdate"
RIDE_STATUS_CHANGED = "RideStatusChanged"
TRACKING_STOPPED = "TrackingStopped"
SUBSCRIPTION_CONFIRMED = "SubscriptionConfirmed"
ERROR = "Error"
PONG = "Pong"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Payloads ──────────────────────────────────────────────────────────


class LocationUpdatePayload(ActiveRideLocation):
    """Same shape as the rows of the admin locations view."""


class RideStatusChangedPayload(CamelModel):
    ride_id: str
    driver_uid: Optional[str] = None
    driver_name: Optional[str] = None
    passenger_name: Optional[str] = None
    previous_status: RideStatus
    new_status: RideStatus
    timestamp: datetime


class TrackingStoppedPayload(CamelModel):
    ride_id: str
    reason: str
    timestamp: datetime


class SubscriptionConfirmedPayload(CamelModel):
    ride_id: str
    status: str = "subscribed"


def frame(event: str, data: CamelModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(data, CamelModel):
        data = data.model_dump(mode="json", by_alias=True)
    return {"event": event, "data": data}


def location_update_payload(active: ActiveLocation, ride) -> LocationUpdatePayload:
    """Enrich a store snapshot with booking metadata."""
    sample = active.sample
    status = ride.current_ride_status or RideStatus.SCHEDULED
    return LocationUpdatePayload(
        ride_id=sample.ride_id,
        driver_uid=active.driver_uid,
        driver_name=ride.assigned_driver_name,
        passenger_name=ride.passenger_name,
        pickup_location=ride.pickup_location,
        dropoff_location=ride.dropoff_location,
        current_status=status,
        latitude=sample.latitude,
        longitude=sample.longitude,
        heading=sample.heading,
        speed=sample.speed,
        accuracy=sample.accuracy,
        timestamp=sample.timestamp,
        age_seconds=round(active.age_seconds, 1),
    )


# ── Fan-out ───────────────────────────────────────────────────────────


async def _publish_isolated(registry, group: str, message: dict[str, Any]) -> int:
    try:
        return await registry.publish(group, message)
    except TransientBroadcastFailure as exc:
        logger.warning("Broadcast to %s partially failed: %s", group, exc)
    except Exception:
        logger.exception("Broadcast to %s failed", group)
    return 0


async def publish_to_groups(
    registry, groups: list[str], event: str, data: CamelModel
) -> int:
    """Publish one event to several groups concurrently.  Never raises."""
    message = frame(event, data)
    results = await asyncio.gather(
        *(_publish_isolated(registry, g, message) for g in groups)
    )
    return sum(results)


async def broadcast_location_update(registry, payload: LocationUpdatePayload) -> int:
    groups = fanout_groups(payload.ride_id, payload.driver_uid)
    return await publish_to_groups(registry, groups, LOCATION_UPDATE, payload)


async def broadcast_ride_status_changed(registry, ride, change: StatusChange) -> int:
    payload = RideStatusChangedPayload(
        ride_id=ride.id,
        driver_uid=ride.assigned_driver_uid,
        driver_name=ride.assigned_driver_name,
        passenger_name=ride.passenger_name,
        previous_status=change.previous,
        new_status=change.ride_status,
        timestamp=utcnow(),
    )
    groups = fanout_groups(ride.id, ride.assigned_driver_uid)
    return await publish_to_groups(registry, groups, RIDE_STATUS_CHANGED, payload)


async def notify_tracking_stopped(
    registry, ride_id: str, driver_uid: str | None, reason: str
) -> int:
    payload = TrackingStoppedPayload(ride_id=ride_id, reason=reason, timestamp=utcnow())
    groups = fanout_groups(ride_id, driver_uid)
    return await publish_to_groups(registry, groups, TRACKING_STOPPED, payload)
