"""
Tracking service -- the write and read paths of realtime ride tracking.

Location writes and status changes for the same ride are serialized by a
per-ride async lock held across "load booking -> authorize -> mutate", so a
late location write can never re-create an entry that a terminal status
change just evicted.  Event fan-out happens after the lock is released and
is best-effort: a failed broadcast never undoes a persisted change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from src.domain.authorization import AuthorizationGate
from src.domain.entities import (
    ActiveLocation,
    CallerIdentity,
    LocationEntry,
    LocationSample,
    effective_ride_status,
)
from src.domain.enums import BookingStatus, RideStatus
from src.domain.exceptions import NotFound, RateLimited, Unauthorized
from src.domain.ride_status import RideStatusMachine, StatusChange
from src.infrastructure.location_store import LocationStore
from src.infrastructure.locks import AsyncKeyedLock
from src.infrastructure.repositories import BookingRepository
from src.realtime import events
from src.realtime.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class TrackingService:
    def __init__(
        self,
        store: LocationStore,
        registry: SubscriptionRegistry,
        gate: AuthorizationGate | None = None,
        machine: RideStatusMachine | None = None,
        ride_locks: AsyncKeyedLock | None = None,
    ):
        self.store = store
        self.registry = registry
        self.gate = gate or AuthorizationGate()
        self.machine = machine or RideStatusMachine()
        self.ride_locks = ride_locks or AsyncKeyedLock()

    # ── Write path ────────────────────────────────────────────────────

    async def record_location(
        self,
        caller: CallerIdentity,
        bookings: BookingRepository,
        *,
        ride_id: str,
        latitude: float,
        longitude: float,
        timestamp: datetime | None = None,
        heading: float | None = None,
        speed: float | None = None,
        accuracy: float | None = None,
    ) -> LocationSample:
        sample = LocationSample(
            ride_id=ride_id,
            latitude=latitude,
            longitude=longitude,
            timestamp=timestamp or datetime.now(timezone.utc),
            heading=heading,
            speed=speed,
            accuracy=accuracy,
        )
        async with self.ride_locks.hold(ride_id):
            ride = await bookings.get_by_id(ride_id)
            self.gate.check_write_location(caller, ride)
            if not self.store.try_update(ride_id, caller.driver_uid, sample):
                raise RateLimited(ride_id)

        logger.debug(
            "Location updated for ride %s by driver %s: (%s, %s), heading=%s, speed=%s",
            ride_id, caller.driver_uid, latitude, longitude, heading, speed,
        )
        return sample

    async def update_ride_status(
        self,
        caller: CallerIdentity,
        bookings: BookingRepository,
        ride_id: str,
        requested: RideStatus,
    ) -> tuple[object, StatusChange]:
        async with self.ride_locks.hold(ride_id):
            ride = await bookings.get_by_id_for_update(ride_id)
            self.gate.check_update_status(caller, ride)

            change = self.machine.apply(
                effective_ride_status(ride),
                requested,
                BookingStatus(ride.status),
            )
            await bookings.update_ride_status(
                ride_id, change.ride_status, change.booking_status
            )
            await bookings.commit()

            if change.is_terminal:
                self.store.remove(ride_id)

        logger.info(
            "Driver %s updated ride %s status %s -> %s (booking %s)",
            caller.driver_uid, ride_id, change.previous.value,
            change.ride_status.value, change.booking_status.value,
        )

        await events.broadcast_ride_status_changed(self.registry, ride, change)
        if change.is_terminal:
            await events.notify_tracking_stopped(
                self.registry, ride_id, ride.assigned_driver_uid, change.stop_reason
            )
            logger.info(
                "Location tracking stopped for ride %s: %s", ride_id, change.stop_reason
            )
        return ride, change

    # ── Read path ─────────────────────────────────────────────────────

    async def read_location(
        self,
        caller: CallerIdentity,
        bookings: BookingRepository,
        ride_id: str,
    ) -> tuple[object, LocationEntry | None]:
        """Return the ride and its live entry (``None`` if no recent data).

        Raises ``NotFound`` for unknown rides and ``Unauthorized`` when the
        caller may not see this ride; missing data is not an error.
        """
        ride = await bookings.get_by_id(ride_id)
        if ride is None:
            raise NotFound("Ride not found")
        if not self.gate.can_read_location(caller, ride):
            logger.warning(
                "Caller %s denied location read for ride %s", caller.user_id, ride_id
            )
            raise Unauthorized("You do not have permission to view this ride's location")
        return ride, self.store.get_entry(ride_id)

    async def active_locations(self, bookings: BookingRepository) -> list[tuple]:
        """Live entries joined with their booking; unresolved rides are skipped."""
        snapshot = list(self.store.list_active())
        rides = await bookings.get_many([a.sample.ride_id for a in snapshot])
        return [
            (active, rides[active.sample.ride_id])
            for active in snapshot
            if active.sample.ride_id in rides
        ]

    async def locations_for(
        self, bookings: BookingRepository, ride_ids: list[str]
    ) -> list[tuple]:
        entries = self.store.get_many(ride_ids)
        rides = await bookings.get_many([e.sample.ride_id for e in entries])
        found = []
        for entry in entries:
            ride = rides.get(entry.sample.ride_id)
            if ride is None:
                continue
            active = ActiveLocation(
                driver_uid=entry.driver_uid,
                sample=entry.sample,
                age_seconds=self.store.age_seconds(entry),
            )
            found.append((active, ride))
        return found
