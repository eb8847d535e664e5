"""
Background Location Broadcaster
===============================

Runs every ``BROADCAST_INTERVAL_SECONDS`` (default 5 s), independently of
the 10 s minimum write interval: an unchanged sample is re-broadcast on
every tick so subscribers see its age grow.

Algorithm per tick
------------------
1. Snapshot the live entries of the location store.
2. Resolve each ride's booking (driver / passenger names, pickup, dropoff,
   current status).  Rides that no longer resolve are skipped.
3. Publish a ``LocationUpdate`` to ``ride:{id}``, ``driver:{uid}`` and
   ``admin`` concurrently; a failed group is logged and never blocks the
   others.
4. Every ``LOCATION_CLEANUP_INTERVAL_SECONDS`` purge expired entries.

Any exception inside a tick is logged and the loop carries on with the next
tick.  ``stop()`` lets an in-flight tick finish its sends and starts no new
tick.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from src.config import settings
from src.infrastructure.location_store import LocationStore
from src.infrastructure.repositories import BookingRepository
from src.realtime import events
from src.realtime.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


async def run_broadcast_cycle(
    store: LocationStore,
    registry: SubscriptionRegistry,
    bookings: BookingRepository,
) -> int:
    """Execute one broadcast tick.  Returns the number of rides published."""
    snapshot = list(store.list_active())
    if not snapshot:
        return 0

    published = 0
    for active in snapshot:
        ride_id = active.sample.ride_id
        try:
            ride = await bookings.get_by_id(ride_id)
        except Exception:
            logger.warning("Booking lookup failed for ride %s; skipping", ride_id, exc_info=True)
            continue
        if ride is None:
            logger.debug("Ride %s no longer resolves; skipping", ride_id)
            continue

        payload = events.location_update_payload(active, ride)
        await events.broadcast_location_update(registry, payload)
        published += 1

    logger.debug("Broadcast tick: %d of %d rides published", published, len(snapshot))
    return published


class BroadcastScheduler:
    def __init__(
        self,
        store: LocationStore,
        registry: SubscriptionRegistry,
        session_factory: Callable,
        interval_seconds: float = settings.broadcast_interval_seconds,
        cleanup_interval_seconds: float = settings.location_cleanup_interval_seconds,
        shutdown_timeout_seconds: float = settings.broadcast_shutdown_timeout_seconds,
    ):
        self.store = store
        self.registry = registry
        self.session_factory = session_factory
        self.interval = interval_seconds
        self.cleanup_interval = cleanup_interval_seconds
        self.shutdown_timeout = shutdown_timeout_seconds

        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._last_cleanup = time.monotonic()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Public API ────────────────────────────────────────────────────

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info("Location broadcaster started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=self.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning("Broadcast tick did not finish in time; cancelled")
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Location broadcaster stopped")

    async def tick(self) -> int:
        """Run one tick with a fresh booking session."""
        async with self.session_factory() as session:
            published = await run_broadcast_cycle(
                self.store, self.registry, BookingRepository(session)
            )
        self._maybe_cleanup()
        return published

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Periodic loop: run a tick then sleep."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Unhandled error in broadcast tick")
            self.ticks += 1
            # Wait for the interval or until stop is signalled
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass  # next tick

    def _maybe_cleanup(self) -> None:
        now = time.monotonic()
        if now - self._last_cleanup < self.cleanup_interval:
            return
        self._last_cleanup = now
        self.store.purge_expired()
