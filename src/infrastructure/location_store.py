"""
In-memory store of the latest GPS sample per ride.

Rules
-----
* At most one entry per ride id; a new sample replaces the old one.
* A write is accepted only if ``min_interval`` has elapsed since the last
  accepted write for that ride.  Check-and-set runs under a per-ride lock,
  so two racing writers can never both succeed.
* An entry is logically absent once ``now - received_at >= ttl``.  Reads
  enforce this themselves; ``purge_expired`` only reclaims memory.

The store is process-local and ephemeral: a restart loses all
tracked positions, which drivers repopulate on their next update.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, Optional

from src.domain.entities import ActiveLocation, LocationEntry, LocationSample

from .locks import KeyedLock

logger = logging.getLogger(__name__)


class LocationStore:
    def __init__(
        self,
        min_interval_seconds: float = 10.0,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval_seconds
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, LocationEntry] = {}
        self._locks = KeyedLock()

    def try_update(
        self, ride_id: str, driver_uid: str, sample: LocationSample
    ) -> bool:
        """Store *sample* for *ride_id*.  Returns False if rate limited."""
        with self._locks.hold(ride_id):
            now = self._clock()
            existing = self._entries.get(ride_id)
            if existing is not None and now - existing.received_at < self.min_interval:
                logger.debug("Rate limited location update for ride %s", ride_id)
                return False
            self._entries[ride_id] = LocationEntry(
                driver_uid=driver_uid, sample=sample, received_at=now
            )
        logger.debug(
            "Location updated for ride %s: (%s, %s)",
            ride_id, sample.latitude, sample.longitude,
        )
        return True

    def get_entry(self, ride_id: str) -> Optional[LocationEntry]:
        entry = self._entries.get(ride_id)
        if entry is None or self._expired(entry, self._clock()):
            return None
        return entry

    def get_latest(self, ride_id: str) -> Optional[LocationSample]:
        entry = self.get_entry(ride_id)
        return entry.sample if entry else None

    def age_seconds(self, entry: LocationEntry) -> float:
        return max(0.0, self._clock() - entry.received_at)

    def get_many(self, ride_ids: Iterable[str]) -> list[LocationEntry]:
        """Live entries for the requested rides, in request order."""
        now = self._clock()
        found = []
        for ride_id in ride_ids:
            entry = self._entries.get(ride_id)
            if entry is not None and not self._expired(entry, now):
                found.append(entry)
        return found

    def remove(self, ride_id: str) -> None:
        with self._locks.hold(ride_id):
            removed = self._entries.pop(ride_id, None)
        if removed is not None:
            logger.debug("Removed location data for ride %s", ride_id)

    def list_active(self) -> Iterator[ActiveLocation]:
        """Lazily yield live entries from a point-in-time snapshot."""
        now = self._clock()
        snapshot = list(self._entries.values())
        for entry in snapshot:
            if not self._expired(entry, now):
                yield ActiveLocation(
                    driver_uid=entry.driver_uid,
                    sample=entry.sample,
                    age_seconds=max(0.0, now - entry.received_at),
                )

    def purge_expired(self) -> int:
        """Physically drop expired entries.  Returns how many were removed."""
        now = self._clock()
        expired = [
            ride_id
            for ride_id, entry in list(self._entries.items())
            if self._expired(entry, now)
        ]
        purged = 0
        for ride_id in expired:
            with self._locks.hold(ride_id):
                entry = self._entries.get(ride_id)
                # A fresh write may have landed since the scan.
                if entry is not None and self._expired(entry, self._clock()):
                    del self._entries[ride_id]
                    purged += 1
        if purged:
            logger.debug("Cleaned up %d expired location entries", purged)
        return purged

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: LocationEntry, now: float) -> bool:
        return now - entry.received_at >= self.ttl
