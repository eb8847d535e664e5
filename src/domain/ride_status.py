"""
Ride status state machine.

Transitions follow ``RIDE_TRANSITIONS``; entering ``PassengerOnboard``,
``Completed`` or ``Cancelled`` also moves the public booking status.
Persisting both statuses, and evicting tracked locations on terminal
results, is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import (
    PUBLIC_STATUS_ON_ENTRY,
    RIDE_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingStatus,
    RideStatus,
)
from .exceptions import InvalidTransition


@dataclass(frozen=True)
class StatusChange:
    previous: RideStatus
    ride_status: RideStatus
    booking_status: BookingStatus

    @property
    def is_terminal(self) -> bool:
        return self.ride_status in TERMINAL_STATUSES

    @property
    def stop_reason(self) -> str | None:
        """Reason carried by ``TrackingStopped``; ``None`` for non-terminal changes."""
        if self.ride_status == RideStatus.COMPLETED:
            return "completed"
        if self.ride_status == RideStatus.CANCELLED:
            return "cancelled"
        return None


class RideStatusMachine:
    def __init__(self, transitions: dict[RideStatus, set[RideStatus]] | None = None):
        self._transitions = transitions or RIDE_TRANSITIONS

    def validate(self, current: RideStatus, requested: RideStatus) -> bool:
        return requested in self._transitions.get(current, set())

    def apply(
        self,
        current: RideStatus,
        requested: RideStatus,
        booking_status: BookingStatus,
    ) -> StatusChange:
        """Return the new (ride, public) status pair, or raise ``InvalidTransition``."""
        if not self.validate(current, requested):
            raise InvalidTransition(current, requested)
        return StatusChange(
            previous=current,
            ride_status=requested,
            booking_status=PUBLIC_STATUS_ON_ENTRY.get(requested, booking_status),
        )
