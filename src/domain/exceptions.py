"""Typed rejections raised by the tracking core."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for every rejection the tracking core raises."""


class RateLimited(TrackingError):
    """A location write arrived before the minimum update interval elapsed."""

    def __init__(self, ride_id: str):
        super().__init__(f"Location updates for ride {ride_id} are rate limited")
        self.ride_id = ride_id


class InactiveRide(TrackingError):
    """The caller is the assigned driver but the ride is not trackable yet."""

    def __init__(self, ride_id: str, status):
        super().__init__(f"Location tracking not active for ride {ride_id}")
        self.ride_id = ride_id
        self.status = status


class InvalidTransition(TrackingError):
    """Raised when a ride status change violates the state machine."""

    def __init__(self, current, requested):
        super().__init__(
            f"Invalid status transition from {_name(current)} to {_name(requested)}"
        )
        self.current = current
        self.requested = requested


class Unauthorized(TrackingError):
    """Role or ownership check failed."""


class NotFound(TrackingError):
    """Unknown ride, or a reference that no longer resolves."""


class TransientBroadcastFailure(TrackingError):
    """Publishing to one subscriber group failed; never surfaced to HTTP callers."""

    def __init__(self, group: str, failed: int):
        super().__init__(f"{failed} deliveries to group {group} failed")
        self.group = group
        self.failed = failed


def _name(status) -> str:
    return getattr(status, "value", str(status))
