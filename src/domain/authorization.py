"""
Authorization gate for location reads, writes, status changes and
subscriptions.

Read access is granted by the first matching rule (assigned driver, staff,
booker/passenger email) and denied by default.  Write access additionally
requires the ride to be in a trackable status, reported as ``InactiveRide``
so clients can tell "wrong ride" from "not started yet".
"""

from __future__ import annotations

import logging

from .entities import CallerIdentity, effective_ride_status
from .enums import TRACKABLE_STATUSES
from .exceptions import InactiveRide, NotFound, Unauthorized
from .groups import ADMIN_GROUP, DRIVER_PREFIX, RIDE_PREFIX

logger = logging.getLogger(__name__)


def _same_email(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


class AuthorizationGate:
    def is_assigned_driver(self, caller: CallerIdentity, ride) -> bool:
        return bool(caller.driver_uid) and caller.driver_uid == ride.assigned_driver_uid

    def can_read_location(self, caller: CallerIdentity, ride) -> bool:
        if self.is_assigned_driver(caller, ride):
            return True
        if caller.is_staff:
            return True
        if _same_email(caller.email, ride.booker_email):
            return True
        if _same_email(caller.email, ride.passenger_email):
            return True
        return False

    def check_write_location(self, caller: CallerIdentity, ride) -> None:
        """Raise unless *caller* may push a location sample for *ride*.

        Unknown rides and rides assigned to someone else are reported the
        same way (``NotFound``) so drivers cannot probe other rides.
        """
        if ride is None or not self.is_assigned_driver(caller, ride):
            raise NotFound("Ride not found")
        status = effective_ride_status(ride)
        if status not in TRACKABLE_STATUSES:
            raise InactiveRide(ride.id, status)

    def can_write_location(self, caller: CallerIdentity, ride) -> bool:
        try:
            self.check_write_location(caller, ride)
        except (NotFound, InactiveRide):
            return False
        return True

    def check_update_status(self, caller: CallerIdentity, ride) -> None:
        if ride is None:
            raise NotFound("Ride not found")
        if not self.is_assigned_driver(caller, ride):
            logger.warning(
                "Driver %s attempted status change on ride %s assigned to %s",
                caller.driver_uid, ride.id, ride.assigned_driver_uid,
            )
            raise Unauthorized("Only the assigned driver can update this ride")

    def can_subscribe(self, caller: CallerIdentity, group: str) -> bool:
        if group == ADMIN_GROUP:
            return caller.is_staff
        if group.startswith(DRIVER_PREFIX):
            return caller.is_staff
        if group.startswith(RIDE_PREFIX):
            # Ride ids act as bearer tokens: any authenticated caller may join.
            return True
        return False
