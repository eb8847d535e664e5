"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    """Driver-facing ride progress."""

    SCHEDULED = "Scheduled"
    ON_ROUTE = "OnRoute"
    ARRIVED = "Arrived"
    PASSENGER_ONBOARD = "PassengerOnboard"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class BookingStatus(str, enum.Enum):
    """Coarse public booking status shown to bookers and staff."""

    REQUESTED = "Requested"
    CONFIRMED = "Confirmed"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"


class CallerRole(str, enum.Enum):
    ADMIN = "admin"
    DISPATCHER = "dispatcher"
    DRIVER = "driver"
    BOOKER = "booker"
    PASSENGER = "passenger"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.SCHEDULED: {RideStatus.ON_ROUTE, RideStatus.CANCELLED},
    RideStatus.ON_ROUTE: {RideStatus.ARRIVED, RideStatus.CANCELLED},
    RideStatus.ARRIVED: {RideStatus.PASSENGER_ONBOARD, RideStatus.CANCELLED},
    RideStatus.PASSENGER_ONBOARD: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# Ride statuses that change the public booking status when entered
PUBLIC_STATUS_ON_ENTRY: dict[RideStatus, BookingStatus] = {
    RideStatus.PASSENGER_ONBOARD: BookingStatus.IN_PROGRESS,
    RideStatus.COMPLETED: BookingStatus.COMPLETED,
    RideStatus.CANCELLED: BookingStatus.CANCELLED,
}

# Location writes are only accepted while the driver is actually moving
TRACKABLE_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.ON_ROUTE, RideStatus.ARRIVED, RideStatus.PASSENGER_ONBOARD}
)

TERMINAL_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.COMPLETED, RideStatus.CANCELLED}
)

STAFF_ROLES: frozenset[CallerRole] = frozenset(
    {CallerRole.ADMIN, CallerRole.DISPATCHER}
)
