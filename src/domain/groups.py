"""Subscriber group naming: ``ride:{id}``, ``driver:{uid}`` and ``admin``."""

ADMIN_GROUP = "admin"
RIDE_PREFIX = "ride:"
DRIVER_PREFIX = "driver:"


def ride_group(ride_id: str) -> str:
    return f"{RIDE_PREFIX}{ride_id}"


def driver_group(driver_uid: str) -> str:
    return f"{DRIVER_PREFIX}{driver_uid}"


def fanout_groups(ride_id: str, driver_uid: str | None) -> list[str]:
    """Every group interested in events about one ride."""
    groups = [ride_group(ride_id)]
    if driver_uid:
        groups.append(driver_group(driver_uid))
    groups.append(ADMIN_GROUP)
    return groups
