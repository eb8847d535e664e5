"""
Seed script -- populates the booking table with sample rides for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample bookings around Chicago in every tracking-relevant state
  - prints a bearer token for each demo driver, dispatcher and passenger
"""

import asyncio

from sqlalchemy import text

from src.api.auth import issue_token
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import BookingModel
from src.domain.enums import BookingStatus, RideStatus


DRIVERS = {
    "driver-001": "Charlie Johnson",
    "driver-002": "Sarah Lee",
}

BOOKINGS = [
    {
        "id": "ride-scheduled-1",
        "driver": "driver-001",
        "passenger": ("Taylor Reed", "taylor.reed@example.com"),
        "booker": ("Alice Morgan", "alice.morgan@example.com"),
        "pickup": "Langham Hotel, Chicago",
        "dropoff": "O'Hare International Airport",
        "status": BookingStatus.SCHEDULED,
        "ride_status": None,
    },
    {
        "id": "ride-onroute-1",
        "driver": "driver-001",
        "passenger": ("Jordan Chen", "jordan.chen@example.com"),
        "booker": ("Jordan Chen", "jordan.chen@example.com"),
        "pickup": "O'Hare FBO",
        "dropoff": "Downtown Chicago",
        "status": BookingStatus.SCHEDULED,
        "ride_status": RideStatus.ON_ROUTE,
    },
    {
        "id": "ride-arrived-1",
        "driver": "driver-002",
        "passenger": ("Maria Garcia", "maria.garcia@example.com"),
        "booker": ("Chris Bailey", "chris.bailey@example.com"),
        "pickup": "Midway Airport",
        "dropoff": "The Langham Hotel",
        "status": BookingStatus.SCHEDULED,
        "ride_status": RideStatus.ARRIVED,
    },
    {
        "id": "ride-onboard-1",
        "driver": "driver-002",
        "passenger": ("Lisa Park", "lisa.park@example.com"),
        "booker": ("Lisa Park", "lisa.park@example.com"),
        "pickup": "O'Hare FBO",
        "dropoff": "Peninsula Hotel, Chicago",
        "status": BookingStatus.IN_PROGRESS,
        "ride_status": RideStatus.PASSENGER_ONBOARD,
    },
    {
        "id": "ride-completed-1",
        "driver": "driver-001",
        "passenger": ("Sam Patel", "sam.patel@example.com"),
        "booker": ("Sam Patel", "sam.patel@example.com"),
        "pickup": "Union Station, Chicago",
        "dropoff": "Willis Tower",
        "status": BookingStatus.COMPLETED,
        "ride_status": RideStatus.COMPLETED,
    },
    {
        "id": "ride-unassigned-1",
        "driver": None,
        "passenger": ("Robin Hayes", "robin.hayes@example.com"),
        "booker": ("Robin Hayes", "robin.hayes@example.com"),
        "pickup": "Navy Pier",
        "dropoff": "Midway Airport",
        "status": BookingStatus.CONFIRMED,
        "ride_status": None,
    },
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM bookings"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        for b in BOOKINGS:
            session.add(
                BookingModel(
                    id=b["id"],
                    assigned_driver_uid=b["driver"],
                    assigned_driver_name=DRIVERS.get(b["driver"]),
                    passenger_name=b["passenger"][0],
                    passenger_email=b["passenger"][1],
                    booker_name=b["booker"][0],
                    booker_email=b["booker"][1],
                    pickup_location=b["pickup"],
                    dropoff_location=b["dropoff"],
                    status=b["status"],
                    current_ride_status=b["ride_status"],
                )
            )
        await session.flush()
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


def print_demo_tokens():
    print("\nDemo bearer tokens:")
    for uid, name in DRIVERS.items():
        token = issue_token({"sub": name, "uid": uid, "role": "driver"})
        print(f"  driver {uid}: {token}")
    print("  dispatcher:", issue_token({"sub": "dispatch", "userId": "staff-1", "role": "dispatcher"}))
    print("  passenger:", issue_token({"sub": "taylor", "email": "taylor.reed@example.com", "role": "passenger"}))


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()
    print_demo_tokens()


if __name__ == "__main__":
    asyncio.run(main())
