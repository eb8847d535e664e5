"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL.  Each test gets a fresh engine bound to its own event
loop and a small set of seeded bookings.
"""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.api.auth import issue_token
from src.domain.enums import BookingStatus, RideStatus
from src.infrastructure.database import Base
from src.infrastructure.models import BookingModel


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ── Helpers ───────────────────────────────────────────────────────────


class FakeClock:
    """Manually advanced replacement for ``time.monotonic``."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.closed = False
        self.sent: list[dict] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(message)

    async def close(self, code: int = 1000):
        self.closed = True

    def events(self) -> list[str]:
        return [m["event"] for m in self.sent]


class FakeBookings:
    """In-memory stand-in for ``BookingRepository`` that yields to the loop on every call."""

    def __init__(self, *rides):
        self.rides = {r.id: r for r in rides}
        self.commits = 0

    async def get_by_id(self, ride_id):
        await asyncio.sleep(0)
        return self.rides.get(ride_id)

    get_by_id_for_update = get_by_id

    async def get_many(self, ride_ids):
        return {i: self.rides[i] for i in ride_ids if i in self.rides}

    async def update_ride_status(self, ride_id, ride_status, booking_status):
        await asyncio.sleep(0)
        ride = self.rides[ride_id]
        ride.current_ride_status = ride_status
        ride.status = booking_status

    async def commit(self):
        self.commits += 1


def auth_header(**claims) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(claims)}"}


DRIVER_A = {"sub": "alice", "uid": "driver-a", "role": "driver"}
DRIVER_B = {"sub": "bruno", "uid": "driver-b", "role": "driver"}
DISPATCHER = {"sub": "dispatch", "userId": "staff-1", "role": "dispatcher"}
ADMIN = {"sub": "root", "userId": "admin-1", "role": "admin"}
PASSENGER = {"sub": "pat", "userId": "user-9", "email": "Pat@Example.com", "role": "passenger"}
STRANGER = {"sub": "eve", "userId": "user-666", "email": "eve@example.com", "role": "booker"}


BOOKINGS = [
    # id, driver uid, ride status, booking status
    ("R1", "driver-a", RideStatus.ON_ROUTE, BookingStatus.SCHEDULED),
    ("R2", "driver-b", RideStatus.ON_ROUTE, BookingStatus.SCHEDULED),
    ("R3", "driver-a", None, BookingStatus.SCHEDULED),
    ("R4", "driver-a", RideStatus.PASSENGER_ONBOARD, BookingStatus.IN_PROGRESS),
    ("R5", "driver-a", RideStatus.COMPLETED, BookingStatus.COMPLETED),
]


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        for ride_id, driver_uid, ride_status, booking_status in BOOKINGS:
            session.add(
                BookingModel(
                    id=ride_id,
                    assigned_driver_uid=driver_uid,
                    assigned_driver_name=f"Driver {driver_uid}",
                    passenger_name="Pat Passenger",
                    passenger_email="pat@example.com",
                    booker_name="Bob Booker",
                    booker_email="bob@example.com",
                    pickup_location="O'Hare FBO",
                    dropoff_location="Langham Hotel",
                    status=booking_status,
                    current_ride_status=ride_status,
                )
            )
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
