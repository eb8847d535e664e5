"""Tests for the subscription registry and group fan-out."""

from __future__ import annotations

import pytest

from src.domain.authorization import AuthorizationGate
from src.domain.entities import CallerIdentity, Ride
from src.domain.enums import BookingStatus, CallerRole, RideStatus
from src.domain.exceptions import TransientBroadcastFailure, Unauthorized
from src.domain.ride_status import StatusChange
from src.realtime import events
from src.realtime.registry import SubscriptionRegistry
from tests.conftest import FakeWebSocket


ADMIN = CallerIdentity(role=CallerRole.ADMIN, user_id="admin-1")
DISPATCHER = CallerIdentity(role=CallerRole.DISPATCHER, user_id="staff-1")
DRIVER = CallerIdentity(role=CallerRole.DRIVER, driver_uid="driver-a")
PASSENGER = CallerIdentity(role=CallerRole.PASSENGER, email="pat@example.com")


@pytest.fixture
def registry() -> SubscriptionRegistry:
    return SubscriptionRegistry(AuthorizationGate())


class TestConnect:
    @pytest.mark.asyncio
    async def test_staff_join_admin_group(self, registry):
        ws = FakeWebSocket()
        await registry.connect(ws, ADMIN, "c1")
        assert ws.accepted
        assert registry.groups_of("c1") == {"admin"}

    @pytest.mark.asyncio
    async def test_non_staff_join_nothing(self, registry):
        await registry.connect(FakeWebSocket(), DRIVER, "c1")
        assert registry.groups_of("c1") == set()

    @pytest.mark.asyncio
    async def test_disconnect_clears_memberships(self, registry):
        await registry.connect(FakeWebSocket(), DISPATCHER, "c1")
        await registry.subscribe_to_ride("c1", "R1")
        await registry.subscribe_to_driver("c1", "driver-a")

        registry.disconnect("c1")

        assert registry.groups_of("c1") == set()
        assert registry.members_of("ride:R1") == set()
        assert registry.members_of("admin") == set()
        assert registry.get_stats()["total_groups"] == 0
        registry.disconnect("c1")  # second call is a no-op


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_subscribe_to_ride_confirms_to_caller_only(self, registry):
        caller_ws, other_ws = FakeWebSocket(), FakeWebSocket()
        await registry.connect(caller_ws, PASSENGER, "c1")
        await registry.connect(other_ws, PASSENGER, "c2")
        await registry.subscribe_to_ride("c2", "R1")
        other_ws.sent.clear()

        assert await registry.subscribe_to_ride("c1", "R1") is True

        assert caller_ws.sent == [
            {"event": "SubscriptionConfirmed", "data": {"rideId": "R1", "status": "subscribed"}}
        ]
        assert other_ws.sent == []
        assert registry.members_of("ride:R1") == {"c1", "c2"}

    @pytest.mark.asyncio
    async def test_blank_ride_id_is_ignored(self, registry):
        ws = FakeWebSocket()
        await registry.connect(ws, PASSENGER, "c1")
        assert await registry.subscribe_to_ride("c1", "  ") is False
        assert registry.groups_of("c1") == set()
        assert ws.sent == []

    @pytest.mark.asyncio
    async def test_driver_group_rejects_non_staff(self, registry):
        await registry.connect(FakeWebSocket(), DRIVER, "c1")
        with pytest.raises(Unauthorized):
            await registry.subscribe_to_driver("c1", "driver-a")
        assert registry.groups_of("c1") == set()

    @pytest.mark.asyncio
    async def test_staff_can_follow_a_driver(self, registry):
        await registry.connect(FakeWebSocket(), DISPATCHER, "c1")
        assert await registry.subscribe_to_driver("c1", "driver-a") is True
        assert registry.groups_of("c1") == {"admin", "driver:driver-a"}

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self, registry):
        await registry.connect(FakeWebSocket(), PASSENGER, "c1")
        await registry.subscribe_to_ride("c1", "R1")

        registry.unsubscribe_from_ride("c1", "R1")
        registry.unsubscribe_from_ride("c1", "R1")
        registry.unsubscribe_from_driver("c1", "driver-a")

        assert registry.groups_of("c1") == set()
        assert registry.members_of("ride:R1") == set()


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_reaches_every_member(self, registry):
        first, second = FakeWebSocket(), FakeWebSocket()
        await registry.connect(first, ADMIN, "c1")
        await registry.connect(second, DISPATCHER, "c2")

        sent = await registry.publish("admin", {"event": "Pong", "data": {}})

        assert sent == 2
        assert first.events() == ["Pong"]
        assert second.events() == ["Pong"]

    @pytest.mark.asyncio
    async def test_empty_group_is_a_no_op(self, registry):
        assert await registry.publish("ride:nobody", {"event": "Pong", "data": {}}) == 0

    @pytest.mark.asyncio
    async def test_dead_connection_is_dropped_and_reported(self, registry):
        healthy, dead = FakeWebSocket(), FakeWebSocket(fail=True)
        await registry.connect(healthy, PASSENGER, "ok")
        await registry.connect(dead, PASSENGER, "dead")
        await registry.subscribe_to_ride("ok", "R1")
        dead.fail = False
        await registry.subscribe_to_ride("dead", "R1")
        dead.fail = True
        healthy.sent.clear()

        with pytest.raises(TransientBroadcastFailure) as exc:
            await registry.publish("ride:R1", {"event": "Pong", "data": {}})

        assert exc.value.failed == 1
        assert healthy.events() == ["Pong"]
        assert registry.members_of("ride:R1") == {"ok"}
        assert registry.get_stats()["active_connections"] == 1

    @pytest.mark.asyncio
    async def test_group_failure_does_not_block_other_groups(self, registry):
        staff_ws, rider_ws = FakeWebSocket(), FakeWebSocket()
        await registry.connect(staff_ws, ADMIN, "staff")
        await registry.connect(rider_ws, PASSENGER, "rider")
        await registry.subscribe_to_ride("rider", "R1")
        rider_ws.fail = True

        payload = events.TrackingStoppedPayload(
            ride_id="R1", reason="completed", timestamp=events.utcnow()
        )
        delivered = await events.publish_to_groups(
            registry, ["ride:R1", "admin"], events.TRACKING_STOPPED, payload
        )

        assert delivered == 1
        assert staff_ws.events() == ["TrackingStopped"]
        assert staff_ws.sent[0]["data"]["reason"] == "completed"

    @pytest.mark.asyncio
    async def test_status_change_fans_out_to_ride_driver_and_admin(self, registry):
        rider_ws, follower_ws, admin_ws = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        await registry.connect(rider_ws, PASSENGER, "rider")
        await registry.connect(follower_ws, DISPATCHER, "follower")
        await registry.connect(admin_ws, ADMIN, "admin")
        await registry.subscribe_to_ride("rider", "R1")
        await registry.subscribe_to_driver("follower", "driver-a")
        for ws in (rider_ws, follower_ws, admin_ws):
            ws.sent.clear()

        ride = Ride(id="R1", assigned_driver_uid="driver-a", passenger_name="Pat")
        change = StatusChange(
            previous=RideStatus.ON_ROUTE,
            ride_status=RideStatus.ARRIVED,
            booking_status=BookingStatus.SCHEDULED,
        )
        await events.broadcast_ride_status_changed(registry, ride, change)

        assert rider_ws.events() == ["RideStatusChanged"]
        # follower is in both driver:driver-a and admin
        assert follower_ws.events() == ["RideStatusChanged", "RideStatusChanged"]
        assert admin_ws.events() == ["RideStatusChanged"]
        data = admin_ws.sent[0]["data"]
        assert data["previousStatus"] == "OnRoute"
        assert data["newStatus"] == "Arrived"
        assert data["driverUid"] == "driver-a"


class TestStats:
    @pytest.mark.asyncio
    async def test_counters(self, registry):
        ws = FakeWebSocket()
        await registry.connect(ws, ADMIN, "c1")
        await registry.send_to_connection("c1", {"event": "Pong", "data": {}})
        registry.disconnect("c1")

        stats = registry.get_stats()
        assert stats["active_connections"] == 0
        assert stats["total_connections_ever"] == 1
        assert stats["total_messages_sent"] == 1
