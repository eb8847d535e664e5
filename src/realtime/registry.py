"""
Subscription registry for realtime connections.

Tracks which connection belongs to which groups and applies the
authorization gate on subscribe.  Membership lives exactly as long as the
connection: ``disconnect`` clears every group the connection had joined.

Supports:
- connect / disconnect (staff auto-join ``admin``)
- ride and driver subscriptions (driver groups are staff-only)
- group publish and direct, caller-only replies
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.domain.authorization import AuthorizationGate
from src.domain.entities import CallerIdentity
from src.domain.exceptions import TransientBroadcastFailure, Unauthorized
from src.domain.groups import ADMIN_GROUP, driver_group, ride_group

from .events import ERROR, SUBSCRIPTION_CONFIRMED, SubscriptionConfirmedPayload, frame

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    connection_id: str
    websocket: Any  # anything with async send_json / accept / close
    caller: CallerIdentity
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    groups: set[str] = field(default_factory=set)


class SubscriptionRegistry:
    def __init__(self, gate: AuthorizationGate):
        self._gate = gate
        # connection_id -> Connection
        self._connections: dict[str, Connection] = {}
        # group -> set of connection_ids
        self._groups: dict[str, set[str]] = {}

        self._total_connections = 0
        self._total_messages_sent = 0

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def connect(
        self,
        websocket,
        caller: CallerIdentity,
        connection_id: str | None = None,
    ) -> Connection:
        await websocket.accept()
        conn = Connection(
            connection_id=connection_id or uuid.uuid4().hex,
            websocket=websocket,
            caller=caller,
        )
        self._connections[conn.connection_id] = conn
        self._total_connections += 1

        logger.info(
            "Client connected: %s, user=%s, role=%s",
            conn.connection_id, caller.user_id,
            caller.role.value if caller.role else "none",
        )
        if self._gate.can_subscribe(caller, ADMIN_GROUP):
            self._join(conn.connection_id, ADMIN_GROUP)
            logger.info("Connection %s added to admin group", conn.connection_id)
        return conn

    def disconnect(self, connection_id: str) -> None:
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return
        for group in list(conn.groups):
            self._leave(connection_id, group)
        logger.info("Client disconnected: %s", connection_id)

    # ── Subscriptions ─────────────────────────────────────────────────

    async def subscribe_to_ride(self, connection_id: str, ride_id: str) -> bool:
        if not ride_id or not ride_id.strip():
            logger.warning("SubscribeToRide called with empty rideId")
            return False
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        group = ride_group(ride_id)
        if not self._gate.can_subscribe(conn.caller, group):
            raise Unauthorized(f"Not allowed to subscribe to {group}")
        self._join(connection_id, group)
        logger.info("Connection %s subscribed to %s", connection_id, group)
        await self.send_to_connection(
            connection_id,
            frame(SUBSCRIPTION_CONFIRMED, SubscriptionConfirmedPayload(ride_id=ride_id)),
        )
        return True

    async def subscribe_to_driver(self, connection_id: str, driver_uid: str) -> bool:
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        if not self._gate.can_subscribe(conn.caller, driver_group(driver_uid or "")):
            logger.warning(
                "Non-staff attempted to subscribe to driver: %s", connection_id
            )
            raise Unauthorized("Unauthorized")
        if not driver_uid or not driver_uid.strip():
            return False
        group = driver_group(driver_uid)
        self._join(connection_id, group)
        logger.info(
            "Staff connection %s subscribed to driver %s", connection_id, driver_uid
        )
        return True

    def unsubscribe_from_ride(self, connection_id: str, ride_id: str) -> None:
        if ride_id:
            self._leave(connection_id, ride_group(ride_id))

    def unsubscribe_from_driver(self, connection_id: str, driver_uid: str) -> None:
        if driver_uid:
            self._leave(connection_id, driver_group(driver_uid))

    # ── Delivery ──────────────────────────────────────────────────────

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        """Direct reply to one connection.  False if it is gone."""
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        try:
            await conn.websocket.send_json(message)
        except Exception:
            logger.debug("Direct send to %s failed; dropping connection", connection_id)
            self.disconnect(connection_id)
            return False
        self._total_messages_sent += 1
        return True

    async def send_error(self, connection_id: str, message: str) -> bool:
        return await self.send_to_connection(connection_id, frame(ERROR, {"message": message}))

    async def publish(self, group: str, message: dict[str, Any]) -> int:
        """Send *message* to every member of *group* concurrently.

        Dead connections are dropped.  Raises ``TransientBroadcastFailure``
        after delivering to the healthy members if any send failed.
        """
        members = [
            self._connections[cid]
            for cid in self._groups.get(group, ())
            if cid in self._connections
        ]
        if not members:
            return 0

        results = await asyncio.gather(
            *(conn.websocket.send_json(message) for conn in members),
            return_exceptions=True,
        )
        failed = [
            conn.connection_id
            for conn, result in zip(members, results)
            if isinstance(result, BaseException)
        ]
        sent = len(members) - len(failed)
        self._total_messages_sent += sent

        for connection_id in failed:
            self.disconnect(connection_id)
        if failed:
            raise TransientBroadcastFailure(group, len(failed))
        return sent

    # ── Introspection ─────────────────────────────────────────────────

    def groups_of(self, connection_id: str) -> set[str]:
        conn = self._connections.get(connection_id)
        return set(conn.groups) if conn else set()

    def members_of(self, group: str) -> set[str]:
        return set(self._groups.get(group, set()))

    def get_stats(self) -> dict[str, int]:
        return {
            "active_connections": len(self._connections),
            "total_groups": len(self._groups),
            "total_connections_ever": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
        }

    # ── Internals ─────────────────────────────────────────────────────

    def _join(self, connection_id: str, group: str) -> None:
        self._connections[connection_id].groups.add(group)
        self._groups.setdefault(group, set()).add(connection_id)

    def _leave(self, connection_id: str, group: str) -> None:
        conn = self._connections.get(connection_id)
        if conn is not None:
            conn.groups.discard(group)
        members = self._groups.get(group)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._groups[group]
