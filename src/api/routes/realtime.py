"""
Realtime location hub
=====================

WS /hubs/location?access_token=<jwt>

Client frames (JSON):
- {"action": "SubscribeToRide", "rideId": "..."}
- {"action": "UnsubscribeFromRide", "rideId": "..."}
- {"action": "SubscribeToDriver", "driverUid": "..."}   (staff only)
- {"action": "UnsubscribeFromDriver", "driverUid": "..."}
- {"action": "ping"}

Server frames: {"event": "LocationUpdate" | "RideStatusChanged" |
"TrackingStopped" | "SubscriptionConfirmed" | "Error" | "Pong", "data": {...}}
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from src.api.auth import InvalidToken, decode_token
from src.domain.exceptions import Unauthorized
from src.realtime.events import PONG, frame
from src.realtime.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _token_from(websocket: WebSocket, access_token: str | None) -> str | None:
    if access_token:
        return access_token
    header = websocket.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


@router.websocket("/hubs/location")
async def location_hub(
    websocket: WebSocket,
    access_token: str | None = Query(default=None),
) -> None:
    try:
        caller = decode_token(_token_from(websocket, access_token))
    except InvalidToken:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry: SubscriptionRegistry = websocket.app.state.registry
    conn = await registry.connect(websocket, caller)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                await registry.send_error(conn.connection_id, "Malformed message")
                continue
            await _handle_client_message(registry, conn.connection_id, data)
    except WebSocketDisconnect:
        pass
    finally:
        registry.disconnect(conn.connection_id)


async def _handle_client_message(
    registry: SubscriptionRegistry, connection_id: str, data: Any
) -> None:
    if not isinstance(data, dict):
        await registry.send_error(connection_id, "Expected a JSON object")
        return

    action = data.get("action")
    try:
        if action == "SubscribeToRide":
            await registry.subscribe_to_ride(connection_id, str(data.get("rideId") or ""))
        elif action == "UnsubscribeFromRide":
            registry.unsubscribe_from_ride(connection_id, str(data.get("rideId") or ""))
        elif action == "SubscribeToDriver":
            await registry.subscribe_to_driver(
                connection_id, str(data.get("driverUid") or "")
            )
        elif action == "UnsubscribeFromDriver":
            registry.unsubscribe_from_driver(
                connection_id, str(data.get("driverUid") or "")
            )
        elif action == "ping":
            await registry.send_to_connection(connection_id, frame(PONG, {}))
        else:
            await registry.send_error(connection_id, f"Unknown action: {action}")
    except Unauthorized as exc:
        await registry.send_error(connection_id, str(exc))
