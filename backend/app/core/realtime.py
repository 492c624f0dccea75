"""WebSocket notifications for staff screens.

Staff dashboards subscribe to their shop's channel (``shop:{shop_id}``).
Routes publish events after the response has been sent, through FastAPI
background tasks, so delivery never affects the request outcome.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect, status

from app.core.rbac import token_data_from_payload, TokenData
from app.core.security import decode_access_token

logger = logging.getLogger(__name__)


class Events:
    ORDER_CREATED = "order.created"
    ORDER_STATUS_CHANGED = "order.status_changed"
    DESK_RELEASED = "desk.released"
    DESK_UPDATED = "desk.updated"


def shop_channel(shop_id: int) -> str:
    return f"shop:{shop_id}"


class ConnectionManager:
    """Manages WebSocket connections per channel."""

    MAX_CONNECTIONS_PER_CHANNEL = 1000

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}

    async def connect(self, websocket: WebSocket, channel: str, user_id: Optional[int] = None) -> bool:
        """Accept and register a connection. False if the channel is full."""
        if len(self.active_connections.get(channel, [])) >= self.MAX_CONNECTIONS_PER_CHANNEL:
            logger.warning(f"WebSocket connection rejected: channel '{channel}' at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "user_id": user_id,
            "channel": channel,
            "last_ping": datetime.now(timezone.utc),
        }
        logger.debug(f"WebSocket connected to channel '{channel}', user_id={user_id}")
        return True

    def disconnect(self, websocket: WebSocket, channel: str):
        connections = self.active_connections.get(channel)
        if connections and websocket in connections:
            connections.remove(websocket)
            if not connections:
                del self.active_connections[channel]
        self.connection_metadata.pop(id(websocket), None)
        logger.debug(f"WebSocket disconnected from channel '{channel}'")

    def update_ping(self, websocket: WebSocket):
        meta = self.connection_metadata.get(id(websocket))
        if meta is not None:
            meta["last_ping"] = datetime.now(timezone.utc)

    async def broadcast(self, message: Dict[str, Any], channel: str):
        """Send to every connection on a channel, dropping dead ones."""
        disconnected = []
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                disconnected.append(connection)

        for conn in disconnected:
            self.disconnect(conn, channel)

    async def publish(self, shop_id: int, event: str, data: Dict[str, Any]):
        """Broadcast a shop event. Intended for ``BackgroundTasks.add_task``."""
        await self.broadcast(
            {
                "event": event,
                "data": data,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            shop_channel(shop_id),
        )

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        if channel:
            return len(self.active_connections.get(channel, []))
        return sum(len(conns) for conns in self.active_connections.values())


ws_manager = ConnectionManager()


async def authenticate_websocket(
    websocket: WebSocket,
    token: Optional[str],
    shop_id: int,
) -> Optional[TokenData]:
    """Validate the staff token of a WebSocket handshake.

    The connection is closed with 1008 when the token is missing, invalid or
    issued for another shop.
    """
    token_data = token_data_from_payload(decode_access_token(token) if token else None)
    if token_data is None:
        logger.warning(f"WebSocket rejected for shop {shop_id}: no valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    if token_data.shop_id != shop_id:
        logger.warning(f"WebSocket rejected: user {token_data.user_id} is not staff of shop {shop_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    return token_data


async def ws_loop(websocket: WebSocket, channel: str, user_id: int):
    """Receive loop with ping/pong support."""
    if not await ws_manager.connect(websocket, channel, user_id=user_id):
        return

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                ws_manager.update_ping(websocket)
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket, channel)
    except Exception as e:
        logger.error(f"WebSocket error in {channel}: {e}", exc_info=True)
        ws_manager.disconnect(websocket, channel)
