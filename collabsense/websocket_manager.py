"""
WebSocket Manager for CollabSense real-time notifications.

Tracks every open socket per user and delivers notification events to all
of them. WebSocketPushChannel adapts the manager to the engine's
PushChannel interface so the dispatcher can push on create.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from fastapi import WebSocket

from .models import Notification
from .repository_interface import PushChannel

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """WebSocket event types."""
    CONNECTED = "connected"
    NOTIFICATION = "notification"
    NOTIFICATION_READ = "notification_read"
    PONG = "pong"


@dataclass
class WebSocketEvent:
    """Structured WebSocket event."""
    event_type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_json(self) -> str:
        return json.dumps({
            "event": self.event_type.value,
            "data": self.data,
            "timestamp": self.timestamp
        })


@dataclass
class UserConnection:
    """A connected user's WebSocket session."""
    websocket: WebSocket
    user_id: str
    connected_at: datetime = field(default_factory=datetime.utcnow)


class ConnectionManager:
    """Manages WebSocket connections keyed by user id."""

    def __init__(self):
        # Map: user_id -> List[UserConnection]
        self.user_connections: Dict[str, List[UserConnection]] = {}
        logger.info("WebSocket ConnectionManager initialized")

    async def connect(self, websocket: WebSocket, user_id: str) -> UserConnection:
        """
        Accept a new WebSocket connection and confirm it to the client.

        Args:
            websocket: FastAPI WebSocket instance
            user_id: User the socket belongs to

        Returns:
            UserConnection object
        """
        await websocket.accept()

        connection = UserConnection(websocket=websocket, user_id=user_id)
        self.user_connections.setdefault(user_id, []).append(connection)
        logger.info(f"WebSocket connected: {user_id}")

        await self.send_personal(
            user_id,
            WebSocketEvent(
                event_type=EventType.CONNECTED,
                data={"message": "Connected to CollabSense notifications", "user_id": user_id}
            )
        )
        return connection

    def disconnect(self, websocket: WebSocket, user_id: str):
        """Forget a socket. Drops the user entry once no sockets remain."""
        if user_id in self.user_connections:
            self.user_connections[user_id] = [
                conn for conn in self.user_connections[user_id]
                if conn.websocket is not websocket
            ]
            if not self.user_connections[user_id]:
                del self.user_connections[user_id]

        logger.info(f"WebSocket disconnected: {user_id}")

    async def send_personal(self, user_id: str, event: WebSocketEvent) -> int:
        """
        Send event to every connection of a user.

        Sockets that fail to receive are dropped.

        Returns:
            Number of connections the event reached
        """
        message = event.to_json()
        delivered = 0
        for conn in list(self.user_connections.get(user_id, [])):
            try:
                await conn.websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.error(f"Failed to send to {user_id}: {e}")
                self.disconnect(conn.websocket, user_id)
        return delivered

    def get_online_users(self) -> List[str]:
        return list(self.user_connections.keys())

    def get_connection_count(self) -> int:
        """Get total number of active connections."""
        return sum(len(conns) for conns in self.user_connections.values())


# Global connection manager instance
manager = ConnectionManager()


class WebSocketPushChannel(PushChannel):
    """Pushes freshly created notifications over the connection manager."""

    def __init__(self, connection_manager: ConnectionManager = None):
        self.connection_manager = connection_manager or manager

    async def push(self, user_id: str, notification: Notification) -> bool:
        delivered = await self.connection_manager.send_personal(
            user_id,
            WebSocketEvent(
                event_type=EventType.NOTIFICATION,
                data=notification.model_dump(mode="json")
            )
        )
        return delivered > 0


# =============================================================================
# Helper functions for broadcasting from other modules
# =============================================================================

async def broadcast_notification_read(user_id: str, notification_ids: List[int]):
    """Tell a user's other sessions that notifications were read."""
    await manager.send_personal(
        user_id,
        WebSocketEvent(
            event_type=EventType.NOTIFICATION_READ,
            data={"notification_ids": notification_ids}
        )
    )


__all__ = [
    "EventType",
    "WebSocketEvent",
    "UserConnection",
    "ConnectionManager",
    "WebSocketPushChannel",
    "manager",
    "broadcast_notification_read",
]
