"""
WebSocket Router for CollabSense real-time notifications.

Endpoints:
- WS /ws/{user_id} - Live notification stream for a user
- GET /ws/status - WebSocket server status
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..websocket_manager import EventType, WebSocketEvent, manager

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["websocket"],
)


@router.websocket("/ws/{user_id}")
async def websocket_endpoint(websocket: WebSocket, user_id: str):
    """
    Live notification stream.

    Events received by client:
    - connected: Connection confirmed
    - notification: A notification was just created
    - notification_read: Notifications were marked read elsewhere
    - pong: Reply to ping

    Events client can send:
    - ping: {} - Keep-alive ping
    """
    await manager.connect(websocket, user_id)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from {user_id}: {data[:100]}")
                continue

            if isinstance(message, dict) and message.get("event") == "ping":
                await websocket.send_text(WebSocketEvent(event_type=EventType.PONG, data={}).to_json())

    except WebSocketDisconnect:
        manager.disconnect(websocket, user_id)


@router.get("/ws/status")
async def websocket_status():
    """Connection counts and online users."""
    return {
        "status": "online",
        "total_connections": manager.get_connection_count(),
        "online_users": manager.get_online_users(),
    }
