"""WebSocket endpoint: streams session updates to presentation clients.

Path: /ws/alerts

On connect the client receives the full status once; afterwards every
session event (safety change, level change, alert fired/hidden/cancelled,
threshold change) and every notification effect is pushed as it happens.
Clients may send {"action": "cancel_alert"} to press "Cancel Alert".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sensicrib.core.session import MonitorSession
from sensicrib.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class SessionBroadcaster:
    """Session observer that forwards events to every UI client."""

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager
        self._tasks: set[asyncio.Task] = set()

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        if self._manager.active_count == 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; '%s' not broadcast", event)
            return
        task = loop.create_task(
            self._manager.broadcast_json({"type": "event", "event": event, **payload})
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def create_alert_stream_router(
    session: MonitorSession,
    manager: ConnectionManager,
) -> APIRouter:
    """Factory that wires the alert stream to a session and client manager."""

    router = APIRouter()

    @router.websocket("/ws/alerts")
    async def stream_alerts(websocket: WebSocket) -> None:
        await manager.connect(websocket)
        logger.info("UI client connected — total: %d", manager.active_count)

        try:
            await websocket.send_json({"type": "status", **session.status()})
            while True:
                message = await websocket.receive_json()
                if isinstance(message, dict) and message.get("action") == "cancel_alert":
                    session.cancel_alert()
                    await websocket.send_json({"type": "status", **session.status()})

        except WebSocketDisconnect:
            manager.disconnect(websocket)
            logger.info("UI client disconnected — total: %d", manager.active_count)

    return router
