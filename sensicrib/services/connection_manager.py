"""Manages active WebSocket connections for broadcasting alert updates to UI clients."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks presentation-layer WebSocket clients."""

    def __init__(self) -> None:
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def broadcast_json(self, data: dict[str, Any]) -> None:
        """Send a JSON payload to every connected UI client.

        A client that fails to receive is dropped; the rest still get it.
        """
        for ws in list(self._connections):
            try:
                await ws.send_json(data)
            except Exception as exc:
                logger.warning("Dropping UI client after send failure: %s", exc)
                self.disconnect(ws)
