"""WebSocket endpoint for change-event ingestion.

Path: /ws/changes

Accepts raw JSON change events from the data store bridge (sensor_data
inserts and threshold updates, bare or enveloped), routes them through
the ChangeFeed into the MonitorSession, and acknowledges each one.
Malformed events are acknowledged with an error and dropped.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sensicrib.services.ingest import ChangeFeed

logger = logging.getLogger(__name__)


def create_change_router(feed: ChangeFeed) -> APIRouter:
    """Factory that wires the change endpoint to a concrete ChangeFeed."""

    router = APIRouter()

    @router.websocket("/ws/changes")
    async def ingest_changes(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Change source connected")

        try:
            while True:
                raw = await websocket.receive_json()

                if not isinstance(raw, dict):
                    await websocket.send_json({
                        "status": "error",
                        "reason": "not_an_object",
                        "detail": f"expected a JSON object, got {type(raw).__name__}",
                    })
                    continue

                await websocket.send_json(feed.handle(raw))

        except WebSocketDisconnect:
            logger.info("Change source disconnected")

    return router
