"""REST endpoints for status, cancellation, thresholds and history.

Paths:
    GET  /api/status
    POST /api/alert/cancel
    GET  /api/thresholds
    GET  /api/thresholds/{sensor_type}
    PUT  /api/thresholds/{sensor_type}
    GET  /api/history
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, ValidationError

from sensicrib.core.session import MonitorSession
from sensicrib.domain.enums import SensorType
from sensicrib.domain.reading import Threshold

logger = logging.getLogger(__name__)


class ThresholdUpdate(BaseModel):
    """Request body for a threshold change."""

    min_value: float = Field(..., description="Lower bound or first sensor parameter")
    max_value: float = Field(..., description="Upper bound or second sensor parameter")


def _parse_sensor(sensor_type: str) -> SensorType:
    try:
        if sensor_type.isdigit():
            return SensorType(int(sensor_type))
        return SensorType[sensor_type.upper()]
    except (KeyError, ValueError):
        raise HTTPException(status_code=404, detail=f"Unknown sensor type: {sensor_type}")


def create_api_router(session: MonitorSession) -> APIRouter:
    """Factory that wires the REST endpoints to a session."""

    router = APIRouter(prefix="/api", tags=["monitor"])

    @router.get("/status")
    async def get_status() -> dict[str, Any]:
        return session.status()

    @router.post("/alert/cancel")
    async def cancel_alert() -> dict[str, Any]:
        session.cancel_alert()
        return session.status()

    @router.get("/thresholds")
    async def list_thresholds() -> dict[str, Any]:
        rows = [t.to_row() for _, t in sorted(session.thresholds.items())]
        return {"thresholds": rows, "count": len(rows)}

    @router.get("/thresholds/{sensor_type}")
    async def get_threshold(sensor_type: str) -> dict[str, Any]:
        st = _parse_sensor(sensor_type)
        threshold = session.threshold(st)
        if threshold is None:
            raise HTTPException(status_code=404, detail=f"No threshold configured for {st.label}")
        return threshold.to_row()

    @router.put("/thresholds/{sensor_type}")
    async def put_threshold(sensor_type: str, body: ThresholdUpdate) -> dict[str, Any]:
        st = _parse_sensor(sensor_type)
        try:
            threshold = Threshold(sensor_type=st, min=body.min_value, max=body.max_value)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        session.update_threshold(threshold)
        return threshold.to_row()

    @router.get("/history")
    async def get_history() -> dict[str, Any]:
        days = session.history.by_day()
        return {"days": days, "total": len(session.history)}

    return router
