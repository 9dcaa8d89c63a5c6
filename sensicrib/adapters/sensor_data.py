"""SensorDataAdapter — translates ``sensor_data`` INSERT rows.

Expected raw format (bare or inside a change envelope):
{
    "sensor_type_id": 1,
    "value": "36.5",
    "baby_id": "b-42",
    "device_id": "crib-01",
    "timestamp": "2026-02-13T14:00:00Z"
}
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from sensicrib.adapters.base import (
    ChangeAdapter,
    MalformedReadingError,
    parse_number,
    parse_sensor_type,
    unwrap,
)
from sensicrib.domain.reading import SensorReading
from sensicrib.foundation.clock import utc_now


class SensorDataAdapter(ChangeAdapter):
    """Maps sensor_data rows to canonical SensorReadings."""

    @property
    def source_name(self) -> str:
        return "sensor_data"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        if raw.get("table") is not None:
            return raw.get("table") == "sensor_data"
        return "value" in unwrap(raw)

    def adapt(self, raw: dict[str, Any]) -> SensorReading:
        row = unwrap(raw)
        self.check_subject(row)

        sensor_type = parse_sensor_type(row)
        value = parse_number(row, "value")

        try:
            return SensorReading.model_validate({
                "sensor_type": sensor_type,
                "value": value,
                "observed_at": row.get("timestamp") or utc_now(),
            })
        except ValidationError as exc:
            raise MalformedReadingError(str(exc)) from exc
