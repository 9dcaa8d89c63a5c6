"""DisplayBoard — latest human-readable value per sensor.

Purely presentational.  Sound and weight arrive far faster than anyone can
read them, so their display refresh is throttled; the alerting pipeline
still sees every sample.
"""

from __future__ import annotations

from datetime import datetime

from sensicrib.domain.enums import SensorType
from sensicrib.domain.reading import SensorReading

_UNITS: dict[SensorType, str] = {
    SensorType.TEMPERATURE: "°C",
    SensorType.HUMIDITY: "%",
    SensorType.SOUND: " dB",
    SensorType.MOTION: "",
    SensorType.WEIGHT: " kg",
}


def format_value(sensor_type: SensorType, value: float) -> str:
    return f"{value:g}{_UNITS[sensor_type]}"


class DisplayBoard:
    """Holds the formatted display string and timestamp for each sensor."""

    def __init__(
        self,
        sound_interval_seconds: float = 1.0,
        weight_interval_seconds: float = 2.0,
    ) -> None:
        self._intervals: dict[SensorType, float] = {
            SensorType.SOUND: sound_interval_seconds,
            SensorType.WEIGHT: weight_interval_seconds,
        }
        self._values: dict[SensorType, str] = {st: "" for st in SensorType}
        self._updated_at: dict[SensorType, datetime | None] = {st: None for st in SensorType}
        self._last_refresh: dict[SensorType, float] = {}

    def record(self, reading: SensorReading, now: float) -> bool:
        """Update the display for *reading*.  Returns False if throttled."""
        st = reading.sensor_type
        interval = self._intervals.get(st)
        last = self._last_refresh.get(st)
        if interval is not None and last is not None and (now - last) <= interval:
            return False
        self._last_refresh[st] = now
        self._values[st] = format_value(st, reading.value)
        self._updated_at[st] = reading.observed_at
        return True

    def to_dict(self) -> dict[str, dict]:
        return {
            st.label: {
                "display": self._values[st],
                "updated_at": self._updated_at[st].isoformat() if self._updated_at[st] else None,
            }
            for st in SensorType
        }
