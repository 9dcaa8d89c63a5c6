"""Canonical reading and threshold models — the contract between the data
store and the alerting core.

Both models are validated at the boundary so downstream code never has to
re-check field constraints.  A SensorReading is ephemeral: it is handed to
the evaluator or a temporal filter and then dropped.
"""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from sensicrib.domain.enums import SensorType
from sensicrib.foundation.clock import ensure_utc, utc_now


# ── Reading ──────────────────────────────────────────────────────────────────

class SensorReading(BaseModel):
    """One sample from one sensor of the crib unit."""

    sensor_type: SensorType = Field(..., description="Which sensor produced the sample")
    value: float = Field(..., description="Parsed numeric value")
    observed_at: datetime = Field(
        default_factory=utc_now,
        description="When the sample was taken (UTC-aware)",
    )

    model_config = {"frozen": True}

    @field_validator("value")
    @classmethod
    def value_must_be_finite(cls, v: float) -> float:
        if math.isnan(v) or math.isinf(v):
            raise ValueError(f"reading value must be finite, got {v}")
        return v

    @field_validator("observed_at")
    @classmethod
    def observed_at_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)


# ── Threshold ────────────────────────────────────────────────────────────────

class Threshold(BaseModel):
    """The configurable parameter pair for one sensor type.

    Field meaning depends on the sensor:
        TEMPERATURE  max is the ceiling (min is display-only)
        HUMIDITY     min..max inclusive band
        MOTION       min = intensity trigger, max = sustain seconds
        SOUND        min = confidence level, max = consecutive detections
        WEIGHT       min = sudden-drop delta, max = max inter-sample delta
                     (floor variant: min = lowest safe weight)
    """

    sensor_type: SensorType
    min: float = Field(..., description="Lower bound or first sensor parameter")
    max: float = Field(..., description="Upper bound or second sensor parameter")

    model_config = {"frozen": True}

    @field_validator("min", "max")
    @classmethod
    def bound_must_be_finite(cls, v: float) -> float:
        if math.isnan(v) or math.isinf(v):
            raise ValueError(f"threshold bound must be finite, got {v}")
        return v

    def to_row(self) -> dict:
        """Serialise in the data-store column layout."""
        return {
            "sensor_type_id": int(self.sensor_type),
            "min_value": self.min,
            "max_value": self.max,
        }


# Defaults for infants aged 0-2, used to seed an empty threshold table.
DEFAULT_THRESHOLDS: tuple[Threshold, ...] = (
    Threshold(sensor_type=SensorType.TEMPERATURE, min=26.0, max=28.0),
    Threshold(sensor_type=SensorType.HUMIDITY, min=40.0, max=60.0),
    Threshold(sensor_type=SensorType.SOUND, min=0.5, max=3.0),
    Threshold(sensor_type=SensorType.MOTION, min=1.5, max=5.0),
    Threshold(sensor_type=SensorType.WEIGHT, min=1.0, max=0.5),
)
