"""SafetyEvaluator — instantaneous range checks for range-type sensors.

Pure with respect to its inputs: a verdict depends only on the value and
the threshold.  The only state kept is an operator-facing count of
readings that arrived for a sensor with no threshold configured.

Rules:
    TEMPERATURE  safe iff value <= max     (no floor at evaluation time)
    HUMIDITY     safe iff min <= value <= max
    WEIGHT       safe iff value >= min     (floor variant only)
    SOUND/MOTION never range-checked; they belong to the temporal filters.
"""

from __future__ import annotations

import logging

from sensicrib.domain.enums import SensorType
from sensicrib.domain.reading import Threshold

logger = logging.getLogger(__name__)

RANGE_SENSORS: frozenset[SensorType] = frozenset(
    {SensorType.TEMPERATURE, SensorType.HUMIDITY, SensorType.WEIGHT}
)


class SafetyEvaluator:
    """Range-check evaluator with missing-configuration accounting."""

    def __init__(self) -> None:
        self._missing: dict[SensorType, int] = {st: 0 for st in SensorType}

    def evaluate(
        self,
        sensor_type: SensorType,
        value: float,
        threshold: Threshold | None,
    ) -> bool | None:
        """Return True (safe), False (unsafe) or None when no verdict is possible.

        None means the sensor has no threshold yet; the caller must leave
        its safety state untouched.

        Raises:
            ValueError: if *sensor_type* is handled by a temporal filter.
        """
        if sensor_type not in RANGE_SENSORS:
            raise ValueError(f"{sensor_type.label} readings are not range-checked")

        if threshold is None:
            self.record_missing(sensor_type)
            return None

        if sensor_type == SensorType.TEMPERATURE:
            return value <= threshold.max
        if sensor_type == SensorType.HUMIDITY:
            return threshold.min <= value <= threshold.max
        return value >= threshold.min

    def record_missing(self, sensor_type: SensorType) -> None:
        self._missing[sensor_type] += 1
        logger.warning(
            "No threshold configured for %s; reading skipped (%d so far)",
            sensor_type.label,
            self._missing[sensor_type],
        )

    def missing_count(self, sensor_type: SensorType) -> int:
        return self._missing[sensor_type]

    @property
    def missing_counts(self) -> dict[str, int]:
        return {st.label: n for st, n in self._missing.items()}
