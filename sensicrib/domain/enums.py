"""Controlled enumerations for the sensicrib domain.

Every categorical field in the domain MUST reference an enum defined here.
Numeric sensor ids from the data store are mapped onto SensorType at the
ingest boundary; nothing past the boundary sees a raw integer.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class SensorType(IntEnum):
    """The five sensors of a crib unit, keyed by their data-store id."""

    TEMPERATURE = 1
    HUMIDITY = 2
    SOUND = 3
    MOTION = 4
    WEIGHT = 5

    @property
    def label(self) -> str:
        return self.name.lower()


PRIORITY_SENSORS: frozenset[SensorType] = frozenset(
    {SensorType.SOUND, SensorType.MOTION, SensorType.WEIGHT}
)
ENVIRONMENTAL_SENSORS: frozenset[SensorType] = frozenset(
    {SensorType.TEMPERATURE, SensorType.HUMIDITY}
)


class AlertLevel(str, Enum):
    """Ordinal escalation tier.  Compare with ``rank``, not the string value."""

    SAFE = "Safe"
    MINOR = "Minor"
    MODERATE = "Moderate"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @property
    def color(self) -> str:
        return _LEVEL_COLOR[self]

    @property
    def notifies(self) -> bool:
        """True for levels that warrant an audible/visual alert."""
        return self.rank >= _LEVEL_RANK[AlertLevel.MODERATE]


_LEVEL_RANK = {
    AlertLevel.SAFE: 0,
    AlertLevel.MINOR: 1,
    AlertLevel.MODERATE: 2,
    AlertLevel.CRITICAL: 3,
}

_LEVEL_COLOR = {
    AlertLevel.SAFE: "#32CD32",
    AlertLevel.MINOR: "#FFFF00",
    AlertLevel.MODERATE: "#FFA500",
    AlertLevel.CRITICAL: "#FF3B30",
}


class AggregationPolicy(str, Enum):
    """How per-sensor verdicts combine into an AlertLevel."""

    UNIFORM_COUNT = "uniform_count"
    PRIORITY_WEIGHTED = "priority_weighted"


class SoundPolicy(str, Enum):
    """Which sound filter variant is active."""

    DECAY = "decay"
    CONFIRMED = "confirmed"


class WeightPolicy(str, Enum):
    """Which weight evaluation is active."""

    DELTA = "delta"
    FLOOR = "floor"


class HistoryKind(str, Enum):
    """Kinds of entries recorded in the alert history."""

    LEVEL_CHANGED = "level_changed"
    ALERT_FIRED = "alert_fired"
    ALERT_CANCELLED = "alert_cancelled"
