"""Per-sensor safety state and its immutable snapshot.

SensorSafetyState is mutable and owned by exactly one MonitorSession.
SafetySnapshot is what the aggregator and observers see: a frozen copy
taken after a mutation, so a recomputation never reads a half-applied
update.
"""

from __future__ import annotations

from pydantic import BaseModel

from sensicrib.domain.enums import ENVIRONMENTAL_SENSORS, PRIORITY_SENSORS, SensorType


class SafetySnapshot(BaseModel):
    """Immutable view of all five verdicts at one point in time."""

    states: dict[SensorType, bool]

    model_config = {"frozen": True}

    def is_safe(self, sensor_type: SensorType) -> bool:
        return self.states[sensor_type]

    @property
    def unsafe(self) -> list[SensorType]:
        return [st for st in SensorType if not self.states[st]]

    @property
    def unsafe_count(self) -> int:
        return len(self.unsafe)

    @property
    def priority_unsafe_count(self) -> int:
        return sum(1 for st in PRIORITY_SENSORS if not self.states[st])

    @property
    def environmental_unsafe_count(self) -> int:
        return sum(1 for st in ENVIRONMENTAL_SENSORS if not self.states[st])

    @property
    def all_safe(self) -> bool:
        return all(self.states.values())

    def to_dict(self) -> dict[str, bool]:
        return {st.label: safe for st, safe in self.states.items()}


class SensorSafetyState:
    """Mutable sensor → safe mapping.  Every sensor starts safe.

    Thread-safety note:
        Mutated only while the owning MonitorSession holds its lock.
    """

    __slots__ = ("_states", "version")

    def __init__(self) -> None:
        self._states: dict[SensorType, bool] = {st: True for st in SensorType}
        self.version: int = 0

    def get(self, sensor_type: SensorType) -> bool:
        return self._states[sensor_type]

    def set(self, sensor_type: SensorType, safe: bool) -> bool:
        """Record a verdict.  Returns True only if the stored value changed."""
        if self._states[sensor_type] == safe:
            return False
        self._states[sensor_type] = safe
        self.version += 1
        return True

    def reset(self) -> bool:
        """Force every sensor back to safe.  Returns True if anything changed."""
        changed = False
        for st in SensorType:
            changed = self.set(st, True) or changed
        return changed

    def snapshot(self) -> SafetySnapshot:
        return SafetySnapshot(states=dict(self._states))

    def __repr__(self) -> str:
        unsafe = [st.label for st, safe in self._states.items() if not safe]
        return f"SensorSafetyState(v={self.version}, unsafe={unsafe})"
