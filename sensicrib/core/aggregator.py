"""Escalation strategies — combine five verdicts into one AlertLevel.

An AggregationStrategy decides how bad the overall picture is.  The
session depends on this protocol; swap implementations via configuration
without touching the rest of the pipeline.
"""

from __future__ import annotations

from typing import Protocol

from sensicrib.domain.enums import AggregationPolicy, AlertLevel
from sensicrib.domain.safety import SafetySnapshot


class AggregationStrategy(Protocol):
    """Protocol for snapshot → level mapping."""

    name: str

    def aggregate(self, snapshot: SafetySnapshot) -> AlertLevel:
        """Return the alert level for *snapshot*.  Must be pure."""
        ...


class UniformCountPolicy:
    """Every sensor counts the same.

    0 unsafe → SAFE, 1 → MINOR, 2 → MODERATE, 3 or more → CRITICAL.
    """

    name = AggregationPolicy.UNIFORM_COUNT.value

    def aggregate(self, snapshot: SafetySnapshot) -> AlertLevel:
        unsafe = snapshot.unsafe_count
        if unsafe >= 3:
            return AlertLevel.CRITICAL
        if unsafe == 2:
            return AlertLevel.MODERATE
        if unsafe == 1:
            return AlertLevel.MINOR
        return AlertLevel.SAFE


class PriorityWeightedPolicy:
    """Crying, motion and weight loss outrank room climate.

    Two or more priority sensors unsafe → CRITICAL; exactly one → MODERATE;
    otherwise any environmental sensor unsafe → MINOR; else SAFE.
    Environmental breaches never raise the level above MINOR on their own.
    """

    name = AggregationPolicy.PRIORITY_WEIGHTED.value

    def aggregate(self, snapshot: SafetySnapshot) -> AlertLevel:
        priority = snapshot.priority_unsafe_count
        if priority >= 2:
            return AlertLevel.CRITICAL
        if priority == 1:
            return AlertLevel.MODERATE
        if snapshot.environmental_unsafe_count > 0:
            return AlertLevel.MINOR
        return AlertLevel.SAFE


_STRATEGIES: dict[AggregationPolicy, type] = {
    AggregationPolicy.UNIFORM_COUNT: UniformCountPolicy,
    AggregationPolicy.PRIORITY_WEIGHTED: PriorityWeightedPolicy,
}


def build_strategy(policy: AggregationPolicy | str) -> AggregationStrategy:
    """Instantiate the strategy registered for *policy*.

    Raises:
        ValueError: for an unknown policy name.
    """
    return _STRATEGIES[AggregationPolicy(policy)]()
