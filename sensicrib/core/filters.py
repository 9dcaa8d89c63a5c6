"""Temporal filters — debounce, decay and variance smoothing per sensor.

Motion, sound and weight produce noisy or event-like signals.  Naive
instantaneous thresholding would flap, so each gets a small state machine
that turns raw samples into a stabilised safe/unsafe verdict.

Filters never touch SensorSafetyState directly.  They report verdicts
through the *report* callback handed in by the session, either while a
reading is being fed or later from a timer callback.

    MotionFilter         unsafe only after intensity stays above the
                         trigger for the full sustain duration; safe again
                         the instant it drops.
    SoundFilter          a detection is unsafe immediately and decays back
                         to safe after a fixed quiet window.
    ConfirmedSoundFilter as SoundFilter, but a detection must clear a
                         confidence level N times in a row first.
    WeightFilter         unsafe on a sudden drop or an over-large step
                         against the previous sample.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable

from sensicrib.domain.enums import SensorType
from sensicrib.domain.reading import Threshold
from sensicrib.foundation.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

Report = Callable[[SensorType, bool], None]


class TemporalFilter(ABC):
    """Common plumbing: a scheduler, a report callback, and one timer slot."""

    sensor_type: SensorType

    def __init__(self, scheduler: Scheduler, report: Report) -> None:
        self._scheduler = scheduler
        self._report = report
        self._timer: TimerHandle | None = None

    @abstractmethod
    def feed(self, value: float, threshold: Threshold) -> None:
        """Consume one reading, reporting a verdict now or from a timer."""

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None and self._timer.pending

    def cancel(self) -> None:
        """Drop any pending timer.  Safe to call repeatedly."""
        self._scheduler.cancel(self._timer)
        self._timer = None


# ── Motion ───────────────────────────────────────────────────────────────────

class MotionFilter(TemporalFilter):
    """Sustained-breach detector.

    threshold.min is the intensity trigger, threshold.max the number of
    seconds intensity must stay strictly above it.
    """

    sensor_type = SensorType.MOTION

    def __init__(self, scheduler: Scheduler, report: Report) -> None:
        super().__init__(scheduler, report)
        self._breach_started_at: float | None = None

    @property
    def breach_started_at(self) -> float | None:
        return self._breach_started_at

    def feed(self, value: float, threshold: Threshold) -> None:
        if value > threshold.min:
            if self._breach_started_at is None:
                self._breach_started_at = self._scheduler.now()
                self._timer = self._scheduler.schedule_once(
                    max(threshold.max, 0.0), self._on_sustained
                )
                logger.debug(
                    "Motion %.3f above %.3f; sustain timer %.1fs started",
                    value, threshold.min, threshold.max,
                )
            return

        if self._breach_started_at is not None:
            logger.debug("Motion back to %.3f; sustain timer cancelled", value)
        self._breach_started_at = None
        self.cancel()
        self._report(self.sensor_type, True)

    def _on_sustained(self) -> None:
        self._timer = None
        logger.info("Motion sustained above trigger; marking unsafe")
        self._report(self.sensor_type, False)

    def reset(self) -> None:
        """Forget any breach in progress."""
        self._breach_started_at = None
        self.cancel()


# ── Sound ────────────────────────────────────────────────────────────────────

class SoundFilter(TemporalFilter):
    """Auto-decaying cry detector.

    Any reading with a positive value is a detection.  Each detection
    restarts the decay window; it does not extend it cumulatively.
    """

    sensor_type = SensorType.SOUND

    def __init__(
        self,
        scheduler: Scheduler,
        report: Report,
        decay_seconds: float = 5.0,
    ) -> None:
        super().__init__(scheduler, report)
        self._decay_seconds = decay_seconds

    @property
    def decay_seconds(self) -> float:
        return self._decay_seconds

    def feed(self, value: float, threshold: Threshold) -> None:
        if value > 0:
            self.detect()

    def detect(self) -> None:
        self._report(self.sensor_type, False)
        self.cancel()
        self._timer = self._scheduler.schedule_once(self._decay_seconds, self._on_decay)

    def _on_decay(self) -> None:
        self._timer = None
        logger.debug("No cry for %.1fs; sound back to safe", self._decay_seconds)
        self._report(self.sensor_type, True)

    def reset(self) -> None:
        """Drop the decay window without reporting."""
        self.cancel()


class ConfirmedSoundFilter(SoundFilter):
    """Cry detector that needs consecutive confident detections.

    threshold.min is the confidence level a reading must reach,
    threshold.max the number of consecutive readings that must reach it.
    A reading below the level resets the run but does not clear an alert
    already raised; that is left to the decay timer.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        report: Report,
        decay_seconds: float = 5.0,
    ) -> None:
        super().__init__(scheduler, report, decay_seconds)
        self._consecutive = 0

    @property
    def consecutive(self) -> int:
        return self._consecutive

    def feed(self, value: float, threshold: Threshold) -> None:
        if value < threshold.min:
            self._consecutive = 0
            return
        self._consecutive += 1
        required = max(int(threshold.max), 1)
        if self._consecutive >= required:
            self.detect()
        else:
            logger.debug("Cry candidate %d/%d", self._consecutive, required)

    def reset(self) -> None:
        """Drop the decay window and any partial run of detections."""
        super().reset()
        self._consecutive = 0


# ── Weight ───────────────────────────────────────────────────────────────────

class WeightFilter(TemporalFilter):
    """Delta/variance check over a short sliding window of samples.

    threshold.min is the sudden-drop delta, threshold.max the largest
    allowed step in either direction.  Both comparisons are strict.
    The window always receives the new sample, whatever the verdict.
    """

    sensor_type = SensorType.WEIGHT

    def __init__(
        self,
        scheduler: Scheduler,
        report: Report,
        history_size: int = 5,
    ) -> None:
        super().__init__(scheduler, report)
        self._history: deque[float] = deque(maxlen=history_size)

    @property
    def history(self) -> list[float]:
        return list(self._history)

    def feed(self, value: float, threshold: Threshold) -> None:
        unsafe = False
        if self._history:
            previous = self._history[-1]
            drop = previous - value
            if drop > threshold.min:
                logger.info("Weight dropped %.3f (limit %.3f)", drop, threshold.min)
                unsafe = True
            if abs(value - previous) > threshold.max:
                logger.info(
                    "Weight changed %.3f (limit %.3f)", abs(value - previous), threshold.max
                )
                unsafe = True
        self._history.append(value)
        self._report(self.sensor_type, not unsafe)
