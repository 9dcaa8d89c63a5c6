"""MonitorSession — the per-subject alerting state machine.

One session owns every piece of mutable alerting state for one monitored
subject: thresholds, SensorSafetyState, filter timers, the current level,
the dispatcher's notification state, the display board and the history.
Nothing in the core lives in module globals.

Every mutation enters through one of four doors:

    ingest()            a reading arrived
    <timer callback>    a motion / sound / popup timer fired
    update_threshold()  the threshold store pushed a change
    cancel_alert()      the user pressed "Cancel Alert"

All four take the same re-entrant lock, so a host that delivers events
from several threads still sees them strictly one after another.  Timer
callbacks get the lock through a GuardedScheduler wrapped around the
host's scheduler.

Recomputation rule:
    The aggregator runs only when a sensor verdict actually changed, and
    the dispatcher is consulted only when the resulting snapshot differs
    from the one last aggregated.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from sensicrib.core.aggregator import AggregationStrategy, UniformCountPolicy, build_strategy
from sensicrib.core.dispatcher import AlertChannels, NotificationDispatcher
from sensicrib.core.evaluator import SafetyEvaluator
from sensicrib.core.filters import (
    ConfirmedSoundFilter,
    MotionFilter,
    SoundFilter,
    TemporalFilter,
    WeightFilter,
)
from sensicrib.domain.enums import AlertLevel, HistoryKind, SensorType, SoundPolicy, WeightPolicy
from sensicrib.domain.reading import SensorReading, Threshold
from sensicrib.domain.safety import SafetySnapshot, SensorSafetyState
from sensicrib.foundation.scheduler import GuardedScheduler, Scheduler
from sensicrib.services.display import DisplayBoard
from sensicrib.store.history import AlertHistory

logger = logging.getLogger(__name__)

# Observer signature: (event name, JSON-ready payload)
SessionObserver = Callable[[str, dict[str, Any]], None]


class MonitorSession:
    """Alerting state machine for a single monitored subject.

    Args:
        scheduler: Timer backend shared by filters and dispatcher.
        channels: Notification primitives fired on escalation.
        strategy: Aggregation strategy (defaults to uniform count).
        sound_policy: Which sound filter variant to run.
        weight_policy: Delta filter or simple floor check for weight.
        cooldown_seconds: Minimum gap between two alert fires.
        popup_auto_hide_seconds: Popup lifetime without interaction.
        suppression_seconds: Quiet period after a user cancellation.
        push_notifications: Whether fires also raise a system notification.
        sound_decay_seconds: How long a cry keeps Sound unsafe.
        weight_history_size: Sliding window length for the weight filter.
        display: Display board; a default one is created if omitted.
        history: Alert history; a default one is created if omitted.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        channels: AlertChannels,
        strategy: AggregationStrategy | None = None,
        sound_policy: SoundPolicy = SoundPolicy.DECAY,
        weight_policy: WeightPolicy = WeightPolicy.DELTA,
        cooldown_seconds: float = 5.0,
        popup_auto_hide_seconds: float = 5.0,
        suppression_seconds: float = 60.0,
        push_notifications: bool = True,
        sound_decay_seconds: float = 5.0,
        weight_history_size: int = 5,
        display: DisplayBoard | None = None,
        history: AlertHistory | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._scheduler = scheduler
        self._strategy = strategy or UniformCountPolicy()
        self._evaluator = SafetyEvaluator()
        self._safety = SensorSafetyState()
        self._thresholds: dict[SensorType, Threshold] = {}
        self._observers: list[SessionObserver] = []

        # Timer callbacks enter through the same lock as the public methods
        timers = GuardedScheduler(scheduler, self._lock)
        sound_cls = ConfirmedSoundFilter if sound_policy == SoundPolicy.CONFIRMED else SoundFilter
        self._motion = MotionFilter(timers, self._report)
        self._sound = sound_cls(timers, self._report, decay_seconds=sound_decay_seconds)
        self._weight = WeightFilter(timers, self._report, history_size=weight_history_size)
        self._filters: dict[SensorType, TemporalFilter] = {
            SensorType.MOTION: self._motion,
            SensorType.SOUND: self._sound,
        }
        if weight_policy == WeightPolicy.DELTA:
            self._filters[SensorType.WEIGHT] = self._weight

        self._dispatcher = NotificationDispatcher(
            timers,
            channels,
            cooldown_seconds=cooldown_seconds,
            auto_hide_seconds=popup_auto_hide_seconds,
            suppression_seconds=suppression_seconds,
            push_notifications=push_notifications,
            listener=self._on_dispatch,
        )
        self.display = display or DisplayBoard()
        self.history = history or AlertHistory()

        self._level = AlertLevel.SAFE
        self._last_snapshot: SafetySnapshot = self._safety.snapshot()
        self.readings_processed: int = 0
        self.aggregations: int = 0

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        scheduler: Scheduler,
        channels: AlertChannels,
    ) -> "MonitorSession":
        """Build a session from a Settings object."""
        return cls(
            scheduler,
            channels,
            strategy=build_strategy(settings.aggregation_policy),
            sound_policy=settings.sound_policy,
            weight_policy=settings.weight_policy,
            cooldown_seconds=settings.cooldown_seconds,
            popup_auto_hide_seconds=settings.popup_auto_hide_seconds,
            suppression_seconds=settings.suppression_seconds,
            push_notifications=settings.push_notifications,
            sound_decay_seconds=settings.sound_decay_seconds,
            weight_history_size=settings.weight_history_size,
            display=DisplayBoard(
                sound_interval_seconds=settings.sound_display_interval_seconds,
                weight_interval_seconds=settings.weight_display_interval_seconds,
            ),
            history=AlertHistory(max_entries=settings.history_max_entries),
        )

    # ── Observers ────────────────────────────────────────────────────────

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Register *observer*; returns a callable that unregisters it."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _notify(self, event: str, payload: dict[str, Any]) -> None:
        for observer in list(self._observers):
            try:
                observer(event, payload)
            except Exception:
                logger.exception("Session observer failed on '%s'", event)

    # ── Thresholds ───────────────────────────────────────────────────────

    def load_thresholds(self, thresholds: Iterable[Threshold]) -> None:
        """Install the initial threshold snapshot."""
        with self._lock:
            for threshold in thresholds:
                self._thresholds[threshold.sensor_type] = threshold
            logger.info(
                "Loaded thresholds for %s",
                sorted(st.label for st in self._thresholds),
            )

    def update_threshold(self, threshold: Threshold) -> None:
        """Replace the threshold for one sensor type in place."""
        with self._lock:
            previous = self._thresholds.get(threshold.sensor_type)
            self._thresholds[threshold.sensor_type] = threshold
            logger.info(
                "Threshold %s updated: %s → (%s, %s)",
                threshold.sensor_type.label,
                f"({previous.min}, {previous.max})" if previous else "unset",
                threshold.min,
                threshold.max,
            )
            self._notify("threshold", threshold.to_row())

    def threshold(self, sensor_type: SensorType) -> Threshold | None:
        return self._thresholds.get(sensor_type)

    @property
    def thresholds(self) -> dict[SensorType, Threshold]:
        return dict(self._thresholds)

    # ── Readings ─────────────────────────────────────────────────────────

    def ingest(self, reading: SensorReading) -> None:
        """Route one reading through the evaluator or its temporal filter."""
        with self._lock:
            st = reading.sensor_type
            self.readings_processed += 1
            self.display.record(reading, self._scheduler.now())
            threshold = self._thresholds.get(st)

            flt = self._filters.get(st)
            if flt is None:
                verdict = self._evaluator.evaluate(st, reading.value, threshold)
                if verdict is not None:
                    self._report(st, verdict)
                return

            if threshold is None:
                self._evaluator.record_missing(st)
                return
            flt.feed(reading.value, threshold)

    # ── Cancellation ─────────────────────────────────────────────────────

    def cancel_alert(self) -> None:
        """User cancellation: hide, suppress, and optimistically clear."""
        with self._lock:
            self._dispatcher.cancel()
            self._motion.reset()
            self._sound.reset()
            self._safety.reset()
            self._recompute()

    # ── State ────────────────────────────────────────────────────────────

    @property
    def level(self) -> AlertLevel:
        return self._level

    @property
    def snapshot(self) -> SafetySnapshot:
        with self._lock:
            return self._safety.snapshot()

    @property
    def popup_visible(self) -> bool:
        return self._dispatcher.popup_visible

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def evaluator(self) -> SafetyEvaluator:
        return self._evaluator

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def recompute(self) -> AlertLevel:
        """Aggregate the current snapshot; dispatches only if it changed."""
        with self._lock:
            return self._recompute()

    def status(self) -> dict[str, Any]:
        """JSON-ready view for presentation clients."""
        with self._lock:
            return {
                "level": self._level.value,
                "color": self._level.color,
                "policy": self._strategy.name,
                "safety": self._safety.snapshot().to_dict(),
                "sensors": self.display.to_dict(),
                "notification": self._dispatcher.state.to_dict(self._scheduler.now()),
            }

    def close(self) -> None:
        """Cancel every pending timer owned by this session."""
        with self._lock:
            for flt in (self._motion, self._sound, self._weight):
                flt.cancel()
            self._dispatcher.close()

    # ── Internals ────────────────────────────────────────────────────────

    def _report(self, sensor_type: SensorType, safe: bool) -> None:
        """Verdict sink for the evaluator and every filter (incl. timers)."""
        with self._lock:
            if not self._safety.set(sensor_type, safe):
                return
            logger.info("%s is now %s", sensor_type.label, "safe" if safe else "UNSAFE")
            self._recompute()

    def _recompute(self) -> AlertLevel:
        """Must be called while holding self._lock."""
        snapshot = self._safety.snapshot()
        if snapshot == self._last_snapshot:
            return self._level
        self._last_snapshot = snapshot
        self.aggregations += 1

        previous = self._level
        self._level = self._strategy.aggregate(snapshot)
        self._notify("safety", {"level": self._level.value, "safety": snapshot.to_dict()})

        if self._level != previous:
            logger.info("Alert level %s → %s", previous.value, self._level.value)
            self.history.record(HistoryKind.LEVEL_CHANGED, self._level, snapshot.unsafe)
            self._notify("level", {
                "level": self._level.value,
                "previous": previous.value,
                "color": self._level.color,
            })

        self._dispatcher.on_level_change(self._level)
        return self._level

    def _on_dispatch(self, event: str, details: dict[str, Any]) -> None:
        if event == "fired":
            self.history.record(HistoryKind.ALERT_FIRED, self._level, self._last_snapshot.unsafe)
        elif event == "cancelled":
            self.history.record(HistoryKind.ALERT_CANCELLED, self._level, self._last_snapshot.unsafe)
        self._notify(f"alert_{event}", {**details, "popup_visible": self._dispatcher.popup_visible})
