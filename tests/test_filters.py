"""Tests for the motion, sound and weight temporal filters.

Time is driven by a VirtualScheduler; verdicts are captured from the
report callback exactly as the session would receive them.
"""

import pytest

from sensicrib.core.filters import (
    ConfirmedSoundFilter,
    MotionFilter,
    SoundFilter,
    TemporalFilter,
    WeightFilter,
)
from sensicrib.domain.enums import SensorType
from sensicrib.foundation.scheduler import VirtualScheduler

from tests.test_models import _threshold


class _Reports:
    """Collects (sensor, safe) verdicts."""

    def __init__(self) -> None:
        self.calls: list[tuple[SensorType, bool]] = []

    def __call__(self, sensor_type: SensorType, safe: bool) -> None:
        self.calls.append((sensor_type, safe))

    def verdicts(self) -> list[bool]:
        return [safe for _, safe in self.calls]


@pytest.fixture
def sched() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def reports() -> _Reports:
    return _Reports()


# ── Motion ───────────────────────────────────────────────────────────────────

_MOTION = _threshold(SensorType.MOTION, 1.5, 5.0)


class TestMotionFilter:
    def test_short_burst_never_unsafe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        motion = MotionFilter(sched, reports)
        motion.feed(2.0, _MOTION)
        sched.advance(3.0)
        motion.feed(2.4, _MOTION)
        sched.advance(1.9)
        motion.feed(0.4, _MOTION)
        sched.advance(30.0)
        assert False not in reports.verdicts()
        assert not motion.timer_pending

    def test_sustained_breach_becomes_unsafe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        motion = MotionFilter(sched, reports)
        motion.feed(2.0, _MOTION)
        sched.advance(2.0)
        motion.feed(3.0, _MOTION)
        sched.advance(3.0)
        assert reports.calls == [(SensorType.MOTION, False)]

    def test_further_samples_do_not_restart_timer(self, sched: VirtualScheduler, reports: _Reports) -> None:
        motion = MotionFilter(sched, reports)
        motion.feed(2.0, _MOTION)
        sched.advance(1.0)
        motion.feed(2.0, _MOTION)
        assert motion.breach_started_at == 0.0
        sched.advance(4.0)
        assert reports.verdicts() == [False]

    def test_recovery_is_immediate(self, sched: VirtualScheduler, reports: _Reports) -> None:
        motion = MotionFilter(sched, reports)
        motion.feed(2.0, _MOTION)
        sched.advance(5.0)
        motion.feed(1.5, _MOTION)  # at the trigger counts as calm
        assert reports.verdicts() == [False, True]
        assert motion.breach_started_at is None

    def test_new_breach_after_recovery_needs_full_duration(
        self, sched: VirtualScheduler, reports: _Reports
    ) -> None:
        motion = MotionFilter(sched, reports)
        motion.feed(2.0, _MOTION)
        sched.advance(4.0)
        motion.feed(0.0, _MOTION)
        motion.feed(2.0, _MOTION)
        sched.advance(4.0)
        assert False not in reports.verdicts()
        sched.advance(1.0)
        assert reports.verdicts()[-1] is False

    def test_reset_forgets_breach(self, sched: VirtualScheduler, reports: _Reports) -> None:
        motion = MotionFilter(sched, reports)
        motion.feed(2.0, _MOTION)
        motion.reset()
        sched.advance(10.0)
        assert reports.calls == []


# ── Sound ────────────────────────────────────────────────────────────────────

_SOUND = _threshold(SensorType.SOUND, 0.7, 3.0)


class TestSoundFilter:
    def test_detection_is_immediately_unsafe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        SoundFilter(sched, reports).feed(1.0, _SOUND)
        assert reports.calls == [(SensorType.SOUND, False)]

    def test_zero_is_not_a_detection(self, sched: VirtualScheduler, reports: _Reports) -> None:
        SoundFilter(sched, reports).feed(0.0, _SOUND)
        assert reports.calls == []

    def test_single_detection_decays_exactly_once(self, sched: VirtualScheduler, reports: _Reports) -> None:
        sound = SoundFilter(sched, reports, decay_seconds=5.0)
        sound.feed(1.0, _SOUND)
        sched.advance(4.5)
        assert reports.verdicts() == [False]
        sched.advance(0.5)
        assert reports.verdicts() == [False, True]
        sched.advance(60.0)
        assert reports.verdicts() == [False, True]

    def test_new_detection_refreshes_window(self, sched: VirtualScheduler, reports: _Reports) -> None:
        sound = SoundFilter(sched, reports, decay_seconds=5.0)
        sound.feed(1.0, _SOUND)
        sched.advance(3.0)
        sound.feed(1.0, _SOUND)
        sched.advance(3.0)  # t=6, first window would have ended at 5
        assert True not in reports.verdicts()
        sched.advance(2.0)  # t=8, refreshed window ends
        assert reports.verdicts()[-1] is True
        assert reports.verdicts().count(True) == 1


class TestConfirmedSoundFilter:
    def test_needs_consecutive_confident_detections(
        self, sched: VirtualScheduler, reports: _Reports
    ) -> None:
        sound = ConfirmedSoundFilter(sched, reports)
        sound.feed(0.8, _SOUND)
        sound.feed(0.9, _SOUND)
        assert reports.calls == []
        sound.feed(0.75, _SOUND)
        assert reports.calls == [(SensorType.SOUND, False)]

    def test_low_confidence_resets_run(self, sched: VirtualScheduler, reports: _Reports) -> None:
        sound = ConfirmedSoundFilter(sched, reports)
        sound.feed(0.8, _SOUND)
        sound.feed(0.8, _SOUND)
        sound.feed(0.2, _SOUND)
        assert sound.consecutive == 0
        sound.feed(0.8, _SOUND)
        sound.feed(0.8, _SOUND)
        assert reports.calls == []

    def test_confirmed_alert_still_decays(self, sched: VirtualScheduler, reports: _Reports) -> None:
        sound = ConfirmedSoundFilter(sched, reports, decay_seconds=5.0)
        for _ in range(3):
            sound.feed(0.9, _SOUND)
        sched.advance(5.0)
        assert reports.verdicts() == [False, True]

    def test_reset_clears_partial_run(self, sched: VirtualScheduler, reports: _Reports) -> None:
        sound = ConfirmedSoundFilter(sched, reports)
        sound.feed(0.9, _SOUND)
        sound.feed(0.9, _SOUND)
        sound.reset()
        assert sound.consecutive == 0
        sound.feed(0.9, _SOUND)
        assert reports.calls == []

    def test_reset_drops_decay_without_reporting(
        self, sched: VirtualScheduler, reports: _Reports
    ) -> None:
        sound = ConfirmedSoundFilter(sched, reports)
        for _ in range(3):
            sound.feed(0.9, _SOUND)
        sound.reset()
        sched.advance(10.0)
        assert reports.verdicts() == [False]
        assert not sound.timer_pending


class TestTemporalFilterBase:
    def test_base_cannot_be_instantiated(self, sched: VirtualScheduler, reports: _Reports) -> None:
        with pytest.raises(TypeError):
            TemporalFilter(sched, reports)

    def test_subclass_without_feed_rejected(self, sched: VirtualScheduler, reports: _Reports) -> None:
        class Incomplete(TemporalFilter):
            sensor_type = SensorType.MOTION

        with pytest.raises(TypeError):
            Incomplete(sched, reports)


# ── Weight ───────────────────────────────────────────────────────────────────


class TestWeightFilter:
    def test_sudden_drop_is_unsafe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        weight = WeightFilter(sched, reports)
        t = _threshold(SensorType.WEIGHT, 1.0, 10.0)
        for value in (5.0, 5.0, 3.8):
            weight.feed(value, t)
        assert reports.verdicts() == [True, True, False]

    def test_small_step_is_safe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        weight = WeightFilter(sched, reports)
        t = _threshold(SensorType.WEIGHT, 1.0, 0.5)
        weight.feed(5.0, t)
        weight.feed(5.3, t)
        assert reports.verdicts() == [True, True]

    def test_step_boundary_is_strict(self, sched: VirtualScheduler, reports: _Reports) -> None:
        weight = WeightFilter(sched, reports)
        t = _threshold(SensorType.WEIGHT, 1.0, 0.5)
        for value in (5.0, 5.5, 6.25):
            weight.feed(value, t)
        assert reports.verdicts()[1:] == [True, False]

    def test_large_gain_is_unsafe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        weight = WeightFilter(sched, reports)
        t = _threshold(SensorType.WEIGHT, 1.0, 0.5)
        weight.feed(4.0, t)
        weight.feed(6.0, t)
        assert reports.verdicts() == [True, False]

    def test_first_sample_is_safe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        WeightFilter(sched, reports).feed(5.0, _threshold(SensorType.WEIGHT, 1.0, 0.5))
        assert reports.verdicts() == [True]

    def test_history_slides_and_trims(self, sched: VirtualScheduler, reports: _Reports) -> None:
        weight = WeightFilter(sched, reports, history_size=5)
        t = _threshold(SensorType.WEIGHT, 100.0, 100.0)
        for value in [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]:
            weight.feed(value, t)
        assert weight.history == [3.0, 4.0, 5.0, 6.0, 7.0]

    def test_history_updates_even_when_unsafe(self, sched: VirtualScheduler, reports: _Reports) -> None:
        weight = WeightFilter(sched, reports)
        t = _threshold(SensorType.WEIGHT, 1.0, 0.5)
        weight.feed(5.0, t)
        weight.feed(3.0, t)
        weight.feed(3.1, t)
        assert weight.history == [5.0, 3.0, 3.1]
        assert reports.verdicts() == [True, False, True]
