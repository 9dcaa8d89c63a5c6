"""NotificationDispatcher — rate-limited, cancellable alert delivery.

Fire rules (all must hold):
    1. the level is MODERATE or CRITICAL,
    2. no user suppression window is active,
    3. at least ``cooldown_seconds`` have passed since the last fire.

A fire drives four independent channels: haptic pulse, sound cue, in-app
popup and (optionally) a system notification.  Each channel is
best-effort; a failure is logged and the remaining channels still run.

The popup hides itself after ``auto_hide_seconds``.  At most one auto-hide
timer is pending at any time.

Returning to SAFE clears the cooldown so the next real escalation fires
at once.  It does NOT clear a user suppression window.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from sensicrib.domain.alert import AlertNotificationState, NotificationContent
from sensicrib.domain.enums import AlertLevel
from sensicrib.foundation.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DispatchListener = Callable[[str, dict[str, Any]], None]


class AlertChannels(ABC):
    """Platform notification primitives the dispatcher drives.

    Implementations must not block; anything slow is handed off.
    """

    @abstractmethod
    def haptic_pulse(self) -> None:
        ...

    @abstractmethod
    def play_sound(self) -> None:
        ...

    @abstractmethod
    def show_popup(self, level: AlertLevel) -> None:
        ...

    @abstractmethod
    def hide_popup(self) -> None:
        ...

    @abstractmethod
    def push_notification(self, content: NotificationContent) -> None:
        ...


class NotificationDispatcher:
    """Turns level changes into at most one alert per cooldown window.

    Args:
        scheduler: Timer backend; also the clock for cooldown arithmetic.
        channels: Notification primitives to drive on fire.
        cooldown_seconds: Minimum gap between two fires.
        auto_hide_seconds: How long a popup stays up without interaction.
        suppression_seconds: Quiet period after the user cancels an alert.
        push_notifications: Whether a fire also schedules a system notification.
        listener: Optional callback receiving ("fired" | "popup_hidden" |
            "cancelled" | "cleared", details) events.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        channels: AlertChannels,
        cooldown_seconds: float = 5.0,
        auto_hide_seconds: float = 5.0,
        suppression_seconds: float = 60.0,
        push_notifications: bool = True,
        listener: DispatchListener | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._channels = channels
        self._cooldown = cooldown_seconds
        self._auto_hide = auto_hide_seconds
        self._suppression = suppression_seconds
        self._push = push_notifications
        self._listener = listener
        self._auto_hide_timer: TimerHandle | None = None
        self.state = AlertNotificationState()
        self.suppressed_count: int = 0
        self.channel_failures: int = 0

    # ── Public API ───────────────────────────────────────────────────────

    def on_level_change(self, level: AlertLevel) -> bool:
        """React to a freshly computed level.  Returns True if an alert fired."""
        if level == AlertLevel.SAFE:
            self._clear()
            return False
        if not level.notifies:
            return False

        now = self._scheduler.now()
        if self.state.is_suppressed(now):
            self.suppressed_count += 1
            logger.info(
                "Alert (%s) blocked: user suppression for another %.1fs",
                level.value,
                self.state.suppressed_until - now,
            )
            return False
        if self.state.in_cooldown(now, self._cooldown):
            self.suppressed_count += 1
            logger.info(
                "Alert (%s) blocked: %.1fs since last alert, cooldown %.1fs",
                level.value,
                now - (self.state.last_fired_at or now),
                self._cooldown,
            )
            return False

        self._fire(level, now)
        return True

    def cancel(self) -> None:
        """User pressed "Cancel Alert": hide now and suppress for a while."""
        now = self._scheduler.now()
        self._hide_popup()
        self.state.suppressed_until = now + self._suppression
        logger.info("Alert cancelled by user; suppressed for %.0fs", self._suppression)
        self._emit("cancelled", {"suppressed_for_seconds": self._suppression})

    def close(self) -> None:
        """Drop the pending auto-hide timer, if any."""
        self._scheduler.cancel(self._auto_hide_timer)
        self._auto_hide_timer = None

    @property
    def popup_visible(self) -> bool:
        return self.state.popup_visible

    @property
    def auto_hide_pending(self) -> bool:
        return self._auto_hide_timer is not None and self._auto_hide_timer.pending

    # ── Internals ────────────────────────────────────────────────────────

    def _fire(self, level: AlertLevel, now: float) -> None:
        self.state.last_fired_at = now
        self.state.fire_count += 1
        logger.warning("ALERT fired at level %s (#%d)", level.value, self.state.fire_count)

        self._safely("haptic", self._channels.haptic_pulse)
        self._safely("sound", self._channels.play_sound)
        self._safely("popup", self._channels.show_popup, level)
        self.state.popup_visible = True

        self.close()
        self._auto_hide_timer = self._scheduler.schedule_once(self._auto_hide, self._on_auto_hide)

        if self._push:
            self._safely("push", self._channels.push_notification, NotificationContent.for_level(level))

        self._emit("fired", {"level": level.value, "fire_count": self.state.fire_count})

    def _on_auto_hide(self) -> None:
        self._auto_hide_timer = None
        logger.debug("Auto-closing alert popup")
        self._hide_popup()

    def _hide_popup(self) -> None:
        self.close()
        if not self.state.popup_visible:
            return
        self.state.popup_visible = False
        self._safely("popup", self._channels.hide_popup)
        self._emit("popup_hidden", {})

    def _clear(self) -> None:
        had_fired = self.state.last_fired_at is not None
        self.state.last_fired_at = None
        self._hide_popup()
        if had_fired:
            self._emit("cleared", {})

    def _safely(self, channel: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as exc:
            self.channel_failures += 1
            logger.warning("Notification channel '%s' failed: %s", channel, exc)

    def _emit(self, event: str, details: dict[str, Any]) -> None:
        if self._listener is not None:
            self._listener(event, details)
