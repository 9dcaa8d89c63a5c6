"""Alert notification state, notification content, and history entries."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from sensicrib.domain.enums import AlertLevel, HistoryKind
from sensicrib.foundation.clock import utc_now


class AlertNotificationState:
    """Dispatcher-owned notification bookkeeping.

    Times are Scheduler seconds, not wall-clock datetimes.
    """

    __slots__ = ("last_fired_at", "popup_visible", "suppressed_until", "fire_count")

    def __init__(self) -> None:
        self.last_fired_at: float | None = None
        self.popup_visible: bool = False
        self.suppressed_until: float = 0.0
        self.fire_count: int = 0

    def in_cooldown(self, now: float, cooldown: float) -> bool:
        return self.last_fired_at is not None and (now - self.last_fired_at) < cooldown

    def is_suppressed(self, now: float) -> bool:
        return now < self.suppressed_until

    def to_dict(self, now: float) -> dict:
        return {
            "popup_visible": self.popup_visible,
            "fire_count": self.fire_count,
            "suppressed": self.is_suppressed(now),
            "suppressed_for_seconds": round(max(self.suppressed_until - now, 0.0), 3),
        }


class NotificationContent(BaseModel):
    """Title/body pair for the system-level notification."""

    level: AlertLevel
    title: str
    body: str

    model_config = {"frozen": True}

    @classmethod
    def for_level(cls, level: AlertLevel) -> "NotificationContent":
        if level == AlertLevel.CRITICAL:
            return cls(
                level=level,
                title="Critical SensiCrib Alert!",
                body="Multiple sensors triggered! Check baby immediately.",
            )
        return cls(
            level=level,
            title="SensiCrib Alert",
            body="Activity detected (Motion, Sound, or Weight change).",
        )


POPUP_TEXT = "Baby needs attention! Please check immediately."
POPUP_ACTION = "Cancel Alert"


class HistoryEntry(BaseModel):
    """One reviewable event in the alert history."""

    entry_id: UUID = Field(default_factory=uuid4)
    kind: HistoryKind
    level: AlertLevel
    occurred_at: datetime = Field(default_factory=utc_now)
    unsafe_sensors: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}
