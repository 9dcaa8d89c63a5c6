"""Concrete AlertChannels.

The real sound, haptic and push primitives live on the parent's phone.
The service side either just logs each effect or forwards it to connected
UI clients, which play the sound asset, pulse the haptic motor and show
the modal themselves.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from sensicrib.core.dispatcher import AlertChannels
from sensicrib.domain.alert import POPUP_ACTION, POPUP_TEXT, NotificationContent
from sensicrib.domain.enums import AlertLevel
from sensicrib.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

ALERT_SOUND_ASSET = "alert.mp3"


class LoggingChannels(AlertChannels):
    """Writes each notification effect to the log.  Used headless."""

    def haptic_pulse(self) -> None:
        logger.info("[haptic] error pulse")

    def play_sound(self) -> None:
        logger.info("[sound] %s", ALERT_SOUND_ASSET)

    def show_popup(self, level: AlertLevel) -> None:
        logger.info("[popup] %s: %s", level.value, POPUP_TEXT)

    def hide_popup(self) -> None:
        logger.info("[popup] hidden")

    def push_notification(self, content: NotificationContent) -> None:
        logger.info("[push] %s: %s", content.title, content.body)


class BroadcastChannels(AlertChannels):
    """Forwards every effect to UI clients over the alert WebSocket.

    Sends are scheduled as background tasks on the running loop; nothing
    here awaits.  Raises RuntimeError when called outside a running loop,
    which the dispatcher logs as a channel failure.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager
        self._tasks: set[asyncio.Task] = set()

    def _send(self, payload: dict[str, Any]) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._manager.broadcast_json({"type": "effect", **payload}))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def haptic_pulse(self) -> None:
        self._send({"effect": "haptic", "pattern": "error"})

    def play_sound(self) -> None:
        self._send({"effect": "sound", "asset": ALERT_SOUND_ASSET})

    def show_popup(self, level: AlertLevel) -> None:
        self._send({
            "effect": "popup",
            "visible": True,
            "level": level.value,
            "color": level.color,
            "text": POPUP_TEXT,
            "action": POPUP_ACTION,
        })

    def hide_popup(self) -> None:
        self._send({"effect": "popup", "visible": False})

    def push_notification(self, content: NotificationContent) -> None:
        self._send({"effect": "push", **content.model_dump(mode="json")})
