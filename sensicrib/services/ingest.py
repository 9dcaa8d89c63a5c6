"""ChangeFeed — glue between the data store's change stream and a session.

Each raw change event is adapted into a SensorReading or a Threshold and
handed to the MonitorSession.  Bad input never escapes: it is dropped,
logged by the registry, and reported back in the acknowledgement.
"""

from __future__ import annotations

import logging
from typing import Any

from sensicrib.adapters.base import ChangeRecord
from sensicrib.adapters.registry import AdaptationError, AdapterRegistry, NoAdapterFoundError
from sensicrib.core.session import MonitorSession
from sensicrib.domain.reading import SensorReading, Threshold

logger = logging.getLogger(__name__)


class ChangeFeed:
    """Adapts raw change events and applies them to one session."""

    def __init__(self, session: MonitorSession, registry: AdapterRegistry) -> None:
        self._session = session
        self._registry = registry
        self.dropped_count: int = 0

    def apply(self, record: ChangeRecord) -> None:
        if isinstance(record, Threshold):
            self._session.update_threshold(record)
        else:
            self._session.ingest(record)

    def handle(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Process one raw event and return an acknowledgement dict."""
        try:
            record = self._registry.adapt(raw)
        except NoAdapterFoundError as exc:
            self.dropped_count += 1
            logger.warning("Dropped change event: %s", exc)
            return {"status": "error", "reason": "no_adapter", "detail": str(exc)}
        except AdaptationError as exc:
            self.dropped_count += 1
            return {
                "status": "error",
                "reason": "adaptation_failed",
                "adapter": exc.adapter_name,
                "detail": exc.reason,
            }

        self.apply(record)
        ack: dict[str, Any] = {"status": "accepted", "level": self._session.level.value}
        if isinstance(record, SensorReading):
            ack["sensor"] = record.sensor_type.label
            ack["safe"] = self._session.snapshot.is_safe(record.sensor_type)
        else:
            ack["threshold"] = record.to_row()
        return ack
