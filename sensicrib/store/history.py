"""In-memory alert history with day-grouped review.

Bounded: the oldest entries fall off once ``max_entries`` is reached.
Nothing is persisted; a restart starts a fresh history.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import date, tzinfo

from sensicrib.domain.alert import HistoryEntry
from sensicrib.domain.enums import AlertLevel, HistoryKind, SensorType

logger = logging.getLogger(__name__)


class AlertHistory:
    """Append-only, size-bounded list of HistoryEntry records."""

    def __init__(self, max_entries: int = 500) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: deque[HistoryEntry] = deque(maxlen=max_entries)

    def record(
        self,
        kind: HistoryKind,
        level: AlertLevel,
        unsafe: list[SensorType] | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            kind=kind,
            level=level,
            unsafe_sensors=[st.label for st in (unsafe or [])],
        )
        self._entries.append(entry)
        logger.debug("History: %s at %s", kind.value, level.value)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[HistoryEntry]:
        """Oldest first."""
        return list(self._entries)

    def by_day(self, tz: tzinfo | None = None) -> list[dict]:
        """Group entries by calendar day, newest day and newest entry first.

        Args:
            tz: Timezone used to decide which day an entry belongs to.
                Defaults to the entry's own (UTC) timezone.
        """
        groups: dict[date, list[HistoryEntry]] = {}
        for entry in reversed(self._entries):
            ts = entry.occurred_at.astimezone(tz) if tz else entry.occurred_at
            groups.setdefault(ts.date(), []).append(entry)

        return [
            {
                "date": day.isoformat(),
                "count": len(items),
                "alerts_fired": sum(1 for e in items if e.kind == HistoryKind.ALERT_FIRED),
                "entries": [e.model_dump(mode="json") for e in items],
            }
            for day, items in sorted(groups.items(), key=lambda kv: kv[0], reverse=True)
        ]
