"""Adapter Registry — routes each change event to the adapter for its table.

Change envelopes name their table, so routing is a direct lookup on
``raw["table"]``.  Bare rows carry no table name; for those the registry
asks each adapter in registration order and takes the first whose
can_handle() returns True.

Nothing is guessed beyond that.  An event no adapter claims is refused
with NoAdapterFoundError; an event the chosen adapter cannot parse is
refused with AdaptationError.  Both leave the session untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from sensicrib.adapters.base import ChangeAdapter, ChangeRecord
from sensicrib.adapters.sensor_data import SensorDataAdapter
from sensicrib.adapters.thresholds import ThresholdAdapter

logger = logging.getLogger(__name__)


class AdapterStats:
    """Accepted/rejected counters for one table adapter."""

    __slots__ = ("table", "accepted_count", "rejected_count", "last_rejection")

    def __init__(self, table: str) -> None:
        self.table = table
        self.accepted_count: int = 0
        self.rejected_count: int = 0
        self.last_rejection: str | None = None

    def to_dict(self) -> dict:
        return {
            "adapter_name": self.table,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
            "last_rejection": self.last_rejection,
        }


class NoAdapterFoundError(Exception):
    """No registered adapter claims the change event."""


class AdaptationError(Exception):
    """The adapter for the event's table could not parse it."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"{adapter_name} row rejected: {reason}")


class AdapterRegistry:
    """Table-name keyed adapter lookup with per-table stats.

    Usage:
        registry = AdapterRegistry()
        registry.register(SensorDataAdapter())
        registry.register(ThresholdAdapter())

        record = registry.adapt(change_event)
    """

    def __init__(self) -> None:
        self._adapters: dict[str, ChangeAdapter] = {}
        self._stats: dict[str, AdapterStats] = {}

    def register(self, adapter: ChangeAdapter) -> None:
        """Install *adapter* for its table.  Re-registering a table replaces it."""
        table = adapter.source_name
        if table in self._adapters:
            logger.warning("Replacing adapter for table '%s'", table)
        self._adapters[table] = adapter
        self._stats[table] = AdapterStats(table)
        logger.info("Registered adapter for table '%s'", table)

    def _select(self, raw: dict[str, Any]) -> ChangeAdapter:
        table = raw.get("table")
        if table is not None:
            adapter = self._adapters.get(str(table))
            if adapter is None:
                raise NoAdapterFoundError(f"No adapter registered for table {table!r}")
            return adapter

        for adapter in self._adapters.values():
            if adapter.can_handle(raw):
                return adapter
        raise NoAdapterFoundError(
            f"No adapter recognises a bare row with keys: {sorted(raw.keys())}"
        )

    def adapt(self, raw: dict[str, Any]) -> ChangeRecord:
        """Turn one change event into a SensorReading or Threshold.

        Raises:
            NoAdapterFoundError: the event names an unknown table, or no
                adapter recognises the bare row.
            AdaptationError: the selected adapter rejected the row.
        """
        adapter = self._select(raw)
        stats = self._stats[adapter.source_name]
        try:
            record = adapter.adapt(raw)
        except ValueError as exc:
            stats.rejected_count += 1
            stats.last_rejection = str(exc)
            logger.warning("Adapter '%s' dropped payload: %s", adapter.source_name, exc)
            raise AdaptationError(adapter.source_name, str(exc)) from exc

        stats.accepted_count += 1
        logger.debug("%s row → %r", adapter.source_name, record)
        return record

    @property
    def adapter_names(self) -> list[str]:
        """Registered table names in registration order."""
        return list(self._adapters)

    @property
    def stats(self) -> list[dict]:
        return [s.to_dict() for s in self._stats.values()]

    @property
    def total_accepted(self) -> int:
        return sum(s.accepted_count for s in self._stats.values())

    @property
    def total_rejected(self) -> int:
        return sum(s.rejected_count for s in self._stats.values())


def default_registry(subject_id: str | None = None) -> AdapterRegistry:
    """Registry for the ``sensor_data`` and ``thresholds`` tables."""
    registry = AdapterRegistry()
    registry.register(SensorDataAdapter(subject_id))
    registry.register(ThresholdAdapter(subject_id))
    return registry
