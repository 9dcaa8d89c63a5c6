"""Abstract base for change-event adapters.

Change adapters normalise raw rows pushed by the data store into the
canonical SensorReading and Threshold models.

Architectural rules:
    1. Adapters must NOT mutate the incoming payload dict.
    2. adapt() must return a fully valid model or raise ValueError.
    3. No adapter may call the MonitorSession directly.
    4. No safety logic lives inside an adapter — only field mapping.

A payload may be a bare row or a change envelope:
    {"table": "sensor_data", "eventType": "INSERT", "new": {...row...}}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Union

from sensicrib.domain.enums import SensorType
from sensicrib.domain.reading import SensorReading, Threshold

ChangeRecord = Union[SensorReading, Threshold]


class MalformedReadingError(ValueError):
    """A row whose values cannot be parsed into a canonical model."""


def unwrap(raw: dict[str, Any]) -> dict[str, Any]:
    """Return the row inside a change envelope, or *raw* itself."""
    row = raw.get("new")
    return row if isinstance(row, dict) else raw


def parse_sensor_type(row: dict[str, Any]) -> SensorType:
    sensor_id = row.get("sensor_type_id")
    if sensor_id is None or isinstance(sensor_id, bool):
        raise MalformedReadingError("row missing 'sensor_type_id'")
    try:
        return SensorType(int(sensor_id))
    except (TypeError, ValueError):
        raise MalformedReadingError(f"unknown sensor type id: {sensor_id!r}") from None


def parse_number(row: dict[str, Any], key: str) -> float:
    raw_value = row.get(key)
    if raw_value is None or isinstance(raw_value, bool):
        raise MalformedReadingError(f"row missing numeric '{key}'")
    try:
        return float(str(raw_value).strip())
    except ValueError:
        raise MalformedReadingError(f"'{key}' is not numeric: {raw_value!r}") from None


class ChangeAdapter(ABC):
    """Base class for converting store change rows into canonical records."""

    def __init__(self, subject_id: str | None = None) -> None:
        self._subject_id = subject_id

    @abstractmethod
    def can_handle(self, raw: dict[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *raw*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, raw: dict[str, Any]) -> ChangeRecord:
        """Translate a raw payload dict into a validated record.

        Raises:
            ValueError: If the payload cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Name of the store table this adapter handles."""
        ...

    def check_subject(self, row: dict[str, Any]) -> None:
        """Reject rows that belong to a different monitored subject."""
        if self._subject_id is None or "baby_id" not in row:
            return
        if str(row["baby_id"]) != self._subject_id:
            raise ValueError(f"row belongs to subject {row['baby_id']!r}, not {self._subject_id!r}")
