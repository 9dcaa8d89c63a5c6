"""ThresholdAdapter — translates ``thresholds`` INSERT/UPDATE rows.

Expected raw format (bare or inside a change envelope):
{
    "sensor_type_id": 2,
    "min_value": 40.0,
    "max_value": 60.0,
    "baby_id": "b-42"
}
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from sensicrib.adapters.base import ChangeAdapter, parse_number, parse_sensor_type, unwrap
from sensicrib.domain.reading import Threshold


class ThresholdAdapter(ChangeAdapter):
    """Maps threshold rows to canonical Thresholds."""

    @property
    def source_name(self) -> str:
        return "thresholds"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        if raw.get("table") is not None:
            return raw.get("table") == "thresholds"
        row = unwrap(raw)
        return "min_value" in row or "max_value" in row

    def adapt(self, raw: dict[str, Any]) -> Threshold:
        row = unwrap(raw)
        self.check_subject(row)

        try:
            return Threshold(
                sensor_type=parse_sensor_type(row),
                min=parse_number(row, "min_value"),
                max=parse_number(row, "max_value"),
            )
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc
