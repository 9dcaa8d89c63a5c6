"""Wall-clock helpers for reading and history timestamps.

Interval arithmetic (cooldowns, timers, display throttling) never uses
these; it runs on the Scheduler's monotonic clock.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware datetime.

    Crib units often report local timestamps with no offset; those are
    taken to be UTC rather than rejected.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
