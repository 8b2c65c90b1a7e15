"""Time sources for the scheduler.

Every entry point receives a clock instead of reading the current time
itself, so tests can pin the scheduler to an exact instant.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Protocol for time sources."""

    def now(self) -> datetime:
        """Return the current instant as an aware UTC datetime."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None):
        self._now = _as_utc(now) if now else datetime(1970, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set_now(self, value: datetime) -> None:
        self._now = _as_utc(value)

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
