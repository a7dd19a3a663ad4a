"""
Clocks

Everything time-dependent in the core asks a Clock for "now" instead of
calling datetime.now() directly. Production code uses SystemClock; tests
inject a FixedClock and move it forward explicitly.

All instants are timezone-aware UTC.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def today(self):
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    A clock that only moves when told to.

    Usage:
        clock = FixedClock(datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc))
        clock.advance(minutes=4, seconds=59)
    """

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta given as keyword arguments."""
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant
