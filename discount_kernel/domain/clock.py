"""
Clock -- injectable time source.

Discovery evaluates validity windows and time-of-day pricing rules
against ``today()`` / ``now()``, the result cache computes expiry from
``now()``, and allocation numbers embed the year and month.  Nothing in
the engine calls ``datetime.now()`` directly.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC time."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests; moves only when told to.

    ``advance`` takes fractional seconds so cache TTL boundaries can be
    checked just past expiry.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or DEFAULT_TEST_TIME
        if self._now.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = time

    def advance(self, seconds: float = 1) -> None:
        self._now = self._now + timedelta(seconds=seconds)
