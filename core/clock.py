"""
Core Module - Clock.

Cache expiry, search index age and TVL change windows all read
time through a clock object so tests can move time past a TTL
instead of sleeping.

All values are UTC. ``timestamp`` is unix seconds, ``timestamp_ms``
is what persisted cache entries store.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


class ClockProtocol(ABC):
    """Source of the current time."""

    @abstractmethod
    def timestamp(self) -> float:
        """Current unix time in seconds."""
        pass

    def timestamp_ms(self) -> int:
        return int(self.timestamp() * 1000)

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp(), tz=timezone.utc)


class SystemClock(ClockProtocol):
    """Wall clock."""

    def timestamp(self) -> float:
        return time.time()


class MockClock(ClockProtocol):
    """
    Frozen clock for tests; only ``advance`` moves it.

    Usage:
        clock = MockClock(datetime(2024, 6, 1, tzinfo=timezone.utc))
        cache = TTLCache(MemoryCacheBackend(), clock=clock)
        clock.advance(seconds=61)
    """

    def __init__(self, start: Optional[Union[datetime, float]] = None):
        if start is None:
            self._ts = time.time()
        elif isinstance(start, datetime):
            if start.tzinfo is None:
                start = start.replace(tzinfo=timezone.utc)
            self._ts = start.timestamp()
        else:
            self._ts = float(start)

    def timestamp(self) -> float:
        return self._ts

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """Move forward; kwargs go to timedelta (minutes=, hours=, days=)."""
        self._ts += timedelta(seconds=seconds, **kwargs).total_seconds()


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
]
