"""
Clock capability.

Business logic asks an injected clock for "now" so tests can move time across
billing period boundaries deterministically.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional


class Clock(ABC):
    """Source of the current time. Always returns timezone-aware UTC."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """Get the process-wide clock instance."""
    global _clock

    if _clock is None:
        _clock = SystemClock()

    return _clock
