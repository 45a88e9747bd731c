"""
Clock -- injectable ledger time.

Engine services never call ``datetime.now()`` directly; every
``created_at``, ``completed_at``, ``paid_at`` and verification timestamp
comes from the Clock handed to the service.  SystemClock is the one
sanctioned I/O boundary for time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# Default starting instant for DeterministicClock.
LEDGER_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of aware UTC timestamps for ledger records."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock that only moves when told to.

    ``now()`` is stable between calls, so a record and the event describing
    it carry the same timestamp.
    """

    def __init__(self, start: datetime = LEDGER_EPOCH):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs an aware start time")
        self._current = start.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> datetime:
        """Move forward ``seconds`` and return the new time."""
        self._current += timedelta(seconds=seconds)
        return self._current
