"""
Clock -- injectable time source for execution timestamps.

JobRunner never calls ``datetime.now()`` itself: job and step start/end
times come from the Clock it was constructed with.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of timezone-aware timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock that only moves when told to.

    With ``step`` set, every ``now()`` call returns the current time and then
    moves the clock forward by ``step``, so successive timestamps taken by a
    run are strictly increasing.
    """

    def __init__(
        self,
        fixed_time: datetime | None = None,
        step: timedelta = timedelta(0),
    ):
        self._current = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self._step = step

    def now(self) -> datetime:
        current = self._current
        self._current = current + self._step
        return current

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)
