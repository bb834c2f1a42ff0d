"""Simulation clocks providing the current time for history requests."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from trading_history.exceptions import ConfigError


class SimulationClock(ABC):
    """Abstract source of the simulation's current time.

    All history requests end at or before :attr:`utc_now`.
    """

    @property
    @abstractmethod
    def utc_now(self) -> datetime:
        """Current simulation time in UTC."""
        ...

    @property
    @abstractmethod
    def time_zone(self) -> ZoneInfo:
        """Time zone strategy-facing times are expressed in."""
        ...

    @property
    def time(self) -> datetime:
        """Current simulation time in the algorithm time zone."""
        return self.utc_now.astimezone(self.time_zone)


class ManualClock(SimulationClock):
    """Clock advanced explicitly by the backtest driver.

    :param start: Initial time, must be timezone-aware.
    :param time_zone: IANA name of the algorithm time zone.
    """

    def __init__(self, start: datetime, time_zone: str = "UTC") -> None:
        self._time_zone = ZoneInfo(time_zone)
        self._now = self._to_utc(start)

    @property
    def utc_now(self) -> datetime:
        return self._now

    @property
    def time_zone(self) -> ZoneInfo:
        return self._time_zone

    def set_time(self, value: datetime) -> None:
        """Move the clock to ``value``.

        :raises ConfigError: If ``value`` is naive or earlier than now.
        """
        new_time = self._to_utc(value)
        if new_time < self._now:
            raise ConfigError(
                f"Clock cannot move backwards from {self._now.isoformat()} "
                f"to {new_time.isoformat()}"
            )
        self._now = new_time

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by ``delta``."""
        self.set_time(self._now + delta)

    @staticmethod
    def _to_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ConfigError("Clock times must be timezone-aware")
        return value.astimezone(timezone.utc)


__all__ = ["SimulationClock", "ManualClock"]
