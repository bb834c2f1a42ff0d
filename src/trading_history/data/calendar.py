"""Exchange calendar interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from trading_history.types import ExchangeHours, Resolution, Symbol


class ExchangeCalendar(ABC):
    """Turns bar counts into start times using exchange trading sessions."""

    @abstractmethod
    def start_time_for_bar_count(
        self,
        symbol: Symbol,
        periods: int,
        resolution: Resolution,
        exchange_hours: ExchangeHours,
        data_time_zone: str,
        end: datetime,
    ) -> datetime:
        """Compute the start of a window holding ``periods`` tradable bars.

        :param symbol: Symbol the bars are for.
        :param periods: Number of bars wanted.
        :param resolution: Bar resolution (never tick).
        :param exchange_hours: Trading sessions of the symbol's exchange.
        :param data_time_zone: Time zone the raw data is stored in.
        :param end: End of the window, timezone-aware.
        :returns: Timezone-aware start of the window.
        """
        ...


__all__ = ["ExchangeCalendar"]
