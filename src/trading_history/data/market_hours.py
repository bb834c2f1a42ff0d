"""Market-hours database interface and in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod

from trading_history.exceptions import DataSourceError
from trading_history.types import MarketHoursEntry, SecurityType, Symbol


class MarketHoursDatabase(ABC):
    """Source of data time zones and exchange hours per symbol."""

    @abstractmethod
    def get_entry(self, symbol: Symbol) -> MarketHoursEntry:
        """Get the market-hours entry for a symbol.

        :param symbol: Symbol to look up.
        :returns: Data time zone and exchange hours.
        :raises DataSourceError: If no entry is known for the symbol.
        """
        ...


class InMemoryMarketHoursDatabase(MarketHoursDatabase):
    """Market-hours database backed by a dictionary.

    Lookups try the symbol's ``(market, security_type)`` first, then the
    market-agnostic entry for the security type, then the default entry.

    :param default: Entry returned when nothing more specific matches.
    """

    def __init__(self, default: MarketHoursEntry | None = None) -> None:
        self.default = default
        self._entries: dict[tuple[str | None, SecurityType], MarketHoursEntry] = {}

    def add(
        self,
        entry: MarketHoursEntry,
        security_type: SecurityType,
        market: str | None = None,
    ) -> None:
        """Register an entry.

        :param entry: Entry to register.
        :param security_type: Security type the entry applies to.
        :param market: Market the entry applies to, or None for any market.
        """
        self._entries[(market, security_type)] = entry

    def get_entry(self, symbol: Symbol) -> MarketHoursEntry:
        for key in ((symbol.market, symbol.security_type), (None, symbol.security_type)):
            entry = self._entries.get(key)
            if entry is not None:
                return entry
        if self.default is None:
            raise DataSourceError(
                f"No market hours entry for {symbol} "
                f"({symbol.security_type.value} in market '{symbol.market}')"
            )
        return self.default


__all__ = ["MarketHoursDatabase", "InMemoryMarketHoursDatabase"]
