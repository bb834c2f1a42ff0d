"""Best-effort last known price lookup.

Used to seed securities during warm-up. Illiquid instruments may have no data
in a short look-back, so the lookup escalates through a table of look-back
budgets instead of failing.
"""

from __future__ import annotations

from typing import Callable, Iterable

from trading_history.data.catalog import SubscriptionCatalog
from trading_history.log import logger
from trading_history.requests import HistoryRequestBuilder
from trading_history.subscriptions import tick_type_order
from trading_history.types import (
    BaseData,
    HistoryRequest,
    OpenInterest,
    QuoteBar,
    Resolution,
    Slice,
    Symbol,
    Tick,
    TickType,
)

# Look-ups never go finer than this
MINIMUM_RESOLUTION = Resolution.MINUTE

# Bars requested per attempt; later attempts cover roughly 3 trading days
LOOKBACK_BUDGETS: dict[Resolution, tuple[int, ...]] = {
    Resolution.MINUTE: (5, 1440),
    Resolution.HOUR: (5, 24),
    Resolution.DAILY: (5, 3),
}
DEFAULT_LOOKBACK_BUDGET: tuple[int, ...] = (5, 1440)

Dispatch = Callable[[list[HistoryRequest]], Iterable[Slice]]


def tick_type_of(point: BaseData) -> TickType:
    """Tick type an observation belongs to."""
    if isinstance(point, Tick):
        return point.tick_type
    if isinstance(point, QuoteBar):
        return TickType.QUOTE
    if isinstance(point, OpenInterest):
        return TickType.OPEN_INTEREST
    return TickType.TRADE


class LastKnownPriceResolver:
    """Finds the most recent observation per tick type for a symbol.

    :param catalog: Active subscriptions, used for the base resolution.
    :param builder: Request builder for bar-count requests.
    :param dispatch: Executes requests through the look-ahead guard, or None
        when no history provider is configured.
    """

    def __init__(
        self,
        catalog: SubscriptionCatalog,
        builder: HistoryRequestBuilder,
        dispatch: Dispatch | None,
    ) -> None:
        self.catalog = catalog
        self.builder = builder
        self.dispatch = dispatch

    def base_resolution(self, symbol: Symbol) -> Resolution:
        """Coarser of MINUTE and the symbol's finest subscription."""
        subscribed = self.catalog.highest_resolution(symbol)
        if subscribed is None:
            return MINIMUM_RESOLUTION
        return max(MINIMUM_RESOLUTION, subscribed)

    def last_known_prices(self, symbol: Symbol) -> list[BaseData]:
        """Last observation per tick type, ordered by time ascending.

        Never raises for missing data; an illiquid symbol yields a partial or
        empty list.

        :param symbol: Symbol to look up.
        :returns: At most one observation per tick type.
        """
        if symbol.is_canonical or self.dispatch is None:
            return []

        resolution = self.base_resolution(symbol)
        budgets = LOOKBACK_BUDGETS.get(resolution, DEFAULT_LOOKBACK_BUDGET)
        result: dict[TickType, BaseData] = {}

        for attempt, periods in enumerate(budgets):
            if attempt:
                missing = [
                    tick_type.value for tick_type in self._missing(symbol, resolution, result)
                ]
                logger.debug(
                    f"No recent data for {symbol} ({', '.join(missing)}); "
                    f"retrying with {periods} {resolution.name.lower()} bars"
                )
            if self._request_data(self.dispatch, symbol, periods, resolution, result):
                break

        return sorted(result.values(), key=lambda point: point.time)

    def last_known_price(self, symbol: Symbol) -> BaseData | None:
        """Single most primary observation (by the security type's tick type
        order), or None when nothing was found."""
        prices = self.last_known_prices(symbol)
        if not prices:
            return None
        return min(
            prices,
            key=lambda point: tick_type_order(symbol.security_type, tick_type_of(point)),
        )

    def _request_data(
        self,
        dispatch: Dispatch,
        symbol: Symbol,
        periods: int,
        resolution: Resolution,
        result: dict[TickType, BaseData],
    ) -> bool:
        requests = [
            # Only real observations count, never filled-forward bars
            request.model_copy(update={"fill_forward_resolution": None})
            for request in self.builder.bar_count_requests([symbol], periods, resolution)
            if request.tick_type not in result
        ]
        if not requests:
            return True

        for slice_ in dispatch(requests):
            for request in requests:
                data = slice_.get(request.data_type)
                if symbol in data:
                    result[request.tick_type] = data[symbol]

        return all(request.tick_type in result for request in requests)

    def _missing(
        self,
        symbol: Symbol,
        resolution: Resolution,
        result: dict[TickType, BaseData],
    ) -> list[TickType]:
        configs = self.builder.resolver.resolve(symbol, BaseData, resolution)
        return [config.tick_type for config in configs if config.tick_type not in result]


__all__ = [
    "MINIMUM_RESOLUTION",
    "LOOKBACK_BUDGETS",
    "DEFAULT_LOOKBACK_BUDGET",
    "tick_type_of",
    "LastKnownPriceResolver",
]
