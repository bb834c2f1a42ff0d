"""Strategy-facing history API.

:class:`HistoryApi` wires the subscription resolver, request builder,
look-ahead guard, warm-up scheduler and last-known-price resolver around the
external collaborators (clock, subscription catalog, market-hours database,
exchange calendar and history provider).

Example usage::

    api = HistoryApi(clock, catalog, market_hours, calendar, provider)
    api.set_warm_up(200, Resolution.DAILY)
    for slice_ in api.history(api.get_warm_up_requests()):
        strategy.on_data(slice_)
    api.finish_warm_up()
    api.lock()
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Iterator, MutableMapping

from trading_history.clock import ManualClock, SimulationClock
from trading_history.config import HistoryConfig
from trading_history.data.calendar import ExchangeCalendar
from trading_history.data.catalog import SubscriptionCatalog
from trading_history.data.market_hours import MarketHoursDatabase
from trading_history.data.provider import HistoryProvider
from trading_history.exceptions import DataSourceError, InvalidRequestError
from trading_history.guard import clip_future_requests
from trading_history.log import configure_logging, logger
from trading_history.prices import LastKnownPriceResolver
from trading_history.requests import HistoryRequestBuilder, HistoryRequestFactory
from trading_history.subscriptions import SYMBOL_EMPTY_MESSAGE, SubscriptionResolver
from trading_history.types import (
    BarCountWarmUp,
    BaseData,
    HistoryRequest,
    Resolution,
    Security,
    SecurityType,
    Slice,
    Symbol,
    TradeBar,
    UniverseSettings,
    WarmUp,
)
from trading_history.warmup import WarmUpScheduler

QUOTE_ONLY_SECURITY_TYPES = frozenset([SecurityType.FOREX, SecurityType.CFD])


class HistoryApi:
    """History operations exposed to a strategy.

    :param clock: Simulation clock.
    :param catalog: Active subscriptions.
    :param market_hours: Market-hours database.
    :param calendar: Exchange calendar, required for bar-count history.
    :param provider: History provider, required to execute requests.
    :param securities: Securities held by the strategy, keyed by symbol.
    :param universe_settings: Defaults for unsubscribed symbols.
    :param universe_symbols: Universe symbols, never sent to the provider.
    """

    def __init__(
        self,
        clock: SimulationClock,
        catalog: SubscriptionCatalog,
        market_hours: MarketHoursDatabase,
        calendar: ExchangeCalendar | None = None,
        provider: HistoryProvider | None = None,
        securities: MutableMapping[Symbol, Security] | None = None,
        universe_settings: UniverseSettings | None = None,
        universe_symbols: Iterable[Symbol] | None = None,
    ) -> None:
        self.clock = clock
        self.securities: MutableMapping[Symbol, Security] = (
            securities if securities is not None else {}
        )
        self.universe_symbols: set[Symbol] = set(universe_symbols or ())

        self.resolver = SubscriptionResolver(
            catalog, market_hours, self.securities, universe_settings
        )
        self.builder = HistoryRequestBuilder(
            self.resolver, HistoryRequestFactory(clock, calendar)
        )
        self.scheduler = WarmUpScheduler()
        self.prices = LastKnownPriceResolver(catalog, self.builder, None)

        self._provider: HistoryProvider | None = None
        self.history_provider = provider

    @classmethod
    def from_config(
        cls,
        config: HistoryConfig,
        start: datetime,
        catalog: SubscriptionCatalog,
        market_hours: MarketHoursDatabase,
        calendar: ExchangeCalendar | None = None,
        provider: HistoryProvider | None = None,
        securities: MutableMapping[Symbol, Security] | None = None,
        log_sink: Any = None,
    ) -> HistoryApi:
        """Create an API on a manual clock from a loaded configuration.

        Logging is reconfigured at the configured level.

        :param config: Loaded configuration.
        :param start: Initial clock time, timezone-aware.
        :param log_sink: Loguru sink, defaults to stderr.
        :returns: API with the configured universe settings and warm-up.
        """
        configure_logging(config.log_level, log_sink)
        api = cls(
            ManualClock(start, config.time_zone),
            catalog,
            market_hours,
            calendar=calendar,
            provider=provider,
            securities=securities,
            universe_settings=config.universe,
        )
        if config.warm_up is not None:
            api.apply_warm_up(config.warm_up)
        return api

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def history_provider(self) -> HistoryProvider | None:
        return self._provider

    @history_provider.setter
    def history_provider(self, provider: HistoryProvider | None) -> None:
        self._provider = provider
        self.prices.dispatch = self.history if provider is not None else None

    @property
    def universe_settings(self) -> UniverseSettings:
        return self.resolver.universe_settings

    @universe_settings.setter
    def universe_settings(self, settings: UniverseSettings) -> None:
        self.resolver.universe_settings = settings

    def add_security(self, security: Security) -> None:
        """Register a security held by the strategy."""
        self.securities[security.symbol] = security

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history(self, requests: Iterable[HistoryRequest]) -> Iterator[Slice]:
        """Execute requests through the look-ahead guard.

        Universe symbols are dropped, every request is clipped to the clock,
        and the remaining batch is handed to the provider in order.

        :param requests: Requests to execute.
        :returns: Lazy iterator of slices from the provider.
        :raises DataSourceError: If no history provider is configured.
        """
        if self._provider is None:
            raise DataSourceError("No history provider configured")

        filtered = [
            request for request in requests if request.symbol not in self.universe_symbols
        ]
        safe = clip_future_requests(filtered, self.clock.utc_now)
        return self._provider.get_history(safe, self.clock.time_zone)

    def history_span(
        self,
        span: timedelta,
        symbols: Iterable[Symbol] | None = None,
        resolution: Resolution | None = None,
    ) -> Iterator[Slice]:
        """History over the calendar span ending now.

        :param span: Calendar span (weekends and holidays included).
        :param symbols: Symbols to request, defaults to all securities.
        :param resolution: Resolution to request.
        """
        now = self.clock.time
        return self.history_range(self._symbols_or_all(symbols), now - span, now, resolution)

    def history_periods(
        self,
        periods: int,
        symbols: Iterable[Symbol] | None = None,
        resolution: Resolution | None = None,
    ) -> Iterator[Slice]:
        """History for the last ``periods`` tradable bars of each symbol.

        Fewer bars are returned when less history exists.

        :raises InvalidRequestError: If resolution is TICK.
        """
        requests = self.builder.bar_count_requests(
            self._symbols_or_all(symbols), periods, resolution
        )
        return self.history(requests)

    def history_range(
        self,
        symbols: Iterable[Symbol],
        start: datetime,
        end: datetime,
        resolution: Resolution | None = None,
        fill_forward: bool | None = None,
        extended_market_hours: bool | None = None,
    ) -> Iterator[Slice]:
        """History between ``start`` and ``end`` (algorithm time if naive)."""
        requests = self.builder.date_range_requests(
            symbols, start, end, resolution, fill_forward, extended_market_hours
        )
        return self.history(requests)

    def history_of_type(
        self,
        symbol: Symbol | None,
        data_type: type[BaseData],
        start: datetime,
        end: datetime,
        resolution: Resolution | None = None,
    ) -> Iterator[BaseData]:
        """Observations of one data type for one symbol.

        :param symbol: Symbol to request.
        :param data_type: Data type to project, e.g. ``TradeBar``.
        :param start: Window start (algorithm time if naive).
        :param end: Window end (algorithm time if naive).
        :param resolution: Resolution to request.
        :returns: Lazy iterator of ``data_type`` observations.
        :raises InvalidRequestError: If the symbol is missing, is not of the
            requested type, or trade bars are requested at TICK resolution.
        """
        if symbol is None:
            raise InvalidRequestError(SYMBOL_EMPTY_MESSAGE)

        if data_type is TradeBar:
            if symbol.security_type in QUOTE_ONLY_SECURITY_TYPES:
                logger.error(
                    f"Requesting TradeBar history for {symbol.security_type.value} "
                    f"security {symbol} returns an empty result; request QuoteBar instead."
                )
                return iter(())
            if self.resolver.get_resolution(symbol, resolution) is Resolution.TICK:
                raise InvalidRequestError(
                    "Requesting TradeBar history at TICK resolution returns an "
                    "empty result; request Tick data instead.",
                    symbol=symbol,
                    requested_type=data_type,
                    resolution=Resolution.TICK,
                )

        request = self.builder.typed_request(symbol, data_type, start, end, resolution)
        return self._project(self.history([request]), symbol, data_type)

    def history_of_type_periods(
        self,
        symbol: Symbol | None,
        data_type: type[BaseData],
        periods: int,
        resolution: Resolution | None = None,
    ) -> Iterator[BaseData]:
        """Observations of one data type for the last ``periods`` bars.

        :raises InvalidRequestError: If resolution is TICK or the symbol is
            not of the requested type.
        """
        request = self.builder.typed_bar_count_request(symbol, data_type, periods, resolution)
        return self._project(self.history([request]), request.symbol, data_type)

    # ------------------------------------------------------------------
    # Warm-up
    # ------------------------------------------------------------------

    @property
    def is_warming_up(self) -> bool:
        return self.scheduler.is_warming_up

    @property
    def warm_up(self) -> WarmUp | None:
        return self.scheduler.warm_up

    def set_warm_up(
        self,
        period: int | timedelta,
        resolution: Resolution | None = None,
    ) -> WarmUp:
        """Set the warm-up period (bar count or calendar span).

        :raises InvalidStateError: If the strategy is already running.
        """
        return self.scheduler.set_warm_up(period, resolution)

    def apply_warm_up(self, warm_up: WarmUp) -> WarmUp:
        """Set the warm-up period from an existing configuration."""
        if isinstance(warm_up, BarCountWarmUp):
            return self.set_warm_up(warm_up.bar_count, warm_up.resolution)
        return self.set_warm_up(warm_up.time_span, warm_up.resolution)

    def get_warm_up_requests(self) -> Iterator[HistoryRequest]:
        """Requests providing warm-up data for every security."""
        return self.scheduler.get_warm_up_requests(
            self.builder, list(self.securities), self.clock.time
        )

    def on_warm_up_finished(self, callback: Callable[[], None]) -> None:
        self.scheduler.on_warm_up_finished(callback)

    def finish_warm_up(self) -> None:
        self.scheduler.finish_warm_up()

    def lock(self) -> None:
        """Lock the warm-up configuration when the strategy starts running."""
        self.scheduler.lock()

    # ------------------------------------------------------------------
    # Last known prices
    # ------------------------------------------------------------------

    def last_known_prices(self, symbol: Symbol) -> list[BaseData]:
        """Most recent observation per tick type, oldest first."""
        return self.prices.last_known_prices(symbol)

    def last_known_price(self, symbol: Symbol) -> BaseData | None:
        """Most recent observation of the symbol's primary tick type."""
        return self.prices.last_known_price(symbol)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _symbols_or_all(self, symbols: Iterable[Symbol] | None) -> list[Symbol]:
        if symbols is None:
            return list(self.securities)
        return list(symbols)

    @staticmethod
    def _project(
        slices: Iterable[Slice],
        symbol: Symbol,
        data_type: type[BaseData],
    ) -> Iterator[BaseData]:
        for slice_ in slices:
            point = slice_.get(data_type).get(symbol)
            if point is not None:
                yield point


__all__ = ["HistoryApi"]
