"""History request construction.

Turns "symbols over a date range" and "N bars of symbols" into concrete
:class:`~trading_history.types.HistoryRequest` records, one per matching
subscription. Requests are produced lazily; argument validation happens
eagerly so mistakes surface at the call site.

Requests built here are not yet clipped to the clock: the look-ahead guard
runs when they are dispatched (see :mod:`trading_history.guard`).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Iterator

from trading_history.clock import SimulationClock
from trading_history.data.calendar import ExchangeCalendar
from trading_history.exceptions import DataSourceError, InvalidRequestError
from trading_history.subscriptions import (
    SYMBOL_EMPTY_MESSAGE,
    SubscriptionResolver,
    first_specified,
)
from trading_history.types import (
    BaseData,
    ExchangeHours,
    HistoryRequest,
    Resolution,
    SubscriptionConfig,
    Symbol,
)

TICK_PERIODS_MESSAGE = (
    "History functions that accept a 'periods' parameter can not be used "
    "with Resolution.TICK"
)


class HistoryRequestFactory:
    """Builds single requests from subscriptions.

    :param clock: Simulation clock; naive times are read in its time zone.
    :param calendar: Exchange calendar used for bar-count start times.
    """

    def __init__(
        self,
        clock: SimulationClock,
        calendar: ExchangeCalendar | None = None,
    ) -> None:
        self.clock = clock
        self.calendar = calendar

    def create_request(
        self,
        config: SubscriptionConfig,
        start: datetime,
        end: datetime,
        exchange_hours: ExchangeHours,
        resolution: Resolution | None = None,
        fill_forward: bool | None = None,
        extended_market_hours: bool | None = None,
    ) -> HistoryRequest:
        """Create a request for one subscription.

        Per-call arguments take precedence over the subscription's settings.

        :param config: Subscription the request is built from.
        :param start: Window start (naive values are in algorithm time).
        :param end: Window end (naive values are in algorithm time).
        :param exchange_hours: Exchange hours of the symbol.
        :param resolution: Resolution override.
        :param fill_forward: Fill-forward override.
        :param extended_market_hours: Extended hours override.
        :returns: New history request.
        """
        effective = first_specified(resolution, config.resolution)
        fills_forward = first_specified(fill_forward, config.fill_forward)

        return HistoryRequest(
            start_time_utc=self.to_utc(start),
            end_time_utc=self.to_utc(end),
            data_type=config.data_type,
            symbol=config.symbol,
            resolution=effective,
            exchange_hours=exchange_hours,
            data_time_zone=config.data_time_zone,
            fill_forward_resolution=effective if fills_forward else None,
            include_extended_market_hours=first_specified(
                extended_market_hours, config.extended_market_hours
            ),
            is_custom_data=config.is_custom_data,
            normalization_mode=config.normalization_mode,
            tick_type=config.tick_type,
        )

    def start_time_for_bar_count(
        self,
        symbol: Symbol,
        periods: int,
        resolution: Resolution,
        exchange_hours: ExchangeHours,
        data_time_zone: str,
    ) -> datetime:
        """Start of a window ending now that holds ``periods`` bars.

        :raises DataSourceError: If no exchange calendar is configured.
        """
        if self.calendar is None:
            raise DataSourceError("No exchange calendar configured for bar-count history")
        return self.calendar.start_time_for_bar_count(
            symbol,
            periods,
            resolution,
            exchange_hours,
            data_time_zone,
            end=self.clock.time,
        )

    def to_utc(self, value: datetime) -> datetime:
        """Convert to UTC, reading naive values in the algorithm time zone."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.clock.time_zone)
        return value.astimezone(timezone.utc)


class HistoryRequestBuilder:
    """Builds request batches for symbols in date-range or bar-count mode.

    Canonical symbols are skipped: chains and continuous contracts carry no
    history of their own.

    :param resolver: Subscription resolver.
    :param factory: Request factory.
    """

    def __init__(
        self,
        resolver: SubscriptionResolver,
        factory: HistoryRequestFactory,
    ) -> None:
        self.resolver = resolver
        self.factory = factory

    def date_range_requests(
        self,
        symbols: Iterable[Symbol],
        start: datetime,
        end: datetime,
        resolution: Resolution | None = None,
        fill_forward: bool | None = None,
        extended_market_hours: bool | None = None,
    ) -> Iterator[HistoryRequest]:
        """Requests covering ``[start, end]`` for every matching subscription.

        :param symbols: Symbols to request.
        :param start: Window start (naive values are in algorithm time).
        :param end: Window end (naive values are in algorithm time).
        :param resolution: Resolution to request, or None for each
            subscription's own.
        :param fill_forward: Override for the fill-forward policy.
        :param extended_market_hours: Override for extended hours.
        :returns: Lazy iterator of requests, in symbol order.
        :raises InvalidRequestError: If a symbol is None.
        """
        checked = _checked_symbols(symbols)
        return self._date_range(
            checked, start, end, resolution, fill_forward, extended_market_hours
        )

    def bar_count_requests(
        self,
        symbols: Iterable[Symbol],
        periods: int,
        resolution: Resolution | None = None,
    ) -> Iterator[HistoryRequest]:
        """Requests for the last ``periods`` tradable bars of every symbol.

        :param symbols: Symbols to request.
        :param periods: Number of bars per symbol.
        :param resolution: Resolution to request, or None for each symbol's
            finest subscription.
        :returns: Lazy iterator of requests, in symbol order.
        :raises InvalidRequestError: If resolution is TICK, periods is not
            positive, or a symbol is None.
        """
        if resolution is Resolution.TICK:
            raise InvalidRequestError(TICK_PERIODS_MESSAGE, resolution=resolution)
        if periods <= 0:
            raise InvalidRequestError(f"periods must be positive, got {periods}")
        checked = _checked_symbols(symbols)
        return self._bar_count(checked, periods, resolution)

    def typed_request(
        self,
        symbol: Symbol | None,
        data_type: type[BaseData],
        start: datetime,
        end: datetime,
        resolution: Resolution | None = None,
    ) -> HistoryRequest:
        """Single request for one symbol and data type.

        :raises InvalidRequestError: If the symbol has no subscription of
            ``data_type`` and none can be synthesized.
        """
        config = self.resolver.resolve_one(symbol, data_type, resolution)
        return self.factory.create_request(
            config,
            start,
            end,
            self.resolver.get_exchange_hours(config.symbol),
            resolution,
        )

    def typed_bar_count_request(
        self,
        symbol: Symbol | None,
        data_type: type[BaseData],
        periods: int,
        resolution: Resolution | None = None,
    ) -> HistoryRequest:
        """Single bar-count request for one symbol and data type.

        :raises InvalidRequestError: If resolution is TICK or the type does
            not match.
        """
        if resolution is Resolution.TICK:
            raise InvalidRequestError(TICK_PERIODS_MESSAGE, resolution=resolution)
        config = self.resolver.resolve_one(symbol, data_type, resolution)
        effective = self.resolver.get_resolution(config.symbol, resolution)
        exchange_hours = self.resolver.get_exchange_hours(config.symbol)
        start = self.factory.start_time_for_bar_count(
            config.symbol, periods, effective, exchange_hours, config.data_time_zone
        )
        return self.factory.create_request(
            config, start, self.factory.clock.time, exchange_hours, effective
        )

    def _date_range(
        self,
        symbols: list[Symbol],
        start: datetime,
        end: datetime,
        resolution: Resolution | None,
        fill_forward: bool | None,
        extended_market_hours: bool | None,
    ) -> Iterator[HistoryRequest]:
        for symbol in symbols:
            if symbol.is_canonical:
                continue
            exchange_hours = self.resolver.get_exchange_hours(symbol)
            fill_forward_resolution = None
            if fill_forward:
                # An explicit fill-forward fills every feed at the symbol's resolution
                fill_forward_resolution = self.resolver.get_resolution(symbol, resolution)

            for config in self.resolver.resolve(symbol, BaseData, resolution):
                request = self.factory.create_request(
                    config,
                    start,
                    end,
                    exchange_hours,
                    resolution,
                    fill_forward=fill_forward,
                    extended_market_hours=extended_market_hours,
                )
                if fill_forward_resolution is not None:
                    request = request.model_copy(
                        update={"fill_forward_resolution": fill_forward_resolution}
                    )
                yield request

    def _bar_count(
        self,
        symbols: list[Symbol],
        periods: int,
        resolution: Resolution | None,
    ) -> Iterator[HistoryRequest]:
        for symbol in symbols:
            if symbol.is_canonical:
                continue
            configs = self.resolver.resolve(symbol, BaseData, resolution)
            if not configs:
                continue

            effective = self.resolver.get_resolution(symbol, resolution)
            exchange_hours = self.resolver.get_exchange_hours(symbol)
            start = self.factory.start_time_for_bar_count(
                symbol, periods, effective, exchange_hours, configs[0].data_time_zone
            )
            end = self.factory.clock.time
            for config in configs:
                yield self.factory.create_request(
                    config, start, end, exchange_hours, effective
                )


def _checked_symbols(symbols: Iterable[Symbol | None]) -> list[Symbol]:
    checked = list(symbols)
    if any(symbol is None for symbol in checked):
        raise InvalidRequestError(SYMBOL_EMPTY_MESSAGE)
    return checked  # type: ignore[return-value]


__all__ = ["TICK_PERIODS_MESSAGE", "HistoryRequestFactory", "HistoryRequestBuilder"]
