"""Subscription resolution for history requests.

Picks the subscription(s) a history request should be built from. A symbol can
be subscribed several times (different resolutions and tick types, plus
internal feeds); when it is not subscribed at all, default subscriptions are
synthesized from the market-hours database and the universe settings.
"""

from __future__ import annotations

from typing import Mapping, TypeVar

from trading_history.data.catalog import SubscriptionCatalog
from trading_history.data.market_hours import MarketHoursDatabase
from trading_history.exceptions import InvalidRequestError
from trading_history.types import (
    BaseData,
    ExchangeHours,
    MarketHoursEntry,
    OpenInterest,
    QuoteBar,
    Resolution,
    Security,
    SecurityType,
    SubscriptionConfig,
    Symbol,
    Tick,
    TickType,
    TradeBar,
    UniverseSettings,
)

T = TypeVar("T")

SYMBOL_EMPTY_MESSAGE = (
    "Cannot create history for the given ticker. "
    "Either explicitly use a symbol object to make the history request "
    "or ensure the symbol has been added to the securities before making "
    "the history request."
)

# Tick types each security type supports, most primary first
AVAILABLE_TICK_TYPES: dict[SecurityType, tuple[TickType, ...]] = {
    SecurityType.BASE: (TickType.TRADE,),
    SecurityType.INDEX: (TickType.TRADE,),
    SecurityType.FOREX: (TickType.QUOTE,),
    SecurityType.CFD: (TickType.QUOTE,),
    SecurityType.EQUITY: (TickType.TRADE, TickType.QUOTE),
    SecurityType.CRYPTO: (TickType.TRADE, TickType.QUOTE),
    SecurityType.OPTION: (TickType.QUOTE, TickType.TRADE, TickType.OPEN_INTEREST),
    SecurityType.FUTURE: (TickType.QUOTE, TickType.TRADE, TickType.OPEN_INTEREST),
}

BAR_DATA_TYPES: dict[TickType, type[BaseData]] = {
    TickType.TRADE: TradeBar,
    TickType.QUOTE: QuoteBar,
    TickType.OPEN_INTEREST: OpenInterest,
}


def first_specified(*layers: T | None) -> T | None:
    """Resolve a setting from layers ordered most specific first.

    Every overlapping setting (per-call override, subscription, universe
    default) goes through this helper so precedence is read in one place.

    :param layers: Candidate values; None means "not specified".
    :returns: The first specified value, or None.
    """
    for value in layers:
        if value is not None:
            return value
    return None


def tick_type_order(security_type: SecurityType, tick_type: TickType) -> int:
    """Position of a tick type in the security type's list (0 = most primary).

    Tick types the security type does not list sort after all listed ones.
    """
    available = AVAILABLE_TICK_TYPES.get(security_type, ())
    if tick_type in available:
        return available.index(tick_type)
    return len(available)


def tick_type_priority(security_type: SecurityType, tick_type: TickType) -> int:
    """Priority of a tick type for a security type; higher is more primary."""
    available = AVAILABLE_TICK_TYPES.get(security_type, ())
    return len(available) - tick_type_order(security_type, tick_type)


def lookup_data_types(
    security_type: SecurityType,
    resolution: Resolution,
    is_canonical: bool,
) -> list[tuple[type[BaseData], TickType]]:
    """Default ``(data_type, tick_type)`` pairs for a subscription.

    :param security_type: Security type of the symbol.
    :param resolution: Resolution of the subscription.
    :param is_canonical: Whether the symbol is a chain/continuous placeholder.
    :returns: Data type pairs, most primary first (empty for canonical symbols).
    """
    if is_canonical:
        return []
    tick_types = AVAILABLE_TICK_TYPES.get(security_type, (TickType.TRADE,))
    if resolution is Resolution.TICK:
        return [(Tick, tick_type) for tick_type in tick_types]
    return [(BAR_DATA_TYPES[tick_type], tick_type) for tick_type in tick_types]


def type_filter(requested_type: type[BaseData], data_type: type[BaseData]) -> bool:
    """Check whether a subscription's data type satisfies the requested type.

    Open interest is only returned when asked for explicitly, never for the
    generic ``BaseData`` request.
    """
    if not issubclass(data_type, requested_type):
        return False
    return requested_type is not BaseData or not issubclass(data_type, OpenInterest)


class SubscriptionResolver:
    """Matches history requests to subscriptions.

    :param catalog: Active subscriptions.
    :param market_hours: Market-hours database.
    :param securities: Securities held by the strategy, keyed by symbol.
    :param universe_settings: Defaults for unsubscribed symbols.
    """

    def __init__(
        self,
        catalog: SubscriptionCatalog,
        market_hours: MarketHoursDatabase,
        securities: Mapping[Symbol, Security] | None = None,
        universe_settings: UniverseSettings | None = None,
    ) -> None:
        self.catalog = catalog
        self.market_hours = market_hours
        self.securities: Mapping[Symbol, Security] = securities if securities is not None else {}
        self.universe_settings = universe_settings or UniverseSettings()

    def resolve(
        self,
        symbol: Symbol,
        requested_type: type[BaseData] = BaseData,
        resolution: Resolution | None = None,
    ) -> list[SubscriptionConfig]:
        """Get the subscriptions matching a request, best match first.

        Subscriptions are ordered finest resolution first, then by tick type
        priority, with internal feeds last. When none match, default
        subscriptions are synthesized.

        :param symbol: Requested symbol.
        :param requested_type: Data type requested (``BaseData`` for any).
        :param resolution: Explicitly requested resolution, if any.
        :returns: Matching subscriptions; empty only when no default exists.
        """
        configs = self.catalog.get_configs(symbol, include_internal=True)
        ordered = sorted(
            configs,
            key=lambda config: (
                config.resolution,
                -tick_type_priority(config.symbol.security_type, config.tick_type),
                1 if config.is_internal_feed else 0,
            ),
        )
        matching = [
            config for config in ordered if type_filter(requested_type, config.data_type)
        ]
        matching = self._trade_only_for_equity_bars(symbol, resolution, matching)
        if matching:
            return matching
        return self._default_configs(symbol, requested_type, resolution)

    def resolve_one(
        self,
        symbol: Symbol | None,
        requested_type: type[BaseData] = BaseData,
        resolution: Resolution | None = None,
    ) -> SubscriptionConfig:
        """Get the primary subscription for a request, validating its type.

        :param symbol: Requested symbol.
        :param requested_type: Data type requested.
        :param resolution: Explicitly requested resolution, if any.
        :returns: Best matching subscription.
        :raises InvalidRequestError: If the symbol is missing or no
            subscription of the requested type can be resolved.
        """
        if symbol is None:
            raise InvalidRequestError(SYMBOL_EMPTY_MESSAGE)

        configs = self.resolve(symbol, requested_type, resolution)
        if configs:
            return configs[0]

        actual = self.resolve(symbol, BaseData)
        actual_type = actual[0].data_type if actual else None
        message = (
            "The specified security is not of the requested type. "
            f"Symbol: {symbol} Requested Type: {requested_type.__name__} "
            f"Actual Type: {actual_type.__name__ if actual_type else None}"
        )
        if resolution is not None:
            message += f" Requested Resolution.{resolution.name}"
        raise InvalidRequestError(
            message,
            symbol=symbol,
            requested_type=requested_type,
            actual_type=actual_type,
            resolution=resolution,
        )

    def get_resolution(
        self, symbol: Symbol, resolution: Resolution | None = None
    ) -> Resolution:
        """Effective resolution: explicit, else the security's finest
        subscription, else the universe default."""
        subscribed = None
        if symbol in self.securities:
            subscribed = self.catalog.highest_resolution(symbol)
        return first_specified(resolution, subscribed, self.universe_settings.resolution)

    def get_market_hours(self, symbol: Symbol) -> MarketHoursEntry:
        """Market-hours entry, with a held security's custom hours applied."""
        entry = self.market_hours.get_entry(symbol)
        security = self.securities.get(symbol)
        if security is not None and security.exchange_hours is not None:
            return MarketHoursEntry(
                data_time_zone=entry.data_time_zone,
                exchange_hours=security.exchange_hours,
            )
        return entry

    def get_exchange_hours(self, symbol: Symbol) -> ExchangeHours:
        return self.get_market_hours(symbol).exchange_hours

    def _default_configs(
        self,
        symbol: Symbol,
        requested_type: type[BaseData],
        resolution: Resolution | None,
    ) -> list[SubscriptionConfig]:
        entry = self.market_hours.get_entry(symbol)
        effective = self.get_resolution(symbol, resolution)
        settings = self.universe_settings

        configs = [
            SubscriptionConfig(
                data_type=data_type,
                symbol=symbol,
                resolution=effective,
                data_time_zone=entry.data_time_zone,
                exchange_time_zone=entry.exchange_hours.time_zone,
                fill_forward=settings.fill_forward,
                extended_market_hours=settings.extended_market_hours,
                is_custom_data=False,
                is_internal_feed=True,
                tick_type=tick_type,
                normalization_mode=settings.normalization_mode,
            )
            for data_type, tick_type in lookup_data_types(
                symbol.security_type, effective, symbol.is_canonical
            )
            if type_filter(requested_type, data_type)
        ]
        return self._trade_only_for_equity_bars(symbol, resolution, configs)

    @staticmethod
    def _trade_only_for_equity_bars(
        symbol: Symbol,
        resolution: Resolution | None,
        configs: list[SubscriptionConfig],
    ) -> list[SubscriptionConfig]:
        # Equity hour/daily history only exists as trade bars
        if symbol.security_type is SecurityType.EQUITY and resolution in (
            Resolution.DAILY,
            Resolution.HOUR,
        ):
            return [config for config in configs if config.tick_type is not TickType.QUOTE]
        return configs


__all__ = [
    "SYMBOL_EMPTY_MESSAGE",
    "AVAILABLE_TICK_TYPES",
    "first_specified",
    "tick_type_order",
    "tick_type_priority",
    "lookup_data_types",
    "type_filter",
    "SubscriptionResolver",
]
