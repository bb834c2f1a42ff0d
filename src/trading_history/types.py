"""Core type definitions for history request resolution.

All data models use Pydantic BaseModel for automatic validation, hashing of
immutable values, and better error messages.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


def _check_time_zone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone '{name}'") from e
    return name


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SecurityType(str, Enum):
    """Kind of instrument a symbol refers to."""

    BASE = "base"
    EQUITY = "equity"
    FOREX = "forex"
    CFD = "cfd"
    OPTION = "option"
    FUTURE = "future"
    CRYPTO = "crypto"
    INDEX = "index"


class Resolution(int, Enum):
    """Bar granularity, ordered from finest to coarsest."""

    TICK = 0
    SECOND = 1
    MINUTE = 2
    HOUR = 3
    DAILY = 4

    def to_timedelta(self) -> timedelta:
        """Width of a single bar at this resolution (zero for ticks)."""
        return _RESOLUTION_WIDTHS[self]


_RESOLUTION_WIDTHS = {
    Resolution.TICK: timedelta(0),
    Resolution.SECOND: timedelta(seconds=1),
    Resolution.MINUTE: timedelta(minutes=1),
    Resolution.HOUR: timedelta(hours=1),
    Resolution.DAILY: timedelta(days=1),
}


class TickType(str, Enum):
    """Category of observation carried by a subscription."""

    TRADE = "trade"
    QUOTE = "quote"
    OPEN_INTEREST = "open_interest"


class DataNormalizationMode(str, Enum):
    """How historical prices are adjusted for corporate actions."""

    RAW = "raw"
    ADJUSTED = "adjusted"
    SPLIT_ADJUSTED = "split_adjusted"
    TOTAL_RETURN = "total_return"


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class Symbol(FrozenModel):
    """Identifies a tradable instrument.

    Canonical symbols are placeholders for continuous contracts or option
    chains; they cannot be quoted and never carry history themselves.

    :param value: Ticker string.
    :param security_type: Instrument kind.
    :param market: Market the instrument is listed on.
    :param is_canonical: Whether this is a chain/continuous placeholder.
    """

    value: str
    security_type: SecurityType = SecurityType.EQUITY
    market: str = "usa"
    is_canonical: bool = False

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class BaseData(FrozenModel):
    """Single observation for a symbol.

    Every history data type derives from this class. A subscription or request
    matches a requested type when its data type is a subclass of it.

    :param symbol: Symbol the observation belongs to.
    :param time: Timestamp of the observation (timezone-aware).
    :param value: Representative price of the observation.
    """

    symbol: Symbol
    time: datetime
    value: float = 0.0


class TradeBar(BaseData):
    """OHLCV bar built from trades.

    :param open: Opening price.
    :param high: Highest price during the bar period.
    :param low: Lowest price during the bar period.
    :param close: Closing price.
    :param volume: Traded volume during the bar period.
    """

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _value_from_close(cls, data: Any) -> Any:
        if isinstance(data, dict) and "value" not in data and "close" in data:
            data = {**data, "value": data["close"]}
        return data


class QuoteBar(BaseData):
    """Bar built from top-of-book quotes.

    :param bid: Closing bid price, if any bid was quoted.
    :param ask: Closing ask price, if any ask was quoted.
    """

    bid: float | None = None
    ask: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _value_from_mid(cls, data: Any) -> Any:
        if isinstance(data, dict) and "value" not in data:
            bid, ask = data.get("bid"), data.get("ask")
            if bid is not None and ask is not None:
                data = {**data, "value": (bid + ask) / 2}
            elif bid is not None or ask is not None:
                data = {**data, "value": bid if bid is not None else ask}
        return data


class Tick(BaseData):
    """Individual trade or quote print.

    :param tick_type: Whether the print is a trade or a quote.
    :param quantity: Size of the print.
    """

    tick_type: TickType = TickType.TRADE
    quantity: float = 0.0


class OpenInterest(BaseData):
    """Outstanding contracts for a derivative; ``value`` holds the count."""


# ---------------------------------------------------------------------------
# Exchange Types
# ---------------------------------------------------------------------------


class ExchangeHours(FrozenModel):
    """Trading session description for an exchange.

    Opaque to request building: it is passed through to the exchange calendar
    and stored on each request.

    :param time_zone: IANA name of the exchange time zone.
    :param market_open: Regular session open in exchange time.
    :param market_close: Regular session close in exchange time.
    :param extended_open: Pre-market open, if the exchange has one.
    :param extended_close: Post-market close, if the exchange has one.
    """

    time_zone: str
    market_open: time = time(9, 30)
    market_close: time = time(16, 0)
    extended_open: time | None = None
    extended_close: time | None = None

    @field_validator("time_zone")
    @classmethod
    def _known_time_zone(cls, value: str) -> str:
        return _check_time_zone(value)


class MarketHoursEntry(FrozenModel):
    """Market-hours database record for a symbol.

    :param data_time_zone: Time zone the raw data is stored in.
    :param exchange_hours: Exchange session description.
    """

    data_time_zone: str
    exchange_hours: ExchangeHours

    @field_validator("data_time_zone")
    @classmethod
    def _known_time_zone(cls, value: str) -> str:
        return _check_time_zone(value)


class Security(FrozenModel):
    """Security actively held by the strategy.

    :param symbol: Security symbol.
    :param exchange_hours: Custom exchange hours overriding the database entry.
    """

    symbol: Symbol
    exchange_hours: ExchangeHours | None = None


# ---------------------------------------------------------------------------
# Subscription and Request Types
# ---------------------------------------------------------------------------


class SubscriptionConfig(FrozenModel):
    """Active data subscription for a symbol.

    :param data_type: Data class delivered by the subscription.
    :param symbol: Subscribed symbol.
    :param resolution: Subscription resolution.
    :param data_time_zone: Time zone the raw data is stored in.
    :param exchange_time_zone: Time zone of the exchange.
    :param fill_forward: Whether gaps are filled with the last known value.
    :param extended_market_hours: Whether pre/post market data is included.
    :param is_custom_data: Whether the data comes from a custom source.
    :param is_internal_feed: Whether the subscription is auxiliary/internal.
    :param tick_type: Category of observation delivered.
    :param normalization_mode: Price normalization applied to the data.
    """

    data_type: type[BaseData]
    symbol: Symbol
    resolution: Resolution
    data_time_zone: str
    exchange_time_zone: str
    fill_forward: bool = True
    extended_market_hours: bool = False
    is_custom_data: bool = False
    is_internal_feed: bool = False
    tick_type: TickType = TickType.TRADE
    normalization_mode: DataNormalizationMode = DataNormalizationMode.ADJUSTED

    @field_validator("data_time_zone", "exchange_time_zone")
    @classmethod
    def _known_time_zones(cls, value: str) -> str:
        return _check_time_zone(value)


class HistoryRequest(FrozenModel):
    """Provider-executable request for historical data.

    Requests are never mutated; overrides and clipping derive new instances.

    :param start_time_utc: Inclusive start of the window, in UTC.
    :param end_time_utc: Inclusive end of the window, in UTC.
    :param data_type: Data class requested.
    :param symbol: Requested symbol.
    :param resolution: Requested resolution.
    :param exchange_hours: Exchange session description for the symbol.
    :param data_time_zone: Time zone the raw data is stored in.
    :param fill_forward_resolution: Resolution used to fill gaps, or None.
    :param include_extended_market_hours: Whether pre/post market is included.
    :param is_custom_data: Whether the data comes from a custom source.
    :param normalization_mode: Price normalization applied to the data.
    :param tick_type: Category of observation requested.
    """

    start_time_utc: datetime
    end_time_utc: datetime
    data_type: type[BaseData]
    symbol: Symbol
    resolution: Resolution
    exchange_hours: ExchangeHours
    data_time_zone: str
    fill_forward_resolution: Resolution | None = None
    include_extended_market_hours: bool = False
    is_custom_data: bool = False
    normalization_mode: DataNormalizationMode = DataNormalizationMode.ADJUSTED
    tick_type: TickType = TickType.TRADE


class UniverseSettings(FrozenModel):
    """Universe-wide defaults used when a symbol has no subscription.

    :param resolution: Default resolution.
    :param fill_forward: Default fill-forward policy.
    :param extended_market_hours: Default extended hours policy.
    :param normalization_mode: Default price normalization.
    """

    resolution: Resolution = Resolution.MINUTE
    fill_forward: bool = True
    extended_market_hours: bool = False
    normalization_mode: DataNormalizationMode = DataNormalizationMode.ADJUSTED


# ---------------------------------------------------------------------------
# Warm-up Types
# ---------------------------------------------------------------------------


class BarCountWarmUp(FrozenModel):
    """Warm up with a number of bars per symbol.

    :param bar_count: Number of bars requested.
    :param resolution: Resolution to request, or None for each symbol's own.
    """

    bar_count: int = Field(gt=0)
    resolution: Resolution | None = None


class TimeSpanWarmUp(FrozenModel):
    """Warm up with a calendar span ending at the current time.

    :param time_span: Calendar span, not adjusted for market hours.
    :param resolution: Resolution to request, or None for each symbol's own.
    """

    time_span: timedelta
    resolution: Resolution | None = None

    @field_validator("time_span")
    @classmethod
    def _positive_span(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("time_span must be positive")
        return value


WarmUp = BarCountWarmUp | TimeSpanWarmUp


# ---------------------------------------------------------------------------
# Result Types
# ---------------------------------------------------------------------------


class Slice(FrozenModel):
    """All observations sharing one timestamp.

    :param time: Timestamp of the slice.
    :param data: Observations in provider order.
    """

    time: datetime
    data: list[BaseData] = Field(default_factory=list)

    def get(self, data_type: type[BaseData]) -> dict[Symbol, BaseData]:
        """Get the observations of one data type keyed by symbol.

        When a symbol has several points of the type, the last one wins.

        :param data_type: Data class to select.
        :returns: Mapping of symbol to observation.
        """
        result: dict[Symbol, BaseData] = {}
        for point in self.data:
            if isinstance(point, data_type):
                result[point.symbol] = point
        return result


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Base models
    "FrozenModel",
    # Enumerations
    "SecurityType",
    "Resolution",
    "TickType",
    "DataNormalizationMode",
    # Identifiers
    "Symbol",
    # Market data
    "BaseData",
    "TradeBar",
    "QuoteBar",
    "Tick",
    "OpenInterest",
    # Exchange
    "ExchangeHours",
    "MarketHoursEntry",
    "Security",
    # Subscriptions and requests
    "SubscriptionConfig",
    "HistoryRequest",
    "UniverseSettings",
    # Warm-up
    "BarCountWarmUp",
    "TimeSpanWarmUp",
    "WarmUp",
    # Results
    "Slice",
]
