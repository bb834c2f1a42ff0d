"""Tests for subscription resolution."""

from __future__ import annotations

from datetime import time
from typing import Callable

import pytest

from trading_history.data.catalog import InMemorySubscriptionCatalog
from trading_history.data.market_hours import InMemoryMarketHoursDatabase
from trading_history.exceptions import InvalidRequestError
from trading_history.subscriptions import (
    SubscriptionResolver,
    first_specified,
    lookup_data_types,
    tick_type_order,
    tick_type_priority,
    type_filter,
)
from trading_history.types import (
    BaseData,
    DataNormalizationMode,
    ExchangeHours,
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

MakeSubscription = Callable[..., SubscriptionConfig]


@pytest.fixture
def securities() -> dict[Symbol, Security]:
    return {}


@pytest.fixture
def resolver(
    catalog: InMemorySubscriptionCatalog,
    market_hours: InMemoryMarketHoursDatabase,
    securities: dict[Symbol, Security],
) -> SubscriptionResolver:
    return SubscriptionResolver(catalog, market_hours, securities, UniverseSettings())


# ---------------------------------------------------------------------------
# Helper Tests
# ---------------------------------------------------------------------------


class TestHelpers:
    """Tests for precedence and tick type helpers."""

    def test_first_specified_returns_first_non_none(self) -> None:
        """The most specific specified layer wins."""
        assert first_specified(None, Resolution.HOUR, Resolution.MINUTE) is Resolution.HOUR
        assert first_specified(False, True) is False
        assert first_specified(None, None) is None

    def test_tick_type_priority_follows_security_type_order(self) -> None:
        """Primary tick types rank above open interest."""
        assert tick_type_priority(SecurityType.EQUITY, TickType.TRADE) > tick_type_priority(
            SecurityType.EQUITY, TickType.QUOTE
        )
        assert tick_type_priority(SecurityType.FUTURE, TickType.QUOTE) > tick_type_priority(
            SecurityType.FUTURE, TickType.OPEN_INTEREST
        )
        assert tick_type_priority(SecurityType.FOREX, TickType.TRADE) == 0

    def test_tick_type_order_puts_unlisted_types_last(self) -> None:
        """Unlisted tick types sort after every listed one."""
        assert tick_type_order(SecurityType.FOREX, TickType.QUOTE) == 0
        assert tick_type_order(SecurityType.FOREX, TickType.TRADE) == 1

    def test_type_filter_excludes_open_interest_for_generic_requests(self) -> None:
        """Open interest must be requested explicitly."""
        assert type_filter(BaseData, TradeBar)
        assert not type_filter(BaseData, OpenInterest)
        assert type_filter(OpenInterest, OpenInterest)
        assert not type_filter(QuoteBar, TradeBar)

    def test_lookup_data_types_uses_ticks_at_tick_resolution(self) -> None:
        """Tick resolution maps every tick type to Tick data."""
        pairs = lookup_data_types(SecurityType.EQUITY, Resolution.TICK, False)

        assert pairs == [(Tick, TickType.TRADE), (Tick, TickType.QUOTE)]

    def test_lookup_data_types_canonical_has_no_defaults(self) -> None:
        """Canonical symbols have no default history subscriptions."""
        assert lookup_data_types(SecurityType.FUTURE, Resolution.MINUTE, True) == []


# ---------------------------------------------------------------------------
# Ordering Tests
# ---------------------------------------------------------------------------


class TestResolveOrdering:
    """Tests for deterministic subscription ordering."""

    def test_finest_resolution_first(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
    ) -> None:
        """With no explicit resolution the finest subscription comes first."""
        catalog.add(make_subscription(spy, Resolution.DAILY))
        catalog.add(make_subscription(spy, Resolution.MINUTE))
        catalog.add(make_subscription(spy, Resolution.HOUR))

        configs = resolver.resolve(spy)

        assert [c.resolution for c in configs] == [
            Resolution.MINUTE,
            Resolution.HOUR,
            Resolution.DAILY,
        ]

    def test_primary_tick_type_first_within_resolution(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
    ) -> None:
        """Equity trade data outranks quote data at the same resolution."""
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.QUOTE))
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.TRADE))

        configs = resolver.resolve(spy)

        assert [c.tick_type for c in configs] == [TickType.TRADE, TickType.QUOTE]

    def test_internal_feeds_last(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
    ) -> None:
        """Internal feeds sort after user subscriptions of equal rank."""
        internal = make_subscription(spy, Resolution.MINUTE, is_internal_feed=True)
        user = make_subscription(spy, Resolution.MINUTE)
        catalog.add(internal)
        catalog.add(user)

        assert resolver.resolve(spy) == [user, internal]

    def test_future_open_interest_only_when_requested(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        es_future: Symbol,
    ) -> None:
        """Open interest is excluded from generic requests."""
        catalog.add(
            make_subscription(
                es_future, Resolution.MINUTE, TickType.OPEN_INTEREST, data_type=OpenInterest
            )
        )
        catalog.add(make_subscription(es_future, Resolution.MINUTE, TickType.TRADE))
        catalog.add(make_subscription(es_future, Resolution.MINUTE, TickType.QUOTE))

        generic = resolver.resolve(es_future)
        interest = resolver.resolve(es_future, OpenInterest)

        assert [c.tick_type for c in generic] == [TickType.QUOTE, TickType.TRADE]
        assert [c.tick_type for c in interest] == [TickType.OPEN_INTEREST]

    def test_requested_type_filters_subscriptions(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
    ) -> None:
        """Only subscriptions assignable to the requested type match."""
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.TRADE))
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.QUOTE))

        configs = resolver.resolve(spy, QuoteBar)

        assert [c.data_type for c in configs] == [QuoteBar]


# ---------------------------------------------------------------------------
# Equity Daily/Hour Tests
# ---------------------------------------------------------------------------


class TestEquityTradeOnlyBars:
    """Tests for the trade-only rule of equity hour/daily history."""

    @pytest.mark.parametrize("resolution", [Resolution.DAILY, Resolution.HOUR])
    def test_equity_daily_and_hour_exclude_quotes(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
        resolution: Resolution,
    ) -> None:
        """Quote subscriptions never serve equity hour/daily requests."""
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.TRADE))
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.QUOTE))
        catalog.add(make_subscription(spy, resolution, TickType.QUOTE))

        configs = resolver.resolve(spy, BaseData, resolution)

        assert configs
        assert all(c.tick_type is not TickType.QUOTE for c in configs)

    def test_equity_minute_keeps_quotes(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
    ) -> None:
        """Minute requests still use quote subscriptions."""
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.TRADE))
        catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.QUOTE))

        configs = resolver.resolve(spy, BaseData, Resolution.MINUTE)

        assert [c.tick_type for c in configs] == [TickType.TRADE, TickType.QUOTE]

    def test_forex_daily_keeps_quotes(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        eurusd: Symbol,
    ) -> None:
        """The rule applies to equities only."""
        catalog.add(make_subscription(eurusd, Resolution.MINUTE, TickType.QUOTE))

        configs = resolver.resolve(eurusd, BaseData, Resolution.DAILY)

        assert [c.tick_type for c in configs] == [TickType.QUOTE]


# ---------------------------------------------------------------------------
# Default Subscription Tests
# ---------------------------------------------------------------------------


class TestDefaultSubscriptions:
    """Tests for subscriptions synthesized for unsubscribed symbols."""

    def test_unsubscribed_equity_uses_universe_settings(
        self,
        catalog: InMemorySubscriptionCatalog,
        market_hours: InMemoryMarketHoursDatabase,
        aapl: Symbol,
    ) -> None:
        """Defaults come from the universe settings and market hours."""
        settings = UniverseSettings(
            resolution=Resolution.SECOND,
            fill_forward=False,
            extended_market_hours=True,
            normalization_mode=DataNormalizationMode.RAW,
        )
        resolver = SubscriptionResolver(catalog, market_hours, {}, settings)

        configs = resolver.resolve(aapl)

        assert [(c.data_type, c.tick_type) for c in configs] == [
            (TradeBar, TickType.TRADE),
            (QuoteBar, TickType.QUOTE),
        ]
        for config in configs:
            assert config.resolution is Resolution.SECOND
            assert config.fill_forward is False
            assert config.extended_market_hours is True
            assert config.normalization_mode is DataNormalizationMode.RAW
            assert config.is_internal_feed is True
            assert config.data_time_zone == "America/New_York"

    def test_unsubscribed_equity_daily_defaults_to_trades(
        self, resolver: SubscriptionResolver, aapl: Symbol
    ) -> None:
        """Synthesized equity daily history is trade-only too."""
        configs = resolver.resolve(aapl, BaseData, Resolution.DAILY)

        assert [c.data_type for c in configs] == [TradeBar]
        assert configs[0].resolution is Resolution.DAILY

    def test_missing_type_synthesized_at_security_resolution(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        securities: dict[Symbol, Security],
        spy: Symbol,
    ) -> None:
        """A held security without the requested type gets a default at its
        finest subscribed resolution."""
        catalog.add(make_subscription(spy, Resolution.DAILY, TickType.TRADE))
        securities[spy] = Security(symbol=spy)

        configs = resolver.resolve(spy, QuoteBar)

        assert len(configs) == 1
        assert configs[0].data_type is QuoteBar
        assert configs[0].resolution is Resolution.DAILY
        assert configs[0].is_internal_feed is True


# ---------------------------------------------------------------------------
# Resolution and Market Hours Tests
# ---------------------------------------------------------------------------


class TestEffectiveSettings:
    """Tests for resolution precedence and market hours overrides."""

    def test_explicit_resolution_wins(
        self, resolver: SubscriptionResolver, spy: Symbol
    ) -> None:
        assert resolver.get_resolution(spy, Resolution.HOUR) is Resolution.HOUR

    def test_held_security_uses_finest_subscription(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        securities: dict[Symbol, Security],
        spy: Symbol,
    ) -> None:
        catalog.add(make_subscription(spy, Resolution.DAILY))
        catalog.add(make_subscription(spy, Resolution.SECOND))
        securities[spy] = Security(symbol=spy)

        assert resolver.get_resolution(spy) is Resolution.SECOND

    def test_unknown_symbol_uses_universe_default(
        self, resolver: SubscriptionResolver, aapl: Symbol
    ) -> None:
        assert resolver.get_resolution(aapl) is Resolution.MINUTE

    def test_held_security_overrides_exchange_hours(
        self,
        resolver: SubscriptionResolver,
        securities: dict[Symbol, Security],
        exchange_hours: ExchangeHours,
        spy: Symbol,
    ) -> None:
        """Custom hours of a held security replace the database hours."""
        custom = ExchangeHours(time_zone="America/Chicago", market_open=time(8, 30))
        securities[spy] = Security(symbol=spy, exchange_hours=custom)

        entry = resolver.get_market_hours(spy)

        assert entry.exchange_hours == custom
        assert entry.data_time_zone == "America/New_York"
        assert resolver.get_exchange_hours(Symbol(value="QQQ")) == exchange_hours


# ---------------------------------------------------------------------------
# Primary Match Tests
# ---------------------------------------------------------------------------


class TestResolveOne:
    """Tests for the validating single-result accessor."""

    def test_returns_primary_match(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        spy: Symbol,
    ) -> None:
        minute = make_subscription(spy, Resolution.MINUTE)
        catalog.add(make_subscription(spy, Resolution.DAILY))
        catalog.add(minute)

        assert resolver.resolve_one(spy, TradeBar) == minute

    def test_type_mismatch_raises_with_details(
        self,
        resolver: SubscriptionResolver,
        catalog: InMemorySubscriptionCatalog,
        make_subscription: MakeSubscription,
        eurusd: Symbol,
    ) -> None:
        """Forex has no trade data, so TradeBar cannot be resolved."""
        catalog.add(make_subscription(eurusd, Resolution.MINUTE, TickType.QUOTE))

        with pytest.raises(InvalidRequestError, match="Requested Type: TradeBar") as exc_info:
            resolver.resolve_one(eurusd, TradeBar, Resolution.DAILY)

        err = exc_info.value
        assert "Actual Type: QuoteBar" in str(err)
        assert "Requested Resolution.DAILY" in str(err)
        assert err.symbol == eurusd
        assert err.requested_type is TradeBar
        assert err.actual_type is QuoteBar
        assert err.resolution is Resolution.DAILY

    def test_canonical_symbol_without_subscription_raises(
        self, resolver: SubscriptionResolver, es_continuous: Symbol
    ) -> None:
        """Canonical symbols have no fallback mapping."""
        assert resolver.resolve(es_continuous) == []

        with pytest.raises(InvalidRequestError, match="Actual Type: None") as exc_info:
            resolver.resolve_one(es_continuous, TradeBar)

        assert exc_info.value.actual_type is None

    def test_missing_symbol_raises(self, resolver: SubscriptionResolver) -> None:
        with pytest.raises(InvalidRequestError, match="Cannot create history"):
            resolver.resolve_one(None, TradeBar)
