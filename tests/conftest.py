"""Shared fixtures for history request tests."""

from __future__ import annotations

import sys
from typing import Any, Callable, Iterator

import pytest

from helpers import NEW_YORK, NOW, FixedStepCalendar
from trading_history.api import HistoryApi
from trading_history.clock import ManualClock
from trading_history.data.catalog import InMemorySubscriptionCatalog
from trading_history.data.market_hours import InMemoryMarketHoursDatabase
from trading_history.data.provider import InMemoryHistoryProvider
from trading_history.log import logger
from trading_history.types import (
    BaseData,
    ExchangeHours,
    MarketHoursEntry,
    QuoteBar,
    Resolution,
    Security,
    SecurityType,
    SubscriptionConfig,
    Symbol,
    TickType,
    TradeBar,
)


@pytest.fixture
def spy() -> Symbol:
    return Symbol(value="SPY")


@pytest.fixture
def aapl() -> Symbol:
    return Symbol(value="AAPL")


@pytest.fixture
def eurusd() -> Symbol:
    return Symbol(value="EURUSD", security_type=SecurityType.FOREX, market="oanda")


@pytest.fixture
def es_future() -> Symbol:
    return Symbol(value="ESH24", security_type=SecurityType.FUTURE, market="cme")


@pytest.fixture
def es_continuous() -> Symbol:
    return Symbol(
        value="/ES", security_type=SecurityType.FUTURE, market="cme", is_canonical=True
    )


@pytest.fixture
def exchange_hours() -> ExchangeHours:
    return ExchangeHours(time_zone=NEW_YORK)


@pytest.fixture
def market_hours(exchange_hours: ExchangeHours) -> InMemoryMarketHoursDatabase:
    return InMemoryMarketHoursDatabase(
        default=MarketHoursEntry(data_time_zone=NEW_YORK, exchange_hours=exchange_hours)
    )


@pytest.fixture
def catalog() -> InMemorySubscriptionCatalog:
    return InMemorySubscriptionCatalog()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(NOW, NEW_YORK)


@pytest.fixture
def calendar() -> FixedStepCalendar:
    return FixedStepCalendar()


@pytest.fixture
def provider() -> InMemoryHistoryProvider:
    return InMemoryHistoryProvider()


@pytest.fixture
def make_subscription() -> Callable[..., SubscriptionConfig]:
    """Factory for subscriptions with New York time zones."""

    def _make(
        symbol: Symbol,
        resolution: Resolution,
        tick_type: TickType = TickType.TRADE,
        data_type: type[BaseData] | None = None,
        **kwargs: Any,
    ) -> SubscriptionConfig:
        if data_type is None:
            data_type = QuoteBar if tick_type is TickType.QUOTE else TradeBar
        return SubscriptionConfig(
            data_type=data_type,
            symbol=symbol,
            resolution=resolution,
            data_time_zone=NEW_YORK,
            exchange_time_zone=NEW_YORK,
            tick_type=tick_type,
            **kwargs,
        )

    return _make


@pytest.fixture
def api(
    clock: ManualClock,
    catalog: InMemorySubscriptionCatalog,
    market_hours: InMemoryMarketHoursDatabase,
    calendar: FixedStepCalendar,
    provider: InMemoryHistoryProvider,
) -> HistoryApi:
    return HistoryApi(clock, catalog, market_hours, calendar=calendar, provider=provider)


@pytest.fixture
def subscribed_api(
    api: HistoryApi,
    catalog: InMemorySubscriptionCatalog,
    make_subscription: Callable[..., SubscriptionConfig],
    spy: Symbol,
) -> HistoryApi:
    """API holding SPY with minute trade and quote subscriptions."""
    catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.TRADE))
    catalog.add(make_subscription(spy, Resolution.MINUTE, TickType.QUOTE))
    api.add_security(Security(symbol=spy))
    return api


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]), level="DEBUG"
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def restore_logger() -> Iterator[None]:
    """Reinstate the default stderr handler after a test reconfigures logging."""
    yield
    logger.remove()
    logger.add(sys.stderr)
