"""External collaborators consumed by history request resolution."""

from trading_history.data.calendar import ExchangeCalendar
from trading_history.data.catalog import (
    InMemorySubscriptionCatalog,
    SubscriptionCatalog,
)
from trading_history.data.market_hours import (
    InMemoryMarketHoursDatabase,
    MarketHoursDatabase,
)
from trading_history.data.provider import HistoryProvider, InMemoryHistoryProvider

__all__ = [
    "SubscriptionCatalog",
    "InMemorySubscriptionCatalog",
    "ExchangeCalendar",
    "MarketHoursDatabase",
    "InMemoryMarketHoursDatabase",
    "HistoryProvider",
    "InMemoryHistoryProvider",
]
