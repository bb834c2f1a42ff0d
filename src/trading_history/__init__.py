"""History request orchestration package root."""

from trading_history.api import HistoryApi
from trading_history.exceptions import (
    ConfigError,
    DataSourceError,
    InvalidRequestError,
    InvalidStateError,
    TradingError,
)

__all__ = [
    "HistoryApi",
    "TradingError",
    "ConfigError",
    "DataSourceError",
    "InvalidRequestError",
    "InvalidStateError",
]
