"""History request exception hierarchy.

All package-specific exceptions derive from :class:`TradingError` so callers can
catch every history-related error uniformly.
"""

from __future__ import annotations

from typing import Any


class TradingError(Exception):
    """Base class for trading-related exceptions.

    Derived exceptions should extend this class so that callers can catch all
    trading-specific errors uniformly.
    """


class ConfigError(TradingError):
    """Raised when configuration files or parameters are invalid."""


class DataSourceError(TradingError):
    """Raised when an external data collaborator cannot answer a lookup."""


class InvalidStateError(TradingError):
    """Raised when an operation is not allowed in the current lifecycle phase."""


class InvalidRequestError(TradingError):
    """Raised when a history request cannot be resolved or is malformed.

    Type-mismatch errors carry the details needed to diagnose them.

    :param message: Human readable description.
    :param symbol: Symbol the request was made for, if any.
    :param requested_type: Data type requested by the caller.
    :param actual_type: Data type the symbol is actually subscribed with.
    :param resolution: Resolution requested by the caller, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        symbol: Any = None,
        requested_type: type | None = None,
        actual_type: type | None = None,
        resolution: Any = None,
    ) -> None:
        super().__init__(message)
        self.symbol = symbol
        self.requested_type = requested_type
        self.actual_type = actual_type
        self.resolution = resolution


__all__ = [
    "TradingError",
    "ConfigError",
    "DataSourceError",
    "InvalidStateError",
    "InvalidRequestError",
]
