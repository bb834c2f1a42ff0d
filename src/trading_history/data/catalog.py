"""Subscription catalog interface and in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod

from trading_history.types import Resolution, SubscriptionConfig, Symbol


class SubscriptionCatalog(ABC):
    """Read-only view of the active subscriptions per symbol."""

    @abstractmethod
    def get_configs(
        self, symbol: Symbol, include_internal: bool = False
    ) -> list[SubscriptionConfig]:
        """Get the subscriptions registered for a symbol.

        :param symbol: Symbol to look up.
        :param include_internal: Whether auxiliary/internal feeds are included.
        :returns: Subscriptions in registration order (empty if none).
        """
        ...

    def highest_resolution(self, symbol: Symbol) -> Resolution | None:
        """Get the finest resolution the symbol is subscribed at.

        :param symbol: Symbol to look up.
        :returns: Finest user-facing resolution, or None if unsubscribed.
        """
        configs = self.get_configs(symbol)
        if not configs:
            return None
        return min(config.resolution for config in configs)


class InMemorySubscriptionCatalog(SubscriptionCatalog):
    """Subscription catalog backed by a dictionary.

    :param configs: Initial subscriptions to register.
    """

    def __init__(self, configs: list[SubscriptionConfig] | None = None) -> None:
        self._configs: dict[Symbol, list[SubscriptionConfig]] = {}
        for config in configs or []:
            self.add(config)

    def add(self, config: SubscriptionConfig) -> None:
        """Register a subscription; duplicates are ignored."""
        configs = self._configs.setdefault(config.symbol, [])
        if config not in configs:
            configs.append(config)

    def remove(self, symbol: Symbol) -> None:
        """Drop every subscription for a symbol."""
        self._configs.pop(symbol, None)

    def get_configs(
        self, symbol: Symbol, include_internal: bool = False
    ) -> list[SubscriptionConfig]:
        configs = self._configs.get(symbol, [])
        if include_internal:
            return list(configs)
        return [config for config in configs if not config.is_internal_feed]


__all__ = ["SubscriptionCatalog", "InMemorySubscriptionCatalog"]
