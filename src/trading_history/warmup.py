"""Warm-up scheduling.

Holds the warm-up period configured while the strategy initializes and expands
it into history requests for every known symbol.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable, Iterator

from pydantic import ValidationError

from trading_history.exceptions import InvalidRequestError, InvalidStateError
from trading_history.log import logger
from trading_history.requests import HistoryRequestBuilder
from trading_history.types import (
    BarCountWarmUp,
    HistoryRequest,
    Resolution,
    Symbol,
    TimeSpanWarmUp,
    WarmUp,
)

LOCKED_MESSAGE = "set_warm_up(): This method cannot be used after the strategy is initialized"


class WarmUpScheduler:
    """Owns the warm-up configuration and lifecycle flags.

    The configuration is either a bar count or a time span, never both; the
    last call to :meth:`set_warm_up` wins. Once :meth:`lock` is called the
    configuration can no longer change.
    """

    def __init__(self) -> None:
        self._warm_up: WarmUp | None = None
        self._locked = False
        self._warming_up = True
        self._finished_callbacks: list[Callable[[], None]] = []

    @property
    def warm_up(self) -> WarmUp | None:
        """Current warm-up configuration, or None."""
        return self._warm_up

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def is_warming_up(self) -> bool:
        """Whether the strategy is still receiving warm-up data."""
        return self._warming_up

    def set_warm_up(
        self,
        period: int | timedelta,
        resolution: Resolution | None = None,
    ) -> WarmUp:
        """Set the warm-up period.

        :param period: Number of bars (``int``) or calendar span
            (``timedelta``, not adjusted for market hours).
        :param resolution: Resolution to request, or None for each symbol's
            finest subscription.
        :returns: The new configuration.
        :raises InvalidStateError: If the scheduler is locked.
        :raises InvalidRequestError: If ``period`` is neither an int nor a
            timedelta, or is not positive.
        """
        if self._locked:
            raise InvalidStateError(LOCKED_MESSAGE)

        warm_up: WarmUp
        try:
            if isinstance(period, timedelta):
                warm_up = TimeSpanWarmUp(time_span=period, resolution=resolution)
            elif isinstance(period, int) and not isinstance(period, bool):
                warm_up = BarCountWarmUp(bar_count=period, resolution=resolution)
            else:
                raise InvalidRequestError(
                    "Warm-up period must be a bar count or a timedelta, "
                    f"got {type(period).__name__}"
                )
        except ValidationError as e:
            raise InvalidRequestError(f"Warm-up period must be positive, got {period!r}") from e

        self._warm_up = warm_up
        logger.debug(f"Warm-up set to {warm_up!r}")
        return warm_up

    def lock(self) -> None:
        """Freeze the configuration; called when the strategy starts running."""
        self._locked = True

    def get_warm_up_requests(
        self,
        builder: HistoryRequestBuilder,
        symbols: Iterable[Symbol],
        now: datetime,
    ) -> Iterator[HistoryRequest]:
        """Expand the configuration into requests.

        :param builder: Request builder.
        :param symbols: Symbols currently known to the strategy.
        :param now: Current time in the algorithm time zone.
        :returns: Requests for every symbol; empty when no warm-up is set.
        """
        warm_up = self._warm_up
        if isinstance(warm_up, BarCountWarmUp):
            return builder.bar_count_requests(symbols, warm_up.bar_count, warm_up.resolution)
        if isinstance(warm_up, TimeSpanWarmUp):
            return builder.date_range_requests(
                symbols, now - warm_up.time_span, now, warm_up.resolution
            )
        return iter(())

    def on_warm_up_finished(self, callback: Callable[[], None]) -> None:
        """Register a callback fired when warm-up finishes."""
        self._finished_callbacks.append(callback)

    def finish_warm_up(self) -> None:
        """Mark warm-up as finished and notify callbacks (first call only)."""
        if not self._warming_up:
            return
        self._warming_up = False
        logger.info("Warm-up finished")
        for callback in self._finished_callbacks:
            callback()


__all__ = ["LOCKED_MESSAGE", "WarmUpScheduler"]
