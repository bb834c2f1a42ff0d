"""Tests for warm-up scheduling."""

from __future__ import annotations

from datetime import timedelta

import pytest

from helpers import NOW
from trading_history.api import HistoryApi
from trading_history.exceptions import InvalidRequestError, InvalidStateError
from trading_history.types import (
    BarCountWarmUp,
    Resolution,
    Symbol,
    TimeSpanWarmUp,
    TradeBar,
)
from trading_history.warmup import WarmUpScheduler


class TestSetWarmUp:
    """Tests for configuring the warm-up period."""

    def test_bar_count(self) -> None:
        scheduler = WarmUpScheduler()

        warm_up = scheduler.set_warm_up(200, Resolution.DAILY)

        assert warm_up == BarCountWarmUp(bar_count=200, resolution=Resolution.DAILY)
        assert scheduler.warm_up == warm_up

    def test_last_write_wins(self) -> None:
        """A later time span replaces an earlier bar count."""
        scheduler = WarmUpScheduler()

        scheduler.set_warm_up(200)
        scheduler.set_warm_up(timedelta(days=1))

        assert scheduler.warm_up == TimeSpanWarmUp(time_span=timedelta(days=1))

    def test_locked_scheduler_rejects_changes(self) -> None:
        scheduler = WarmUpScheduler()
        scheduler.set_warm_up(10)
        scheduler.lock()

        with pytest.raises(InvalidStateError, match="cannot be used after"):
            scheduler.set_warm_up(20)

        assert scheduler.locked
        assert scheduler.warm_up == BarCountWarmUp(bar_count=10)

    @pytest.mark.parametrize("period", [True, 1.5, "10"])
    def test_invalid_period_type_rejected(self, period: object) -> None:
        with pytest.raises(InvalidRequestError, match="bar count or a timedelta"):
            WarmUpScheduler().set_warm_up(period)  # type: ignore[arg-type]

    @pytest.mark.parametrize("period", [0, -5, timedelta(0), timedelta(days=-1)])
    def test_non_positive_period_rejected(self, period: int | timedelta) -> None:
        """Empty or negative periods raise a request error, not a validation error."""
        scheduler = WarmUpScheduler()

        with pytest.raises(InvalidRequestError, match="must be positive"):
            scheduler.set_warm_up(period)

        assert scheduler.warm_up is None


class TestWarmUpLifecycle:
    """Tests for the warming-up flag and callbacks."""

    def test_initially_warming_up(self) -> None:
        assert WarmUpScheduler().is_warming_up

    def test_finish_is_idempotent(self) -> None:
        """Callbacks fire on the first finish only."""
        scheduler = WarmUpScheduler()
        calls: list[str] = []
        scheduler.on_warm_up_finished(lambda: calls.append("done"))

        scheduler.finish_warm_up()
        scheduler.finish_warm_up()

        assert not scheduler.is_warming_up
        assert calls == ["done"]


class TestWarmUpRequests:
    """Tests for expanding the warm-up period into requests."""

    def test_no_warm_up_yields_nothing(self, subscribed_api: HistoryApi) -> None:
        assert list(subscribed_api.get_warm_up_requests()) == []

    def test_bar_count_requests(self, subscribed_api: HistoryApi, spy: Symbol) -> None:
        subscribed_api.set_warm_up(200, Resolution.DAILY)

        requests = list(subscribed_api.get_warm_up_requests())

        assert [(r.symbol, r.data_type, r.resolution) for r in requests] == [
            (spy, TradeBar, Resolution.DAILY)
        ]
        assert requests[0].start_time_utc == NOW - timedelta(days=200)
        assert requests[0].end_time_utc == NOW

    def test_time_span_requests(self, subscribed_api: HistoryApi, spy: Symbol) -> None:
        subscribed_api.set_warm_up(timedelta(days=1))

        requests = list(subscribed_api.get_warm_up_requests())

        assert len(requests) == 2
        for request in requests:
            assert request.resolution is Resolution.MINUTE
            assert request.start_time_utc == NOW - timedelta(days=1)
            assert request.end_time_utc == NOW

    def test_last_write_wins_through_api(self, subscribed_api: HistoryApi) -> None:
        subscribed_api.set_warm_up(200)
        subscribed_api.set_warm_up(timedelta(days=1))

        requests = list(subscribed_api.get_warm_up_requests())

        assert all(r.start_time_utc == NOW - timedelta(days=1) for r in requests)

    def test_api_lock(self, subscribed_api: HistoryApi) -> None:
        subscribed_api.lock()

        with pytest.raises(InvalidStateError):
            subscribed_api.set_warm_up(5)
