"""Constants and test doubles shared by the test modules."""

from __future__ import annotations

from datetime import datetime, timezone

from trading_history.data.calendar import ExchangeCalendar
from trading_history.types import ExchangeHours, Resolution, Symbol

NOW = datetime(2024, 3, 15, 20, 0, tzinfo=timezone.utc)
NEW_YORK = "America/New_York"


class FixedStepCalendar(ExchangeCalendar):
    """Calendar treating every bar period as tradable.

    Steps back in UTC so daylight saving changes never shift the start.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Symbol, int, Resolution, str]] = []

    def start_time_for_bar_count(
        self,
        symbol: Symbol,
        periods: int,
        resolution: Resolution,
        exchange_hours: ExchangeHours,
        data_time_zone: str,
        end: datetime,
    ) -> datetime:
        self.calls.append((symbol, periods, resolution, data_time_zone))
        return end.astimezone(timezone.utc) - periods * resolution.to_timedelta()
