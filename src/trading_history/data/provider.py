"""History provider interface and in-memory/CSV implementations.

The provider is the only blocking boundary of the package: it receives fully
resolved, look-ahead-safe requests and returns time-ordered slices.
"""

from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from itertools import groupby
from pathlib import Path
from typing import Iterable, Iterator
from zoneinfo import ZoneInfo

from trading_history.exceptions import DataSourceError
from trading_history.types import BaseData, HistoryRequest, Slice, Symbol, Tick, TradeBar


class HistoryProvider(ABC):
    """Abstract base class for history providers.

    All provider implementations must inherit from this class and implement
    the `get_history` method.
    """

    @abstractmethod
    def get_history(
        self,
        requests: list[HistoryRequest],
        time_zone: ZoneInfo,
    ) -> Iterator[Slice]:
        """Execute history requests.

        :param requests: Requests to execute, already clipped to the clock.
        :param time_zone: Time zone slice times are expressed in.
        :returns: Iterator of slices in chronological order.
        :raises DataSourceError: If fetching fails.
        """
        ...


class InMemoryHistoryProvider(HistoryProvider):
    """Provider serving observations held in memory.

    A point matches a request when it has the request's symbol and exact data
    type (and tick type, for ticks) and its time lies within
    ``[start_time_utc, end_time_utc]``.

    :param data: Observations to serve, in any order.
    """

    def __init__(self, data: Iterable[BaseData] | None = None) -> None:
        self._data: list[BaseData] = list(data or [])
        self.requests_seen: list[list[HistoryRequest]] = []

    def add(self, point: BaseData) -> None:
        """Store one more observation."""
        self._data.append(point)

    def get_history(
        self,
        requests: list[HistoryRequest],
        time_zone: ZoneInfo,
    ) -> Iterator[Slice]:
        """Serve the stored points matching the requests.

        :param requests: Requests to execute.
        :param time_zone: Time zone slice times are expressed in.
        :returns: Iterator of slices, one per distinct timestamp.
        """
        self.requests_seen.append(list(requests))

        matched: list[tuple[datetime, int, BaseData]] = []
        for index, request in enumerate(requests):
            for point in self._data:
                if self._matches(point, request):
                    matched.append((point.time, index, point))

        # Stable ordering: time first, then request order, then storage order
        matched.sort(key=lambda item: (item[0], item[1]))

        for timestamp, group in groupby(matched, key=lambda item: item[0]):
            yield Slice(
                time=timestamp.astimezone(time_zone),
                data=[point for _, _, point in group],
            )

    @staticmethod
    def _matches(point: BaseData, request: HistoryRequest) -> bool:
        if point.symbol != request.symbol or type(point) is not request.data_type:
            return False
        if isinstance(point, Tick) and point.tick_type != request.tick_type:
            return False
        return request.start_time_utc <= point.time <= request.end_time_utc

    @classmethod
    def from_csv(
        cls,
        file_path: str | Path,
        symbols: dict[str, Symbol],
        delimiter: str = ",",
    ) -> InMemoryHistoryProvider:
        """Load trade bars from a CSV file.

        Expected columns: symbol, timestamp (ISO format), open, high, low,
        close, volume. Rows for tickers missing from ``symbols`` are skipped.

        :param file_path: Path to the CSV file.
        :param symbols: Mapping of ticker to symbol for the rows to keep.
        :param delimiter: CSV delimiter.
        :returns: Provider holding the loaded bars.
        :raises DataSourceError: If the file is missing or malformed.
        """
        path = Path(file_path)
        if not path.exists():
            raise DataSourceError(f"CSV file not found: {file_path}")

        bars: list[BaseData] = []
        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f, delimiter=delimiter)

                for row in reader:
                    symbol = symbols.get(row.get("symbol") or "")
                    if symbol is None:
                        continue

                    ts_str = row.get("timestamp")
                    if not ts_str:
                        continue

                    try:
                        ts = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
                        if ts.tzinfo is None:
                            ts = ts.replace(tzinfo=timezone.utc)
                    except ValueError as e:
                        raise DataSourceError(
                            f"Failed to parse timestamp '{ts_str}': {e}"
                        ) from e

                    try:
                        bars.append(
                            TradeBar(
                                symbol=symbol,
                                time=ts,
                                open=float(row["open"]),
                                high=float(row["high"]),
                                low=float(row["low"]),
                                close=float(row["close"]),
                                volume=float(row["volume"]),
                            )
                        )
                    except (KeyError, ValueError) as e:
                        raise DataSourceError(f"Failed to parse row {row}: {e}") from e

        except csv.Error as e:
            raise DataSourceError(f"CSV parsing error: {e}") from e
        except OSError as e:
            raise DataSourceError(f"Failed to read CSV file: {e}") from e

        return cls(bars)


__all__ = ["HistoryProvider", "InMemoryHistoryProvider"]
