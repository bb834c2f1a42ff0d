"""Look-ahead guard for history requests.

Applied at dispatch time, immediately before requests reach the history
provider. It is the single point ensuring no data later than the simulation
clock flows into a replay.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from trading_history.log import logger
from trading_history.types import HistoryRequest

FUTURE_REQUEST_NOTICE = "Request for future history modified to end now."


def clip_request(request: HistoryRequest, now_utc: datetime) -> HistoryRequest:
    """Clip one request so it ends no later than ``now_utc``.

    A request starting after ``now_utc`` becomes the empty range
    ``[now_utc, now_utc]``. Requests already in the past are returned as is.

    :param request: Request to clip.
    :param now_utc: Current simulation time in UTC.
    :returns: The original request or a clipped copy.
    """
    if request.end_time_utc <= now_utc:
        return request
    return request.model_copy(
        update={
            "start_time_utc": min(request.start_time_utc, now_utc),
            "end_time_utc": now_utc,
        }
    )


def clip_future_requests(
    requests: Iterable[HistoryRequest],
    now_utc: datetime,
) -> list[HistoryRequest]:
    """Clip a batch of requests to the simulation clock, preserving order.

    Logs a single notice per batch when any request needed clipping.

    :param requests: Requests in generation order.
    :param now_utc: Current simulation time in UTC.
    :returns: New list with every ``end_time_utc <= now_utc``.
    """
    clipped: list[HistoryRequest] = []
    sent_notice = False
    for request in requests:
        safe = clip_request(request, now_utc)
        if safe is not request and not sent_notice:
            sent_notice = True
            logger.debug(FUTURE_REQUEST_NOTICE)
        clipped.append(safe)
    return clipped


__all__ = ["FUTURE_REQUEST_NOTICE", "clip_request", "clip_future_requests"]
