"""Loguru logger configuration.

Modules log through the ``logger`` exported here; applications call
:func:`configure_logging` once to choose the level and destination.
"""

from __future__ import annotations

import sys
from typing import Any

from loguru import logger

from trading_history.exceptions import ConfigError

VALID_LOG_LEVELS = frozenset(
    ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
)

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink: Any = None) -> int:
    """Replace all handlers with a single formatted sink.

    :param level: Minimum level to emit (case-insensitive).
    :param sink: Loguru sink, defaults to stderr.
    :returns: Identifier of the added handler.
    :raises ConfigError: If the level is not a loguru level.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{level}'. Choose from: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level=level_upper,
        format=LOG_FORMAT,
        colorize=None if sink is None else False,
        backtrace=True,
        diagnose=False,
    )


__all__ = ["logger", "configure_logging", "VALID_LOG_LEVELS"]
