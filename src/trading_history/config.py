"""Configuration loading for history request resolution.

Example config file (history.yaml):

    time_zone: "America/New_York"
    universe:
      resolution: minute
      fill_forward: true
      extended_market_hours: false
      normalization_mode: adjusted
    warm_up:            # Optional; bar_count or time_span, not both
      bar_count: 200
      resolution: daily
    logging:
      level: "INFO"
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import Field

from trading_history.exceptions import ConfigError
from trading_history.log import VALID_LOG_LEVELS
from trading_history.types import (
    BarCountWarmUp,
    DataNormalizationMode,
    FrozenModel,
    Resolution,
    TimeSpanWarmUp,
    UniverseSettings,
    WarmUp,
)

VALID_TIME_SPAN_UNITS = frozenset(["weeks", "days", "hours", "minutes", "seconds"])


class HistoryConfig(FrozenModel):
    """Settings for a history request session.

    :param time_zone: IANA name of the algorithm time zone.
    :param universe: Defaults for unsubscribed symbols.
    :param warm_up: Warm-up period, or None.
    :param log_level: Loguru level name.
    """

    time_zone: str = "UTC"
    universe: UniverseSettings = Field(default_factory=UniverseSettings)
    warm_up: WarmUp | None = None
    log_level: str = "INFO"


def _parse_resolution(value: Any, field: str) -> Resolution:
    if not isinstance(value, str):
        raise ConfigError(f"'{field}' must be a string")
    try:
        return Resolution[value.upper()]
    except KeyError as e:
        raise ConfigError(
            f"Invalid resolution '{value}' for '{field}'. "
            f"Valid options: {[r.name.lower() for r in Resolution]}"
        ) from e


def _parse_bool(raw: dict[str, Any], key: str, default: bool, field: str) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean")
    return value


def _parse_universe(raw_universe: Any) -> UniverseSettings:
    if not isinstance(raw_universe, dict):
        raise ConfigError("'universe' must be a mapping")

    defaults = UniverseSettings()
    resolution = defaults.resolution
    if "resolution" in raw_universe:
        resolution = _parse_resolution(raw_universe["resolution"], "universe.resolution")

    normalization_mode = defaults.normalization_mode
    if "normalization_mode" in raw_universe:
        raw_mode = raw_universe["normalization_mode"]
        try:
            normalization_mode = DataNormalizationMode(str(raw_mode).lower())
        except ValueError as e:
            raise ConfigError(
                f"Invalid normalization mode '{raw_mode}'. "
                f"Valid options: {[m.value for m in DataNormalizationMode]}"
            ) from e

    return UniverseSettings(
        resolution=resolution,
        fill_forward=_parse_bool(
            raw_universe, "fill_forward", defaults.fill_forward, "universe.fill_forward"
        ),
        extended_market_hours=_parse_bool(
            raw_universe,
            "extended_market_hours",
            defaults.extended_market_hours,
            "universe.extended_market_hours",
        ),
        normalization_mode=normalization_mode,
    )


def _parse_warm_up(raw_warm_up: Any) -> WarmUp | None:
    if raw_warm_up is None:
        return None
    if not isinstance(raw_warm_up, dict):
        raise ConfigError("'warm_up' must be a mapping")

    has_bar_count = "bar_count" in raw_warm_up
    has_time_span = "time_span" in raw_warm_up
    if has_bar_count and has_time_span:
        raise ConfigError("'warm_up' accepts either 'bar_count' or 'time_span', not both")
    if not has_bar_count and not has_time_span:
        raise ConfigError("'warm_up' requires 'bar_count' or 'time_span'")

    resolution: Resolution | None = None
    if raw_warm_up.get("resolution") is not None:
        resolution = _parse_resolution(raw_warm_up["resolution"], "warm_up.resolution")

    if has_bar_count:
        bar_count = raw_warm_up["bar_count"]
        if not isinstance(bar_count, int) or isinstance(bar_count, bool) or bar_count <= 0:
            raise ConfigError("'warm_up.bar_count' must be a positive integer")
        return BarCountWarmUp(bar_count=bar_count, resolution=resolution)

    raw_span = raw_warm_up["time_span"]
    if not isinstance(raw_span, dict) or not raw_span:
        raise ConfigError("'warm_up.time_span' must be a mapping like {days: 5}")
    unknown = set(raw_span) - VALID_TIME_SPAN_UNITS
    if unknown:
        raise ConfigError(
            f"Invalid time_span units {sorted(unknown)}. "
            f"Valid options: {sorted(VALID_TIME_SPAN_UNITS)}"
        )
    try:
        time_span = timedelta(**raw_span)
    except TypeError as e:
        raise ConfigError(f"Invalid 'warm_up.time_span': {e}") from e
    if time_span <= timedelta(0):
        raise ConfigError("'warm_up.time_span' must be positive")
    return TimeSpanWarmUp(time_span=time_span, resolution=resolution)


def load_history_config(config_path: str | Path) -> HistoryConfig:
    """Parse and validate a history configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated HistoryConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    # Read and parse YAML
    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    time_zone = raw_config.get("time_zone", "UTC")
    if not isinstance(time_zone, str):
        raise ConfigError("'time_zone' must be a string")
    try:
        ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown time zone '{time_zone}'") from e

    universe = _parse_universe(raw_config.get("universe", {}))
    warm_up = _parse_warm_up(raw_config.get("warm_up"))

    # Parse logging (optional)
    raw_logging = raw_config.get("logging", {})
    if not isinstance(raw_logging, dict):
        raise ConfigError("'logging' must be a mapping")

    log_level = str(raw_logging.get("level", "INFO")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{log_level}'. "
            f"Valid options: {sorted(VALID_LOG_LEVELS)}"
        )

    return HistoryConfig(
        time_zone=time_zone,
        universe=universe,
        warm_up=warm_up,
        log_level=log_level,
    )


__all__ = ["HistoryConfig", "load_history_config"]
