"""Application settings and environment-driven configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _as_int(value: str | None, default: int) -> int:
    """Convert a string value to an integer, returning default on failure.

    Args:
        value: String value to convert, or None.
        default: Default value to return if conversion fails.

    Returns:
        Converted integer value, or default if conversion fails.
    """
    if value is None:
        return default

    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    """Convert a string value to a float, returning default on failure."""
    if value is None:
        return default

    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    """Convert a string value to a boolean, returning default on failure.

    Recognizes truthy values: "1", "true", "yes", "on" (case-insensitive).
    Recognizes falsy values: "0", "false", "no", "off" (case-insensitive).
    """
    if value is None:
        return default

    normalized = value.strip().lower()

    if normalized in {"1", "true", "yes", "on"}:
        return True

    if normalized in {"0", "false", "no", "off"}:
        return False

    return default


@dataclass(slots=True)
class LoggingSettings:
    level: str
    format: str
    color_enabled: bool


@dataclass(slots=True)
class MonitorSettings:
    network: str
    poll_interval: str
    request_timeout_seconds: float
    error_queue_size: int
    warm_poll_enabled: bool
    warm_poll_timeout_seconds: float


@dataclass(slots=True)
class HealthSettings:
    readiness_stale_threshold_seconds: int


@dataclass(slots=True)
class ServerSettings:
    health_port: int
    metrics_port: int


@dataclass(slots=True)
class AppSettings:
    logging: LoggingSettings
    monitor: MonitorSettings
    health: HealthSettings
    server: ServerSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    logging_settings = LoggingSettings(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format=os.getenv("LOG_FORMAT", "text").lower(),
        color_enabled=_as_bool(os.getenv("LOG_COLOR_ENABLED"), True),
    )

    monitor_settings = MonitorSettings(
        network=os.getenv("HYPERLIQUID_NETWORK", "mainnet"),
        poll_interval=os.getenv("POLL_INTERVAL", "5m"),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 10.0),
        error_queue_size=_as_int(os.getenv("ERROR_QUEUE_SIZE"), 16),
        warm_poll_enabled=_as_bool(os.getenv("WARM_POLL_ENABLED"), False),
        warm_poll_timeout_seconds=_as_float(os.getenv("WARM_POLL_TIMEOUT_SECONDS"), 30.0),
    )

    health_settings = HealthSettings(
        readiness_stale_threshold_seconds=_as_int(
            os.getenv("READINESS_STALE_THRESHOLD_SECONDS"),
            900,
        )
    )

    server_settings = ServerSettings(
        health_port=_as_int(os.getenv("HEALTH_PORT"), 8080),
        metrics_port=_as_int(os.getenv("METRICS_PORT"), 9100),
    )

    return AppSettings(
        logging=logging_settings,
        monitor=monitor_settings,
        health=health_settings,
        server=server_settings,
    )


__all__ = ["AppSettings", "get_settings"]
