"""Utilities for resolving application settings alongside the monitor config."""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import lru_cache

from .config import MonitorConfig, load_monitor_config
from .settings import AppSettings, get_settings


@dataclass(slots=True)
class RuntimeSettings:
    """Resolved environment settings paired with the validated monitor config."""

    app: AppSettings

    monitor: MonitorConfig


@lru_cache(maxsize=1)
def get_runtime_settings(*, network: str | None = None) -> RuntimeSettings:
    """Load environment settings and the monitor config as a single bundle.

    Args:
        network: Optional network name overriding `HYPERLIQUID_NETWORK`.
    """

    app_settings = get_settings()

    if network is not None:
        app_settings = replace(
            app_settings,
            monitor=replace(app_settings.monitor, network=network),
        )

    return RuntimeSettings(
        app=app_settings,
        monitor=load_monitor_config(app_settings),
    )


def reset_runtime_settings_cache() -> None:
    """Clear the runtime settings cache so fresh configuration is loaded."""

    get_runtime_settings.cache_clear()


__all__ = [
    "RuntimeSettings",
    "get_runtime_settings",
    "reset_runtime_settings_cache",
]
