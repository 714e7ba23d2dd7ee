"""Runtime dependency container for wiring metrics, settings, and HTTP clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import httpx

from .config import MonitorConfig, Network
from .metrics import MetricsStoreProtocol, get_metrics
from .runtime_settings import RuntimeSettings, get_runtime_settings
from .settings import AppSettings


@dataclass(slots=True)
class ApplicationContext:
    """Bundle of services required while the exporter is running."""

    metrics: MetricsStoreProtocol

    runtime: RuntimeSettings

    client_factory: Callable[[float], httpx.AsyncClient]

    def create_http_client(self) -> httpx.AsyncClient:
        """Construct an HTTP client bounded by the configured request timeout."""

        return self.client_factory(self.monitor.request_timeout_seconds)

    @property
    def settings(self) -> AppSettings:
        """Return resolved environment-driven application settings."""

        return self.runtime.app

    @property
    def monitor(self) -> MonitorConfig:
        return self.runtime.monitor

    @property
    def network(self) -> Network:
        return self.runtime.monitor.network


def default_client_factory(timeout_seconds: float) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` for the Hyperliquid info API."""

    return httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))


def create_default_context() -> ApplicationContext:
    """Build an application context from environment settings and global metrics."""

    return ApplicationContext(
        metrics=get_metrics(),
        runtime=get_runtime_settings(),
        client_factory=default_client_factory,
    )


_APPLICATION_CONTEXT: ApplicationContext | None = None


def get_application_context() -> ApplicationContext:
    """Return the current application context, creating one when absent."""

    global _APPLICATION_CONTEXT

    if _APPLICATION_CONTEXT is None:
        _APPLICATION_CONTEXT = create_default_context()

    return _APPLICATION_CONTEXT


def set_application_context(context: ApplicationContext | None) -> None:
    """Replace the globally cached application context."""

    global _APPLICATION_CONTEXT

    _APPLICATION_CONTEXT = context


def reset_application_context() -> None:
    """Clear the cached context so the next access rebuilds dependencies."""

    set_application_context(None)


__all__ = [
    "ApplicationContext",
    "create_default_context",
    "default_client_factory",
    "get_application_context",
    "reset_application_context",
    "set_application_context",
]
