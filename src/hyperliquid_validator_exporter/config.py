from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ValidationError
from .settings import AppSettings, get_settings

DEFAULT_ENV_PATH = Path.cwd().joinpath(".env").resolve()

load_dotenv(DEFAULT_ENV_PATH)


class Network(str, Enum):
    """Hyperliquid networks with a known info API endpoint."""

    MAINNET = "mainnet"
    TESTNET = "testnet"

    @property
    def api_url(self) -> str:
        return NETWORK_API_URLS[self]


NETWORK_API_URLS: dict[Network, str] = {
    Network.MAINNET: "https://api.hyperliquid.xyz/info",
    Network.TESTNET: "https://api.hyperliquid-testnet.xyz/info",
}


@dataclass(frozen=True, slots=True)
class MonitorConfig:
    network: Network

    poll_interval_seconds: float

    request_timeout_seconds: float

    error_queue_size: int

    @property
    def api_url(self) -> str:
        return self.network.api_url


def resolve_network(value: str | Network) -> Network:
    """Map a configured network name onto a `Network`.

    Matching is case-insensitive and ignores surrounding whitespace.

    Raises:
        ValidationError: If the value names no supported network.
    """
    if isinstance(value, Network):
        return value

    normalized = str(value).strip().lower()

    try:
        return Network(normalized)
    except ValueError as exc:
        expected = ", ".join(network.value for network in Network)

        raise ValidationError(
            f"Unsupported network '{value}'.",
            config_key="HYPERLIQUID_NETWORK",
            value=value,
            expected=expected,
        ) from exc


def load_monitor_config(settings: AppSettings | None = None) -> MonitorConfig:
    """Resolve monitor settings into a validated `MonitorConfig`."""

    from .poller.intervals import determine_poll_interval_seconds

    resolved_settings = settings or get_settings()
    monitor = resolved_settings.monitor

    network = resolve_network(monitor.network)

    if monitor.request_timeout_seconds <= 0:
        raise ValidationError(
            "REQUEST_TIMEOUT_SECONDS must be positive.",
            config_key="REQUEST_TIMEOUT_SECONDS",
            value=monitor.request_timeout_seconds,
            expected="positive number",
        )

    if monitor.error_queue_size <= 0:
        raise ValidationError(
            "ERROR_QUEUE_SIZE must be positive.",
            config_key="ERROR_QUEUE_SIZE",
            value=monitor.error_queue_size,
            expected="positive integer",
        )

    return MonitorConfig(
        network=network,
        poll_interval_seconds=determine_poll_interval_seconds(monitor.poll_interval),
        request_timeout_seconds=monitor.request_timeout_seconds,
        error_queue_size=monitor.error_queue_size,
    )


__all__ = [
    "MonitorConfig",
    "NETWORK_API_URLS",
    "Network",
    "load_monitor_config",
    "resolve_network",
]
