"""Prometheus metric registry and helpers for validator exporter state."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from prometheus_client import CollectorRegistry, Counter, Gauge

from .config import Network
from .models import AggregateStats

VALIDATOR_LABELS = ("validator", "signer", "name")


@dataclass(slots=True)
class ExporterMetrics:
    up: Gauge
    network_info: Gauge


@dataclass(slots=True)
class ValidatorMetrics:
    stake: Gauge
    jailed_status: Gauge
    active_status: Gauge


@dataclass(slots=True)
class StakeMetrics:
    total_stake: Gauge
    jailed_stake: Gauge
    not_jailed_stake: Gauge
    active_stake: Gauge
    inactive_stake: Gauge
    validator_count: Gauge


@dataclass(slots=True)
class MonitorMetrics:
    poll_success: Gauge
    poll_timestamp: Gauge
    poll_duration: Gauge
    errors: Counter
    dropped_errors: Counter


@runtime_checkable
class MetricsStoreProtocol(Protocol):
    registry: CollectorRegistry
    exporter: ExporterMetrics
    validator: ValidatorMetrics
    stake: StakeMetrics
    monitor: MonitorMetrics


@dataclass(slots=True)
class MetricsBundle(MetricsStoreProtocol):
    registry: CollectorRegistry
    exporter: ExporterMetrics
    validator: ValidatorMetrics
    stake: StakeMetrics
    monitor: MonitorMetrics


def create_metrics(registry: CollectorRegistry | None = None) -> MetricsBundle:
    registry = registry or CollectorRegistry()

    exporter = ExporterMetrics(
        up=Gauge(
            "hl_validator_exporter_up",
            "Indicates whether the exporter is available (1 for up, 0 for down).",
            registry=registry,
        ),
        network_info=Gauge(
            "hl_validator_exporter_network_info",
            "Network and info API endpoint the exporter polls (always 1).",
            labelnames=("network", "api_url"),
            registry=registry,
        ),
    )

    validator = ValidatorMetrics(
        stake=Gauge(
            "hl_validator_stake",
            "Stake backing each validator.",
            labelnames=VALIDATOR_LABELS,
            registry=registry,
        ),
        jailed_status=Gauge(
            "hl_validator_jailed_status",
            "Whether each validator is jailed (1) or not (0).",
            labelnames=VALIDATOR_LABELS,
            registry=registry,
        ),
        active_status=Gauge(
            "hl_validator_active_status",
            "Whether each validator is active (1) or not (0).",
            labelnames=VALIDATOR_LABELS,
            registry=registry,
        ),
    )

    stake = StakeMetrics(
        total_stake=Gauge(
            "hl_total_stake",
            "Total stake across all validators.",
            registry=registry,
        ),
        jailed_stake=Gauge(
            "hl_jailed_stake",
            "Total stake held by jailed validators.",
            registry=registry,
        ),
        not_jailed_stake=Gauge(
            "hl_not_jailed_stake",
            "Total stake held by validators that are not jailed.",
            registry=registry,
        ),
        active_stake=Gauge(
            "hl_active_stake",
            "Total stake held by active validators.",
            registry=registry,
        ),
        inactive_stake=Gauge(
            "hl_inactive_stake",
            "Total stake held by inactive validators.",
            registry=registry,
        ),
        validator_count=Gauge(
            "hl_validator_count",
            "Number of validators reported by the most recent successful poll.",
            registry=registry,
        ),
    )

    monitor = MonitorMetrics(
        poll_success=Gauge(
            "hl_validator_monitor_poll_success",
            "Indicates whether the most recent polling cycle succeeded (1) or failed (0).",
            registry=registry,
        ),
        poll_timestamp=Gauge(
            "hl_validator_monitor_poll_timestamp_seconds",
            "Unix timestamp of the most recent successful polling cycle.",
            registry=registry,
        ),
        poll_duration=Gauge(
            "hl_validator_monitor_poll_duration_seconds",
            "Duration of the most recent polling cycle in seconds.",
            registry=registry,
        ),
        errors=Counter(
            "hl_validator_monitor_errors",
            "Polling cycles that failed, by failing stage.",
            labelnames=("stage",),
            registry=registry,
        ),
        dropped_errors=Counter(
            "hl_validator_monitor_dropped_errors",
            "Cycle errors dropped because the error queue was full.",
            registry=registry,
        ),
    )

    return MetricsBundle(
        registry=registry,
        exporter=exporter,
        validator=validator,
        stake=stake,
        monitor=monitor,
    )


@dataclass(slots=True)
class MonitorHealthState:
    """Outcome of the most recent cycles, read by the health endpoints."""

    healthy: bool | None = None

    last_success: float | None = None

    last_failure: float | None = None

    last_error: str | None = None

    last_error_stage: str | None = None

    def clear(self) -> None:
        self.healthy = None
        self.last_success = None
        self.last_failure = None
        self.last_error = None
        self.last_error_stage = None


_METRICS: MetricsStoreProtocol = create_metrics()

MONITOR_STATE = MonitorHealthState()


def get_metrics() -> MetricsStoreProtocol:
    return _METRICS


def set_metrics(bundle: MetricsStoreProtocol) -> None:
    global _METRICS
    _METRICS = bundle


def reset_metrics_state(registry: CollectorRegistry | None = None) -> MetricsStoreProtocol:
    """Rebuild the metrics bundle and clear monitor health state."""

    bundle = create_metrics(registry)
    set_metrics(bundle)

    MONITOR_STATE.clear()

    return bundle


def set_network_info(network: Network, metrics: MetricsStoreProtocol | None = None) -> None:
    bundle = metrics or get_metrics()

    bundle.exporter.network_info.clear()
    bundle.exporter.network_info.labels(network.value, network.api_url).set(1)


def set_validator_stake(
    validator: str,
    signer: str,
    name: str,
    value: float,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    bundle = metrics or get_metrics()
    bundle.validator.stake.labels(validator, signer, name).set(value)


def set_validator_jailed_status(
    validator: str,
    signer: str,
    name: str,
    value: float,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    bundle = metrics or get_metrics()
    bundle.validator.jailed_status.labels(validator, signer, name).set(value)


def set_validator_active_status(
    validator: str,
    signer: str,
    name: str,
    value: float,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    bundle = metrics or get_metrics()
    bundle.validator.active_status.labels(validator, signer, name).set(value)


def record_stake_aggregates(
    stats: AggregateStats,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    """Publish the stake sums and validator count of one cycle."""

    bundle = metrics or get_metrics()

    bundle.stake.total_stake.set(stats.total_stake)
    bundle.stake.jailed_stake.set(stats.jailed_stake)
    bundle.stake.not_jailed_stake.set(stats.not_jailed_stake)
    bundle.stake.active_stake.set(stats.active_stake)
    bundle.stake.inactive_stake.set(stats.inactive_stake)
    bundle.stake.validator_count.set(stats.validator_count)


def record_poll_success(
    *,
    duration: float | None = None,
    timestamp: float | None = None,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    """Record a successful polling cycle."""

    bundle = metrics or get_metrics()

    now = time.time() if timestamp is None else timestamp

    bundle.monitor.poll_success.set(1)
    bundle.monitor.poll_timestamp.set(now)

    if duration is not None:
        bundle.monitor.poll_duration.set(duration)

    MONITOR_STATE.healthy = True
    MONITOR_STATE.last_success = now


def record_poll_failure(
    stage: str,
    *,
    duration: float | None = None,
    timestamp: float | None = None,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    """Record a failed polling cycle.

    Previously published validator and stake values are left in place.
    """

    bundle = metrics or get_metrics()

    bundle.monitor.poll_success.set(0)
    bundle.monitor.errors.labels(stage).inc()

    if duration is not None:
        bundle.monitor.poll_duration.set(duration)

    MONITOR_STATE.healthy = False
    MONITOR_STATE.last_failure = time.time() if timestamp is None else timestamp


def record_dropped_error(metrics: MetricsStoreProtocol | None = None) -> None:
    bundle = metrics or get_metrics()
    bundle.monitor.dropped_errors.inc()


def record_forwarded_error(error: BaseException) -> None:
    """Remember the latest error delivered through the error queue."""

    MONITOR_STATE.last_error = str(error)
    MONITOR_STATE.last_error_stage = getattr(error, "stage", None)


__all__ = [
    "ExporterMetrics",
    "MONITOR_STATE",
    "MetricsBundle",
    "MetricsStoreProtocol",
    "MonitorHealthState",
    "MonitorMetrics",
    "StakeMetrics",
    "VALIDATOR_LABELS",
    "ValidatorMetrics",
    "create_metrics",
    "get_metrics",
    "record_dropped_error",
    "record_forwarded_error",
    "record_poll_failure",
    "record_poll_success",
    "record_stake_aggregates",
    "reset_metrics_state",
    "set_metrics",
    "set_network_info",
    "set_validator_active_status",
    "set_validator_jailed_status",
    "set_validator_stake",
]
