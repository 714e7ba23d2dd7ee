"""Polling package for validator metrics."""

from .control import (
    collect_validator_metrics,
    poll_validators,
    report_error,
    run_monitor_cycle,
    run_warm_poll,
    start_validator_monitor,
)
from .cycle import fetch_validator_summaries, update_validator_metrics
from .intervals import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_INTERVAL_SECONDS,
    parse_duration_to_seconds,
)
from .manager import PollerManager, get_poller_manager, reset_poller_manager

__all__ = [
    "collect_validator_metrics",
    "fetch_validator_summaries",
    "poll_validators",
    "report_error",
    "run_monitor_cycle",
    "run_warm_poll",
    "start_validator_monitor",
    "update_validator_metrics",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "parse_duration_to_seconds",
    "PollerManager",
    "get_poller_manager",
    "reset_poller_manager",
]
