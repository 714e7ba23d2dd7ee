"""Health reporting and metrics formatting helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Tuple

from fastapi import status

from .metrics import MONITOR_STATE
from .settings import get_settings

SETTINGS = get_settings()
READINESS_STALE_THRESHOLD_SECONDS = SETTINGS.health.readiness_stale_threshold_seconds


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def generate_health_report(
    include_details: bool = False,
) -> Tuple[str, int, Dict[str, str]]:
    """Summarize the outcome of the most recent validator monitor cycle.

    Returns:
        Overall status, HTTP status code, and a details dictionary that is
        empty unless `include_details` is set.
    """
    if MONITOR_STATE.healthy is None:
        overall_status = "initializing"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif MONITOR_STATE.healthy:
        overall_status = "ok"
        status_code = status.HTTP_200_OK
    else:
        overall_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    details: Dict[str, str] = {}

    if include_details:
        if MONITOR_STATE.last_success is not None:
            details["last_success_timestamp"] = _isoformat(MONITOR_STATE.last_success)

        if MONITOR_STATE.last_failure is not None:
            details["last_failure_timestamp"] = _isoformat(MONITOR_STATE.last_failure)

        if MONITOR_STATE.last_error is not None:
            details["last_error"] = MONITOR_STATE.last_error

        if MONITOR_STATE.last_error_stage is not None:
            details["last_error_stage"] = MONITOR_STATE.last_error_stage

    return overall_status, status_code, details


def generate_readiness_report() -> Tuple[bool, Dict[str, str]]:
    """Ready when the latest cycle succeeded and that success is not stale."""
    last_success = MONITOR_STATE.last_success

    details: Dict[str, str] = {}

    if last_success is not None:
        details["last_success_timestamp"] = _isoformat(last_success)

    threshold = time.time() - READINESS_STALE_THRESHOLD_SECONDS

    is_recent = last_success is not None and last_success >= threshold
    ready = bool(MONITOR_STATE.healthy) and is_recent

    return ready, details


def format_metrics_payload(payload: bytes) -> bytes:
    """Rewrite sample values in scientific notation as plain decimals."""
    text = payload.decode()

    lines = []

    for line in text.splitlines():
        if not line or line.startswith("#"):
            lines.append(line)

            continue

        parts = line.rsplit(" ", 1)

        if len(parts) != 2:
            lines.append(line)

            continue

        metric, value = parts

        if "e" in value.lower():
            try:
                value = format(Decimal(value), "f")
            except InvalidOperation:
                pass

        lines.append(f"{metric} {value}")

    return ("\n".join(lines) + "\n").encode()


__all__ = [
    "format_metrics_payload",
    "generate_health_report",
    "generate_readiness_report",
    "READINESS_STALE_THRESHOLD_SECONDS",
]
