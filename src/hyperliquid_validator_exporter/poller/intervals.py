"""Utilities for polling intervals."""

from __future__ import annotations

import re

from ..logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_POLL_INTERVAL = "5m"
POLL_INTERVAL_PATTERN = re.compile(r"^\s*(\d+)\s*([smhSMH]?)\s*$")


def determine_poll_interval_seconds(raw_value: str | None) -> int:
    """Determine the poll interval in seconds for the validator monitor.

    Falls back to the default interval if the value is missing or invalid.

    Args:
        raw_value: Configured duration string such as '5m'.

    Returns:
        Poll interval in seconds (always positive).
    """
    value = raw_value or DEFAULT_POLL_INTERVAL

    resolved_seconds = parse_duration_to_seconds(value)

    if resolved_seconds is None or resolved_seconds <= 0:
        LOGGER.warning(
            "Invalid poll interval '%s'. Falling back to %s.",
            value,
            DEFAULT_POLL_INTERVAL,
        )

        return DEFAULT_POLL_INTERVAL_SECONDS

    return resolved_seconds


def parse_duration_to_seconds(value: str) -> int | None:
    """Parse a duration string (e.g., '5m', '10s', '1h') to seconds.

    Supports formats: 'N', 'Ns', 'Nm', 'Nh' where N is a positive integer.
    Case-insensitive for unit letters.

    Args:
        value: Duration string to parse.

    Returns:
        Duration in seconds, or None if parsing fails.
    """
    match = POLL_INTERVAL_PATTERN.match(value)

    if not match:
        return None

    amount = int(match.group(1))

    unit = match.group(2).lower() or "s"

    unit_multipliers = {"s": 1, "m": 60, "h": 3600}

    multiplier = unit_multipliers.get(unit)

    if multiplier is None:
        return None

    return amount * multiplier


DEFAULT_POLL_INTERVAL_SECONDS = parse_duration_to_seconds(DEFAULT_POLL_INTERVAL) or 300


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "determine_poll_interval_seconds",
    "parse_duration_to_seconds",
]
