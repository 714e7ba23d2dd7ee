"""Core data models used across the exporter."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable

from .exceptions import DecodeError


@dataclass(frozen=True, slots=True)
class ValidatorSummary:
    """One validator entry from the `validatorSummaries` info response."""

    validator: str
    signer: str
    name: str
    description: str
    n_recent_blocks: int
    stake: float
    is_jailed: bool
    unjailable_after: int
    is_active: bool

    @property
    def labels(self) -> tuple[str, str, str]:
        return (self.validator, self.signer, self.name)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], index: int) -> ValidatorSummary:
        """Build a summary from one decoded JSON object.

        Absent keys and ``null`` values take the zero value of their field;
        unknown keys are ignored.
        """
        return cls(
            validator=_read_string(payload, "validator", index),
            signer=_read_string(payload, "signer", index),
            name=_read_string(payload, "name", index),
            description=_read_string(payload, "description", index),
            n_recent_blocks=_read_int(payload, "nRecentBlocks", index),
            stake=_read_float(payload, "stake", index),
            is_jailed=_read_bool(payload, "isJailed", index),
            unjailable_after=_read_int(payload, "unjailableAfter", index),
            is_active=_read_bool(payload, "isActive", index),
        )


@dataclass(frozen=True, slots=True)
class AggregateStats:
    """Stake sums over the validators seen in one cycle."""

    total_stake: float = 0.0
    jailed_stake: float = 0.0
    not_jailed_stake: float = 0.0
    active_stake: float = 0.0
    inactive_stake: float = 0.0
    validator_count: int = 0

    @classmethod
    def from_summaries(cls, summaries: Iterable[ValidatorSummary]) -> AggregateStats:
        total_stake = 0.0
        jailed_stake = 0.0
        not_jailed_stake = 0.0
        active_stake = 0.0
        inactive_stake = 0.0
        validator_count = 0

        for summary in summaries:
            if summary.is_jailed:
                jailed_stake += summary.stake
            else:
                not_jailed_stake += summary.stake

            if summary.is_active:
                active_stake += summary.stake
            else:
                inactive_stake += summary.stake

            total_stake += summary.stake
            validator_count += 1

        return cls(
            total_stake=total_stake,
            jailed_stake=jailed_stake,
            not_jailed_stake=not_jailed_stake,
            active_stake=active_stake,
            inactive_stake=inactive_stake,
            validator_count=validator_count,
        )


def decode_validator_summaries(body: bytes | str) -> list[ValidatorSummary]:
    """Decode a `validatorSummaries` response body.

    Raises:
        DecodeError: If the body is not a JSON array of summary objects.
    """
    try:
        payload = json.loads(body, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise DecodeError("Response body is not valid JSON.") from exc

    if not isinstance(payload, list):
        raise DecodeError(
            "Response body must be a JSON array.",
            context={"received_type": type(payload).__name__},
        )

    summaries: list[ValidatorSummary] = []

    for index, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise DecodeError(
                "Validator summary must be a JSON object.",
                index=index,
                context={"received_type": type(entry).__name__},
            )

        summaries.append(ValidatorSummary.from_payload(entry, index))

    return summaries


def _reject_constant(name: str) -> Any:
    raise ValueError(f"'{name}' is not a valid JSON value.")


def _field_error(key: str, index: int, expected: str, value: Any) -> DecodeError:
    return DecodeError(
        f"Field '{key}' must be {expected}.",
        index=index,
        context={"field": key, "received_type": type(value).__name__},
    )


def _read_string(payload: dict[str, Any], key: str, index: int) -> str:
    value = payload.get(key)

    if value is None:
        return ""

    if not isinstance(value, str):
        raise _field_error(key, index, "a string", value)

    return value


def _read_int(payload: dict[str, Any], key: str, index: int) -> int:
    value = payload.get(key)

    if value is None:
        return 0

    # bool is an int subclass; JSON true/false is not a number.
    if isinstance(value, bool):
        raise _field_error(key, index, "an integer", value)

    if isinstance(value, float) and value.is_integer():
        return int(value)

    if not isinstance(value, int):
        raise _field_error(key, index, "an integer", value)

    return value


def _read_float(payload: dict[str, Any], key: str, index: int) -> float:
    value = payload.get(key)

    if value is None:
        return 0.0

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _field_error(key, index, "a number", value)

    try:
        number = float(value)
    except OverflowError:
        raise _field_error(key, index, "a finite number", value) from None

    if not math.isfinite(number):
        raise _field_error(key, index, "a finite number", value)

    return number


def _read_bool(payload: dict[str, Any], key: str, index: int) -> bool:
    value = payload.get(key)

    if value is None:
        return False

    if not isinstance(value, bool):
        raise _field_error(key, index, "a boolean", value)

    return value


__all__ = [
    "AggregateStats",
    "ValidatorSummary",
    "decode_validator_summaries",
]
