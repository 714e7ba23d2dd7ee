"""One poll, decode and publish cycle against the Hyperliquid info API."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

import httpx

from ..config import Network
from ..exceptions import BodyReadError, RequestConstructionError, TransportError
from ..logging import build_log_extra, get_logger
from ..metrics import (
    MetricsStoreProtocol,
    get_metrics,
    record_stake_aggregates,
    set_validator_active_status,
    set_validator_jailed_status,
    set_validator_stake,
)
from ..models import AggregateStats, ValidatorSummary, decode_validator_summaries

LOGGER = get_logger(__name__)

VALIDATOR_SUMMARIES_PAYLOAD = b'{"type": "validatorSummaries"}'
REQUEST_HEADERS = {"Content-Type": "application/json"}
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0

T = TypeVar("T")


class _Interrupted(Exception):
    """The awaited HTTP step lost the race against the stop signal or deadline."""

    def __init__(self, *, cancelled: bool) -> None:
        super().__init__("cancelled" if cancelled else "timed out")
        self.cancelled = cancelled

    @property
    def reason(self) -> str:
        return "was cancelled" if self.cancelled else "timed out"


async def _await_until_stopped(
    awaitable: Awaitable[T],
    stop_event: asyncio.Event,
    deadline: float,
) -> T:
    """Await `awaitable` unless `stop_event` fires or `deadline` passes first."""

    loop = asyncio.get_running_loop()

    work = asyncio.ensure_future(awaitable)
    stopper = asyncio.ensure_future(stop_event.wait())

    try:
        await asyncio.wait(
            {work, stopper},
            timeout=max(deadline - loop.time(), 0),
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        stopper.cancel()

    if work.done():
        return work.result()

    work.cancel()
    await asyncio.gather(work, return_exceptions=True)

    raise _Interrupted(cancelled=stop_event.is_set())


async def fetch_validator_summaries(
    client: httpx.AsyncClient,
    url: str,
    stop_event: asyncio.Event,
    *,
    timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> bytes:
    """POST the `validatorSummaries` query and return the raw response body.

    The send and the body read share one deadline of `timeout_seconds`, and
    both are abandoned as soon as `stop_event` is set.

    Raises:
        RequestConstructionError: If the request cannot be built.
        TransportError: If sending fails, is cancelled, times out, or the
            response status is not 2xx.
        BodyReadError: If the body stream fails partway.
    """
    try:
        request = client.build_request(
            "POST",
            url,
            content=VALIDATOR_SUMMARIES_PAYLOAD,
            headers=REQUEST_HEADERS,
        )
    except (httpx.InvalidURL, ValueError, TypeError) as exc:
        raise RequestConstructionError(
            "Unable to build validator summaries request.",
            url=url,
        ) from exc

    if stop_event.is_set():
        raise TransportError(
            "Validator summaries request was cancelled before sending.",
            url=url,
            cancelled=True,
        )

    deadline = asyncio.get_running_loop().time() + timeout_seconds

    LOGGER.debug(
        "Making request to validator API at %s",
        url,
        extra=build_log_extra(additional={"url": url}),
    )

    try:
        response = await _await_until_stopped(
            client.send(request, stream=True),
            stop_event,
            deadline,
        )
    except _Interrupted as exc:
        raise TransportError(
            f"Validator summaries request {exc.reason}.",
            url=url,
            cancelled=exc.cancelled,
            timed_out=not exc.cancelled,
        ) from None
    except httpx.HTTPError as exc:
        raise TransportError(
            f"Validator summaries request failed: {exc}",
            url=url,
        ) from exc

    try:
        if not response.is_success:
            raise TransportError(
                f"Validator summaries request returned HTTP {response.status_code}.",
                url=url,
                status_code=response.status_code,
            )

        try:
            return await _await_until_stopped(response.aread(), stop_event, deadline)
        except _Interrupted as exc:
            raise BodyReadError(
                f"Reading validator summaries response {exc.reason}.",
                url=url,
                cancelled=exc.cancelled,
                timed_out=not exc.cancelled,
            ) from None
        except httpx.HTTPError as exc:
            raise BodyReadError(
                "Failed to read validator summaries response body.",
                url=url,
            ) from exc
    finally:
        await response.aclose()


def publish_validator_summary(
    summary: ValidatorSummary,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    """Publish stake, jailed status and active status for one validator."""

    validator, signer, name = summary.labels

    set_validator_stake(validator, signer, name, summary.stake, metrics)
    set_validator_jailed_status(validator, signer, name, 1.0 if summary.is_jailed else 0.0, metrics)
    set_validator_active_status(validator, signer, name, 1.0 if summary.is_active else 0.0, metrics)


async def update_validator_metrics(
    network: Network,
    stop_event: asyncio.Event,
    *,
    client: httpx.AsyncClient,
    metrics: MetricsStoreProtocol | None = None,
    timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> AggregateStats:
    """Fetch validator summaries for `network` and publish them as metrics.

    Per-validator gauges are written in response order, followed by the
    stake aggregates. Nothing is published when fetching or decoding fails.
    """

    body = await fetch_validator_summaries(
        client,
        network.api_url,
        stop_event,
        timeout_seconds=timeout_seconds,
    )

    summaries = decode_validator_summaries(body)

    stats = AggregateStats.from_summaries(summaries)

    metrics_bundle = metrics or get_metrics()

    for summary in summaries:
        publish_validator_summary(summary, metrics_bundle)

    record_stake_aggregates(stats, metrics_bundle)

    log_fields: dict[str, Any] = {
        "total_stake": stats.total_stake,
        "jailed_stake": stats.jailed_stake,
        "not_jailed_stake": stats.not_jailed_stake,
        "active_stake": stats.active_stake,
        "inactive_stake": stats.inactive_stake,
    }

    LOGGER.info(
        "Updated validator metrics: validators=%d total_stake=%f jailed_stake=%f "
        "not_jailed_stake=%f active_stake=%f inactive_stake=%f",
        stats.validator_count,
        stats.total_stake,
        stats.jailed_stake,
        stats.not_jailed_stake,
        stats.active_stake,
        stats.inactive_stake,
        extra=build_log_extra(
            network=network,
            validator_count=stats.validator_count,
            additional=log_fields,
        ),
    )

    return stats


__all__ = [
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "REQUEST_HEADERS",
    "VALIDATOR_SUMMARIES_PAYLOAD",
    "fetch_validator_summaries",
    "publish_validator_summary",
    "update_validator_metrics",
]
