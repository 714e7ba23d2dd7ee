"""Async control loop for validator polling."""

from __future__ import annotations

import asyncio
import time

from ..context import ApplicationContext, get_application_context
from ..exceptions import CycleError
from ..logging import build_log_extra, get_logger, log_duration
from ..metrics import (
    MetricsStoreProtocol,
    record_dropped_error,
    record_poll_failure,
    record_poll_success,
)
from ..models import AggregateStats
from .cycle import update_validator_metrics

LOGGER = get_logger(__name__)


def start_validator_monitor(
    stop_event: asyncio.Event,
    errors: asyncio.Queue[BaseException] | None,
    *,
    context: ApplicationContext | None = None,
) -> asyncio.Task:
    """Start the validator monitor loop as a background task.

    Must be called from a running event loop.
    """

    return asyncio.create_task(
        poll_validators(stop_event, errors, context=context),
        name="validator-monitor",
    )


async def poll_validators(
    stop_event: asyncio.Event,
    errors: asyncio.Queue[BaseException] | None,
    *,
    context: ApplicationContext | None = None,
) -> None:
    """Run one collection cycle per poll interval until `stop_event` is set.

    The first cycle runs one full interval after start. Cycles are awaited
    inline, so they never overlap; ticks missed while a cycle overran are
    skipped rather than queued.

    Args:
        stop_event: Lifecycle signal; setting it stops the loop at the next
            wait and aborts an in-flight request.
        errors: Bounded queue receiving each failed cycle's exception.
        context: Optional application context (defaults to global context).
    """

    context_obj = context or get_application_context()

    network = context_obj.network
    interval_seconds = context_obj.monitor.poll_interval_seconds

    LOGGER.info(
        "Polling %s validator summaries every %s seconds.",
        network.value,
        interval_seconds,
        extra=build_log_extra(network=network),
    )

    loop = asyncio.get_running_loop()
    next_tick = loop.time() + interval_seconds

    try:
        while True:
            if await _wait_for_tick_or_stop(stop_event, next_tick - loop.time()):
                LOGGER.info(
                    "Validator monitor for %s stopped.",
                    network.value,
                    extra=build_log_extra(network=network),
                )
                return

            await run_monitor_cycle(stop_event, errors, context=context_obj)

            next_tick = _next_tick(next_tick, interval_seconds, loop.time())
    except asyncio.CancelledError:
        LOGGER.debug(
            "Validator monitor task for %s cancelled.",
            network.value,
            extra=build_log_extra(network=network),
        )
        raise


async def run_monitor_cycle(
    stop_event: asyncio.Event,
    errors: asyncio.Queue[BaseException] | None,
    *,
    context: ApplicationContext,
) -> AggregateStats | None:
    """Run one cycle, recording its outcome and forwarding any failure.

    Returns:
        The published aggregates, or None if the cycle failed.
    """

    network = context.network
    start_time = time.monotonic()

    try:
        with log_duration(
            LOGGER,
            "validator_monitor_cycle",
            extra=build_log_extra(network=network),
        ):
            stats = await collect_validator_metrics(stop_event, context=context)
    except CycleError as exc:
        elapsed = time.monotonic() - start_time

        LOGGER.error(
            "Validator monitor error: %s",
            exc,
            extra=build_log_extra(
                network=network,
                stage=exc.stage,
                error=exc,
                elapsed=elapsed,
            ),
        )
        record_poll_failure(exc.stage, duration=elapsed, metrics=context.metrics)
        report_error(errors, exc, metrics=context.metrics)
        return None
    except Exception as exc:  # noqa: BLE001
        # Programming errors must not kill the monitor loop.
        elapsed = time.monotonic() - start_time

        LOGGER.exception(
            "Unexpected error while polling %s validator summaries.",
            network.value,
            exc_info=exc,
            extra=build_log_extra(network=network, stage="unexpected", error=exc, elapsed=elapsed),
        )
        record_poll_failure("unexpected", duration=elapsed, metrics=context.metrics)
        report_error(errors, exc, metrics=context.metrics)
        return None

    record_poll_success(duration=time.monotonic() - start_time, metrics=context.metrics)

    return stats


async def collect_validator_metrics(
    stop_event: asyncio.Event,
    *,
    context: ApplicationContext,
) -> AggregateStats:
    """Execute one collection cycle with a fresh HTTP client."""

    async with context.create_http_client() as client:
        return await update_validator_metrics(
            context.network,
            stop_event,
            client=client,
            metrics=context.metrics,
            timeout_seconds=context.monitor.request_timeout_seconds,
        )


def report_error(
    errors: asyncio.Queue[BaseException] | None,
    error: BaseException,
    *,
    metrics: MetricsStoreProtocol | None = None,
) -> bool:
    """Forward `error` without blocking; drop it when the queue is full.

    Returns:
        True if the error was queued.
    """

    if errors is None:
        return False

    try:
        errors.put_nowait(error)
    except asyncio.QueueFull:
        LOGGER.warning(
            "Error queue is full; dropping %s.",
            type(error).__name__,
            extra=build_log_extra(error=error, additional={"queue_size": errors.qsize()}),
        )
        record_dropped_error(metrics)
        return False

    return True


async def run_warm_poll(context: ApplicationContext, timeout_seconds: float) -> bool:
    """Run a single cycle before serving so metrics exist at first scrape.

    Returns:
        True if the cycle completed successfully within the timeout.
    """

    try:
        stats = await asyncio.wait_for(
            run_monitor_cycle(asyncio.Event(), None, context=context),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        LOGGER.warning(
            "Warm poll timed out after %.1f seconds. Continuing startup; background monitor will retry.",
            timeout_seconds,
            extra=build_log_extra(
                network=context.network,
                additional={"timeout_seconds": timeout_seconds},
            ),
        )
        return False

    return stats is not None


async def _wait_for_tick_or_stop(stop_event: asyncio.Event, delay: float) -> bool:
    """Sleep up to `delay` seconds; return True if `stop_event` is set."""

    if stop_event.is_set():
        return True

    if delay > 0:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    return stop_event.is_set()


def _next_tick(previous_tick: float, interval_seconds: float, now: float) -> float:
    next_tick = previous_tick + interval_seconds

    if next_tick <= now:
        missed = int((now - previous_tick) // interval_seconds)
        next_tick = previous_tick + (missed + 1) * interval_seconds

    return next_tick


__all__ = [
    "collect_validator_metrics",
    "poll_validators",
    "report_error",
    "run_monitor_cycle",
    "run_warm_poll",
    "start_validator_monitor",
]
