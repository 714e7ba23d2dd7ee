"""Poller manager for coordinating the validator monitor across multiple FastAPI apps."""

from __future__ import annotations

import asyncio
import threading

from fastapi import FastAPI

from ..context import ApplicationContext
from ..logging import build_log_extra, get_logger
from ..metrics import record_forwarded_error
from . import control as poller_control

LOGGER = get_logger(__name__)


class PollerManager:
    """Manages the validator monitor task across multiple FastAPI app instances.

    The health and metrics apps share one lifespan, so this class ensures the
    monitor is started only once. It owns the lifecycle signal handed to the
    monitor, the bounded error queue it reports to, and the task draining
    that queue.

    Attributes:
        tasks_created: Whether the monitor tasks have been created.
        monitor_task: The running validator monitor loop.
        drain_task: Task consuming the error queue.
        stop_event: Lifecycle signal observed by the monitor.
        errors: Bounded queue of errors reported by failed cycles.
        primary_app: The FastAPI app instance that created the tasks (for cleanup).
        _lock: Thread lock for synchronizing access to shared state.
    """

    def __init__(self) -> None:
        """Initialize a new PollerManager instance."""
        self.tasks_created: bool = False
        self.monitor_task: asyncio.Task | None = None
        self.drain_task: asyncio.Task | None = None
        self.stop_event: asyncio.Event | None = None
        self.errors: asyncio.Queue[BaseException] | None = None
        self.primary_app: FastAPI | None = None
        self._lock = threading.Lock()

    def create_tasks(
        self,
        context: ApplicationContext,
        app: FastAPI,
    ) -> list[asyncio.Task]:
        """Start the monitor and error drain tasks if not already started.

        This method is thread-safe and idempotent.

        Args:
            context: Application context for dependency injection.
            app: FastAPI app instance creating the tasks.

        Returns:
            The monitor and drain tasks (either newly created or existing).
        """
        with self._lock:
            if self.tasks_created:
                LOGGER.debug("Reusing validator monitor started by another app instance")
                return self._tasks()

            self.tasks_created = True
            self.primary_app = app
            self.stop_event = asyncio.Event()
            self.errors = asyncio.Queue(maxsize=context.monitor.error_queue_size)

            self.monitor_task = poller_control.start_validator_monitor(
                self.stop_event,
                self.errors,
                context=context,
            )
            self.drain_task = asyncio.create_task(
                drain_errors(self.errors),
                name="validator-monitor-errors",
            )

            LOGGER.debug(
                "Started validator monitor for %s",
                context.network.value,
                extra=build_log_extra(
                    network=context.network,
                    additional={"error_queue_size": context.monitor.error_queue_size},
                ),
            )

            return self._tasks()

    def should_cleanup(self, app: FastAPI) -> bool:
        """Check if the given app created the tasks and should clean them up."""
        with self._lock:
            return self.tasks_created and self.primary_app is app

    async def shutdown_tasks(self, timeout_seconds: float = 30.0) -> None:
        """Signal the monitor to stop and wait for it, cancelling on timeout.

        Args:
            timeout_seconds: Maximum time to wait for the monitor to stop.
        """
        with self._lock:
            monitor_task = self.monitor_task
            drain_task = self.drain_task
            stop_event = self.stop_event
            self.monitor_task = None
            self.drain_task = None

        if stop_event is not None:
            stop_event.set()

        if monitor_task is not None and not monitor_task.done():
            _, pending = await asyncio.wait({monitor_task}, timeout=timeout_seconds)

            if pending:
                LOGGER.warning(
                    "Validator monitor did not stop within %s seconds; cancelling.",
                    timeout_seconds,
                    extra=build_log_extra(additional={"timeout_seconds": timeout_seconds}),
                )
                monitor_task.cancel()
                await asyncio.gather(monitor_task, return_exceptions=True)

        if drain_task is not None and not drain_task.done():
            drain_task.cancel()
            await asyncio.gather(drain_task, return_exceptions=True)

        LOGGER.debug("Validator monitor tasks stopped")

    def get_active_task_count(self) -> int:
        """Return the number of monitor tasks still running."""
        with self._lock:
            return sum(1 for task in self._tasks() if not task.done())

    def reset(self) -> None:
        """Reset the manager state (useful for testing)."""
        with self._lock:
            self.tasks_created = False
            self.monitor_task = None
            self.drain_task = None
            self.stop_event = None
            self.errors = None
            self.primary_app = None

    def _tasks(self) -> list[asyncio.Task]:
        return [task for task in (self.monitor_task, self.drain_task) if task is not None]


async def drain_errors(errors: asyncio.Queue[BaseException]) -> None:
    """Consume forwarded cycle errors until cancelled."""

    while True:
        error = await errors.get()

        try:
            record_forwarded_error(error)

            LOGGER.debug(
                "Received validator monitor error: %s",
                error,
                extra=build_log_extra(
                    stage=getattr(error, "stage", None),
                    error=error,
                ),
            )
        finally:
            errors.task_done()


_poller_manager: PollerManager | None = None
_manager_lock = threading.Lock()


def get_poller_manager() -> PollerManager:
    """Get the global PollerManager instance (singleton pattern)."""
    global _poller_manager

    with _manager_lock:
        if _poller_manager is None:
            _poller_manager = PollerManager()

        return _poller_manager


def reset_poller_manager() -> None:
    """Reset the global PollerManager instance (useful for testing)."""
    with _manager_lock:
        if _poller_manager is not None:
            _poller_manager.reset()


__all__ = [
    "PollerManager",
    "drain_errors",
    "get_poller_manager",
    "reset_poller_manager",
]
