import logging
import logging.config
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .api import register_health_routes, register_metrics_routes, register_routes
from .context import (
    ApplicationContext,
    get_application_context,
    reset_application_context,
    set_application_context,
)
from .exceptions import ConfigError
from .logging import (
    JsonFormatter,
    StructuredTextFormatter,
    build_log_extra,
    get_logger,
)
from .metrics import MetricsStoreProtocol, set_metrics, set_network_info
from .poller.control import run_warm_poll
from .poller.manager import get_poller_manager
from .settings import AppSettings, get_settings

SETTINGS = get_settings()


def _configure_logging(settings: AppSettings) -> None:
    """Configure logging based on application settings."""
    log_level = settings.logging.level
    log_format = settings.logging.format

    if log_level not in logging.getLevelNamesMapping():
        log_level = "INFO"

    if log_format == "json":
        formatter_config = {
            "()": JsonFormatter,
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
        }
    else:
        formatter_config = {
            "()": StructuredTextFormatter,
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            "color_enabled": settings.logging.color_enabled,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": formatter_config},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                }
            },
            "root": {"level": log_level, "handlers": ["default"]},
            "loggers": {
                "uvicorn": {
                    "handlers": ["default"],
                    "level": log_level,
                    "propagate": False,
                },
                "uvicorn.error": {
                    "handlers": ["default"],
                    "level": log_level,
                    "propagate": False,
                },
                "uvicorn.access": {
                    "handlers": ["default"],
                    "level": log_level,
                    "propagate": False,
                },
            },
        }
    )


_configure_logging(SETTINGS)
LOGGER = get_logger(__name__)


APP_TITLE = "Hyperliquid Validator Exporter"
APP_DESCRIPTION = "Exposes Prometheus metrics for Hyperliquid validator stake and status."


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the validator monitor.

    On startup:
    - Resolves the application context; an unsupported network aborts startup
    - Sets `up` and the network info gauge for immediate availability
    - Optionally runs a warm poll (WARM_POLL_ENABLED=true) so metrics and
      readiness are populated before the first scrape
    - Starts the monitor once, even though both apps share this lifespan

    On shutdown:
    - Sets the monitor's stop signal and waits for it, cancelling on timeout
    - Resets the application context
    - Only the primary app (that created the tasks) performs cleanup
    """

    try:
        context = get_application_context()
    except ConfigError as exc:
        LOGGER.error(
            "Configuration validation error: %s",
            exc,
            extra=build_log_extra(additional=exc.context),
        )
        raise

    context.metrics.exporter.up.set(1)
    set_network_info(context.network, context.metrics)

    app.state.context = context

    manager = get_poller_manager()

    if not manager.tasks_created and context.settings.monitor.warm_poll_enabled:
        timeout_seconds = context.settings.monitor.warm_poll_timeout_seconds

        LOGGER.info(
            "Performing warm poll for %s with timeout of %.1f seconds",
            context.network.value,
            timeout_seconds,
            extra=build_log_extra(
                network=context.network,
                additional={"timeout_seconds": timeout_seconds},
            ),
        )

        if not await run_warm_poll(context, timeout_seconds):
            LOGGER.warning(
                "Warm poll failed for %s. Continuing startup.",
                context.network.value,
                extra=build_log_extra(network=context.network),
            )

    app.state.polling_tasks = manager.create_tasks(context, app)

    try:
        yield
    finally:
        if manager.should_cleanup(app):
            context.metrics.exporter.up.set(0)

            await manager.shutdown_tasks(timeout_seconds=2.0)

            app.state.polling_tasks = []

            manager.reset()

            reset_application_context()
            app.state.context = None


def _apply_overrides(
    metrics: MetricsStoreProtocol | None,
    context: ApplicationContext | None,
) -> None:
    if metrics is not None:
        set_metrics(metrics)
        reset_application_context()

    if context is not None:
        set_application_context(context)


def create_app(
    *,
    metrics: MetricsStoreProtocol | None = None,
    context: ApplicationContext | None = None,
) -> FastAPI:
    """Create a FastAPI instance serving health and metrics routes together.

    Args:
        metrics: Optional metrics store for dependency injection (defaults to global metrics).
        context: Optional application context for dependency injection (defaults to global context).
    """

    _apply_overrides(metrics, context)

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        lifespan=_lifespan,
    )

    register_routes(app)

    return app


def create_health_app(
    *,
    metrics: MetricsStoreProtocol | None = None,
    context: ApplicationContext | None = None,
) -> FastAPI:
    """Create a FastAPI instance for health endpoints only (port 8080)."""

    _apply_overrides(metrics, context)

    app = FastAPI(
        title=f"{APP_TITLE} - Health",
        description="Health check endpoints for the validator exporter.",
        lifespan=_lifespan,
    )

    register_health_routes(app)

    return app


def create_metrics_app(
    *,
    metrics: MetricsStoreProtocol | None = None,
    context: ApplicationContext | None = None,
) -> FastAPI:
    """Create a FastAPI instance for the metrics endpoint only (port 9100).

    Note:
        This app shares the lifespan with the health app; the monitor started
        by whichever app enters first is reused.
    """

    _apply_overrides(metrics, context)

    app = FastAPI(
        title=f"{APP_TITLE} - Metrics",
        description="Prometheus metrics endpoint for the validator exporter.",
        lifespan=_lifespan,
    )

    register_metrics_routes(app)

    return app


app = create_app()
