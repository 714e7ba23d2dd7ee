import asyncio
import signal
import sys

import uvicorn
from fastapi import FastAPI

from .app import create_health_app, create_metrics_app
from .exceptions import ConfigError
from .logging import build_log_extra, get_logger
from .runtime_settings import RuntimeSettings, get_runtime_settings

LOGGER = get_logger(__name__)

LISTEN_HOST = "0.0.0.0"


def _build_server(app: FastAPI, port: int) -> uvicorn.Server:
    # Logging is configured by the app module; uvicorn must not replace it.
    return uvicorn.Server(
        uvicorn.Config(app, host=LISTEN_HOST, port=port, log_config=None)
    )


async def run_servers(runtime: RuntimeSettings | None = None) -> None:
    """Serve the health app and the metrics app until cancelled.

    Both apps share one lifespan, so the validator monitor for the configured
    network is started once and stopped when the servers shut down.
    """
    resolved = runtime or get_runtime_settings()
    network = resolved.monitor.network
    ports = {
        "health": resolved.app.server.health_port,
        "metrics": resolved.app.server.metrics_port,
    }

    servers = {
        "health": _build_server(create_health_app(), ports["health"]),
        "metrics": _build_server(create_metrics_app(), ports["metrics"]),
    }

    LOGGER.info(
        "Serving %s validator health on port %d and metrics on port %d.",
        network.value,
        ports["health"],
        ports["metrics"],
        extra=build_log_extra(
            network=network,
            additional={
                "api_url": resolved.monitor.api_url,
                "health_port": ports["health"],
                "metrics_port": ports["metrics"],
            },
        ),
    )

    tasks = [
        asyncio.create_task(server.serve(), name=f"{name}-server")
        for name, server in servers.items()
    ]

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def run() -> None:
    """Validate configuration, then serve until SIGTERM or SIGINT.

    An unsupported network exits with status 2 before any port is bound.
    """
    try:
        runtime = get_runtime_settings()
    except ConfigError as exc:
        LOGGER.error(
            "Configuration validation error: %s",
            exc,
            extra=build_log_extra(additional=exc.context),
        )
        sys.exit(2)

    def _signal_handler(signum: int, frame: object) -> None:
        raise KeyboardInterrupt(f"Received signal {signum}")

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    try:
        asyncio.run(run_servers(runtime))
    except KeyboardInterrupt:
        LOGGER.info(
            "Validator exporter for %s shut down.",
            runtime.monitor.network.value,
            extra=build_log_extra(network=runtime.monitor.network),
        )
        sys.exit(0)


if __name__ == "__main__":
    run()
