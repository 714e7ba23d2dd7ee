from __future__ import annotations

import asyncio
import importlib
import logging
from dataclasses import replace
from typing import Any

import httpx
import pytest
from fastapi import FastAPI

from hyperliquid_validator_exporter.app import _configure_logging, _lifespan
from hyperliquid_validator_exporter.context import ApplicationContext
from hyperliquid_validator_exporter.exceptions import ValidationError
from hyperliquid_validator_exporter.logging import JsonFormatter, StructuredTextFormatter
from hyperliquid_validator_exporter.metrics import MONITOR_STATE, get_metrics
from hyperliquid_validator_exporter.poller.manager import get_poller_manager
from hyperliquid_validator_exporter.runtime_settings import RuntimeSettings
from hyperliquid_validator_exporter.settings import AppSettings, LoggingSettings, get_settings

app_module = importlib.import_module("hyperliquid_validator_exporter.app")

SUMMARIES = [
    {"validator": "0xaaa", "signer": "0xbbb", "name": "Alpha", "stake": 100, "isJailed": False, "isActive": True},
    {"validator": "0xccc", "signer": "0xddd", "name": "Beta", "stake": 50, "isJailed": True, "isActive": False},
]


def _build_settings(level: str, log_format: str) -> AppSettings:
    base_settings = get_settings()

    return replace(
        base_settings,
        logging=LoggingSettings(
            level=level,
            format=log_format,
            color_enabled=False,
        ),
    )


def _summaries_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=SUMMARIES)


def _with_warm_poll(context: ApplicationContext) -> ApplicationContext:
    settings = context.settings

    context.runtime = RuntimeSettings(
        app=replace(
            settings,
            monitor=replace(settings.monitor, warm_poll_enabled=True, warm_poll_timeout_seconds=5.0),
        ),
        monitor=context.monitor,
    )

    return context


def test_configure_logging_uses_json_formatter(monkeypatch: pytest.MonkeyPatch) -> None:
    captured_config: dict[str, Any] = {}

    def _capture_config(config: dict[str, Any]) -> None:
        captured_config["value"] = config

    monkeypatch.setattr(logging.config, "dictConfig", _capture_config)

    _configure_logging(_build_settings(level="DEBUG", log_format="json"))

    config = captured_config["value"]

    assert config["formatters"]["standard"]["()"] is JsonFormatter
    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["uvicorn"]["propagate"] is False


def test_configure_logging_invalid_level_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    captured_config: dict[str, Any] = {}

    def _capture_config(config: dict[str, Any]) -> None:
        captured_config["value"] = config

    monkeypatch.setattr(logging.config, "dictConfig", _capture_config)

    _configure_logging(_build_settings(level="LOUD", log_format="text"))

    config = captured_config["value"]
    formatter_config = config["formatters"]["standard"]

    assert formatter_config["()"] is StructuredTextFormatter
    assert formatter_config["color_enabled"] is False
    assert config["root"]["level"] == "INFO"
    assert config["loggers"]["uvicorn.access"]["handlers"] == ["default"]


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_lifespan_starts_and_stops_monitor(monkeypatch: pytest.MonkeyPatch, build_context) -> None:
    context = build_context(_summaries_handler)
    monkeypatch.setattr(app_module, "get_application_context", lambda: context)

    app = FastAPI(lifespan=_lifespan)
    registry = get_metrics().registry

    async with app.router.lifespan_context(app):
        tasks = list(app.state.polling_tasks)

        assert len(tasks) == 2
        assert app.state.context is context
        assert registry.get_sample_value("hl_validator_exporter_up") == 1.0
        assert registry.get_sample_value(
            "hl_validator_exporter_network_info",
            {"network": "mainnet", "api_url": "https://api.hyperliquid.xyz/info"},
        ) == 1.0

        await asyncio.sleep(0)
        assert MONITOR_STATE.healthy is None

    assert all(task.done() for task in tasks)
    assert app.state.polling_tasks == []
    assert registry.get_sample_value("hl_validator_exporter_up") == 0.0
    assert get_poller_manager().tasks_created is False


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_lifespan_aborts_on_unsupported_network(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def _raise_validation_error() -> ApplicationContext:
        raise ValidationError(
            "Unsupported network 'devnet'.",
            config_key="HYPERLIQUID_NETWORK",
            value="devnet",
            expected="mainnet, testnet",
        )

    monkeypatch.setattr(app_module, "get_application_context", _raise_validation_error)
    caplog.set_level(logging.ERROR)

    app = FastAPI(lifespan=_lifespan)

    with pytest.raises(ValidationError):
        async with app.router.lifespan_context(app):
            pass

    assert any("Configuration validation error" in message for message in caplog.messages)
    assert get_poller_manager().tasks_created is False


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_lifespan_warm_poll_populates_metrics_before_serving(
    monkeypatch: pytest.MonkeyPatch,
    build_context,
) -> None:
    context = _with_warm_poll(build_context(_summaries_handler))
    monkeypatch.setattr(app_module, "get_application_context", lambda: context)

    app = FastAPI(lifespan=_lifespan)
    registry = get_metrics().registry

    async with app.router.lifespan_context(app):
        assert MONITOR_STATE.healthy is True
        assert registry.get_sample_value("hl_total_stake") == 150.0
        assert registry.get_sample_value("hl_validator_count") == 2.0


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_lifespan_warm_poll_failure_continues_startup(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
    build_context,
) -> None:
    def _failing_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    context = _with_warm_poll(build_context(_failing_handler))
    monkeypatch.setattr(app_module, "get_application_context", lambda: context)
    caplog.set_level(logging.WARNING)

    app = FastAPI(lifespan=_lifespan)

    async with app.router.lifespan_context(app):
        assert len(app.state.polling_tasks) == 2
        assert MONITOR_STATE.healthy is False

    assert any("Warm poll failed for mainnet" in message for message in caplog.messages)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_shared_lifespan_starts_monitor_once(monkeypatch: pytest.MonkeyPatch, build_context) -> None:
    context = build_context(_summaries_handler)
    monkeypatch.setattr(app_module, "get_application_context", lambda: context)

    health_app = FastAPI(lifespan=_lifespan)
    metrics_app = FastAPI(lifespan=_lifespan)

    async with health_app.router.lifespan_context(health_app):
        async with metrics_app.router.lifespan_context(metrics_app):
            assert metrics_app.state.polling_tasks == health_app.state.polling_tasks

        manager = get_poller_manager()

        assert manager.tasks_created is True
        assert manager.get_active_task_count() == 2

    assert get_poller_manager().tasks_created is False
