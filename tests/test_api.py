from __future__ import annotations

from dataclasses import replace

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from hyperliquid_validator_exporter.app import create_app, create_health_app, create_metrics_app
from hyperliquid_validator_exporter.exceptions import DecodeError
from hyperliquid_validator_exporter.metrics import (
    record_forwarded_error,
    record_poll_failure,
    record_poll_success,
)
from hyperliquid_validator_exporter.runtime_settings import RuntimeSettings

SUMMARIES = [
    {"validator": "0xaaa", "signer": "0xbbb", "name": "Alpha", "stake": 2.5e16, "isJailed": False, "isActive": True},
    {"validator": "0xccc", "signer": "0xddd", "name": "Beta", "stake": 50, "isJailed": True, "isActive": False},
]

ALPHA_LABELS = frozenset({"validator": "0xaaa", "signer": "0xbbb", "name": "Alpha"}.items())
BETA_LABELS = frozenset({"validator": "0xccc", "signer": "0xddd", "name": "Beta"}.items())


def _samples_by_labels(text: str) -> dict[tuple[str, frozenset], float]:
    return {
        (sample.name, frozenset(sample.labels.items())): sample.value
        for family in text_string_to_metric_families(text)
        for sample in family.samples
    }


@pytest.fixture
def client(build_context) -> TestClient:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=SUMMARIES)

    context = build_context(_handler)
    settings = context.settings

    context.runtime = RuntimeSettings(
        app=replace(settings, monitor=replace(settings.monitor, warm_poll_enabled=True)),
        monitor=context.monitor,
    )

    with TestClient(create_app(context=context)) as test_client:
        yield test_client


def test_health_and_metrics_after_warm_poll(client: TestClient) -> None:
    health_response = client.get("/health")
    assert health_response.status_code == 200
    assert health_response.json() == {"status": "ok"}

    readiness_response = client.get("/health/readyz")
    assert readiness_response.status_code == 200
    assert readiness_response.json()["status"] == "ready"

    metrics_response = client.get("/metrics")
    assert metrics_response.status_code == 200
    assert metrics_response.headers["content-type"].startswith("text/plain")

    body = metrics_response.text
    samples = _samples_by_labels(body)

    assert samples[("hl_validator_stake", ALPHA_LABELS)] == 2.5e16
    assert samples[("hl_validator_jailed_status", BETA_LABELS)] == 1.0
    assert samples[("hl_validator_active_status", BETA_LABELS)] == 0.0
    assert samples[("hl_validator_count", frozenset())] == 2.0
    assert samples[("hl_jailed_stake", frozenset())] == 50.0
    assert samples[("hl_validator_exporter_up", frozenset())] == 1.0
    assert samples[("hl_validator_monitor_poll_success", frozenset())] == 1.0
    assert samples[
        (
            "hl_validator_exporter_network_info",
            frozenset({"network": "mainnet", "api_url": "https://api.hyperliquid.xyz/info"}.items()),
        )
    ] == 1.0

    stake_lines = [line for line in body.splitlines() if line.startswith("hl_validator_stake{") and 'name="Alpha"' in line]
    assert len(stake_lines) == 1
    assert stake_lines[0].endswith("} 25000000000000000")


def test_health_initializing_before_first_cycle() -> None:
    test_client = TestClient(create_health_app())

    response = test_client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "initializing"}

    readiness = test_client.get("/health/readyz")

    assert readiness.status_code == 503
    assert readiness.json() == {"status": "not_ready", "details": {}}


def test_health_details_report_last_error() -> None:
    record_poll_success(timestamp=1_700_000_000.0)
    record_poll_failure("decode", timestamp=1_700_000_300.0)
    record_forwarded_error(DecodeError("Response body is not valid JSON."))

    test_client = TestClient(create_health_app())

    response = test_client.get("/health/details")

    assert response.status_code == 503

    payload = response.json()

    assert payload["status"] == "unhealthy"
    assert payload["details"]["last_error"] == "Response body is not valid JSON. (context: stage='decode')"
    assert payload["details"]["last_error_stage"] == "decode"
    assert payload["details"]["last_success_timestamp"] == "2023-11-14T22:13:20+00:00"


def test_livez_always_alive() -> None:
    record_poll_failure("transport")

    response = TestClient(create_health_app()).get("/health/livez")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_split_apps_expose_separate_routes() -> None:
    health_client = TestClient(create_health_app())
    metrics_client = TestClient(create_metrics_app())

    assert health_client.get("/metrics").status_code == 404
    assert metrics_client.get("/health").status_code == 404
    assert metrics_client.get("/metrics").status_code == 200
