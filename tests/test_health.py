import time

from hyperliquid_validator_exporter.health import (
    READINESS_STALE_THRESHOLD_SECONDS,
    format_metrics_payload,
    generate_health_report,
    generate_readiness_report,
)
from hyperliquid_validator_exporter.metrics import (
    MONITOR_STATE,
    record_forwarded_error,
    record_poll_failure,
    record_poll_success,
)
from hyperliquid_validator_exporter.exceptions import TransportError


def test_generate_health_report_initializing_before_first_cycle() -> None:
    status, status_code, details = generate_health_report(include_details=True)

    assert status == "initializing"
    assert status_code == 503
    assert details == {}


def test_generate_health_report_ok_after_success() -> None:
    record_poll_success(duration=0.5, timestamp=1_700_000_000.0)

    status, status_code, details = generate_health_report()

    assert status == "ok"
    assert status_code == 200
    assert details == {}


def test_generate_health_report_unhealthy_after_failure_with_details() -> None:
    record_poll_success(timestamp=1_700_000_000.0)
    record_poll_failure("transport", timestamp=1_700_000_300.0)
    record_forwarded_error(TransportError("Validator summaries request returned HTTP 502.", status_code=502))

    status, status_code, details = generate_health_report(include_details=True)

    assert status == "unhealthy"
    assert status_code == 503
    assert details["last_success_timestamp"] == "2023-11-14T22:13:20+00:00"
    assert details["last_failure_timestamp"] == "2023-11-14T22:18:20+00:00"
    assert details["last_error"].startswith("Validator summaries request returned HTTP 502.")
    assert details["last_error_stage"] == "transport"


def test_generate_readiness_report_ready_after_recent_success() -> None:
    record_poll_success(timestamp=time.time())

    ready, details = generate_readiness_report()

    assert ready is True
    assert "last_success_timestamp" in details


def test_generate_readiness_report_not_ready_when_success_is_stale() -> None:
    record_poll_success(timestamp=time.time() - READINESS_STALE_THRESHOLD_SECONDS - 60)

    ready, _ = generate_readiness_report()

    assert ready is False


def test_generate_readiness_report_not_ready_after_failure() -> None:
    record_poll_success(timestamp=time.time())
    record_poll_failure("decode")

    ready, details = generate_readiness_report()

    assert ready is False
    assert "last_success_timestamp" in details


def test_generate_readiness_report_not_ready_before_first_cycle() -> None:
    assert MONITOR_STATE.healthy is None

    ready, details = generate_readiness_report()

    assert ready is False
    assert details == {}


def test_format_metrics_payload_expands_scientific_notation() -> None:
    payload = (
        b"# HELP hl_total_stake Total stake.\n"
        b"# TYPE hl_total_stake gauge\n"
        b"hl_total_stake 1.5e+16\n"
        b"hl_validator_count 2.0\n"
    )

    formatted = format_metrics_payload(payload).decode()

    assert "hl_total_stake 15000000000000000\n" in formatted
    assert "hl_validator_count 2.0\n" in formatted
    assert formatted.startswith("# HELP hl_total_stake Total stake.\n")
    assert formatted.endswith("\n")


def test_format_metrics_payload_leaves_special_values() -> None:
    formatted = format_metrics_payload(b"hl_total_stake NaN\nhl_jailed_stake +Inf\n").decode()

    assert formatted == "hl_total_stake NaN\nhl_jailed_stake +Inf\n"
