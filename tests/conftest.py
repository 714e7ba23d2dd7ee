import pytest

from hyperliquid_validator_exporter.context import reset_application_context
from hyperliquid_validator_exporter.metrics import reset_metrics_state
from hyperliquid_validator_exporter.poller.manager import reset_poller_manager
from hyperliquid_validator_exporter.runtime_settings import reset_runtime_settings_cache


@pytest.fixture(autouse=True)
def reset_exporter_state() -> None:
    reset_metrics_state()
    reset_application_context()
    reset_runtime_settings_cache()
    reset_poller_manager()
    yield
    reset_metrics_state()
    reset_application_context()
    reset_runtime_settings_cache()
    reset_poller_manager()


@pytest.fixture
def build_context():
    """Return a factory for contexts whose HTTP clients hit an `httpx.MockTransport`."""

    import httpx

    from hyperliquid_validator_exporter.config import MonitorConfig, Network
    from hyperliquid_validator_exporter.context import ApplicationContext
    from hyperliquid_validator_exporter.metrics import get_metrics
    from hyperliquid_validator_exporter.runtime_settings import RuntimeSettings
    from hyperliquid_validator_exporter.settings import get_settings

    def _build(
        handler,
        *,
        network: Network = Network.MAINNET,
        poll_interval_seconds: float = 300,
        request_timeout_seconds: float = 10.0,
        error_queue_size: int = 4,
    ) -> ApplicationContext:
        monitor = MonitorConfig(
            network=network,
            poll_interval_seconds=poll_interval_seconds,
            request_timeout_seconds=request_timeout_seconds,
            error_queue_size=error_queue_size,
        )

        def _client_factory(timeout_seconds: float) -> httpx.AsyncClient:
            return httpx.AsyncClient(
                transport=httpx.MockTransport(handler),
                timeout=timeout_seconds,
            )

        return ApplicationContext(
            metrics=get_metrics(),
            runtime=RuntimeSettings(app=get_settings(), monitor=monitor),
            client_factory=_client_factory,
        )

    return _build
