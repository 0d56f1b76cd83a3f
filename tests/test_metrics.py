"""Test the metrics module."""

from unittest.mock import MagicMock, patch

import pytest
from prometheus_client import REGISTRY

from conftest import VERIFICATION_HEADERS, MockResponse, event_body
from core.metrics import (
    init_metrics,
    provider_calls_total,
    token_refresh_total,
    webhook_events_total,
    webhook_latency,
)


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_provider_calls_counter_with_labels():
    metric = provider_calls_total.labels(operation="create_order", outcome="success")
    initial = metric._value.get()
    metric.inc()
    assert metric._value.get() == initial + 1
    assert metric._labelvalues == ("create_order", "success")


def test_metrics_naming_convention():
    assert webhook_events_total._name == "paypal_relay_webhook_events"
    assert provider_calls_total._name == "paypal_relay_provider_calls"
    assert token_refresh_total._name == "paypal_relay_token_refresh"
    assert webhook_latency._name == "paypal_relay_webhook_latency_seconds"


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.add.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst
        mock_inst.expose.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.add.assert_called()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_webhook_latency_instrumentor_only_observes_webhook_path():
    from core.metrics import webhook_latency_instrumentor

    before = _sample("paypal_relay_webhook_latency_seconds_count")

    other = MagicMock()
    other.request.url.path = "/api/orders"
    other.method = "POST"
    other.modified_duration = 0.2
    webhook_latency_instrumentor(other)
    assert _sample("paypal_relay_webhook_latency_seconds_count") == before

    delivery = MagicMock()
    delivery.request.url.path = "/api/webhooks/paypal"
    delivery.method = "POST"
    delivery.modified_duration = 0.2
    webhook_latency_instrumentor(delivery)
    assert _sample("paypal_relay_webhook_latency_seconds_count") == before + 1


@pytest.mark.asyncio
async def test_provider_failure_counts_timeouts(paypal_service):
    import requests

    labels = {"operation": "get_order_status", "outcome": "timeout"}
    before = _sample("paypal_relay_provider_calls_total", **labels)

    with patch("payments.paypal_service.requests.get") as mock_get:
        mock_get.side_effect = requests.Timeout()
        await paypal_service.get_order_status("O1")

    assert _sample("paypal_relay_provider_calls_total", **labels) == before + 1


@pytest.mark.asyncio
async def test_webhook_outcomes_are_counted(dispatcher):
    handled = {"event_type": "PAYMENT.CAPTURE.COMPLETED", "outcome": "handled"}
    rejected = {"event_type": "", "outcome": "rejected"}
    handled_before = _sample("paypal_relay_webhook_events_total", **handled)
    rejected_before = _sample("paypal_relay_webhook_events_total", **rejected)

    with patch("payments.paypal_service.requests.post") as mock_post:
        mock_post.return_value = MockResponse(200, {"verification_status": "SUCCESS"})
        await dispatcher.handle(event_body(), VERIFICATION_HEADERS)
        mock_post.return_value = MockResponse(200, {"verification_status": "FAILURE"})
        await dispatcher.handle(event_body(), VERIFICATION_HEADERS)

    assert _sample("paypal_relay_webhook_events_total", **handled) == handled_before + 1
    assert _sample("paypal_relay_webhook_events_total", **rejected) == rejected_before + 1


def test_metrics_endpoint_integration(client):
    """Test that metrics endpoint is available and returns Prometheus format."""
    provider_calls_total.labels(operation="create_order", outcome="success").inc(0)
    webhook_events_total.labels(event_type="", outcome="rejected").inc(0)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")

    content = response.text
    assert "paypal_relay_provider_calls_total" in content
    assert "paypal_relay_webhook_events_total" in content
    assert "paypal_relay_webhook_latency_seconds" in content
    assert "paypal_relay_token_refresh_total" in content


def test_metrics_endpoint_requires_auth_outside_development(client, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("METRICS_AUTH_TOKEN", "s3cret")

    assert client.get("/metrics", headers={"X-Metrics-Auth": "s3cret"}).status_code == 200


def test_metrics_endpoint_denies_unauthenticated_callers(client, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("METRICS_AUTH_TOKEN", "s3cret")

    response = client.get("/metrics", headers={"X-Metrics-Auth": "wrong"})

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.parametrize(
    "host,internal",
    [
        ("10.1.2.3", True),
        ("192.168.0.10", True),
        ("172.16.5.4", True),
        ("172.31.255.1", True),
        ("172.32.0.1", False),
        ("172.15.0.1", False),
        ("8.8.8.8", False),
        ("testclient", False),
        (None, False),
    ],
)
def test_internal_network_detection(host, internal):
    from core.metrics import _is_internal

    assert _is_internal(host) is internal
