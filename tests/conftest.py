"""Test configuration and fixtures."""

import json
import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from core.dependencies import get_event_dispatcher, get_order_facade
from core.settings import Settings
from main import app
from payments.order_facade import OrderFacade
from payments.paypal_service import PayPalService
from webhooks.dispatcher import EventDispatcher
from webhooks.verifier import WebhookVerifier

PAYPAL_BASE = "https://api-m.sandbox.paypal.com"
WEBHOOK_ID = "WH-TEST-123"

VERIFICATION_HEADERS = {
    "paypal-transmission-id": "tx-1",
    "paypal-transmission-time": "2024-01-01T00:00:00Z",
    "paypal-cert-url": "https://api.sandbox.paypal.com/v1/notifications/certs/CERT-1",
    "paypal-auth-algo": "SHA256withRSA",
    "paypal-transmission-sig": "c2lnbmF0dXJl",
}


class MockResponse:
    """Custom mock response class to ensure proper status_code handling."""

    def __init__(self, status_code, json_data=None, text=""):
        self.status_code = status_code
        self._json_data = json_data or {}
        self.text = text

    def json(self):
        return self._json_data

    def raise_for_status(self):
        pass


class StubTokenCache:
    """Stands in for TokenCache so service tests never hit the OAuth endpoint."""

    def __init__(self, token="test_token"):
        self.token = token
        self.calls = 0
        self.invalidated = False

    async def get_token(self):
        self.calls += 1
        return self.token

    def invalidate(self):
        self.invalidated = True


class RecordingSink:
    def __init__(self):
        self.events = []

    async def emit(self, event, fields):
        self.events.append((event, fields))


def event_body(event_type="PAYMENT.CAPTURE.COMPLETED", resource=None, event_id="WH-EVT-1"):
    return json.dumps(
        {
            "id": event_id,
            "event_type": event_type,
            "create_time": "2024-01-01T00:00:00Z",
            "resource_type": "capture",
            "summary": "test event",
            "resource": resource
            if resource is not None
            else {
                "id": "CAP-1",
                "status": "COMPLETED",
                "amount": {"currency_code": "USD", "value": "10.00"},
            },
        }
    )


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "PAYPAL_MODE": "sandbox",
            "PAYPAL_CLIENT_ID": "test_client_id",
            "PAYPAL_CLIENT_SECRET": "test_secret",
            "PAYPAL_WEBHOOK_ID": WEBHOOK_ID,
            "APP_NAME": "Test Relay",
            "ENVIRONMENT": "development",
            "DISABLE_TRACING": "true",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        PAYPAL_CLIENT_ID="test_client_id",
        PAYPAL_CLIENT_SECRET="test_secret",
        PAYPAL_WEBHOOK_ID=WEBHOOK_ID,
        APP_NAME="Test Relay",
        ENVIRONMENT="development",
    )


@pytest.fixture
def token_cache():
    return StubTokenCache()


@pytest.fixture
def paypal_service(token_cache):
    return PayPalService(tokens=token_cache, base_url=PAYPAL_BASE, timeout=5.0)


@pytest.fixture
def order_facade(paypal_service):
    return OrderFacade(paypal_service)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def dispatcher(paypal_service, sink):
    return EventDispatcher(WebhookVerifier(paypal_service, WEBHOOK_ID), sink=sink)


@pytest.fixture
def client(mock_settings, order_facade, dispatcher):
    """Test client whose PayPal collaborators use the stub token cache."""
    app.dependency_overrides[get_order_facade] = lambda: order_facade
    app.dependency_overrides[get_event_dispatcher] = lambda: dispatcher

    with patch("core.dependencies._settings", mock_settings):
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()
