"""
Prometheus metrics instrumentation for the PayPal relay.

This module sets up FastAPI instrumentation to expose metrics in Prometheus format
at the /metrics endpoint with optional authentication.
"""

import ipaddress
import os

from fastapi import Request, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from core.settings import DEFAULT_WEBHOOK_PATH

webhook_events_total = Counter(
    "paypal_relay_webhook_events_total",
    "Webhook deliveries by event type and outcome",
    ["event_type", "outcome"],  # outcome: handled, unhandled, handler_failed, rejected, invalid
)

provider_calls_total = Counter(
    "paypal_relay_provider_calls_total",
    "Outbound PayPal API calls by operation and outcome",
    ["operation", "outcome"],
)

token_refresh_total = Counter(
    "paypal_relay_token_refresh_total",
    "Number of OAuth2 client-credentials exchanges performed",
)

webhook_latency = Histogram(
    "paypal_relay_webhook_latency_seconds",
    "Time taken to verify and dispatch a webhook delivery",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def webhook_latency_instrumentor(info):
    """Instrumentation function for tracking webhook handling latency."""
    webhook_path = os.getenv("WEBHOOK_PATH", DEFAULT_WEBHOOK_PATH)
    if info.request.url.path == webhook_path and info.method == "POST":
        webhook_latency.observe(info.modified_duration)


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )

    inst.add(webhook_latency_instrumentor)

    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst


def _is_internal(host: str | None) -> bool:
    """True for private, loopback and link-local addresses; hostnames never qualify."""
    if not host:
        return False
    try:
        return ipaddress.ip_address(host).is_private
    except ValueError:
        return False


def add_metrics_auth_middleware(app):
    """
    Add middleware to protect the /metrics endpoint in production.
    For production use, set METRICS_AUTH_TOKEN environment variable.
    """

    @app.middleware("http")
    async def metrics_auth_middleware(request: Request, call_next):
        if request.url.path == "/metrics":
            if os.getenv("ENVIRONMENT", "development") == "development":
                return await call_next(request)

            auth_header = request.headers.get("X-Metrics-Auth")
            expected_token = os.getenv("METRICS_AUTH_TOKEN")

            if expected_token and auth_header == expected_token:
                return await call_next(request)

            # Allow internal network access (VPN/private networks)
            client_ip = request.client.host if request.client else None
            if _is_internal(client_ip):
                return await call_next(request)

            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "error": "Metrics endpoint access denied"},
            )

        return await call_next(request)
