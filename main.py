"""
PayPal Relay - Main Application Entry Point

This module initializes the FastAPI application and sets up the core routing.
It relays order, refund and payment-link calls from a merchant backend to
PayPal and receives PayPal's webhook notifications.
"""

import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from api import routes
from api.middleware import log_api_entry
from core.dependencies import (
    clear_services,
    clear_settings,
    get_settings,
    init_services,
    init_settings,
)
from core.logging import configure_logging
from core.metrics import add_metrics_auth_middleware, init_metrics
from core.settings import Settings
from core.tracing import init_tracer

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    settings = get_settings()

    for name in settings.missing_credentials():
        log.warning("config.missing", variable=name)

    init_tracer(settings.OTEL_SERVICE_NAME, settings.ENVIRONMENT)
    init_services(settings)
    log.info(
        "app.started",
        environment=settings.ENVIRONMENT,
        paypal_mode=settings.PAYPAL_MODE,
        webhook_path=settings.WEBHOOK_PATH,
    )

    yield
    # Shutdown
    clear_services()
    clear_settings()


app = FastAPI(
    title="PayPal Relay",
    description="""
    ## PayPal Order & Webhook Relay

    A thin relay between a merchant backend and the PayPal REST API.

    ### Key Features:
    - **Orders**: create, capture, status and local cancel
    - **Refunds**: refund captured payments
    - **Payment links**: invoice-based links sent by PayPal
    - **Webhooks**: signature verification with PayPal and typed event dispatch

    All amounts are integer minor units (e.g. cents).
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Initialize FastAPI instrumentation
FastAPIInstrumentor.instrument_app(app)

# Initialize Prometheus metrics (METRICS_ENABLED=false turns off /metrics)
if os.getenv("METRICS_ENABLED", "true").lower() != "false":
    init_metrics(app)

# Add metrics authentication middleware (for production)
add_metrics_auth_middleware(app)

app.middleware("http")(log_api_entry)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"success": False, "error": errors})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.exception(
        "api.unhandled_error",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    try:
        show_details = get_settings().diagnostics_enabled
    except AssertionError:
        show_details = False
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "message": str(exc) if show_details else "An error occurred",
        },
    )


@app.get("/")
async def root(settings: Settings = Depends(get_settings)):
    """Root endpoint providing API information."""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "webhook": settings.WEBHOOK_PATH,
            "orders": {
                "create": "POST /api/orders",
                "status": "GET /api/orders/{order_id}",
                "confirm": "POST /api/orders/{order_id}/confirm",
                "cancel": "DELETE /api/orders/{order_id}",
            },
            "refunds": {"refund": "POST /api/payments/{capture_id}/refund"},
            "payment_links": {"create": "POST /api/payment-links"},
            "metrics": "/metrics - Prometheus metrics (requires auth)",
        },
    }


@app.get("/api/health")
async def health_check(settings: Settings = Depends(get_settings)):
    """Liveness probe."""
    return {
        "status": "online",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.ENVIRONMENT,
    }


app.include_router(routes.router)


def main():
    configure_logging()
    import uvicorn

    init_settings()
    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)


if __name__ == "__main__":
    main()
