import structlog
from fastapi import Request

from core.logging import BusinessEvents


async def log_api_entry(request: Request, call_next):
    """Middleware to log API entries with request details"""
    # Get a fresh logger each time to ensure test configurations are respected
    log = structlog.get_logger(__name__)

    log.info(
        BusinessEvents.API_ENTRY,
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
        transmission_id=request.headers.get("paypal-transmission-id"),
    )
    response = await call_next(request)
    log.info(
        "api.response",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )
    return response
