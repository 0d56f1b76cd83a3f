"""
Webhook handlers for PayPal notifications
"""

import os

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.schemas import error_response, success
from core.dependencies import get_event_dispatcher, get_order_facade
from core.settings import DEFAULT_WEBHOOK_PATH
from payments.order_facade import OrderFacade
from webhooks.dispatcher import EventDispatcher

router = APIRouter()

WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", DEFAULT_WEBHOOK_PATH)


async def paypal_webhook(
    request: Request, dispatcher: EventDispatcher = Depends(get_event_dispatcher)
):
    # Verification needs the body exactly as delivered
    payload = await request.body()
    result = await dispatcher.handle(payload, dict(request.headers))
    return JSONResponse(
        status_code=200 if result.accepted else 400,
        content={"success": result.accepted, "message": result.message},
    )


router.add_api_route(WEBHOOK_PATH, paypal_webhook, methods=["POST"])


@router.get("/api/webhooks/events/{event_id}")
async def get_webhook_event(
    event_id: str, facade: OrderFacade = Depends(get_order_facade)
):
    """Look up a webhook event as PayPal recorded it."""
    result = await facade.get_webhook_event(event_id)
    if not result.ok:
        return error_response(result.error)
    return success(result.value)
