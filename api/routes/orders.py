"""
Order and refund routes

Synchronous order lifecycle endpoints. Validation and PayPal calls live in
OrderFacade; these handlers only translate results into HTTP responses.
"""

from fastapi import APIRouter, Depends

from api.schemas import (
    CreateOrderRequest,
    CreatePaymentLinkRequest,
    RefundPaymentRequest,
    camel,
    error_response,
    success,
)
from core.dependencies import get_order_facade
from payments.order_facade import OrderFacade

router = APIRouter()


@router.post("/orders", status_code=201)
async def create_order(
    body: CreateOrderRequest, facade: OrderFacade = Depends(get_order_facade)
):
    """
    Create a PayPal order.

    **Request Example:**
    ```json
    {"amount": 1000, "currency": "USD", "description": "Order #42"}
    ```

    `amount` is in minor units, so 1000 USD cents is sent to PayPal as "10.00".
    """
    result = await facade.create_order(
        amount=body.amount,
        currency=body.currency,
        description=body.description,
        metadata=body.metadata,
        return_url=body.return_url,
        cancel_url=body.cancel_url,
    )
    if not result.ok:
        return error_response(result.error)
    return success(camel(result.value))


@router.post("/orders/{order_id}/confirm")
async def confirm_order(order_id: str, facade: OrderFacade = Depends(get_order_facade)):
    """Capture an approved order. `captureId` is omitted when PayPal returns none."""
    result = await facade.confirm_order(order_id)
    if not result.ok:
        return error_response(result.error)
    return success(camel(result.value))


@router.get("/orders/{order_id}")
async def get_order_status(
    order_id: str, facade: OrderFacade = Depends(get_order_facade)
):
    result = await facade.get_order_status(order_id)
    if not result.ok:
        return error_response(result.error)
    return success(camel(result.value))


@router.delete("/orders/{order_id}")
async def cancel_order(order_id: str, facade: OrderFacade = Depends(get_order_facade)):
    """
    Cancel an order.

    PayPal offers no cancel call for checkout orders, so this never contacts
    PayPal and always succeeds.
    """
    result = await facade.cancel_order(order_id)
    if not result.ok:
        return error_response(result.error)
    return {"success": True, "message": result.value.message}


@router.post("/payments/{capture_id}/refund", status_code=201)
async def refund_payment(
    capture_id: str,
    body: RefundPaymentRequest,
    facade: OrderFacade = Depends(get_order_facade),
):
    result = await facade.refund_payment(
        capture_id=capture_id,
        amount=body.amount,
        currency=body.currency,
        note=body.note or body.description,
    )
    if not result.ok:
        return error_response(result.error)
    return success(camel(result.value))


@router.post("/payment-links", status_code=201)
async def create_payment_link(
    body: CreatePaymentLinkRequest, facade: OrderFacade = Depends(get_order_facade)
):
    """Create and send a PayPal invoice the customer can pay from a link."""
    result = await facade.create_payment_link(
        amount=body.amount,
        currency=body.currency,
        description=body.description,
        reference_id=body.reference_id,
        recipient_email=body.recipient_email,
    )
    if not result.ok:
        return error_response(result.error)
    return success(camel(result.value))
