"""
Order lifecycle orchestration

Validates caller input for the synchronous order endpoints and forwards
well-formed requests to PayPalService. Nothing here contacts PayPal when
validation fails.
"""

from typing import Any, Optional

from payments.errors import ValidationError
from payments.models import (
    CancelResult,
    OrderRequest,
    OrderResult,
    PaymentLinkRequest,
    PaymentLinkResult,
    RefundRequest,
    RefundResult,
)
from payments.money import normalize_currency
from payments.paypal_service import PayPalService
from payments.result import Err, Result


def _missing(**fields: Any) -> Optional[Err]:
    absent = [name for name, value in fields.items() if value is None or value == ""]
    if not absent:
        return None
    if len(absent) == 1:
        message = f"{absent[0]} is required"
    else:
        message = f"{', '.join(absent[:-1])} and {absent[-1]} are required"
    return Err(ValidationError(message, field=absent[0]))


def _checked_money(amount: Any, currency: str) -> tuple[int, str]:
    # bool is an int subclass; reject it explicitly
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(
            "amount must be an integer number of minor currency units", field="amount"
        )
    if amount <= 0:
        raise ValidationError("amount must be greater than zero", field="amount")
    return amount, normalize_currency(currency)


class OrderFacade:
    def __init__(self, service: PayPalService):
        self.service = service

    async def create_order(
        self,
        amount: Any = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Any = None,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> Result[OrderResult]:
        if err := _missing(amount=amount, currency=currency):
            return err
        try:
            amount, currency = _checked_money(amount, currency)
        except ValidationError as e:
            return Err(e)

        request = OrderRequest(
            amount=amount,
            currency=currency,
            description=description,
            metadata=metadata,
            return_url=return_url,
            cancel_url=cancel_url,
        )
        return await self.service.create_order(request)

    async def confirm_order(self, order_id: Optional[str]) -> Result[OrderResult]:
        if err := _missing(order_id=order_id):
            return err
        return await self.service.confirm_order(order_id)

    async def get_order_status(self, order_id: Optional[str]) -> Result[OrderResult]:
        if err := _missing(order_id=order_id):
            return err
        return await self.service.get_order_status(order_id)

    async def cancel_order(self, order_id: Optional[str]) -> Result[CancelResult]:
        if err := _missing(order_id=order_id):
            return err
        return await self.service.cancel_order(order_id)

    async def refund_payment(
        self,
        capture_id: Optional[str] = None,
        amount: Any = None,
        currency: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Result[RefundResult]:
        if err := _missing(capture_id=capture_id, amount=amount, currency=currency):
            return err
        try:
            amount, currency = _checked_money(amount, currency)
        except ValidationError as e:
            return Err(e)

        return await self.service.refund_payment(
            RefundRequest(capture_id=capture_id, amount=amount, currency=currency, note=note)
        )

    async def create_payment_link(
        self,
        amount: Any = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
        recipient_email: Optional[str] = None,
    ) -> Result[PaymentLinkResult]:
        if err := _missing(amount=amount, currency=currency):
            return err
        try:
            amount, currency = _checked_money(amount, currency)
        except ValidationError as e:
            return Err(e)

        return await self.service.create_payment_link(
            PaymentLinkRequest(
                amount=amount,
                currency=currency,
                description=description,
                reference_id=reference_id,
                recipient_email=recipient_email,
            )
        )

    async def get_webhook_event(self, event_id: Optional[str]) -> Result[dict[str, Any]]:
        if err := _missing(event_id=event_id):
            return err
        return await self.service.get_webhook_event(event_id)
