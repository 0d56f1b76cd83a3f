"""
PayPal REST API client

This module wraps every outbound PayPal call the relay makes:
- Checkout orders (create, capture, status)
- Capture refunds
- Webhook signature verification and event lookup
- Invoice-based payment links

Each call authenticates through the shared TokenCache and returns a Result
instead of raising, so callers decide how to present failures.
"""

import json
from datetime import UTC, datetime
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import requests
import structlog
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from core.logging import BusinessEvents
from core.metrics import provider_calls_total
from core.tracing import get_tracer
from payments.errors import (
    NotFoundError,
    PayPalError,
    ProviderError,
    ProviderTimeoutError,
    ValidationError,
)
from payments.models import (
    CancelResult,
    Link,
    Money,
    OrderRequest,
    OrderResult,
    PaymentLinkRequest,
    PaymentLinkResult,
    RefundRequest,
    RefundResult,
)
from payments.money import to_major_units, to_minor_units
from payments.result import Err, Ok, Result
from payments.token_cache import TokenCache

T = TypeVar("T")

log = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

# Verification request field -> inbound delivery header
VERIFICATION_HEADERS = {
    "transmission_id": "paypal-transmission-id",
    "transmission_time": "paypal-transmission-time",
    "cert_url": "paypal-cert-url",
    "auth_algo": "paypal-auth-algo",
    "transmission_sig": "paypal-transmission-sig",
}


def _json(response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_message(prefix: str, response, data: dict[str, Any]) -> str:
    detail = data.get("message") or data.get("name") or (response.text or "")[:200]
    message = f"{prefix}: HTTP {response.status_code}"
    return f"{message} - {detail}" if detail else message


def _segment(value: str) -> str:
    """Escape a caller-supplied id for use as one URL path segment."""
    return quote(str(value), safe="")


def _parsed(operation: str, response, build: Callable[[], T]) -> T:
    """Build a result from a 2xx body; a malformed body becomes ProviderError."""
    try:
        return build()
    except (
        PydanticValidationError,
        ValidationError,
        AttributeError,
        TypeError,
        KeyError,
        IndexError,
    ) as e:
        raise ProviderError(
            f"PayPal {operation} returned a malformed response: {e}", response.status_code
        ) from e



class PayPalService:
    def __init__(
        self,
        tokens: TokenCache,
        base_url: str,
        timeout: float = 10.0,
        brand_name: str | None = None,
    ):
        self.tokens = tokens
        self.base = base_url
        self.timeout = timeout
        self.brand_name = brand_name

    async def _send(
        self, method: str, path: str, operation: str, body: dict[str, Any] | None = None
    ):
        token = await self.tokens.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        send = requests.post if method == "POST" else requests.get
        with tracer.start_as_current_span(f"paypal.{operation}") as span:
            span.set_attribute("http.method", method)
            span.set_attribute("paypal.path", path)
            try:
                r = await run_in_threadpool(
                    send,
                    f"{self.base}{path}",
                    json=body,
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.Timeout as e:
                span.set_attribute("paypal.timeout", True)
                raise ProviderTimeoutError(
                    f"PayPal {operation} timed out after {self.timeout}s"
                ) from e
            except requests.RequestException as e:
                raise ProviderError(f"PayPal {operation} request failed: {e}") from e
            span.set_attribute("http.status_code", r.status_code)

        if r.status_code == 401:
            # Revoked or rotated token; the next call re-authenticates
            self.tokens.invalidate()
        return r

    def _fail(self, operation: str, error: PayPalError) -> Err:
        outcome = "timeout" if isinstance(error, ProviderTimeoutError) else "error"
        provider_calls_total.labels(operation=operation, outcome=outcome).inc()
        log.warning(
            BusinessEvents.PROVIDER_CALL_FAILED,
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )
        return Err(error)

    def _succeed(self, operation: str, value) -> Ok:
        provider_calls_total.labels(operation=operation, outcome="success").inc()
        return Ok(value)

    @staticmethod
    def _order_result(data: dict[str, Any]) -> OrderResult:
        purchase_units = data.get("purchase_units") or []
        first_unit = purchase_units[0] if purchase_units else {}
        captures = (first_unit.get("payments") or {}).get("captures") or []

        amount = None
        unit_amount = first_unit.get("amount")
        if unit_amount and unit_amount.get("value") and unit_amount.get("currency_code"):
            currency = unit_amount["currency_code"]
            amount = Money(
                amount=to_minor_units(unit_amount["value"], currency), currency=currency
            )

        return OrderResult(
            order_id=data["id"],
            status=data.get("status", ""),
            links=[Link.model_validate(link) for link in data.get("links") or []],
            capture_id=captures[0].get("id") if captures else None,
            payer=data.get("payer"),
            amount=amount,
        )

    def _order_body(self, request: OrderRequest) -> dict[str, Any]:
        currency = request.currency.upper()
        purchase_unit: dict[str, Any] = {
            "amount": {
                "currency_code": currency,
                "value": to_major_units(request.amount, currency),
            }
        }
        if request.description:
            purchase_unit["description"] = request.description
        if request.metadata is not None:
            purchase_unit["custom_id"] = (
                request.metadata
                if isinstance(request.metadata, str)
                else json.dumps(request.metadata, separators=(",", ":"))
            )

        body: dict[str, Any] = {"intent": "CAPTURE", "purchase_units": [purchase_unit]}
        context = {
            "return_url": request.return_url,
            "cancel_url": request.cancel_url,
            "brand_name": self.brand_name,
        }
        context = {k: v for k, v in context.items() if v}
        if context:
            body["application_context"] = context
        return body

    async def create_order(self, request: OrderRequest) -> Result[OrderResult]:
        try:
            r = await self._send(
                "POST", "/v2/checkout/orders", "create_order", self._order_body(request)
            )
            data = _json(r)
            if r.status_code != 201 or not data.get("id"):
                raise ProviderError(
                    _error_message("Order creation failed", r, data), r.status_code
                )
            result = _parsed("create_order", r, lambda: self._order_result(data))
        except PayPalError as e:
            return self._fail("create_order", e)

        log.info(
            BusinessEvents.ORDER_CREATED,
            order_id=result.order_id,
            status=result.status,
            amount=request.amount,
            currency=request.currency.upper(),
        )
        return self._succeed("create_order", result)

    async def confirm_order(self, order_id: str) -> Result[OrderResult]:
        try:
            r = await self._send(
                "POST",
                f"/v2/checkout/orders/{_segment(order_id)}/capture",
                "confirm_order",
                {},
            )
            data = _json(r)
            if r.status_code not in (200, 201) or not data.get("id"):
                raise ProviderError(
                    _error_message("Order capture failed", r, data), r.status_code
                )
            result = _parsed("confirm_order", r, lambda: self._order_result(data))
        except PayPalError as e:
            return self._fail("confirm_order", e)

        log.info(
            BusinessEvents.ORDER_CONFIRMED,
            order_id=result.order_id,
            status=result.status,
            capture_id=result.capture_id,
        )
        return self._succeed("confirm_order", result)

    async def get_order_status(self, order_id: str) -> Result[OrderResult]:
        try:
            r = await self._send(
                "GET", f"/v2/checkout/orders/{_segment(order_id)}", "get_order_status"
            )
            data = _json(r)
            if r.status_code != 200 or not data.get("id"):
                raise NotFoundError(
                    _error_message(f"Order {order_id} not found", r, data), r.status_code
                )
            result = _parsed("get_order_status", r, lambda: self._order_result(data))
        except PayPalError as e:
            return self._fail("get_order_status", e)

        return self._succeed("get_order_status", result)

    async def cancel_order(self, order_id: str) -> Result[CancelResult]:
        """
        PayPal has no cancel endpoint for checkout orders; unapproved orders simply
        expire. This reports success without contacting PayPal.
        """
        log.warning(BusinessEvents.ORDER_CANCELLED, order_id=order_id, provider_call=False)
        return Ok(
            CancelResult(
                order_id=order_id,
                message=f"Order {order_id} cancelled locally; PayPal orders expire if not approved",
            )
        )

    async def refund_payment(self, request: RefundRequest) -> Result[RefundResult]:
        currency = request.currency.upper()
        body: dict[str, Any] = {
            "amount": {
                "value": to_major_units(request.amount, currency),
                "currency_code": currency,
            }
        }
        if request.note:
            body["note_to_payer"] = request.note

        try:
            r = await self._send(
                "POST",
                f"/v2/payments/captures/{_segment(request.capture_id)}/refund",
                "refund_payment",
                body,
            )
            data = _json(r)
            if r.status_code not in (200, 201) or not data.get("id"):
                raise ProviderError(_error_message("Refund failed", r, data), r.status_code)
            result = _parsed(
                "refund_payment",
                r,
                lambda: RefundResult(
                    refund_id=data["id"],
                    status=data.get("status", ""),
                    links=[Link.model_validate(link) for link in data.get("links") or []],
                ),
            )
        except PayPalError as e:
            return self._fail("refund_payment", e)

        log.info(
            BusinessEvents.REFUND_CREATED,
            refund_id=result.refund_id,
            capture_id=request.capture_id,
            amount=request.amount,
            currency=currency,
        )
        return self._succeed("refund_payment", result)

    async def verify_webhook_signature(
        self, webhook_id: str, raw_body: bytes | str, headers: dict[str, str]
    ) -> bool:
        """
        Ask PayPal whether a webhook delivery is authentic.

        Fails closed: any missing input, transport error or unexpected answer
        yields ``False``.
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        missing = [h for h in VERIFICATION_HEADERS.values() if not lowered.get(h)]
        if not webhook_id or missing:
            log.warning(
                BusinessEvents.WEBHOOK_REJECTED,
                reason="missing verification input",
                webhook_id_configured=bool(webhook_id),
                missing_headers=missing,
            )
            return False

        try:
            event = json.loads(raw_body)
        except ValueError as e:
            log.warning(BusinessEvents.WEBHOOK_REJECTED, reason="body is not JSON", error=str(e))
            return False

        body = {field: lowered[header] for field, header in VERIFICATION_HEADERS.items()}
        body["webhook_id"] = webhook_id
        body["webhook_event"] = event

        try:
            r = await self._send(
                "POST",
                "/v1/notifications/verify-webhook-signature",
                "verify_webhook_signature",
                body,
            )
        except PayPalError as e:
            self._fail("verify_webhook_signature", e)
            return False

        status = _json(r).get("verification_status")
        verified = status == "SUCCESS"
        provider_calls_total.labels(
            operation="verify_webhook_signature",
            outcome="success" if verified else "rejected",
        ).inc()
        if not verified:
            log.warning(
                BusinessEvents.WEBHOOK_REJECTED,
                reason="verification failed",
                http_status=r.status_code,
                verification_status=status,
            )
        return verified

    async def get_webhook_event(self, event_id: str) -> Result[dict[str, Any]]:
        try:
            r = await self._send(
                "GET",
                f"/v1/notifications/webhooks-events/{_segment(event_id)}",
                "get_webhook_event",
            )
            data = _json(r)
            if r.status_code == 404:
                raise NotFoundError(
                    _error_message(f"Webhook event {event_id} not found", r, data), 404
                )
            if r.status_code != 200 or not data.get("id"):
                raise ProviderError(
                    _error_message("Webhook event lookup failed", r, data), r.status_code
                )
        except PayPalError as e:
            return self._fail("get_webhook_event", e)

        return self._succeed("get_webhook_event", data)

    def _invoice_body(self, request: PaymentLinkRequest) -> dict[str, Any]:
        currency = request.currency.upper()
        detail: dict[str, Any] = {
            "currency_code": currency,
            "invoice_date": datetime.now(UTC).strftime("%Y-%m-%d"),
            "payment_term": {"term_type": "NO_DUE_DATE"},
        }
        if request.reference_id:
            detail["reference"] = request.reference_id
        if request.description:
            detail["note"] = request.description

        body: dict[str, Any] = {
            "detail": detail,
            "items": [
                {
                    "name": request.description or "Payment",
                    "quantity": "1",
                    "unit_amount": {
                        "currency_code": currency,
                        "value": to_major_units(request.amount, currency),
                    },
                }
            ],
            "configuration": {
                "partial_payment": {"allow_partial_payment": False},
                "allow_tip": False,
            },
        }
        if self.brand_name:
            body["invoicer"] = {"business_name": self.brand_name}
        if request.recipient_email:
            body["primary_recipients"] = [
                {"billing_info": {"email_address": request.recipient_email}}
            ]
        return body

    async def create_payment_link(
        self, request: PaymentLinkRequest
    ) -> Result[PaymentLinkResult]:
        """
        Create an invoice and ask PayPal to send it.

        Only invoice creation decides success. A failed send is logged and
        reported through ``sent=False``.
        """
        try:
            r = await self._send(
                "POST", "/v2/invoicing/invoices", "create_invoice", self._invoice_body(request)
            )
            data = _json(r)
            if r.status_code not in (200, 201):
                raise ProviderError(
                    _error_message("Invoice creation failed", r, data), r.status_code
                )
            # PayPal sometimes answers with a bare link to the new invoice
            invoice_id = _parsed(
                "create_invoice",
                r,
                lambda: str(
                    data.get("id") or (data.get("href") or "").rstrip("/").split("/")[-1]
                ),
            )
            if not invoice_id:
                raise ProviderError("Invoice creation failed: response missing id", r.status_code)
        except PayPalError as e:
            return self._fail("create_invoice", e)
        provider_calls_total.labels(operation="create_invoice", outcome="success").inc()

        sent = False
        payment_link = None
        try:
            send = await self._send(
                "POST",
                f"/v2/invoicing/invoices/{_segment(invoice_id)}/send",
                "send_invoice",
                {"send_to_recipient": True, "send_to_invoicer": False},
            )
            sent = send.status_code in (200, 202)
            if sent:
                href = _json(send).get("href")
                payment_link = href if isinstance(href, str) else None
            else:
                log.warning(
                    BusinessEvents.PROVIDER_CALL_FAILED,
                    operation="send_invoice",
                    invoice_id=invoice_id,
                    http_status=send.status_code,
                )
        except PayPalError as e:
            self._fail("send_invoice", e)

        log.info(
            BusinessEvents.PAYMENT_LINK_CREATED,
            invoice_id=invoice_id,
            sent=sent,
            amount=request.amount,
            currency=request.currency.upper(),
        )
        return Ok(
            PaymentLinkResult(
                invoice_id=invoice_id,
                status="SENT" if sent else str(data.get("status") or "DRAFT"),
                payment_link=payment_link,
                sent=sent,
            )
        )
