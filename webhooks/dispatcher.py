"""
Webhook event dispatch

Verifies a delivery with PayPal, parses it into a typed event and routes it
through a lookup table of handlers. Handlers only extract structured fields;
anything with side effects lives behind the EventSink they feed.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import structlog

from core.logging import BusinessEvents
from core.metrics import webhook_events_total
from payments.errors import ParseError, VerificationFailure
from webhooks.events import (
    Amount,
    CaptureResource,
    EventType,
    OrderResource,
    RefundResource,
    SubscriptionResource,
    WebhookEvent,
    parse_event,
)
from webhooks.verifier import WebhookVerifier

log = structlog.get_logger(__name__)

INVALID_SIGNATURE_MESSAGE = "Invalid webhook signature"
PROCESSING_ERROR_MESSAGE = "Error processing webhook"


@dataclass(frozen=True)
class DispatchResult:
    accepted: bool
    message: str


class EventSink(Protocol):
    """Receives the structured fields extracted from each handled event."""

    async def emit(self, event: WebhookEvent, fields: dict[str, Any]) -> None: ...


class LoggingEventSink:
    """Default sink: records handled events in the structured log."""

    async def emit(self, event: WebhookEvent, fields: dict[str, Any]) -> None:
        log.info(
            BusinessEvents.WEBHOOK_EVENT,
            event_id=event.envelope.id,
            event_type=event.type.value,
            **fields,
        )


def _value(amount: Optional[Amount]) -> Optional[str]:
    return amount.value if amount else None


def order_completed(event: WebhookEvent) -> dict[str, Any]:
    resource: OrderResource = event.resource
    first_unit = resource.purchase_units[0] if resource.purchase_units else None
    return {
        "order_id": resource.id,
        "status": resource.status,
        "amount": _value(first_unit.amount) if first_unit else None,
    }


def order_approved(event: WebhookEvent) -> dict[str, Any]:
    resource: OrderResource = event.resource
    return {"order_id": resource.id, "status": resource.status}


def capture_completed(event: WebhookEvent) -> dict[str, Any]:
    resource: CaptureResource = event.resource
    return {
        "capture_id": resource.id,
        "status": resource.status,
        "amount": _value(resource.amount),
    }


def capture_denied(event: WebhookEvent) -> dict[str, Any]:
    resource: CaptureResource = event.resource
    return {"capture_id": resource.id, "status": resource.status}


def capture_refunded(event: WebhookEvent) -> dict[str, Any]:
    resource: RefundResource = event.resource
    return {
        "refund_id": resource.id,
        "status": resource.status,
        "amount": _value(resource.amount),
    }


def subscription_created(event: WebhookEvent) -> dict[str, Any]:
    resource: SubscriptionResource = event.resource
    return {
        "subscription_id": resource.id,
        "status": resource.status,
        "plan_id": resource.plan_id,
    }


def subscription_changed(event: WebhookEvent) -> dict[str, Any]:
    resource: SubscriptionResource = event.resource
    return {"subscription_id": resource.id, "status": resource.status}


Handler = Callable[[WebhookEvent], Union[dict[str, Any], Awaitable[dict[str, Any]]]]

DEFAULT_HANDLERS: dict[EventType, Handler] = {
    EventType.ORDER_COMPLETED: order_completed,
    EventType.ORDER_APPROVED: order_approved,
    EventType.CAPTURE_COMPLETED: capture_completed,
    EventType.CAPTURE_DENIED: capture_denied,
    EventType.CAPTURE_REFUNDED: capture_refunded,
    EventType.SUBSCRIPTION_CREATED: subscription_created,
    EventType.SUBSCRIPTION_UPDATED: subscription_changed,
    EventType.SUBSCRIPTION_CANCELLED: subscription_changed,
}


class EventDispatcher:
    def __init__(
        self,
        verifier: WebhookVerifier,
        sink: Optional[EventSink] = None,
        handlers: Optional[dict[EventType, Handler]] = None,
    ):
        self.verifier = verifier
        self.sink = sink or LoggingEventSink()
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)

    async def handle(
        self, raw_body: Union[bytes, str], headers: dict[str, str]
    ) -> DispatchResult:
        """
        Verify, parse and route one webhook delivery.

        The result reflects verification and parsing only; handler failures are
        logged but never reject a delivery PayPal has already authenticated.
        Repeated deliveries of the same event are processed again.
        """
        try:
            if not await self.verifier.verify(raw_body, headers):
                raise VerificationFailure(INVALID_SIGNATURE_MESSAGE)
            event = parse_event(raw_body)
        except VerificationFailure as e:
            webhook_events_total.labels(event_type="", outcome="rejected").inc()
            return DispatchResult(accepted=False, message=str(e))
        except ParseError as e:
            log.error(BusinessEvents.WEBHOOK_PARSE_FAILED, error=str(e))
            webhook_events_total.labels(event_type="", outcome="invalid").inc()
            return DispatchResult(accepted=False, message=PROCESSING_ERROR_MESSAGE)

        log.info(
            BusinessEvents.WEBHOOK_RECEIVED,
            event_id=event.envelope.id,
            event_type=event.envelope.event_type,
        )
        await self._route(event)
        return DispatchResult(
            accepted=True,
            message=f"Event {event.envelope.event_type} processed successfully",
        )

    async def _route(self, event: WebhookEvent) -> None:
        handler = self.handlers.get(event.type)
        if handler is None:
            log.info(
                BusinessEvents.WEBHOOK_UNHANDLED,
                event_id=event.envelope.id,
                event_type=event.envelope.event_type,
            )
            webhook_events_total.labels(
                event_type=EventType.UNKNOWN.value, outcome="unhandled"
            ).inc()
            return

        try:
            fields = handler(event)
            if inspect.isawaitable(fields):
                fields = await fields
            await self.sink.emit(event, fields)
        except Exception as e:
            log.exception(
                BusinessEvents.WEBHOOK_HANDLER_FAILED,
                event_id=event.envelope.id,
                event_type=event.type.value,
                error=str(e),
            )
            webhook_events_total.labels(
                event_type=event.type.value, outcome="handler_failed"
            ).inc()
            return

        webhook_events_total.labels(event_type=event.type.value, outcome="handled").inc()
