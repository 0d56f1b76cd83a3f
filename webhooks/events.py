"""
PayPal webhook envelope and typed event payloads.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from payments.errors import ParseError


class EventType(str, Enum):
    ORDER_COMPLETED = "CHECKOUT.ORDER.COMPLETED"
    ORDER_APPROVED = "CHECKOUT.ORDER.APPROVED"
    CAPTURE_COMPLETED = "PAYMENT.CAPTURE.COMPLETED"
    CAPTURE_DENIED = "PAYMENT.CAPTURE.DENIED"
    CAPTURE_REFUNDED = "PAYMENT.CAPTURE.REFUNDED"
    SUBSCRIPTION_CREATED = "BILLING.SUBSCRIPTION.CREATED"
    SUBSCRIPTION_UPDATED = "BILLING.SUBSCRIPTION.UPDATED"
    SUBSCRIPTION_CANCELLED = "BILLING.SUBSCRIPTION.CANCELLED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "EventType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class _Resource(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Amount(BaseModel):
    currency_code: Optional[str] = None
    value: Optional[str] = None


class PurchaseUnit(BaseModel):
    reference_id: Optional[str] = None
    amount: Optional[Amount] = None

    model_config = ConfigDict(extra="allow")


class OrderResource(_Resource):
    purchase_units: list[PurchaseUnit] = []


class CaptureResource(_Resource):
    amount: Optional[Amount] = None


class RefundResource(_Resource):
    amount: Optional[Amount] = None


class SubscriptionResource(_Resource):
    plan_id: Optional[str] = None


Resource = Union[OrderResource, CaptureResource, RefundResource, SubscriptionResource]

RESOURCE_MODELS: dict[EventType, type[_Resource]] = {
    EventType.ORDER_COMPLETED: OrderResource,
    EventType.ORDER_APPROVED: OrderResource,
    EventType.CAPTURE_COMPLETED: CaptureResource,
    EventType.CAPTURE_DENIED: CaptureResource,
    EventType.CAPTURE_REFUNDED: RefundResource,
    EventType.SUBSCRIPTION_CREATED: SubscriptionResource,
    EventType.SUBSCRIPTION_UPDATED: SubscriptionResource,
    EventType.SUBSCRIPTION_CANCELLED: SubscriptionResource,
}


class WebhookEnvelope(BaseModel):
    """The JSON document PayPal delivers for one asynchronous event."""

    id: str
    event_type: str
    create_time: Optional[datetime] = None
    resource_type: Optional[str] = None
    summary: Optional[str] = None
    resource: dict[str, Any] = {}

    model_config = ConfigDict(extra="allow")


@dataclass(frozen=True)
class WebhookEvent:
    """A parsed envelope with its resource typed by event type.

    ``resource`` is ``None`` for ``EventType.UNKNOWN``; the raw payload is
    always available on ``envelope.resource``.
    """

    type: EventType
    envelope: WebhookEnvelope
    resource: Optional[Resource]


def parse_event(raw_body: Union[bytes, str]) -> WebhookEvent:
    """Parse a delivery body; raises ParseError when it is not a webhook envelope."""
    try:
        envelope = WebhookEnvelope.model_validate(json.loads(raw_body))
    except (ValueError, PydanticValidationError) as e:
        raise ParseError(f"Malformed webhook event: {e}") from e

    event_type = EventType.parse(envelope.event_type)
    model = RESOURCE_MODELS.get(event_type)
    try:
        resource = model.model_validate(envelope.resource) if model else None
    except PydanticValidationError as e:
        raise ParseError(f"Malformed {envelope.event_type} resource: {e}") from e
    return WebhookEvent(type=event_type, envelope=envelope, resource=resource)
