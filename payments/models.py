"""
PayPal relay domain models.

Amounts are integer minor units (cents for USD) everywhere in this module.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Credential:
    """OAuth2 bearer token plus the epoch-millisecond instant it stops being used."""

    access_token: str
    expires_at_ms: int


class Link(BaseModel):
    rel: str
    href: str
    method: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Money(BaseModel):
    amount: int
    currency: str


class OrderRequest(BaseModel):
    amount: int = Field(gt=0)
    currency: str = Field(min_length=3, max_length=3)
    description: Optional[str] = None
    metadata: Optional[Any] = None
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class OrderResult(BaseModel):
    order_id: str
    status: str
    links: list[Link] = []
    capture_id: Optional[str] = None
    payer: Optional[dict[str, Any]] = None
    amount: Optional[Money] = None


class CancelResult(BaseModel):
    order_id: str
    message: str


class RefundRequest(BaseModel):
    capture_id: str = Field(min_length=1)
    amount: int = Field(gt=0)
    currency: str = Field(min_length=3, max_length=3)
    note: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class RefundResult(BaseModel):
    refund_id: str
    status: str
    links: list[Link] = []


class PaymentLinkRequest(BaseModel):
    amount: int = Field(gt=0)
    currency: str = Field(min_length=3, max_length=3)
    description: Optional[str] = None
    reference_id: Optional[str] = None
    recipient_email: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PaymentLinkResult(BaseModel):
    invoice_id: str
    status: str
    payment_link: Optional[str] = None
    sent: bool = False
