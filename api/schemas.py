"""
API Schemas Module

Request bodies for the relay endpoints and helpers that shape responses into
the ``{"success": ..., "data"|"error": ...}`` envelope. Amounts are integer
minor units (e.g. cents).
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from payments.errors import PayPalError


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateOrderRequest(_CamelModel):
    amount: Any = None  # validated as minor units by OrderFacade
    currency: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[Any] = None
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None


class RefundPaymentRequest(_CamelModel):
    amount: Any = None  # validated as minor units by OrderFacade
    currency: Optional[str] = None
    note: Optional[str] = None
    description: Optional[str] = None  # accepted as a fallback for note


class CreatePaymentLinkRequest(_CamelModel):
    amount: Any = None  # validated as minor units by OrderFacade
    currency: Optional[str] = None
    description: Optional[str] = None
    reference_id: Optional[str] = None
    recipient_email: Optional[str] = None


def camel(model: BaseModel) -> dict[str, Any]:
    """Dump a result model with camelCase top-level keys, dropping empty fields."""
    return {to_camel(k): v for k, v in model.model_dump(exclude_none=True).items()}


def success(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def error_response(err: PayPalError) -> JSONResponse:
    return JSONResponse(
        status_code=err.status_code,
        content={"success": False, "error": str(err)},
    )
