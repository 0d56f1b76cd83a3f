"""
Input validation in front of the PayPal client.
"""

from unittest.mock import patch

import pytest

from conftest import MockResponse
from payments.errors import NotFoundError, ValidationError


@pytest.mark.asyncio
async def test_missing_amount_is_rejected_without_provider_call(order_facade, token_cache):
    with patch("payments.paypal_service.requests.post") as mock_post:
        result = await order_facade.create_order(currency="USD")

    assert not result.ok
    assert isinstance(result.error, ValidationError)
    assert str(result.error) == "amount is required"
    assert result.error.status_code == 400
    mock_post.assert_not_called()
    assert token_cache.calls == 0


@pytest.mark.asyncio
async def test_all_missing_fields_are_named(order_facade):
    result = await order_facade.refund_payment()

    assert str(result.error) == "capture_id, amount and currency are required"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -100, True, 10.5, "1000"])
async def test_invalid_amounts_are_rejected(order_facade, amount):
    with patch("payments.paypal_service.requests.post") as mock_post:
        result = await order_facade.create_order(amount=amount, currency="USD")

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "amount"
    mock_post.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("currency", ["US", "DOLLARS", "12$"])
async def test_invalid_currency_is_rejected(order_facade, currency):
    result = await order_facade.create_order(amount=1000, currency=currency)

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "currency"


@pytest.mark.asyncio
async def test_create_order_forwards_normalized_request(order_facade):
    with patch("payments.paypal_service.requests.post") as mock_post:
        mock_post.return_value = MockResponse(201, {"id": "O1", "status": "CREATED"})

        result = await order_facade.create_order(
            amount=1000, currency=" usd ", description="Order 42"
        )

    assert result.value.order_id == "O1"
    unit = mock_post.call_args.kwargs["json"]["purchase_units"][0]
    assert unit["amount"] == {"currency_code": "USD", "value": "10.00"}


@pytest.mark.asyncio
async def test_zero_decimal_currency_is_sent_without_fraction(order_facade):
    with patch("payments.paypal_service.requests.post") as mock_post:
        mock_post.return_value = MockResponse(201, {"id": "O2", "status": "CREATED"})

        await order_facade.create_order(amount=1500, currency="JPY")

    unit = mock_post.call_args.kwargs["json"]["purchase_units"][0]
    assert unit["amount"]["value"] == "1500"


@pytest.mark.asyncio
async def test_cancel_order_makes_no_network_calls(order_facade, token_cache):
    with (
        patch("payments.paypal_service.requests.post") as mock_post,
        patch("payments.paypal_service.requests.get") as mock_get,
    ):
        result = await order_facade.cancel_order("O1")

    assert result.ok
    assert "O1" in result.value.message
    mock_post.assert_not_called()
    mock_get.assert_not_called()
    assert token_cache.calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["confirm_order", "get_order_status", "cancel_order"])
async def test_order_id_is_required(order_facade, method):
    result = await getattr(order_facade, method)("")

    assert str(result.error) == "order_id is required"


@pytest.mark.asyncio
async def test_refund_payment_forwards_note(order_facade):
    with patch("payments.paypal_service.requests.post") as mock_post:
        mock_post.return_value = MockResponse(201, {"id": "R1", "status": "COMPLETED"})

        result = await order_facade.refund_payment(
            capture_id="CAP-1", amount=500, currency="USD", note="Late delivery"
        )

    assert result.value.refund_id == "R1"
    assert mock_post.call_args.kwargs["json"]["note_to_payer"] == "Late delivery"


@pytest.mark.asyncio
async def test_payment_link_requires_amount_and_currency(order_facade):
    result = await order_facade.create_payment_link(description="Consulting")

    assert str(result.error) == "amount and currency are required"


@pytest.mark.asyncio
async def test_get_webhook_event_passes_through_not_found(order_facade):
    with patch("payments.paypal_service.requests.get") as mock_get:
        mock_get.return_value = MockResponse(404)

        result = await order_facade.get_webhook_event("WH-MISSING")

    assert isinstance(result.error, NotFoundError)
