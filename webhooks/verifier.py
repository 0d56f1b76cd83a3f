from typing import Union

from payments.paypal_service import PayPalService


class WebhookVerifier:
    """Checks webhook authenticity by asking PayPal; nothing is verified locally."""

    def __init__(self, service: PayPalService, webhook_id: str):
        self.service = service
        self.webhook_id = webhook_id

    async def verify(self, raw_body: Union[bytes, str], headers: dict[str, str]) -> bool:
        return await self.service.verify_webhook_signature(
            self.webhook_id, raw_body, headers
        )
