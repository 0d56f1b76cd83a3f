import asyncio
import time
from typing import Callable

import requests
import structlog
from starlette.concurrency import run_in_threadpool

from core.logging import BusinessEvents
from core.metrics import token_refresh_total
from payments.errors import AuthError
from payments.models import Credential

log = structlog.get_logger(__name__)

# Tokens are treated as expired this long before PayPal says they are
SAFETY_MARGIN_MS = 5 * 60 * 1000


class TokenCache:
    """
    Caches the OAuth2 bearer token used for outbound PayPal calls.

    One instance is shared by every request. Refreshes are serialized by a lock,
    so concurrent callers that find the token expired trigger a single exchange.
    """

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ):
        self.base_url = base_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._clock = clock
        self._credential: Credential | None = None
        self._lock = asyncio.Lock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def _valid_token(self) -> str | None:
        credential = self._credential
        if credential and self._now_ms() < credential.expires_at_ms:
            return credential.access_token
        return None

    async def get_token(self) -> str:
        token = self._valid_token()
        if token:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._valid_token()
            if token:
                return token
            self._credential = await run_in_threadpool(self._exchange)
            return self._credential.access_token

    def invalidate(self) -> None:
        """Drop the cached credential so the next call performs a fresh exchange."""
        self._credential = None

    def _exchange(self) -> Credential:
        try:
            r = requests.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error(BusinessEvents.TOKEN_FAILED, error=str(e))
            raise AuthError(f"PayPal token endpoint unreachable: {e}") from e

        if not 200 <= r.status_code < 300:
            log.error(BusinessEvents.TOKEN_FAILED, status=r.status_code, body=r.text)
            raise AuthError(f"PayPal token request failed: {r.status_code}")

        try:
            payload = r.json()
            access_token = payload["access_token"]
            expires_in = int(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            log.error(BusinessEvents.TOKEN_FAILED, reason="malformed token response")
            raise AuthError("PayPal token response missing access_token or expires_in") from e
        if expires_in <= 0:
            log.error(BusinessEvents.TOKEN_FAILED, expires_in=expires_in)
            raise AuthError(f"PayPal token response has no lifetime: expires_in={expires_in}")

        lifetime_ms = expires_in * 1000
        margin_ms = SAFETY_MARGIN_MS
        if lifetime_ms <= margin_ms:
            # Short-lived token: refresh at half its lifetime
            margin_ms = lifetime_ms // 2
            log.warning(
                BusinessEvents.TOKEN_SHORT_LIVED, expires_in=expires_in, margin_ms=margin_ms
            )

        token_refresh_total.inc()
        expires_at_ms = self._now_ms() + lifetime_ms - margin_ms
        log.info(BusinessEvents.TOKEN_REFRESHED, expires_in=expires_in)
        return Credential(access_token=access_token, expires_at_ms=expires_at_ms)
