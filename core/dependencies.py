from core.settings import Settings
from payments.order_facade import OrderFacade
from payments.paypal_service import PayPalService
from payments.token_cache import TokenCache
from webhooks.dispatcher import EventDispatcher
from webhooks.verifier import WebhookVerifier

# Settings singleton
_settings = None

# Service singletons; the token cache is the only shared mutable state
_token_cache = None
_paypal_service = None
_order_facade = None
_event_dispatcher = None


def get_settings() -> Settings:
    """Dependency that provides application settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure startup() was called."
    return _settings


def init_settings():
    """Initialize settings singleton."""
    global _settings
    _settings = Settings()


def clear_settings():
    """Clear settings singleton."""
    global _settings
    _settings = None


def init_services(settings: Settings):
    """Build the PayPal collaborators once per process."""
    global _token_cache, _paypal_service, _order_facade, _event_dispatcher
    _token_cache = TokenCache(
        base_url=settings.paypal_base_url,
        client_id=settings.PAYPAL_CLIENT_ID,
        client_secret=settings.PAYPAL_CLIENT_SECRET,
        timeout=settings.PAYPAL_TIMEOUT_SECONDS,
    )
    _paypal_service = PayPalService(
        tokens=_token_cache,
        base_url=settings.paypal_base_url,
        timeout=settings.PAYPAL_TIMEOUT_SECONDS,
        brand_name=settings.PAYPAL_BRAND_NAME,
    )
    _order_facade = OrderFacade(_paypal_service)
    _event_dispatcher = EventDispatcher(
        WebhookVerifier(_paypal_service, settings.PAYPAL_WEBHOOK_ID)
    )


def clear_services():
    global _token_cache, _paypal_service, _order_facade, _event_dispatcher
    _token_cache = _paypal_service = _order_facade = _event_dispatcher = None


def get_order_facade() -> OrderFacade:
    assert _order_facade is not None, "Services not initialized."
    return _order_facade


def get_event_dispatcher() -> EventDispatcher:
    assert _event_dispatcher is not None, "Services not initialized."
    return _event_dispatcher
