"""Error kinds raised or returned by the PayPal relay."""


class PayPalError(Exception):
    """Base class for every relay error; ``str(err)`` is safe to show callers."""

    status_code = 400


class AuthError(PayPalError):
    """The OAuth2 client-credentials exchange failed."""

    status_code = 502


class ProviderError(PayPalError):
    """PayPal answered with a non-success status or omitted an expected field."""

    def __init__(self, message: str, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


class NotFoundError(ProviderError):
    """The requested PayPal resource does not exist or could not be read."""

    status_code = 404


class ProviderTimeoutError(ProviderError):
    status_code = 504


class ValidationError(PayPalError):
    """A required caller-supplied field is missing or malformed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class VerificationFailure(PayPalError):
    """PayPal did not confirm the webhook signature."""


class ParseError(PayPalError):
    """The webhook body is not a valid event envelope."""
