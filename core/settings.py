from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file automatically
load_dotenv()

PAYPAL_SANDBOX_BASE = "https://api-m.sandbox.paypal.com"
PAYPAL_LIVE_BASE = "https://api-m.paypal.com"
DEFAULT_WEBHOOK_PATH = "/api/webhooks/paypal"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PayPal
    PAYPAL_MODE: Literal["sandbox", "live"] = "sandbox"
    PAYPAL_CLIENT_ID: str = ""
    PAYPAL_CLIENT_SECRET: str = ""
    PAYPAL_WEBHOOK_ID: str = ""
    PAYPAL_TIMEOUT_SECONDS: float = 10.0
    PAYPAL_BRAND_NAME: str | None = None

    # Webhooks
    WEBHOOK_PATH: str = DEFAULT_WEBHOOK_PATH

    # App settings
    APP_NAME: str = "PayPal Relay"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Observability (Optional)
    OTEL_SERVICE_NAME: str = "paypal-relay"
    DISABLE_TRACING: bool = False

    # Metrics (Optional)
    METRICS_ENABLED: bool = True
    METRICS_AUTH_TOKEN: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @property
    def paypal_base_url(self) -> str:
        return PAYPAL_SANDBOX_BASE if self.PAYPAL_MODE == "sandbox" else PAYPAL_LIVE_BASE

    @property
    def diagnostics_enabled(self) -> bool:
        """Whether internal error details may be returned to callers."""
        return self.DEBUG or self.ENVIRONMENT == "development"

    def missing_credentials(self) -> list[str]:
        required = {
            "PAYPAL_CLIENT_ID": self.PAYPAL_CLIENT_ID,
            "PAYPAL_CLIENT_SECRET": self.PAYPAL_CLIENT_SECRET,
            "PAYPAL_WEBHOOK_ID": self.PAYPAL_WEBHOOK_ID,
        }
        return [name for name, value in required.items() if not value]
