"""Central environment-driven settings for the checkout service.

The process loads this once at startup. Missing gateway credentials fail the
import with a validation error, so a misconfigured deployment never starts
serving requests (see `.env.example`).
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "bogpay-checkout"
    log_level: str = "INFO"

    bog_client_id: str = Field(min_length=1)
    bog_client_secret: str = Field(min_length=1)
    bog_oauth_url: str = "https://oauth2.bog.ge/auth/realms/bog/protocol/openid-connect/token"
    bog_orders_url: str = "https://api.bog.ge/payments/v1/ecommerce/orders"

    public_base_url: str = "http://localhost:8000"
    success_url: str | None = None
    fail_url: str | None = None
    callback_url: str | None = None

    currency: str = Field(default="GEL", min_length=3, max_length=3)
    default_amount: float = Field(default=69.0, gt=0)
    default_description: str = "Онлайн-диагностика осанки"
    default_product_id: str = "posture_diagnostics_online"
    external_order_prefix: str = "posture"
    default_language: str = "ka"
    supported_languages: list[str] = ["ka", "en"]
    include_redirect_urls: bool = True

    http_timeout_seconds: float = 10.0
    token_max_attempts: int = Field(default=3, ge=1)
    token_backoff_seconds: float = 0.5
    token_expiry_skew_seconds: int = 30
    order_max_attempts: int = Field(default=2, ge=1, le=2)

    cors_allow_origins: list[str] = ["*"]
    tracing_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _fill_callback_url(self) -> "CommonSettings":
        # Gateway posts delivery notifications here unless overridden.
        if not self.callback_url:
            self.callback_url = f"{self.public_base_url.rstrip('/')}/callback"
        self.currency = self.currency.upper()
        if self.default_language not in self.supported_languages:
            raise ValueError("default_language must be one of supported_languages")
        return self


settings = CommonSettings()
