"""Central environment-driven settings for the payment bridge.

The service process loads this once at startup. Gateway credentials and
checkout behavior are controlled by environment variables (see `.env.example`).
"""

from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class TransactionType(str, Enum):
    """Whether a completed checkout only authorizes or also captures."""

    AUTHORIZE = "authorize"
    AUTHORIZE_AND_CAPTURE = "authorize_and_capture"


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "chargebridge"
    log_level: str = "INFO"
    http_host: str = "0.0.0.0"
    http_port: int = 8000
    database_url: str = "sqlite+pysqlite:///./chargebridge.db"
    gateway_base_url: str = "https://pay-api.amazon.eu/v2"
    gateway_timeout_seconds: float = 10.0
    gateway_region: str = "eu"
    transaction_type: TransactionType = TransactionType.AUTHORIZE
    currency_code: str = "EUR"
    cart_url: str = "/cart"
    additional_fee: float = 0.0
    additional_fee_percentage: bool = False
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
