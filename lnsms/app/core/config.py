"""
Configuration settings for the Lightning SMS Relay.

This module handles application configuration using Pydantic settings.
"""

from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Lightning SMS Relay"
    api_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5555
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Ledger Database Configuration
    database_url: str = "sqlite+aiosqlite:///./lnsms.db"
    db_echo: bool = False

    # Redis Configuration (rate limiting)
    redis_url: str = "redis://localhost:6379/0"
    redis_decode_responses: bool = True

    # Wallet of Satoshi (payment provider)
    wos_base_url: str = ""
    wos_api_token: str = ""
    wos_api_secret: str = ""
    wos_timeout_seconds: float = 60.0

    # Twilio (SMS delivery)
    twilio_base_url: str = "https://api.twilio.com"
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_messaging_service_sid: str = ""

    # Payment relay
    network_fee: Decimal = Decimal("0.00001")  # 1000 sats
    poll_interval_seconds: float = 2.0
    poll_page_size: int = 100
    reconciler_enabled: bool = True
    invoice_expiry_seconds: int = 60 * 60
    invoice_description_template: str = "Enviando pagamento a [{number}]"
    claim_url_template: str = "lnsms.ga/#/claim/{code}"
    sms_template: str = "Recibiste a pagamento de {amount} BTC. Retira en {claim_url}"
    claim_code_bytes: int = 16
    request_timeout_seconds: float = 30.0

    # Inbound rate limiting
    rate_limit_requests: int = 20
    rate_limit_window_seconds: int = 300

    # Operator endpoints (disabled while empty)
    ops_api_token: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
