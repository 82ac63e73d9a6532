"""Configuration settings using Pydantic."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Docs: https://docs.pydantic.dev/2.8/concepts/pydantic_settings/


class Settings(BaseSettings):
    # App name used in logs
    app_name: str = "promo"

    # Allows to detect type of deployment
    environment: Literal["dev", "prod"] = "dev"

    # Marketplace REST API, e.g. https://api.example.et/api/v1
    api_base_url: str = "http://localhost:3000/api/v1"

    # Bearer token of the signed-in user
    api_token: str | None = None

    # External mobile-money aggregator listing the payment services
    gateway_base_url: str = "http://pay.cheche.et/api/v1"
    gateway_vendor: str = "SORETI"

    currency: str = "ETB"

    request_timeout: float = 25.0
    retry_attempts: int = 3

    # Boost purchases never auto-renew unless asked to
    auto_renew: bool = False

    # Read-through cache lifetimes (seconds)
    pricing_ttl: int = 30 * 60
    credits_ttl: int = 2 * 60
    wallet_ttl: int = 2 * 60
    boosts_ttl: int = 5 * 60
    payment_services_ttl: int = 10 * 60

    # Logfire token, logs stay local when empty
    logfire_token: str | None = None

    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from .env
    )

    @property
    def payment_services_url(self) -> str:
        base = self.gateway_base_url.rstrip("/")
        return f"{base}/payments/payment-services/{self.gateway_vendor}"


settings = Settings()
