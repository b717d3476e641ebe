"""
Integration settings for the PIX gateway, the email relay and the
attribution relay, using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so provider credentials can be
rotated without touching application settings.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class HttpTimeouts(BaseModel):
    connect: float = 2.0
    read: float = 8.0
    write: float = 8.0
    total: float = 10.0


class HttpRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    ip_allowlist: list[str] | None = None  # Optional IPs/CIDRs allowed to post webhooks


class OpenPixSettings(BaseModel):
    app_id: Optional[str] = None
    base_url: str = "https://api.woovi.com/api/v1"
    timeouts: HttpTimeouts = Field(default_factory=HttpTimeouts)
    retry: HttpRetry = Field(default_factory=HttpRetry)


class ResendSettings(BaseModel):
    api_key: Optional[str] = None
    base_url: str = "https://api.resend.com"
    sender: str = "SellPay <suporte@email.clonefyia.com>"
    timeout: float = 10.0


class UtmifySettings(BaseModel):
    api_token: Optional[str] = None
    endpoint: str = "https://api.utmify.com.br/api-credentials/orders"
    platform: str = "SellPay"
    gateway_fee_rate: float = 0.03
    timeout: float = 10.0


class IntegrationSettings(BaseSettings):
    openpix: OpenPixSettings = Field(default_factory=OpenPixSettings)
    resend: ResendSettings = Field(default_factory=ResendSettings)
    utmify: UtmifySettings = Field(default_factory=UtmifySettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


integration_settings = IntegrationSettings()
