"""
Application settings

Read from the environment / .env; nested groups use ``__``, e.g. ``CHECKOUT__POLL_INTERVAL_SECONDS=3``,
``DATABASE__URL=postgresql://...``. Gateway and notification credentials live in ``core.settings``.
"""
import json
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./sellpay.db"
    echo: bool = False


class CheckoutFlowSettings(BaseModel):
    """Timing and routing knobs for server-side checkout sessions."""

    poll_interval_seconds: float = 5.0
    redirect_delay_seconds: float = 2.0
    # None keeps polling until settlement or teardown
    max_poll_seconds: Optional[float] = None
    session_retention_seconds: float = 600.0
    public_base_url: str = "http://localhost:3000"
    confirmation_path: str = "/obrigado/{correlation_id}"
    checkout_path: str = "/checkout/{product_id}/{plan_id}"
    correlation_prefix: str = "sellpay"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    PROJECT_NAME: str = "SellPay Checkout"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    checkout: CheckoutFlowSettings = Field(default_factory=CheckoutFlowSettings)

    # bearer token for the dashboard routes, required
    ADMIN_TOKEN: Optional[str] = None

    CORS_ORIGINS: list[str] = Field(default=["http://localhost:3000"])

    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = True
    LOG_REQUEST_BODY_MAX_BYTES: int = 2048

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        """Accepts ``["a","b"]`` or ``a,b``."""
        if not isinstance(v, str):
            return v
        raw = v.strip()
        if raw.startswith("["):
            return json.loads(raw)
        return [item.strip() for item in raw.split(",") if item.strip()]

    @model_validator(mode="after")
    def _require_admin_token(self):
        if not self.ADMIN_TOKEN:
            raise ValueError("ADMIN_TOKEN must be set (environment or .env)")
        return self


settings = Settings()
