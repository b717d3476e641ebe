"""
Exceptions for the PIX provider mapped to unified GatewayError variants.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import GatewayError
from shared.codes.payment_codes import PaymentCode


class OpenPixError(GatewayError):
    def __init__(
        self,
        message: str,
        *,
        provider: str = "openpix",
        provider_code: str | None = None,
        status_code: int | None = None,
        details: Optional[dict] = None,
    ):
        super().__init__(
            message,
            provider=provider,
            provider_code=provider_code,
            status_code=status_code,
            details=details,
            code=PaymentCode.PROVIDER_ERROR,
            error_type="OpenPixError",
        )


class OpenPixRecoverableError(GatewayError):
    """Timeouts, transport failures and 5xx/429 answers; safe to retry for reads."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "openpix",
        status_code: int | None = None,
        timeout: bool = False,
        details: Optional[dict] = None,
    ):
        super().__init__(
            message,
            provider=provider,
            status_code=status_code,
            details=details,
            code=PaymentCode.TIMEOUT if timeout else PaymentCode.PROVIDER_RECOVERABLE,
            error_type="OpenPixRecoverableError",
        )
