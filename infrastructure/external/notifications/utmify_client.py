"""
Utmify attribution relay adapter.

Utmify upserts by ``orderId``, so transient failures are retried.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.dtos.attribution import AttributionOrder
from core.logging_config import get_logger
from core.settings import integration_settings
from infrastructure.external.notifications.base import BaseAPIClient


logger = get_logger(__name__)


class UtmifyClient(BaseAPIClient):
    channel = "attribution"

    def __init__(
        self,
        api_token: Optional[str] = None,
        *,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = integration_settings.utmify
        self._api_token = api_token if api_token is not None else cfg.api_token
        super().__init__(
            endpoint or cfg.endpoint,
            timeout=timeout or cfg.timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            headers={"x-api-token": self._api_token} if self._api_token else None,
            transport=transport,
        )

    async def send(self, order: AttributionOrder) -> None:
        if not self._api_token:
            raise self._error("UTMIFY__API_TOKEN not configured")
        await self._request("POST", json_data=order.to_payload())
        logger.info("attribution_sent", order_id=order.order_id, status=order.status)
