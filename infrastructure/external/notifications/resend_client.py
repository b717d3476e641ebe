"""
Resend transactional email adapter.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.dtos.notifications import EmailMessage
from core.logging_config import get_logger
from core.settings import integration_settings
from infrastructure.external.notifications.base import BaseAPIClient


logger = get_logger(__name__)


class ResendEmailClient(BaseAPIClient):
    channel = "email"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = integration_settings.resend
        self._api_key = api_key if api_key is not None else cfg.api_key
        self.sender = sender or cfg.sender
        # POST /emails is not idempotent: a retry could deliver twice
        super().__init__(
            base_url or cfg.base_url,
            timeout=timeout or cfg.timeout,
            max_retries=0,
            headers={"Authorization": f"Bearer {self._api_key}"} if self._api_key else None,
            transport=transport,
        )

    async def send(self, message: EmailMessage) -> Optional[str]:
        if not self._api_key:
            raise self._error("RESEND__API_KEY not configured")
        payload = {"from": self.sender, **message.model_dump()}
        response = await self._request("POST", "/emails", json_data=payload)
        data = response.data if isinstance(response.data, dict) else {}
        message_id = data.get("id")
        logger.info("email_sent", kind=message.kind, message_id=message_id)
        return message_id
