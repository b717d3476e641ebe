"""
Base HTTP client for notification channels

Shared by Resend (email) and Utmify (attribution): timeouts, optional retries, failures as NotificationError.
The email endpoint is not idempotent and is never retried; attribution overwrites by order_id and may retry.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.logging_config import get_logger
from domain.common.exceptions import NotificationError


logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class ChannelResponse:
    status_code: int
    data: Any
    elapsed_ms: float

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class TransientChannelError(Exception):
    """Downstream answered with a retryable status; once retries run out it is a plain failure."""

    def __init__(self, response: ChannelResponse):
        self.response = response
        super().__init__(f"Transient status {response.status_code}")


class BaseAPIClient:
    """Subclasses set ``channel`` and implement ``send``."""

    channel: str = "base"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 0,
        retry_delay: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.headers = {"Content-Type": "application/json", "User-Agent": "SellPay/1.0", **(headers or {})}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self.headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _error(self, message: str, *, status_code: Optional[int] = None, details: Optional[dict] = None) -> NotificationError:
        return NotificationError(message, channel=self.channel, status_code=status_code, details=details)

    async def _post_once(self, method: str, url: str, json_data: Optional[dict]) -> ChannelResponse:
        started = time.perf_counter()
        response = await self.client.request(method, url, json=json_data)
        try:
            data = response.json()
        except ValueError:
            data = None
        result = ChannelResponse(
            status_code=response.status_code,
            data=data,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        logger.debug("notification_api_response", channel=self.channel, status_code=result.status_code, elapsed_ms=result.elapsed_ms)
        if result.status_code in TRANSIENT_STATUS_CODES:
            raise TransientChannelError(result)
        return result

    async def _request(self, method: str, endpoint: str = "", json_data: Optional[dict] = None) -> ChannelResponse:
        """
        Raises:
            NotificationError: timeout, network error or non-2xx
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}" if endpoint else self.base_url
        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_delay, max=self.retry_delay * 8),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError, TransientChannelError)),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._post_once(method, url, json_data)
        except httpx.TimeoutException as exc:
            raise self._error(f"Request timeout after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise self._error(f"Network error: {exc}") from exc
        except TransientChannelError as exc:
            result = exc.response

        if not result.ok:
            body = result.data if isinstance(result.data, dict) else {}
            message = body.get("message") or body.get("error") or f"API request failed with status {result.status_code}"
            raise self._error(str(message), status_code=result.status_code, details={"response": result.data})
        return result
