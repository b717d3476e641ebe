"""
Base PIX gateway client: shared httpx connection, timeouts, retries for reads, error mapping.

Concrete gateways implement create_charge / get_charge_status / get_company / request_withdraw.
Only reads (charge status, account) go through ``_retry``; charges and withdrawals never retry, so nothing is charged twice.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.dtos.checkout import ChargeRequest, ChargeStatusResult, CompanyAccount, PixCharge, WithdrawResult
from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import OpenPixError, OpenPixRecoverableError
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_TIMEOUTS = {"connect": 1.0, "read": 3.0, "write": 3.0, "total": 5.0}


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json", "Accept": "application/json", **(headers or {})}
        t = {**DEFAULT_TIMEOUTS, **(timeouts or {})}
        self._timeout = httpx.Timeout(t["total"], connect=t["connect"], read=t["read"], write=t["write"])
        retry = retry or {}
        self._max_retries = int(retry.get("max", 2))
        self._backoff = float(retry.get("base", 0.2))
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            http, self._http = self._http, None
            await http.aclose()

    async def _retry(self, fn: Callable[[], Awaitable[Any]]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._backoff, max=2.0),
            retry=retry_if_exception_type(OpenPixRecoverableError),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def _request(self, method: str, path: str, *, json: Optional[dict] = None) -> dict[str, Any]:
        """Single HTTP exchange; non-2xx answers become typed gateway errors."""
        try:
            response = await self.http.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            self._log("gateway_timeout", method=method, path=path)
            raise OpenPixRecoverableError(f"Request timeout on {path}", provider=self.provider, timeout=True) from exc
        except httpx.TransportError as exc:
            self._log("gateway_transport_error", method=method, path=path, error=str(exc))
            raise OpenPixRecoverableError(f"Network error: {exc}", provider=self.provider) from exc

        body = self._decode(response)
        if response.is_success:
            return body
        message = body.get("error") or body.get("message") or f"Request failed with status {response.status_code}"
        self._log("gateway_error_response", method=method, path=path, status_code=response.status_code)
        error_cls = OpenPixRecoverableError if response.status_code in TRANSIENT_STATUS_CODES else OpenPixError
        raise error_cls(str(message), provider=self.provider, status_code=response.status_code)

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def create_charge(self, req: ChargeRequest) -> PixCharge:
        raise NotImplementedError

    async def get_charge_status(self, correlation_id: str) -> ChargeStatusResult:
        raise NotImplementedError

    async def get_company(self) -> CompanyAccount:
        raise NotImplementedError

    async def request_withdraw(self, value: int, account_id: str = "default") -> WithdrawResult:
        raise NotImplementedError

    def _map_status(self, provider_status: str) -> str:
        return PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {}).get(provider_status, provider_status)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(event, provider=self.provider, **kwargs)
