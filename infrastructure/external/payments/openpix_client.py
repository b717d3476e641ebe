"""
OpenPix (Woovi) PIX adapter over the REST API.

Notes on API usage:
- The app id goes verbatim into the ``Authorization`` header (no scheme).
- Charge creation is never retried: a duplicate POST could issue a second
  charge for the same buyer. Status reads are idempotent and retried on
  timeouts, transport errors and 5xx/429 answers.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from application.dtos.checkout import (
    ChargeRequest,
    ChargeStatus,
    ChargeStatusResult,
    CompanyAccount,
    PixCharge,
    WithdrawResult,
)
from core.logging_config import get_logger
from core.settings import integration_settings
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import OpenPixError


logger = get_logger(__name__)


class OpenPixClient(BasePaymentClient):
    provider = "openpix"

    def __init__(
        self,
        app_id: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = integration_settings.openpix
        self._app_id = app_id if app_id is not None else cfg.app_id
        super().__init__(
            base_url=base_url or cfg.base_url,
            headers={"Authorization": self._app_id} if self._app_id else None,
            timeouts=timeouts or cfg.timeouts.model_dump(),
            retry=retry or {"max": cfg.retry.max, "base": cfg.retry.base_backoff},
            transport=transport,
        )
        if not self._app_id:
            logger.warning("openpix_app_id_missing")

    def _require_credentials(self) -> None:
        if not self._app_id:
            raise OpenPixError("OPENPIX__APP_ID not configured", provider=self.provider)

    async def create_charge(self, req: ChargeRequest) -> PixCharge:
        self._require_credentials()
        data = await self._request("POST", "/charge", json=req.to_provider_payload())
        charge = data.get("charge") or {}
        if not charge.get("brCode"):
            raise OpenPixError(
                "Malformed charge response",
                provider=self.provider,
                details={"correlation_id": req.correlation_id},
            )
        self._log("charge_created", correlation_id=req.correlation_id, value=req.value)
        return PixCharge(
            correlation_id=req.correlation_id,
            qr_code_image=charge.get("qrCodeImage"),
            br_code=charge["brCode"],
            global_charge_id=str(charge.get("globalID") or ""),
        )

    async def get_charge_status(self, correlation_id: str) -> ChargeStatusResult:
        self._require_credentials()
        data = await self._retry(lambda: self._request("GET", f"/charge/{correlation_id}"))
        charge = data.get("charge") or {}
        raw_status = str(charge.get("status") or "")
        try:
            status = ChargeStatus(self._map_status(raw_status))
        except ValueError as exc:
            raise OpenPixError(
                f"Unknown charge status: {raw_status or '<empty>'}",
                provider=self.provider,
                provider_code=raw_status or None,
                details={"correlation_id": correlation_id},
            ) from exc
        return ChargeStatusResult(status=status, paid_at=charge.get("paidAt"))

    async def get_company(self) -> CompanyAccount:
        self._require_credentials()
        data = await self._retry(lambda: self._request("GET", "/company"))
        company = data.get("company") or {}
        tax_id = company.get("taxID")
        if isinstance(tax_id, dict):
            tax_id = tax_id.get("taxID")
        return CompanyAccount(
            name=company.get("name"),
            tax_id=tax_id,
            balance=int(company.get("balance") or 0),
            withdraw_balance=int(company.get("withdrawBalance") or 0),
        )

    async def request_withdraw(self, value: int, account_id: str = "default") -> WithdrawResult:
        self._require_credentials()
        if account_id and account_id != "default":
            path = f"/account/{account_id}/withdraw"
        else:
            path = "/subaccount/withdraw"
        data = await self._request("POST", path, json={"value": value})
        withdraw = data.get("withdraw") or {}
        self._log("withdraw_requested", value=value, account_id=account_id)
        return WithdrawResult(
            success=True,
            message="Saque solicitado com sucesso",
            withdraw_id=str(withdraw["id"]) if withdraw.get("id") is not None else None,
        )
