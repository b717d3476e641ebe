"""
PIX gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.checkout import (
    ChargeRequest,
    ChargeStatusResult,
    CompanyAccount,
    PixCharge,
    WithdrawResult,
)


@runtime_checkable
class PixGateway(Protocol):
    """Gateway protocol for the PIX provider.

    ``create_charge`` and ``get_charge_status`` raise GatewayError on any
    non-2xx answer. ``get_charge_status`` is read-only and safe to repeat.
    """

    provider: str

    async def create_charge(self, req: ChargeRequest) -> PixCharge: ...

    async def get_charge_status(self, correlation_id: str) -> ChargeStatusResult: ...

    async def get_company(self) -> CompanyAccount: ...

    async def request_withdraw(self, value: int, account_id: str = "default") -> WithdrawResult: ...

    async def aclose(self) -> None: ...
