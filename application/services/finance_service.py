"""
Finance service - gateway account balance and withdrawals.
"""
from __future__ import annotations

from application.dtos.checkout import CompanyAccount, WithdrawResult
from application.dtos.orders import WithdrawRequest
from application.ports.payment_gateway import PixGateway
from core.logging_config import get_logger


logger = get_logger(__name__)


class FinanceService:
    def __init__(self, gateway: PixGateway) -> None:
        self.gateway = gateway

    async def get_balance(self) -> CompanyAccount:
        account = await self.gateway.get_company()
        logger.info("finance_balance_fetched", provider=self.gateway.provider, balance=account.balance)
        return account

    async def withdraw(self, req: WithdrawRequest) -> WithdrawResult:
        logger.info("finance_withdraw_request", provider=self.gateway.provider, value=req.value, account_id=req.account_id)
        result = await self.gateway.request_withdraw(req.value, req.account_id)
        logger.info("finance_withdraw_response", withdraw_id=result.withdraw_id, success=result.success)
        return result
