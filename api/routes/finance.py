"""
Finance routes: gateway account balance and withdrawals (admin only).
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_finance_service, require_admin
from application.dtos.checkout import CompanyAccount, WithdrawResult
from application.dtos.orders import WithdrawRequest
from application.services.finance_service import FinanceService
from core.i18n import t
from core.response import Response as ApiResponse, success_response


router = APIRouter(prefix="/finance", tags=["Finance"], dependencies=[Depends(require_admin)])


@router.get("/balance", summary="Gateway balance", response_model=ApiResponse[CompanyAccount])
async def get_balance(service: FinanceService = Depends(get_finance_service)):
    account = await service.get_balance()
    return success_response(data=account, message=t("finance.balance"))


@router.post("/withdraw", summary="Request withdraw", response_model=ApiResponse[WithdrawResult])
async def request_withdraw(payload: WithdrawRequest, service: FinanceService = Depends(get_finance_service)):
    result = await service.withdraw(payload)
    return success_response(data=result, message=t("finance.withdraw.requested"))
