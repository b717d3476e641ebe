"""
Order routes: dashboard order management and the public confirmation data
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_order_service, require_admin
from application.dtos.notifications import RecoveryEmailRequest, RecoveryEmailResult
from application.dtos.orders import OrderConfirmation, OrderListQuery, OrderResponse
from application.services.order_service import OrderApplicationService
from core.i18n import t
from core.response import PaginatedData, Response as ApiResponse, paginated_response, success_response

router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)


@router.get(
    "",
    summary="List orders",
    response_model=ApiResponse[PaginatedData[OrderResponse]],
    dependencies=[Depends(require_admin)],
)
async def list_orders(
    query: Annotated[OrderListQuery, Query()],
    service: OrderApplicationService = Depends(get_order_service),
):
    """
    Paged order listing

    - **status**: PENDING / APPROVED / EXPIRED / REFUNDED
    - **product_id**: product id
    - **start_date / end_date**: creation time range (ISO8601)
    """
    items, total = await service.list_orders(query)
    return paginated_response(items=items, total=total, page=query.page, size=query.size, message=t("order.list"))


@router.get("/confirmation/{correlation_id}", summary="Confirmation page data", response_model=ApiResponse[OrderConfirmation])
async def get_confirmation(
    correlation_id: str,
    service: OrderApplicationService = Depends(get_order_service),
):
    """Visible only for paid orders; 404 otherwise."""
    confirmation = await service.get_confirmation(correlation_id)
    return success_response(data=confirmation, message=t("order.confirmation"))


@router.get(
    "/{order_id}",
    summary="Get order",
    response_model=ApiResponse[OrderResponse],
    dependencies=[Depends(require_admin)],
)
async def get_order(
    order_id: int,
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.get_order(order_id)
    return success_response(data=order, message=t("order.detail"))


@router.post(
    "/{order_id}/refund",
    summary="Mark refunded",
    response_model=ApiResponse[OrderResponse],
    dependencies=[Depends(require_admin)],
)
async def refund_order(
    order_id: int,
    service: OrderApplicationService = Depends(get_order_service),
):
    """APPROVED -> REFUNDED, then forward the refunded attribution event."""
    order = await service.refund(order_id)
    return success_response(data=order, message=t("order.refunded"))


@router.post(
    "/{order_id}/recovery-email",
    summary="Send recovery email",
    response_model=ApiResponse[RecoveryEmailResult],
    dependencies=[Depends(require_admin)],
)
async def send_recovery_email(
    order_id: int,
    payload: RecoveryEmailRequest,
    service: OrderApplicationService = Depends(get_order_service),
):
    result = await service.send_recovery_email(order_id, payload.kind)
    message = t("order.recovery_email.sent") if result.sent else t("order.recovery_email.failed")
    return success_response(data=result, message=message)
