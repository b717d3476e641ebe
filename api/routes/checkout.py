"""
Checkout routes: the public checkout page API

Session routes are registered before ``/{product_id}/{plan_id}`` so ``sessions`` never matches as a product id.
"""
from fastapi import APIRouter, Depends, status

from api.dependencies import get_checkout_service, get_session_registry
from application.dtos.checkout import CheckoutOffer, CheckoutSessionView, StartCheckoutRequest
from application.services.checkout_engine import CheckoutSessionRegistry
from application.services.checkout_service import CheckoutService
from core.i18n import t
from core.response import Response as ApiResponse, success_response

router = APIRouter(
    prefix="/checkout",
    tags=["Checkout"]
)


@router.post(
    "/sessions",
    summary="Submit checkout form and create PIX charge",
    response_model=ApiResponse[CheckoutSessionView],
    status_code=status.HTTP_201_CREATED,
)
async def open_session(
    payload: StartCheckoutRequest,
    registry: CheckoutSessionRegistry = Depends(get_session_registry),
):
    """
    Create the PIX charge and the order, then start polling the payment status

    - invalid form: 422 (field errors in ``error.details.errors``)
    - gateway failure: 502, no order is created
    """
    session = await registry.open(payload)
    return success_response(data=session.view(), message=t("checkout.session.created"))


@router.get("/sessions/{correlation_id}", summary="Get checkout session", response_model=ApiResponse[CheckoutSessionView])
async def get_session(
    correlation_id: str,
    registry: CheckoutSessionRegistry = Depends(get_session_registry),
):
    session = registry.get(correlation_id)
    return success_response(data=session.view(), message=t("checkout.session.state"))


@router.delete("/sessions/{correlation_id}", summary="Close checkout session")
async def close_session(
    correlation_id: str,
    registry: CheckoutSessionRegistry = Depends(get_session_registry),
):
    """Called when the page goes away; cancels the poll task."""
    await registry.close(correlation_id)
    return success_response(data={"correlation_id": correlation_id}, message=t("checkout.session.closed"))


@router.get("/{product_id}/{plan_id}", summary="Get checkout offer", response_model=ApiResponse[CheckoutOffer])
async def get_offer(
    product_id: str,
    plan_id: str,
    service: CheckoutService = Depends(get_checkout_service),
):
    offer = await service.load_offer(product_id, plan_id)
    return success_response(data=offer, message=t("checkout.offer.loaded"))
