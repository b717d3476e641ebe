"""
API dependencies: dashboard auth and service wiring
"""
import hmac
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from application.ports.payment_gateway import PixGateway
from application.services.catalog_service import CatalogApplicationService
from application.services.checkout_engine import CheckoutSession, CheckoutSessionRegistry
from application.services.checkout_service import CheckoutService
from application.services.finance_service import FinanceService
from application.services.notification_dispatcher import NotificationDispatcher
from application.services.order_service import OrderApplicationService
from application.services.settlement_service import SettlementService
from core.config import settings
from core.exceptions import UnauthorizedException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

UowFactory = Callable[..., AbstractUnitOfWork]

# HTTP Bearer for dashboard calls
http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="Dashboard admin token",
    auto_error=False,
)


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> None:
    """Every dashboard route requires the ADMIN_TOKEN bearer."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Missing admin token")
    if not hmac.compare_digest(credentials.credentials.encode(), (settings.ADMIN_TOKEN or "").encode()):
        raise UnauthorizedException("Invalid admin token")


def get_uow_factory() -> UowFactory:
    return SQLAlchemyUnitOfWork


def get_gateway(request: Request) -> PixGateway:
    return request.app.state.gateway


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_session_registry(request: Request) -> CheckoutSessionRegistry:
    return request.app.state.checkout_registry


def build_session_registry(
    uow_factory: UowFactory,
    gateway: PixGateway,
    dispatcher: NotificationDispatcher,
) -> CheckoutSessionRegistry:
    """One new CheckoutSession per submit, sharing the gateway and dispatcher."""

    def _new_session() -> CheckoutSession:
        return CheckoutSession(
            checkout=CheckoutService(uow_factory, gateway, dispatcher),
            settlement=SettlementService(uow_factory, dispatcher),
            gateway=gateway,
        )

    return CheckoutSessionRegistry(_new_session)


async def get_checkout_service(
    uow_factory: UowFactory = Depends(get_uow_factory),
    gateway: PixGateway = Depends(get_gateway),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> CheckoutService:
    return CheckoutService(uow_factory, gateway, dispatcher)


async def get_settlement_service(
    uow_factory: UowFactory = Depends(get_uow_factory),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> SettlementService:
    return SettlementService(uow_factory, dispatcher)


async def get_order_service(
    uow_factory: UowFactory = Depends(get_uow_factory),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderApplicationService:
    return OrderApplicationService(uow_factory, dispatcher)


async def get_catalog_service(uow_factory: UowFactory = Depends(get_uow_factory)) -> CatalogApplicationService:
    return CatalogApplicationService(uow_factory)


async def get_finance_service(gateway: PixGateway = Depends(get_gateway)) -> FinanceService:
    return FinanceService(gateway)
