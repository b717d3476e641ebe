"""
Order use cases: dashboard listing, confirmation page, refunds and recovery emails
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from application.dtos.notifications import EmailKind, RecoveryEmailResult
from application.dtos.orders import OrderConfirmation, OrderListQuery, OrderResponse
from application.services import email_templates
from application.services.attribution import build_attribution_order
from application.services.checkout_service import deliverable_links
from application.services.notification_dispatcher import NotificationDispatcher
from application.services.settlement_service import checkout_url
from core.config import CheckoutFlowSettings, settings
from core.logging_config import get_logger
from core.metrics import ORDER_TRANSITIONS
from core.settings import UtmifySettings, integration_settings
from domain.common.exceptions import DomainValidationException, OrderNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderFilters
from domain.order.service import OrderDomainService


logger = get_logger(__name__)

RECOVERABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.EXPIRED})


class OrderApplicationService:
    """Dashboard and confirmation-page order operations."""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        dispatcher: NotificationDispatcher,
        *,
        flow: Optional[CheckoutFlowSettings] = None,
        attribution: Optional[UtmifySettings] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._dispatcher = dispatcher
        self._flow = flow or settings.checkout
        self._attribution = attribution or integration_settings.utmify

    async def _get_order(self, order_id: int) -> Order:
        async with self._uow_factory(readonly=True) as uow:
            order = await uow.order_repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundException(order_id=order_id)
        return order

    async def list_orders(self, query: OrderListQuery) -> Tuple[List[OrderResponse], int]:
        """Paged orders, newest first."""
        filters = OrderFilters(
            status=query.status,
            product_id=query.product_id,
            start_date=query.start_date,
            end_date=query.end_date,
        )
        skip = (query.page - 1) * query.size
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list_orders(filters, skip=skip, limit=query.size)
            total = await uow.order_repository.count(filters)
        return [OrderResponse.from_entity(o) for o in orders], total

    async def get_order(self, order_id: int) -> OrderResponse:
        return OrderResponse.from_entity(await self._get_order(order_id))

    async def get_confirmation(self, correlation_id: str) -> OrderConfirmation:
        """Data behind the thank-you page; only approved orders are visible."""
        async with self._uow_factory(readonly=True) as uow:
            order = await uow.order_repository.get_by_correlation_id(correlation_id)
            if order is None or not order.is_approved:
                raise OrderNotFoundException(correlation_id=correlation_id)
            product = await uow.catalog_repository.get_product(order.product_id)

        links = list(deliverable_links(product))
        first = links[0] if links else None
        return OrderConfirmation(
            correlation_id=order.correlation_id,
            order_id=order.id,
            product_name=product.name if product else "Produto",
            customer_name=order.customer.name,
            amount=order.amount,
            paid_at=order.paid_at,
            deliverables=links,
            redirect_url=first.url if first and first.type == "redirect" else None,
        )

    async def refund(self, order_id: int) -> OrderResponse:
        """APPROVED -> REFUNDED, then forward a ``refunded`` attribution event."""
        order = await self._get_order(order_id)
        async with self._uow_factory() as uow:
            domain_service = OrderDomainService(uow.order_repository)
            order, changed = await domain_service.transition(
                order.correlation_id, OrderStatus.REFUNDED, source="admin"
            )
        ORDER_TRANSITIONS.labels(source="admin", target=OrderStatus.REFUNDED.value, result="changed" if changed else "noop").inc()
        logger.info("order_refunded", order_id=order.id, correlation_id=order.correlation_id, changed=changed)

        if changed:
            await self._send_refund_attribution(order)
        return OrderResponse.from_entity(order)

    async def _send_refund_attribution(self, order: Order) -> bool:
        """The refund is already committed; failures here are logged only."""
        product = None
        try:
            async with self._uow_factory(readonly=True) as uow:
                product = await uow.catalog_repository.get_product(order.product_id)
        except Exception as exc:
            logger.warning("order_context_lookup_failed", correlation_id=order.correlation_id, error=str(exc))
        plan = product.find_plan(order.plan_id) if product else None
        try:
            payload = build_attribution_order(
                order,
                status="refunded",
                product_name=product.name if product else None,
                plan_name=plan.name if plan else None,
                platform=self._attribution.platform,
                gateway_fee_rate=self._attribution.gateway_fee_rate,
                refunded_at=datetime.now(timezone.utc),
            )
        except Exception as exc:
            logger.error("attribution_payload_failed", correlation_id=order.correlation_id, error=str(exc))
            return False
        return await self._dispatcher.send_attribution_event(payload)

    async def send_recovery_email(self, order_id: int, kind: EmailKind) -> RecoveryEmailResult:
        """Abandoned-cart / PIX-expired email pointing back to the checkout."""
        if kind not in (EmailKind.ABANDONED_CART, EmailKind.PIX_EXPIRED):
            raise DomainValidationException(
                "Recovery email kind must be abandoned_cart or pix_expired", field="kind"
            )
        order = await self._get_order(order_id)
        if order.status not in RECOVERABLE_STATUSES:
            raise DomainValidationException(
                "Recovery emails apply to pending or expired orders",
                field="status",
                details={"status": order.status.value},
            )
        async with self._uow_factory(readonly=True) as uow:
            product = await uow.catalog_repository.get_product(order.product_id)

        message = email_templates.recovery_email(
            kind,
            to=order.customer.email,
            customer_name=order.customer.name,
            product_name=product.name if product else "Produto",
            checkout_url=checkout_url(self._flow, order.product_id, order.plan_id),
        )
        sent = await self._dispatcher.send_email(message)
        return RecoveryEmailResult(order_id=order.id, kind=kind, sent=sent)
