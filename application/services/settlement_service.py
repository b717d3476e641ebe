"""
Settlement service - moves orders out of PENDING and fans out side effects.

Two callers race here: the checkout session poll loop and the provider
webhook. The order store applies each transition with a conditional update,
so only the caller that actually changed the row sends emails and
attribution events; every other caller sees ``changed=False``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from application.dtos.checkout import CheckoutSnapshot, DeliverableLink
from application.dtos.webhooks import WebhookIgnored, parse_openpix_webhook
from application.services import email_templates
from application.services.attribution import build_attribution_order
from application.services.checkout_service import deliverable_links
from application.services.notification_dispatcher import NotificationDispatcher
from core.config import CheckoutFlowSettings, settings
from core.logging_config import get_logger
from core.metrics import ORDER_TRANSITIONS
from core.settings import UtmifySettings, integration_settings
from domain.catalog.entity import Product
from domain.common.exceptions import (
    InvalidOrderTransitionException,
    OrderNotFoundException,
    OrderStoreException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order, OrderStatus
from domain.order.service import OrderDomainService


logger = get_logger(__name__)


@dataclass
class WebhookResult:
    """Provider-facing answer: bare JSON body plus HTTP status."""

    status_code: int
    body: dict = field(default_factory=dict)


@dataclass
class _OrderContext:
    product_name: Optional[str] = None
    plan_name: Optional[str] = None
    deliverables: tuple[DeliverableLink, ...] = ()


def checkout_url(flow: CheckoutFlowSettings, product_id: str, plan_id: str) -> str:
    path = flow.checkout_path.format(product_id=product_id, plan_id=plan_id)
    return flow.public_base_url.rstrip("/") + path


class SettlementService:
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

    async def _transition(
        self, correlation_id: str, target: OrderStatus, *, source: str, paid_at: Optional[datetime] = None
    ) -> tuple[Order, bool]:
        try:
            async with self._uow_factory() as uow:
                domain_service = OrderDomainService(uow.order_repository)
                order, changed = await domain_service.transition(
                    correlation_id, target, source=source, paid_at=paid_at
                )
        except InvalidOrderTransitionException:
            ORDER_TRANSITIONS.labels(source=source, target=target.value, result="rejected").inc()
            raise
        except OrderNotFoundException:
            ORDER_TRANSITIONS.labels(source=source, target=target.value, result="not_found").inc()
            raise
        except OrderStoreException:
            ORDER_TRANSITIONS.labels(source=source, target=target.value, result="error").inc()
            raise
        ORDER_TRANSITIONS.labels(source=source, target=target.value, result="changed" if changed else "noop").inc()
        logger.info(
            "order_transition",
            correlation_id=correlation_id,
            order_id=order.id,
            target=target.value,
            source=source,
            changed=changed,
        )
        return order, changed

    async def _order_context(self, order: Order) -> _OrderContext:
        """Catalog names and deliverables, read after the status commit.

        A failure here only degrades email/attribution content.
        """
        product: Optional[Product] = None
        try:
            async with self._uow_factory(readonly=True) as uow:
                product = await uow.catalog_repository.get_product(order.product_id)
        except Exception as exc:
            logger.warning("order_context_lookup_failed", correlation_id=order.correlation_id, error=str(exc))
            return _OrderContext()
        if product is None:
            return _OrderContext()
        plan = product.find_plan(order.plan_id)
        return _OrderContext(
            product_name=product.name,
            plan_name=plan.name if plan else None,
            deliverables=deliverable_links(product),
        )

    async def _send_paid_attribution(self, order: Order, ctx: _OrderContext) -> bool:
        try:
            payload = build_attribution_order(
                order,
                status="paid",
                product_name=ctx.product_name,
                plan_name=ctx.plan_name,
                platform=self._attribution.platform,
                gateway_fee_rate=self._attribution.gateway_fee_rate,
            )
        except Exception as exc:
            logger.error("attribution_payload_failed", correlation_id=order.correlation_id, error=str(exc))
            return False
        return await self._dispatcher.send_attribution_event(payload)

    async def _send_approved_email(
        self,
        *,
        to: str,
        customer_name: str,
        product_name: str,
        amount: int,
        deliverables: tuple[DeliverableLink, ...],
        correlation_id: str,
    ) -> bool:
        try:
            message = email_templates.purchase_approved_email(
                to=to,
                customer_name=customer_name,
                product_name=product_name,
                amount=amount,
                deliverables=deliverables,
            )
        except Exception as exc:
            logger.error("approved_email_render_failed", correlation_id=correlation_id, error=str(exc))
            return False
        return await self._dispatcher.send_email(message)

    # Poll path

    async def approve_from_poll(self, snapshot: CheckoutSnapshot, paid_at: Optional[datetime] = None) -> Optional[Order]:
        """
        Approve the order behind a session that saw COMPLETED.

        Returns the order when this call won the transition, None when
        another path approved first.
        """
        order, changed = await self._transition(
            snapshot.correlation_id, OrderStatus.APPROVED, source="poll", paid_at=paid_at
        )
        return order if changed else None

    async def notify_poll_approval(self, order: Order, snapshot: CheckoutSnapshot) -> None:
        """Approved email and ``paid`` attribution, built from the charge-time snapshot."""
        ctx = _OrderContext(
            product_name=snapshot.product_name,
            plan_name=snapshot.plan_name,
            deliverables=snapshot.deliverables,
        )
        await self._send_approved_email(
            to=snapshot.customer_email,
            customer_name=snapshot.customer_name,
            product_name=snapshot.product_name,
            amount=snapshot.amount,
            deliverables=snapshot.deliverables[:1],
            correlation_id=snapshot.correlation_id,
        )
        await self._send_paid_attribution(order, ctx)

    async def expire_from_poll(self, snapshot: CheckoutSnapshot) -> bool:
        try:
            _, changed = await self._transition(snapshot.correlation_id, OrderStatus.EXPIRED, source="poll")
        except InvalidOrderTransitionException as exc:
            logger.info("order_expire_skipped", correlation_id=snapshot.correlation_id, current=exc.current)
            return False
        if changed:
            await self._dispatcher.send_email(
                email_templates.pix_expired_email(
                    to=snapshot.customer_email,
                    customer_name=snapshot.customer_name,
                    product_name=snapshot.product_name,
                    checkout_url=checkout_url(self._flow, snapshot.product_id, snapshot.plan_id),
                )
            )
        return changed

    # Webhook path

    async def handle_webhook(self, raw_body: bytes) -> WebhookResult:
        """
        Settle from a provider push.

        Raises WebhookPayloadError for malformed bodies; every other outcome
        is a WebhookResult the route returns as-is.
        """
        event = parse_openpix_webhook(raw_body)
        if isinstance(event, WebhookIgnored):
            logger.info("webhook_ignored", reason=event.reason, event=event.event)
            return WebhookResult(200, {"status": "ignored"})
        if not event.is_completed:
            logger.info("webhook_pending", correlation_id=event.correlation_id, status=event.status)
            return WebhookResult(200, {"status": "pending"})

        correlation_id = event.correlation_id
        logger.info("webhook_charge_completed", correlation_id=correlation_id)
        try:
            order, changed = await self._transition(
                correlation_id, OrderStatus.APPROVED, source="webhook", paid_at=datetime.now(timezone.utc)
            )
        except OrderNotFoundException:
            logger.error("webhook_order_not_found", correlation_id=correlation_id)
            return WebhookResult(404, {"error": "Order not found"})
        except InvalidOrderTransitionException as exc:
            logger.warning("webhook_transition_rejected", correlation_id=correlation_id, current=exc.current)
            return WebhookResult(200, {"status": "ignored"})
        except OrderStoreException as exc:
            logger.error("webhook_order_update_failed", correlation_id=correlation_id, error=exc.message)
            return WebhookResult(500, {"error": "Failed to update order"})

        if not changed:
            logger.info("webhook_order_already_approved", correlation_id=correlation_id)
            return WebhookResult(200, {"status": "already_approved"})

        ctx = await self._order_context(order)
        await self._send_paid_attribution(order, ctx)
        await self._send_approved_email(
            to=order.customer.email,
            customer_name=order.customer.name,
            product_name=ctx.product_name or "Produto",
            amount=order.amount,
            deliverables=ctx.deliverables,
            correlation_id=correlation_id,
        )
        return WebhookResult(200, {"status": "success", "orderId": order.id})
