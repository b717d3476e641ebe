"""
Order domain service - order creation and idempotent status transitions
"""
from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timezone
from typing import List, Optional

from .entity import Customer, Order, OrderStatus, source_statuses
from .events import OrderApproved, OrderEvent, OrderExpired, OrderRefunded
from .repository import OrderRepository
from domain.common.exceptions import (
    InvalidOrderTransitionException,
    OrderNotFoundException,
    OrderStoreException,
)


_BASE36 = string.digits + string.ascii_lowercase

_EVENT_BY_TARGET = {
    OrderStatus.APPROVED: OrderApproved,
    OrderStatus.EXPIRED: OrderExpired,
    OrderStatus.REFUNDED: OrderRefunded,
}


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_correlation_id(prefix: str = "sellpay") -> str:
    """``{prefix}_{base36 epoch ms}_{8 random base36 chars}``, unique per attempt."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"{prefix}_{timestamp}_{suffix}"


class OrderDomainService:
    """
    Order domain service

    Responsibilities:
    1. Build and persist PENDING orders once a charge exists
    2. Move orders through the status machine exactly once per target
    3. Collect domain events naming which caller won a transition
    """

    REQUIRED_FIELDS = ("correlation_id", "product_id", "plan_id", "pix_copy_paste", "pix_charge_id")

    def __init__(self, order_repository: OrderRepository):
        self.order_repository = order_repository
        self.events: List[OrderEvent] = []

    async def place_order(
        self,
        *,
        correlation_id: str,
        product_id: str,
        plan_id: str,
        customer: Customer,
        amount: int,
        pix_copy_paste: Optional[str],
        pix_qr_code: Optional[str],
        pix_charge_id: Optional[str],
        order_bump_id: Optional[str] = None,
        tracking_parameters: Optional[dict] = None,
    ) -> Order:
        values = {
            "correlation_id": correlation_id,
            "product_id": product_id,
            "plan_id": plan_id,
            "pix_copy_paste": pix_copy_paste,
            "pix_charge_id": pix_charge_id,
        }
        missing = [name for name in self.REQUIRED_FIELDS if not values.get(name)]
        if not customer.name or not customer.email or not customer.phone:
            missing.append("customer")
        if missing:
            raise OrderStoreException(
                "Order is missing required fields",
                details={"missing": missing},
                field=missing[0],
            )

        now = datetime.now(timezone.utc)
        order = Order(
            id=None,
            correlation_id=correlation_id,
            product_id=product_id,
            plan_id=plan_id,
            customer=customer,
            amount=amount,
            status=OrderStatus.PENDING,
            order_bump_id=order_bump_id,
            pix_copy_paste=pix_copy_paste,
            pix_qr_code=pix_qr_code,
            pix_charge_id=pix_charge_id,
            tracking_parameters=dict(tracking_parameters or {}),
            created_at=now,
            updated_at=now,
        )
        return await self.order_repository.create(order)

    async def transition(
        self,
        correlation_id: str,
        target: OrderStatus,
        *,
        source: str,
        paid_at: Optional[datetime] = None,
    ) -> tuple[Order, bool]:
        """
        Move the order keyed by ``correlation_id`` into ``target``.

        Returns ``(order, changed)``. ``changed`` is False when the order
        already holds ``target`` (including when a concurrent caller got
        there first); side effects belong to the caller that saw True.
        Raises OrderNotFoundException or InvalidOrderTransitionException.
        """
        target = OrderStatus(target)
        order = await self.order_repository.get_by_correlation_id(correlation_id)
        if order is None:
            raise OrderNotFoundException(correlation_id=correlation_id)
        if order.status == target:
            return order, False
        if not order.can_transition_to(target):
            raise InvalidOrderTransitionException(order.status.value, target.value, correlation_id=correlation_id)

        if target == OrderStatus.APPROVED and paid_at is None:
            paid_at = datetime.now(timezone.utc)
        changed = await self.order_repository.update_status(
            correlation_id,
            target,
            expected=source_statuses(target),
            paid_at=paid_at if target == OrderStatus.APPROVED else None,
        )
        if not changed:
            # lost a race; report what the winner left behind
            current = await self.order_repository.get_by_correlation_id(correlation_id)
            if current is None:
                raise OrderNotFoundException(correlation_id=correlation_id)
            if current.status == target:
                return current, False
            raise InvalidOrderTransitionException(current.status.value, target.value, correlation_id=correlation_id)

        order.transition_to(target, paid_at=paid_at)
        event_cls = _EVENT_BY_TARGET[target]
        if target == OrderStatus.APPROVED:
            self.events.append(event_cls(correlation_id=correlation_id, order_id=order.id, source=source, paid_at=order.paid_at))
        else:
            self.events.append(event_cls(correlation_id=correlation_id, order_id=order.id, source=source))
        return order, True

    def clear_events(self) -> List[OrderEvent]:
        events = self.events.copy()
        self.events.clear()
        return events
