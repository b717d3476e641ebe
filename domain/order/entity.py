"""
Order aggregate - one PIX checkout attempt and its settlement lifecycle
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException, InvalidOrderTransitionException


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    EXPIRED = "EXPIRED"
    REFUNDED = "REFUNDED"


# target -> statuses it may be entered from
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.APPROVED: frozenset({OrderStatus.PENDING}),
    OrderStatus.EXPIRED: frozenset({OrderStatus.PENDING}),
    OrderStatus.REFUNDED: frozenset({OrderStatus.APPROVED}),
}


def source_statuses(target: OrderStatus) -> frozenset[OrderStatus]:
    """Statuses an order must currently hold to move into ``target``."""
    return ALLOWED_TRANSITIONS.get(target, frozenset())


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class Customer:
    name: str
    email: str
    phone: str
    cpf: Optional[str] = None

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else self.name


@dataclass
class Order:
    """
    Order aggregate root.

    Rules:
    1. ``correlation_id`` is the only key the provider and webhook know
    2. ``amount`` is in cents, frozen when the charge is issued
    3. status moves PENDING->APPROVED, PENDING->EXPIRED, APPROVED->REFUNDED only
    """

    id: Optional[int]
    correlation_id: str
    product_id: str
    plan_id: str
    customer: Customer
    amount: int
    status: OrderStatus = OrderStatus.PENDING
    order_bump_id: Optional[str] = None
    pix_copy_paste: Optional[str] = None
    pix_qr_code: Optional[str] = None
    pix_charge_id: Optional[str] = None
    tracking_parameters: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount <= 0:
            raise DomainValidationException(
                f"Order amount must be a positive integer of cents: {self.amount!r}",
                field="amount",
            )
        if not self.correlation_id:
            raise DomainValidationException("correlation_id is required", field="correlation_id")
        self.status = OrderStatus(self.status)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.paid_at = _ensure_utc(self.paid_at)
        if self.tracking_parameters is None:
            self.tracking_parameters = {}

    def can_transition_to(self, target: OrderStatus) -> bool:
        return self.status in source_statuses(OrderStatus(target))

    def transition_to(self, target: OrderStatus, *, paid_at: Optional[datetime] = None) -> None:
        """Apply a status change in memory, enforcing the state machine."""
        target = OrderStatus(target)
        if not self.can_transition_to(target):
            raise InvalidOrderTransitionException(
                self.status.value, target.value, correlation_id=self.correlation_id
            )
        now = datetime.now(timezone.utc)
        self.status = target
        if target == OrderStatus.APPROVED:
            self.paid_at = _ensure_utc(paid_at) or now
        self.updated_at = now

    @property
    def is_approved(self) -> bool:
        return self.status == OrderStatus.APPROVED

    @property
    def amount_decimal(self) -> float:
        """Amount in currency units, for pixel events (value = cents / 100)."""
        return self.amount / 100
