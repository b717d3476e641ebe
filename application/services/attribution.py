"""
Attribution payload assembly.

Everything here reads stored order fields only; ``amount`` is never
recomputed from the catalog.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Mapping, Optional

from application.dtos.attribution import (
    AttributionCommission,
    AttributionCustomer,
    AttributionOrder,
    AttributionProduct,
    TrackingParameters,
)
from domain.order.entity import Order, OrderStatus


ATTRIBUTION_KEYS = ("src", "sck", "utm_source", "utm_campaign", "utm_medium", "utm_content", "utm_term")
# extra click ids kept on the order but not forwarded
STORED_PREFIXES = ("utm_", "fb_", "g_", "msclkid", "dclid", "fbclid", "gclid", "ttclid")

ATTRIBUTION_STATUS = {
    OrderStatus.PENDING: "waiting_payment",
    OrderStatus.APPROVED: "paid",
    OrderStatus.REFUNDED: "refunded",
}


def format_attribution_date(value: Optional[datetime]) -> Optional[str]:
    """UTC ``YYYY-MM-DD HH:MM:SS``."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def extract_tracking_parameters(query: Mapping[str, str]) -> dict[str, str]:
    """Keep attribution keys and known click ids from landing-page query params."""
    captured: dict[str, str] = {}
    for key in ATTRIBUTION_KEYS:
        value = query.get(key)
        if value:
            captured[key] = str(value)
    for key, value in query.items():
        if not value or key in captured:
            continue
        if any(key.startswith(prefix) for prefix in STORED_PREFIXES):
            captured[key] = str(value)
    return captured


def build_attribution_order(
    order: Order,
    *,
    status: str,
    product_name: Optional[str] = None,
    plan_name: Optional[str] = None,
    platform: str = "SellPay",
    gateway_fee_rate: float = 0.03,
    approved_at: Optional[datetime] = None,
    refunded_at: Optional[datetime] = None,
) -> AttributionOrder:
    tracking = order.tracking_parameters or {}
    return AttributionOrder(
        order_id=str(order.id if order.id is not None else order.correlation_id),
        platform=platform,
        payment_method="pix",
        status=status,
        created_at=format_attribution_date(order.created_at or datetime.now(timezone.utc)),
        approved_date=format_attribution_date(approved_at or order.paid_at),
        refunded_at=format_attribution_date(refunded_at),
        customer=AttributionCustomer(
            name=order.customer.name,
            email=order.customer.email,
            phone=order.customer.phone or None,
            document=order.customer.cpf or None,
        ),
        products=[
            AttributionProduct(
                id=order.product_id,
                name=product_name or "Produto",
                plan_id=order.plan_id,
                plan_name=plan_name or "Plano",
                quantity=1,
                price_in_cents=order.amount,
            )
        ],
        tracking_parameters=TrackingParameters(**{k: tracking.get(k) for k in ATTRIBUTION_KEYS}),
        commission=AttributionCommission(
            total_price_in_cents=order.amount,
            gateway_fee_in_cents=math.floor(order.amount * gateway_fee_rate + 0.5),
            user_commission_in_cents=order.amount,
        ),
    )
