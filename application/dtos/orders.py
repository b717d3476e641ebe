"""
Order DTOs for the dashboard and the confirmation page.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from application.dtos.checkout import DeliverableLink
from domain.order.entity import Order, OrderStatus


class CustomerView(BaseModel):
    name: str
    email: str
    phone: str
    cpf: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    correlation_id: str
    product_id: str
    plan_id: str
    order_bump_id: Optional[str] = None
    customer: CustomerView
    amount: int
    status: OrderStatus
    pix_copy_paste: Optional[str] = None
    pix_qr_code: Optional[str] = None
    pix_charge_id: Optional[str] = None
    tracking_parameters: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            correlation_id=order.correlation_id,
            product_id=order.product_id,
            plan_id=order.plan_id,
            order_bump_id=order.order_bump_id,
            customer=CustomerView(
                name=order.customer.name,
                email=order.customer.email,
                phone=order.customer.phone,
                cpf=order.customer.cpf,
            ),
            amount=order.amount,
            status=order.status,
            pix_copy_paste=order.pix_copy_paste,
            pix_qr_code=order.pix_qr_code,
            pix_charge_id=order.pix_charge_id,
            tracking_parameters=order.tracking_parameters,
            created_at=order.created_at,
            updated_at=order.updated_at,
            paid_at=order.paid_at,
        )


class OrderListQuery(BaseModel):
    status: Optional[OrderStatus] = None
    product_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)


class OrderConfirmation(BaseModel):
    correlation_id: str
    order_id: int
    product_name: str
    customer_name: str
    amount: int
    paid_at: Optional[datetime] = None
    deliverables: list[DeliverableLink] = Field(default_factory=list)
    # set when the first deliverable is a redirect
    redirect_url: Optional[str] = None


class WithdrawRequest(BaseModel):
    value: int = Field(gt=0, description="Amount in cents")
    account_id: str = "default"
