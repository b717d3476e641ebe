"""
Checkout DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckoutForm(BaseModel):
    """Raw buyer input. Format checks live in application.validation."""

    name: str = ""
    email: str = ""
    phone: str = ""
    cpf: Optional[str] = None

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v


class StartCheckoutRequest(BaseModel):
    product_id: str
    plan_id: str
    order_bump_id: Optional[str] = None
    customer: CheckoutForm
    # query parameters of the landing URL (utm_*, src, sck, click ids)
    tracking: dict[str, str] = Field(default_factory=dict)


class ChargeCustomer(BaseModel):
    name: str
    email: str
    phone: str


class ChargeRequest(BaseModel):
    correlation_id: str
    value: int = Field(gt=0, description="Amount in cents")
    comment: Optional[str] = None
    customer: ChargeCustomer

    def to_provider_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "correlationID": self.correlation_id,
            "value": self.value,
            "customer": self.customer.model_dump(),
        }
        if self.comment:
            payload["comment"] = self.comment
        return payload


class PixCharge(BaseModel):
    correlation_id: str
    qr_code_image: Optional[str] = None
    br_code: str
    global_charge_id: str


class ChargeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class ChargeStatusResult(BaseModel):
    status: ChargeStatus
    paid_at: Optional[datetime] = None


class CompanyAccount(BaseModel):
    name: Optional[str] = None
    tax_id: Optional[str] = None
    balance: int = 0
    withdraw_balance: int = 0


class WithdrawResult(BaseModel):
    success: bool = True
    message: str = "Withdraw requested"
    withdraw_id: Optional[str] = None


class DeliverableLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    url: Optional[str] = None
    label: str


class CheckoutSnapshot(BaseModel):
    """Values frozen at charge creation and handed to settlement.

    Nothing downstream of the charge re-reads plan or bump prices.
    """

    model_config = ConfigDict(frozen=True)

    correlation_id: str
    order_id: Optional[int] = None
    product_id: str
    product_name: str
    plan_id: str
    plan_name: str
    order_bump_id: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_cpf: Optional[str] = None
    amount: int
    deliverables: tuple[DeliverableLink, ...] = ()
    pixel_ids: tuple[str, ...] = ()
    tracking_parameters: dict[str, str] = Field(default_factory=dict)
    created_at: datetime

    @property
    def primary_deliverable(self) -> Optional[DeliverableLink]:
        return self.deliverables[0] if self.deliverables else None


class PixelEvent(BaseModel):
    name: str
    params: dict[str, Any] = Field(default_factory=dict)


class CheckoutSessionView(BaseModel):
    correlation_id: str
    state: str
    amount: int
    qr_code_image: Optional[str] = None
    br_code: Optional[str] = None
    pixel_ids: list[str] = Field(default_factory=list)
    pixel_events: list[PixelEvent] = Field(default_factory=list)
    redirect_to: Optional[str] = None
    poll_count: int = 0
    error: Optional[str] = None


class PlanView(BaseModel):
    id: str
    name: str
    price: int
    is_recurring: bool = False
    recurring_interval: Optional[str] = None


class OrderBumpView(BaseModel):
    id: str
    name: str
    title: str
    description: Optional[str] = None
    price: int
    image_url: Optional[str] = None
    box_color: str
    text_color: str
    button_text: Optional[str] = None


class CheckoutOffer(BaseModel):
    product_id: str
    product_name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    plan: PlanView
    order_bumps: list[OrderBumpView] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)
    pixel_ids: list[str] = Field(default_factory=list)
