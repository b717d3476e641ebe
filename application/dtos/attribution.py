"""
Attribution (Utmify) order payload.

Field names serialize to the relay's camelCase contract; tracking
parameter keys keep their query-string names.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttributionCustomer(_CamelModel):
    name: str
    email: str
    phone: Optional[str] = None
    document: Optional[str] = None
    country: Optional[str] = None
    ip: Optional[str] = None


class AttributionProduct(_CamelModel):
    id: str
    name: str
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    quantity: int = 1
    price_in_cents: int


class TrackingParameters(BaseModel):
    src: Optional[str] = None
    sck: Optional[str] = None
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_content: Optional[str] = None
    utm_term: Optional[str] = None


class AttributionCommission(_CamelModel):
    total_price_in_cents: int
    gateway_fee_in_cents: int
    user_commission_in_cents: int
    currency: Optional[str] = "BRL"


AttributionStatus = Literal["waiting_payment", "paid", "refused", "refunded", "chargedback"]


class AttributionOrder(_CamelModel):
    order_id: str
    platform: str
    payment_method: Literal["credit_card", "boleto", "pix", "paypal", "free_price"] = "pix"
    status: AttributionStatus
    created_at: str
    approved_date: Optional[str] = None
    refunded_at: Optional[str] = None
    customer: AttributionCustomer
    products: list[AttributionProduct]
    tracking_parameters: TrackingParameters
    commission: AttributionCommission
    is_test: Optional[bool] = None

    def to_payload(self) -> dict:
        payload = self.model_dump(by_alias=True)
        if self.is_test is None:
            payload.pop("isTest", None)
        return payload
