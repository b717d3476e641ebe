"""
Catalog DTOs for dashboard CRUD.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class PlanIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: int = Field(ge=0, description="Cents")
    is_recurring: bool = False
    recurring_interval: Optional[Literal["monthly", "yearly"]] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _interval_requires_recurring(self):
        if self.is_recurring and self.recurring_interval is None:
            raise ValueError("recurring plans need a recurring_interval")
        return self


class PlanOut(PlanIn):
    id: str
    product_id: str


class DeliverableIn(BaseModel):
    type: Literal["file", "redirect"]
    file_url: Optional[str] = None
    redirect_url: Optional[str] = None

    @model_validator(mode="after")
    def _url_for_type(self):
        if self.type == "file" and not self.file_url:
            raise ValueError("file deliverables need file_url")
        if self.type == "redirect" and not self.redirect_url:
            raise ValueError("redirect deliverables need redirect_url")
        return self


class DeliverableOut(DeliverableIn):
    id: str
    product_id: str


class ProductIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    plans: list[PlanIn] = Field(default_factory=list)
    deliverable: Optional[DeliverableIn] = None
    order_bump_ids: list[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    order_bump_ids: Optional[list[str]] = None


class ProductOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    plans: list[PlanOut] = Field(default_factory=list)
    deliverables: list[DeliverableOut] = Field(default_factory=list)
    order_bump_ids: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderBumpIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: int = Field(ge=0)
    image_url: Optional[str] = None
    box_color: str = "#059669"
    text_color: str = "#ffffff"
    button_text: Optional[str] = None
    is_active: bool = True


class OrderBumpOut(OrderBumpIn):
    id: str
    created_at: Optional[datetime] = None


class CheckoutSettingsIn(BaseModel):
    timer_enabled: Optional[bool] = None
    timer_text: Optional[str] = None
    timer_duration: Optional[int] = Field(default=None, ge=0)
    primary_color: Optional[str] = None
    button_text: Optional[str] = None
    logo_url: Optional[str] = None
    footer_text: Optional[str] = None
    cpf_enabled: Optional[bool] = None
    order_bump_title: Optional[str] = None
    order_bump_button_text: Optional[str] = None


class CheckoutSettingsOut(BaseModel):
    timer_enabled: bool
    timer_text: str
    timer_duration: int
    primary_color: str
    button_text: str
    logo_url: Optional[str] = None
    footer_text: str
    cpf_enabled: bool
    order_bump_title: str
    order_bump_button_text: str
    updated_at: Optional[datetime] = None


class PixelIn(BaseModel):
    pixel_id: str = Field(min_length=1, max_length=64)
    name: Optional[str] = None
    is_active: bool = True
    events: list[str] = Field(default_factory=list)


class PixelOut(PixelIn):
    id: str
    created_at: Optional[datetime] = None
