"""
Catalog entities - merchant configuration read by checkout
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from domain.common.exceptions import DomainValidationException


class RecurringInterval(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DeliverableType(str, Enum):
    FILE = "file"
    REDIRECT = "redirect"


def _validate_price(price: int, field_name: str = "price") -> None:
    if not isinstance(price, int) or isinstance(price, bool) or price < 0:
        raise DomainValidationException(f"{field_name} must be a non-negative integer of cents", field=field_name)


@dataclass
class Plan:
    id: Optional[str]
    product_id: Optional[str]
    name: str
    price: int
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    is_active: bool = True

    def __post_init__(self):
        _validate_price(self.price)
        if self.recurring_interval is not None:
            self.recurring_interval = RecurringInterval(self.recurring_interval)
        if not self.is_recurring:
            self.recurring_interval = None


@dataclass
class Deliverable:
    id: Optional[str]
    product_id: Optional[str]
    type: DeliverableType
    file_url: Optional[str] = None
    redirect_url: Optional[str] = None

    def __post_init__(self):
        self.type = DeliverableType(self.type)

    @property
    def url(self) -> Optional[str]:
        return self.file_url if self.type == DeliverableType.FILE else self.redirect_url

    @property
    def label(self) -> str:
        return "Baixar Produto" if self.type == DeliverableType.FILE else "Acessar Conteúdo"


@dataclass
class Product:
    id: Optional[str]
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    plans: List[Plan] = field(default_factory=list)
    deliverables: List[Deliverable] = field(default_factory=list)
    order_bump_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise DomainValidationException("Product name is required", field="name")

    def find_plan(self, plan_id: str) -> Optional[Plan]:
        return next((p for p in self.plans if p.id == plan_id), None)

    @property
    def primary_deliverable(self) -> Optional[Deliverable]:
        return self.deliverables[0] if self.deliverables else None


@dataclass
class OrderBump:
    id: Optional[str]
    name: str
    title: str
    price: int
    description: Optional[str] = None
    image_url: Optional[str] = None
    box_color: str = "#059669"
    text_color: str = "#ffffff"
    button_text: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self):
        _validate_price(self.price)


@dataclass
class CheckoutSettings:
    """Global checkout configuration; defaults apply until the merchant saves some."""

    id: Optional[str] = None
    timer_enabled: bool = True
    timer_text: str = "Oferta por tempo limitado"
    timer_duration: int = 600
    primary_color: str = "#059669"
    button_text: str = "FINALIZAR COMPRA"
    logo_url: Optional[str] = None
    footer_text: str = "© 2026 SellPay. Todos os direitos reservados."
    cpf_enabled: bool = False
    order_bump_title: str = "Aproveite essa oferta especial!"
    order_bump_button_text: str = "Adicionar oferta"
    updated_at: Optional[datetime] = None


@dataclass
class Pixel:
    id: Optional[str]
    pixel_id: str
    name: Optional[str] = None
    is_active: bool = True
    events: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
