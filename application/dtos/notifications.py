"""
Notification DTOs.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class EmailMessage(BaseModel):
    to: str
    subject: str
    html: str
    # template name, for logs and metrics only
    kind: str = Field(default="generic", exclude=True)


class EmailKind(str, Enum):
    PIX_GENERATED = "pix_generated"
    PURCHASE_APPROVED = "purchase_approved"
    PIX_EXPIRED = "pix_expired"
    ABANDONED_CART = "abandoned_cart"


class RecoveryEmailRequest(BaseModel):
    kind: EmailKind = EmailKind.ABANDONED_CART


class RecoveryEmailResult(BaseModel):
    order_id: int
    kind: EmailKind
    sent: bool
