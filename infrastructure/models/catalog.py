"""
Catalog models: products, plans, deliverables, order bumps,
checkout settings and tracking pixels
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from .base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    cover_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now, nullable=False)

    plans = relationship(
        "ProductPlanModel",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductPlanModel.price",
    )
    deliverables = relationship(
        "ProductDeliverableModel",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    bump_links = relationship(
        "ProductOrderBumpModel",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<ProductModel(id='{self.id}', name='{self.name}')>"


class ProductPlanModel(Base):
    __tablename__ = "product_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Integer, nullable=False, comment="price in cents")
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_interval = Column(String(20), nullable=True, comment="monthly/yearly")
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="plans")


class ProductDeliverableModel(Base):
    __tablename__ = "product_deliverables"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, comment="file/redirect")
    file_url = Column(String(500), nullable=True)
    redirect_url = Column(String(500), nullable=True)

    product = relationship("ProductModel", back_populates="deliverables")


class OrderBumpModel(Base):
    __tablename__ = "order_bumps"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False, comment="price in cents")
    image_url = Column(String(500), nullable=True)
    box_color = Column(String(20), nullable=False, default="#059669")
    text_color = Column(String(20), nullable=False, default="#ffffff")
    button_text = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


class ProductOrderBumpModel(Base):
    """Product <-> order bump link table"""
    __tablename__ = "product_order_bumps"

    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    order_bump_id = Column(String(36), ForeignKey("order_bumps.id", ondelete="CASCADE"), primary_key=True)


class CheckoutSettingsModel(Base):
    __tablename__ = "checkout_settings"

    id = Column(String(36), primary_key=True, default=_uuid)
    timer_enabled = Column(Boolean, nullable=False, default=True)
    timer_text = Column(String(200), nullable=False)
    timer_duration = Column(Integer, nullable=False, default=600)
    primary_color = Column(String(20), nullable=False)
    button_text = Column(String(100), nullable=False)
    logo_url = Column(String(500), nullable=True)
    footer_text = Column(String(500), nullable=False)
    cpf_enabled = Column(Boolean, nullable=False, default=False)
    order_bump_title = Column(String(200), nullable=False)
    order_bump_button_text = Column(String(100), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now, nullable=False)


class FacebookPixelModel(Base):
    __tablename__ = "facebook_pixels"

    id = Column(String(36), primary_key=True, default=_uuid)
    pixel_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    events = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)
