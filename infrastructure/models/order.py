"""
Order ORM model
Persistence shape only; the domain entity lives in domain.order.entity
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index
from datetime import datetime, timezone

from .base import Base


class OrderModel(Base):
    """
    Order row

    Status transition rules live in domain.order.entity.Order
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # charge and catalog references
    correlation_id = Column(String(100), unique=True, index=True, nullable=False, comment="PIX charge correlation id")
    product_id = Column(String(36), nullable=False, index=True, comment="product id")
    plan_id = Column(String(36), nullable=False, comment="plan id")
    order_bump_id = Column(String(36), nullable=True, comment="order bump id")

    # buyer
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(20), nullable=False)
    customer_cpf = Column(String(14), nullable=True)

    # amount in cents, fixed at creation
    amount = Column(Integer, nullable=False, comment="amount in cents")

    status = Column(
        String(20),
        nullable=False,
        default="PENDING",
        index=True,
        comment="order status: PENDING/APPROVED/EXPIRED/REFUNDED",
    )

    # PIX credentials
    pix_copy_paste = Column(Text, nullable=True, comment="PIX copia e cola (brCode)")
    pix_qr_code = Column(Text, nullable=True, comment="QR code image")
    pix_charge_id = Column(String(200), nullable=True, comment="provider global charge id")

    tracking_parameters = Column(JSON, nullable=True, comment="UTM/click-id parameters")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        comment="created at",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="updated at",
    )
    paid_at = Column(DateTime(timezone=True), nullable=True, comment="paid at")

    __table_args__ = (
        Index("ix_orders_product_status", "product_id", "status"),
    )

    def __repr__(self):
        return (
            f"<OrderModel(id={self.id}, correlation_id='{self.correlation_id}', "
            f"amount={self.amount}, status='{self.status}')>"
        )
