"""Infrastructure models package exports."""
from .base import Base, metadata
from .order import OrderModel
from .catalog import (
    CheckoutSettingsModel,
    FacebookPixelModel,
    OrderBumpModel,
    ProductDeliverableModel,
    ProductModel,
    ProductOrderBumpModel,
    ProductPlanModel,
)

__all__ = [
    "Base",
    "metadata",
    "OrderModel",
    "ProductModel",
    "ProductPlanModel",
    "ProductDeliverableModel",
    "OrderBumpModel",
    "ProductOrderBumpModel",
    "CheckoutSettingsModel",
    "FacebookPixelModel",
]
