"""
Catalog repository interface - products, plans, deliverables, bumps,
checkout settings and tracking pixels
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import CheckoutSettings, Deliverable, OrderBump, Pixel, Plan, Product


class CatalogRepository(ABC):

    # Products
    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[Product]:
        """Product with its plans, deliverables and linked bump ids."""
        pass

    @abstractmethod
    async def list_products(self) -> List[Product]:
        pass

    @abstractmethod
    async def create_product(self, product: Product) -> Product:
        pass

    @abstractmethod
    async def update_product(self, product: Product) -> Product:
        pass

    @abstractmethod
    async def delete_product(self, product_id: str) -> bool:
        pass

    # Plans
    @abstractmethod
    async def add_plan(self, product_id: str, plan: Plan) -> Plan:
        pass

    @abstractmethod
    async def update_plan(self, plan: Plan) -> Plan:
        pass

    @abstractmethod
    async def delete_plan(self, plan_id: str) -> bool:
        pass

    # Deliverables
    @abstractmethod
    async def upsert_deliverable(self, product_id: str, deliverable: Deliverable) -> Deliverable:
        pass

    # Order bumps
    @abstractmethod
    async def get_order_bump(self, bump_id: str) -> Optional[OrderBump]:
        pass

    @abstractmethod
    async def list_order_bumps(self) -> List[OrderBump]:
        pass

    @abstractmethod
    async def save_order_bump(self, bump: OrderBump) -> OrderBump:
        """Insert when ``bump.id`` is None, update otherwise."""
        pass

    @abstractmethod
    async def delete_order_bump(self, bump_id: str) -> bool:
        pass

    @abstractmethod
    async def link_order_bump(self, product_id: str, bump_id: str) -> None:
        pass

    @abstractmethod
    async def unlink_order_bump(self, product_id: str, bump_id: str) -> None:
        pass

    # Settings
    @abstractmethod
    async def get_checkout_settings(self) -> CheckoutSettings:
        """Saved settings, or defaults when none were saved."""
        pass

    @abstractmethod
    async def save_checkout_settings(self, settings: CheckoutSettings) -> CheckoutSettings:
        pass

    # Pixels
    @abstractmethod
    async def list_pixels(self) -> List[Pixel]:
        pass

    @abstractmethod
    async def save_pixel(self, pixel: Pixel) -> Pixel:
        pass

    @abstractmethod
    async def delete_pixel(self, pixel_id: str) -> bool:
        pass
