"""
Catalog repository backed by SQLAlchemy
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.catalog.entity import CheckoutSettings, Deliverable, OrderBump, Pixel, Plan, Product
from domain.catalog.repository import CatalogRepository
from domain.common.exceptions import CatalogItemNotFoundException
from infrastructure.models.catalog import (
    CheckoutSettingsModel,
    FacebookPixelModel,
    OrderBumpModel,
    ProductDeliverableModel,
    ProductModel,
    ProductOrderBumpModel,
    ProductPlanModel,
)


logger = get_logger(__name__)

_SETTINGS_FIELDS = (
    "timer_enabled",
    "timer_text",
    "timer_duration",
    "primary_color",
    "button_text",
    "logo_url",
    "footer_text",
    "cpf_enabled",
    "order_bump_title",
    "order_bump_button_text",
)

_BUMP_FIELDS = ("name", "title", "description", "price", "image_url", "box_color", "text_color", "button_text", "is_active")


class SQLAlchemyCatalogRepository(CatalogRepository):
    """SQLAlchemy catalog repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # model -> entity

    @staticmethod
    def _plan_entity(model: ProductPlanModel) -> Plan:
        return Plan(
            id=model.id,
            product_id=model.product_id,
            name=model.name,
            price=model.price,
            is_recurring=model.is_recurring,
            recurring_interval=model.recurring_interval,
            is_active=model.is_active,
        )

    @staticmethod
    def _deliverable_entity(model: ProductDeliverableModel) -> Deliverable:
        return Deliverable(
            id=model.id,
            product_id=model.product_id,
            type=model.type,
            file_url=model.file_url,
            redirect_url=model.redirect_url,
        )

    def _product_entity(self, model: ProductModel) -> Product:
        return Product(
            id=model.id,
            name=model.name,
            description=model.description,
            image_url=model.image_url,
            cover_image_url=model.cover_image_url,
            plans=[self._plan_entity(p) for p in model.plans],
            deliverables=[self._deliverable_entity(d) for d in model.deliverables],
            order_bump_ids=[link.order_bump_id for link in model.bump_links],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _bump_entity(model: OrderBumpModel) -> OrderBump:
        return OrderBump(
            id=model.id,
            created_at=model.created_at,
            **{name: getattr(model, name) for name in _BUMP_FIELDS},
        )

    @staticmethod
    def _pixel_entity(model: FacebookPixelModel) -> Pixel:
        return Pixel(
            id=model.id,
            pixel_id=model.pixel_id,
            name=model.name,
            is_active=model.is_active,
            events=list(model.events or []),
            created_at=model.created_at,
        )

    async def _product_model(self, product_id: str) -> Optional[ProductModel]:
        result = await self.session.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # Products

    async def get_product(self, product_id: str) -> Optional[Product]:
        db_product = await self._product_model(product_id)
        return self._product_entity(db_product) if db_product else None

    async def list_products(self) -> List[Product]:
        result = await self.session.execute(
            select(ProductModel).order_by(ProductModel.created_at.desc(), ProductModel.id)
        )
        return [self._product_entity(p) for p in result.scalars().all()]

    async def create_product(self, product: Product) -> Product:
        db_product = ProductModel(
            name=product.name,
            description=product.description,
            image_url=product.image_url,
            cover_image_url=product.cover_image_url,
            plans=[
                ProductPlanModel(
                    name=p.name,
                    price=p.price,
                    is_recurring=p.is_recurring,
                    recurring_interval=p.recurring_interval.value if p.recurring_interval else None,
                    is_active=p.is_active,
                )
                for p in product.plans
            ],
            deliverables=[
                ProductDeliverableModel(type=d.type.value, file_url=d.file_url, redirect_url=d.redirect_url)
                for d in product.deliverables
            ],
            bump_links=[ProductOrderBumpModel(order_bump_id=bump_id) for bump_id in product.order_bump_ids],
        )
        self.session.add(db_product)
        await self.session.flush()
        logger.info("catalog_product_created", product_id=db_product.id)
        return await self.get_product(db_product.id)

    async def update_product(self, product: Product) -> Product:
        db_product = await self._product_model(product.id)
        if db_product is None:
            raise CatalogItemNotFoundException("product", product.id)
        db_product.name = product.name
        db_product.description = product.description
        db_product.image_url = product.image_url
        db_product.cover_image_url = product.cover_image_url
        await self.session.flush()
        return await self.get_product(product.id)

    async def delete_product(self, product_id: str) -> bool:
        db_product = await self._product_model(product_id)
        if db_product is None:
            return False
        await self.session.delete(db_product)
        await self.session.flush()
        logger.info("catalog_product_deleted", product_id=product_id)
        return True

    # Plans

    async def add_plan(self, product_id: str, plan: Plan) -> Plan:
        db_plan = ProductPlanModel(
            product_id=product_id,
            name=plan.name,
            price=plan.price,
            is_recurring=plan.is_recurring,
            recurring_interval=plan.recurring_interval.value if plan.recurring_interval else None,
            is_active=plan.is_active,
        )
        self.session.add(db_plan)
        await self.session.flush()
        return self._plan_entity(db_plan)

    async def update_plan(self, plan: Plan) -> Plan:
        db_plan = await self.session.get(ProductPlanModel, plan.id)
        if db_plan is None:
            raise CatalogItemNotFoundException("plan", plan.id)
        db_plan.name = plan.name
        db_plan.price = plan.price
        db_plan.is_recurring = plan.is_recurring
        db_plan.recurring_interval = plan.recurring_interval.value if plan.recurring_interval else None
        db_plan.is_active = plan.is_active
        await self.session.flush()
        return self._plan_entity(db_plan)

    async def delete_plan(self, plan_id: str) -> bool:
        db_plan = await self.session.get(ProductPlanModel, plan_id)
        if db_plan is None:
            return False
        await self.session.delete(db_plan)
        await self.session.flush()
        return True

    # Deliverables

    async def upsert_deliverable(self, product_id: str, deliverable: Deliverable) -> Deliverable:
        """One primary deliverable per product; an existing one is overwritten."""
        result = await self.session.execute(
            select(ProductDeliverableModel).where(ProductDeliverableModel.product_id == product_id)
        )
        db_item = result.scalars().first()
        if db_item is None:
            db_item = ProductDeliverableModel(product_id=product_id)
            self.session.add(db_item)
        db_item.type = deliverable.type.value
        db_item.file_url = deliverable.file_url
        db_item.redirect_url = deliverable.redirect_url
        await self.session.flush()
        return self._deliverable_entity(db_item)

    # Order bumps

    async def get_order_bump(self, bump_id: str) -> Optional[OrderBump]:
        db_bump = await self.session.get(OrderBumpModel, bump_id)
        return self._bump_entity(db_bump) if db_bump else None

    async def list_order_bumps(self) -> List[OrderBump]:
        result = await self.session.execute(select(OrderBumpModel).order_by(OrderBumpModel.created_at.desc()))
        return [self._bump_entity(b) for b in result.scalars().all()]

    async def save_order_bump(self, bump: OrderBump) -> OrderBump:
        if bump.id is None:
            db_bump = OrderBumpModel()
            self.session.add(db_bump)
        else:
            db_bump = await self.session.get(OrderBumpModel, bump.id)
            if db_bump is None:
                raise CatalogItemNotFoundException("order_bump", bump.id)
        for name in _BUMP_FIELDS:
            setattr(db_bump, name, getattr(bump, name))
        await self.session.flush()
        return self._bump_entity(db_bump)

    async def delete_order_bump(self, bump_id: str) -> bool:
        db_bump = await self.session.get(OrderBumpModel, bump_id)
        if db_bump is None:
            return False
        links = await self.session.execute(
            select(ProductOrderBumpModel).where(ProductOrderBumpModel.order_bump_id == bump_id)
        )
        for link in links.scalars().all():
            await self.session.delete(link)
        await self.session.delete(db_bump)
        await self.session.flush()
        return True

    async def link_order_bump(self, product_id: str, bump_id: str) -> None:
        existing = await self.session.get(ProductOrderBumpModel, (product_id, bump_id))
        if existing is None:
            self.session.add(ProductOrderBumpModel(product_id=product_id, order_bump_id=bump_id))
            await self.session.flush()

    async def unlink_order_bump(self, product_id: str, bump_id: str) -> None:
        existing = await self.session.get(ProductOrderBumpModel, (product_id, bump_id))
        if existing is not None:
            await self.session.delete(existing)
            await self.session.flush()

    # Settings

    async def _settings_model(self) -> Optional[CheckoutSettingsModel]:
        result = await self.session.execute(select(CheckoutSettingsModel).limit(1))
        return result.scalar_one_or_none()

    async def get_checkout_settings(self) -> CheckoutSettings:
        db_settings = await self._settings_model()
        if db_settings is None:
            return CheckoutSettings()
        return CheckoutSettings(
            id=db_settings.id,
            updated_at=db_settings.updated_at,
            **{name: getattr(db_settings, name) for name in _SETTINGS_FIELDS},
        )

    async def save_checkout_settings(self, settings: CheckoutSettings) -> CheckoutSettings:
        db_settings = await self._settings_model()
        if db_settings is None:
            db_settings = CheckoutSettingsModel()
            self.session.add(db_settings)
        for name in _SETTINGS_FIELDS:
            setattr(db_settings, name, getattr(settings, name))
        await self.session.flush()
        await self.session.refresh(db_settings)
        return CheckoutSettings(
            id=db_settings.id,
            updated_at=db_settings.updated_at,
            **{name: getattr(db_settings, name) for name in _SETTINGS_FIELDS},
        )

    # Pixels

    async def list_pixels(self) -> List[Pixel]:
        result = await self.session.execute(select(FacebookPixelModel).order_by(FacebookPixelModel.created_at))
        return [self._pixel_entity(p) for p in result.scalars().all()]

    async def save_pixel(self, pixel: Pixel) -> Pixel:
        if pixel.id is None:
            db_pixel = FacebookPixelModel()
            self.session.add(db_pixel)
        else:
            db_pixel = await self.session.get(FacebookPixelModel, pixel.id)
            if db_pixel is None:
                raise CatalogItemNotFoundException("pixel", pixel.id)
        db_pixel.pixel_id = pixel.pixel_id
        db_pixel.name = pixel.name
        db_pixel.is_active = pixel.is_active
        db_pixel.events = list(pixel.events)
        await self.session.flush()
        return self._pixel_entity(db_pixel)

    async def delete_pixel(self, pixel_id: str) -> bool:
        db_pixel = await self.session.get(FacebookPixelModel, pixel_id)
        if db_pixel is None:
            return False
        await self.session.delete(db_pixel)
        await self.session.flush()
        return True
