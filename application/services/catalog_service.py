"""
Catalog application service - dashboard CRUD for products, plans,
deliverables, order bumps, checkout settings and pixels.
"""
from __future__ import annotations

from dataclasses import asdict
from typing import Callable, List

from application.dtos.catalog import (
    CheckoutSettingsIn,
    CheckoutSettingsOut,
    DeliverableIn,
    DeliverableOut,
    OrderBumpIn,
    OrderBumpOut,
    PixelIn,
    PixelOut,
    PlanIn,
    PlanOut,
    ProductIn,
    ProductOut,
    ProductUpdate,
)
from core.logging_config import get_logger
from domain.catalog.entity import Deliverable, OrderBump, Pixel, Plan, Product
from domain.common.exceptions import CatalogItemNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork


logger = get_logger(__name__)


def _plan_out(plan: Plan) -> PlanOut:
    return PlanOut(
        id=plan.id,
        product_id=plan.product_id,
        name=plan.name,
        price=plan.price,
        is_recurring=plan.is_recurring,
        recurring_interval=plan.recurring_interval.value if plan.recurring_interval else None,
        is_active=plan.is_active,
    )


def _deliverable_out(d: Deliverable) -> DeliverableOut:
    return DeliverableOut(id=d.id, product_id=d.product_id, type=d.type.value, file_url=d.file_url, redirect_url=d.redirect_url)


def _product_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        name=product.name,
        description=product.description,
        image_url=product.image_url,
        cover_image_url=product.cover_image_url,
        plans=[_plan_out(p) for p in product.plans],
        deliverables=[_deliverable_out(d) for d in product.deliverables],
        order_bump_ids=list(product.order_bump_ids),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _bump_out(bump: OrderBump) -> OrderBumpOut:
    return OrderBumpOut(
        id=bump.id,
        name=bump.name,
        title=bump.title,
        description=bump.description,
        price=bump.price,
        image_url=bump.image_url,
        box_color=bump.box_color,
        text_color=bump.text_color,
        button_text=bump.button_text,
        is_active=bump.is_active,
        created_at=bump.created_at,
    )


def _plan_entity(data: PlanIn, *, plan_id=None, product_id=None) -> Plan:
    return Plan(id=plan_id, product_id=product_id, **data.model_dump())


def _deliverable_entity(data: DeliverableIn) -> Deliverable:
    return Deliverable(id=None, product_id=None, **data.model_dump())


class CatalogApplicationService:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    # Products

    async def list_products(self) -> List[ProductOut]:
        async with self._uow_factory(readonly=True) as uow:
            products = await uow.catalog_repository.list_products()
        return [_product_out(p) for p in products]

    async def get_product(self, product_id: str) -> ProductOut:
        async with self._uow_factory(readonly=True) as uow:
            product = await uow.catalog_repository.get_product(product_id)
        if product is None:
            raise CatalogItemNotFoundException("product", product_id)
        return _product_out(product)

    async def create_product(self, data: ProductIn) -> ProductOut:
        product = Product(
            id=None,
            name=data.name,
            description=data.description,
            image_url=data.image_url,
            cover_image_url=data.cover_image_url,
            plans=[_plan_entity(p) for p in data.plans],
            deliverables=[_deliverable_entity(data.deliverable)] if data.deliverable else [],
            order_bump_ids=list(dict.fromkeys(data.order_bump_ids)),
        )
        async with self._uow_factory() as uow:
            for bump_id in product.order_bump_ids:
                if await uow.catalog_repository.get_order_bump(bump_id) is None:
                    raise CatalogItemNotFoundException("order_bump", bump_id)
            created = await uow.catalog_repository.create_product(product)
        logger.info("product_created", product_id=created.id, plans=len(created.plans))
        return _product_out(created)

    async def update_product(self, product_id: str, data: ProductUpdate) -> ProductOut:
        async with self._uow_factory() as uow:
            repo = uow.catalog_repository
            product = await repo.get_product(product_id)
            if product is None:
                raise CatalogItemNotFoundException("product", product_id)
            changes = data.model_dump(exclude_unset=True)
            bump_ids = changes.pop("order_bump_ids", None)
            for key, value in changes.items():
                setattr(product, key, value)
            product = await repo.update_product(product)
            if bump_ids is not None:
                wanted = list(dict.fromkeys(bump_ids))
                for bump_id in wanted:
                    if await repo.get_order_bump(bump_id) is None:
                        raise CatalogItemNotFoundException("order_bump", bump_id)
                for bump_id in set(product.order_bump_ids) - set(wanted):
                    await repo.unlink_order_bump(product_id, bump_id)
                for bump_id in wanted:
                    if bump_id not in product.order_bump_ids:
                        await repo.link_order_bump(product_id, bump_id)
            product = await repo.get_product(product_id)
        return _product_out(product)

    async def delete_product(self, product_id: str) -> None:
        async with self._uow_factory() as uow:
            if not await uow.catalog_repository.delete_product(product_id):
                raise CatalogItemNotFoundException("product", product_id)
        logger.info("product_deleted", product_id=product_id)

    # Plans

    async def add_plan(self, product_id: str, data: PlanIn) -> PlanOut:
        async with self._uow_factory() as uow:
            if await uow.catalog_repository.get_product(product_id) is None:
                raise CatalogItemNotFoundException("product", product_id)
            plan = await uow.catalog_repository.add_plan(product_id, _plan_entity(data, product_id=product_id))
        return _plan_out(plan)

    async def update_plan(self, product_id: str, plan_id: str, data: PlanIn) -> PlanOut:
        async with self._uow_factory() as uow:
            product = await uow.catalog_repository.get_product(product_id)
            if product is None or product.find_plan(plan_id) is None:
                raise CatalogItemNotFoundException("plan", plan_id)
            plan = await uow.catalog_repository.update_plan(
                _plan_entity(data, plan_id=plan_id, product_id=product_id)
            )
        return _plan_out(plan)

    async def delete_plan(self, product_id: str, plan_id: str) -> None:
        async with self._uow_factory() as uow:
            product = await uow.catalog_repository.get_product(product_id)
            if product is None or product.find_plan(plan_id) is None:
                raise CatalogItemNotFoundException("plan", plan_id)
            await uow.catalog_repository.delete_plan(plan_id)

    # Deliverables

    async def set_deliverable(self, product_id: str, data: DeliverableIn) -> DeliverableOut:
        async with self._uow_factory() as uow:
            if await uow.catalog_repository.get_product(product_id) is None:
                raise CatalogItemNotFoundException("product", product_id)
            saved = await uow.catalog_repository.upsert_deliverable(product_id, _deliverable_entity(data))
        return _deliverable_out(saved)

    # Order bumps

    async def list_order_bumps(self) -> List[OrderBumpOut]:
        async with self._uow_factory(readonly=True) as uow:
            bumps = await uow.catalog_repository.list_order_bumps()
        return [_bump_out(b) for b in bumps]

    async def create_order_bump(self, data: OrderBumpIn) -> OrderBumpOut:
        async with self._uow_factory() as uow:
            bump = await uow.catalog_repository.save_order_bump(OrderBump(id=None, **data.model_dump()))
        logger.info("order_bump_created", bump_id=bump.id)
        return _bump_out(bump)

    async def update_order_bump(self, bump_id: str, data: OrderBumpIn) -> OrderBumpOut:
        async with self._uow_factory() as uow:
            existing = await uow.catalog_repository.get_order_bump(bump_id)
            if existing is None:
                raise CatalogItemNotFoundException("order_bump", bump_id)
            bump = await uow.catalog_repository.save_order_bump(
                OrderBump(id=bump_id, created_at=existing.created_at, **data.model_dump())
            )
        return _bump_out(bump)

    async def delete_order_bump(self, bump_id: str) -> None:
        async with self._uow_factory() as uow:
            if not await uow.catalog_repository.delete_order_bump(bump_id):
                raise CatalogItemNotFoundException("order_bump", bump_id)

    # Checkout settings

    async def get_checkout_settings(self) -> CheckoutSettingsOut:
        async with self._uow_factory(readonly=True) as uow:
            current = await uow.catalog_repository.get_checkout_settings()
        return CheckoutSettingsOut(**{k: v for k, v in asdict(current).items() if k != "id"})

    async def update_checkout_settings(self, data: CheckoutSettingsIn) -> CheckoutSettingsOut:
        async with self._uow_factory() as uow:
            current = await uow.catalog_repository.get_checkout_settings()
            for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(current, key, value)
            saved = await uow.catalog_repository.save_checkout_settings(current)
        logger.info("checkout_settings_saved", cpf_enabled=saved.cpf_enabled, timer_enabled=saved.timer_enabled)
        return CheckoutSettingsOut(**{k: v for k, v in asdict(saved).items() if k != "id"})

    # Pixels

    async def list_pixels(self) -> List[PixelOut]:
        async with self._uow_factory(readonly=True) as uow:
            pixels = await uow.catalog_repository.list_pixels()
        return [PixelOut(**asdict(p)) for p in pixels]

    async def create_pixel(self, data: PixelIn) -> PixelOut:
        async with self._uow_factory() as uow:
            pixel = await uow.catalog_repository.save_pixel(Pixel(id=None, **data.model_dump()))
        return PixelOut(**asdict(pixel))

    async def delete_pixel(self, pixel_id: str) -> None:
        async with self._uow_factory() as uow:
            if not await uow.catalog_repository.delete_pixel(pixel_id):
                raise CatalogItemNotFoundException("pixel", pixel_id)
