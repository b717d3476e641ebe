import pytest

from domain.catalog.entity import CheckoutSettings, Deliverable, OrderBump, Pixel, Plan, Product
from domain.common.exceptions import CatalogItemNotFoundException, DomainValidationException

from conftest import seed_catalog


@pytest.mark.asyncio
async def test_product_with_children_round_trip(uow_factory):
    ids = await seed_catalog(uow_factory)

    async with uow_factory(readonly=True) as uow:
        product = await uow.catalog_repository.get_product(ids.product_id)

    assert product.name == "Curso Python"
    assert [(p.name, p.price) for p in product.plans] == [("Vitalício", 9700)]
    assert product.primary_deliverable.url == "https://members.example.com/curso"
    assert product.primary_deliverable.label == "Acessar Conteúdo"
    assert product.order_bump_ids == [ids.bump_id]
    assert product.find_plan(ids.plan_id).price == 9700
    assert product.find_plan("missing") is None


@pytest.mark.asyncio
async def test_plans_ordered_by_price(uow_factory):
    ids = await seed_catalog(uow_factory)
    async with uow_factory() as uow:
        await uow.catalog_repository.add_plan(ids.product_id, Plan(id=None, product_id=None, name="Mensal", price=2900, is_recurring=True, recurring_interval="monthly"))

    async with uow_factory(readonly=True) as uow:
        product = await uow.catalog_repository.get_product(ids.product_id)

    assert [p.name for p in product.plans] == ["Mensal", "Vitalício"]
    assert product.plans[0].recurring_interval.value == "monthly"


@pytest.mark.asyncio
async def test_upsert_deliverable_replaces_primary(uow_factory):
    ids = await seed_catalog(uow_factory)
    async with uow_factory() as uow:
        saved = await uow.catalog_repository.upsert_deliverable(
            ids.product_id, Deliverable(id=None, product_id=ids.product_id, type="file", file_url="https://cdn.example.com/a.pdf")
        )

    async with uow_factory(readonly=True) as uow:
        product = await uow.catalog_repository.get_product(ids.product_id)

    assert len(product.deliverables) == 1
    assert product.primary_deliverable.id == saved.id
    assert product.primary_deliverable.label == "Baixar Produto"


@pytest.mark.asyncio
async def test_delete_product_cascades(uow_factory):
    ids = await seed_catalog(uow_factory)
    async with uow_factory() as uow:
        assert await uow.catalog_repository.delete_product(ids.product_id) is True
        assert await uow.catalog_repository.delete_product(ids.product_id) is False

    async with uow_factory(readonly=True) as uow:
        assert await uow.catalog_repository.get_product(ids.product_id) is None
        bumps = await uow.catalog_repository.list_order_bumps()
    assert [b.id for b in bumps] == [ids.bump_id]


@pytest.mark.asyncio
async def test_order_bump_link_and_delete(uow_factory):
    ids = await seed_catalog(uow_factory)
    async with uow_factory() as uow:
        repo = uow.catalog_repository
        extra = await repo.save_order_bump(OrderBump(id=None, name="Extra", title="Mentoria", price=4700))
        await repo.link_order_bump(ids.product_id, extra.id)
        await repo.link_order_bump(ids.product_id, extra.id)

    async with uow_factory(readonly=True) as uow:
        product = await uow.catalog_repository.get_product(ids.product_id)
    assert sorted(product.order_bump_ids) == sorted([ids.bump_id, extra.id])

    async with uow_factory() as uow:
        assert await uow.catalog_repository.delete_order_bump(ids.bump_id) is True

    async with uow_factory(readonly=True) as uow:
        product = await uow.catalog_repository.get_product(ids.product_id)
    assert product.order_bump_ids == [extra.id]


@pytest.mark.asyncio
async def test_update_missing_bump_raises(uow_factory):
    with pytest.raises(CatalogItemNotFoundException):
        async with uow_factory() as uow:
            await uow.catalog_repository.save_order_bump(OrderBump(id="missing", name="x", title="x", price=1))


@pytest.mark.asyncio
async def test_checkout_settings_defaults_then_saved(uow_factory):
    async with uow_factory(readonly=True) as uow:
        defaults = await uow.catalog_repository.get_checkout_settings()
    assert defaults.id is None
    assert defaults.cpf_enabled is False
    assert defaults.button_text == "FINALIZAR COMPRA"
    assert defaults.timer_duration == 600

    async with uow_factory() as uow:
        saved = await uow.catalog_repository.save_checkout_settings(CheckoutSettings(cpf_enabled=True, primary_color="#111111"))
    assert saved.id is not None

    async with uow_factory() as uow:
        again = await uow.catalog_repository.save_checkout_settings(CheckoutSettings(cpf_enabled=False))
    assert again.id == saved.id

    async with uow_factory(readonly=True) as uow:
        current = await uow.catalog_repository.get_checkout_settings()
    assert current.cpf_enabled is False
    assert current.primary_color == "#059669"


@pytest.mark.asyncio
async def test_pixels(uow_factory):
    async with uow_factory() as uow:
        pixel = await uow.catalog_repository.save_pixel(Pixel(id=None, pixel_id="999", name="Principal", events=["Purchase"]))

    async with uow_factory() as uow:
        pixels = await uow.catalog_repository.list_pixels()
        assert [(p.pixel_id, p.events) for p in pixels] == [("999", ["Purchase"])]
        assert await uow.catalog_repository.delete_pixel(pixel.id) is True
        assert await uow.catalog_repository.list_pixels() == []


def test_entities_reject_bad_prices():
    with pytest.raises(DomainValidationException):
        Plan(id=None, product_id=None, name="x", price=-1)
    with pytest.raises(DomainValidationException):
        OrderBump(id=None, name="x", title="x", price=9.9)
    with pytest.raises(DomainValidationException):
        Product(id=None, name="  ")
