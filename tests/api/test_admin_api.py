import pytest

from application.dtos.checkout import ChargeStatus
from domain.order.entity import OrderStatus

from conftest import checkout_request, get_order, seed_catalog


async def _place_order(api, uow_factory, ids):
    session = await api.registry.open(checkout_request(ids))
    await api.registry.close(session.correlation_id)
    return await get_order(uow_factory, session.correlation_id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/v1/orders"),
        ("GET", "/api/v1/orders/1"),
        ("POST", "/api/v1/orders/1/refund"),
        ("GET", "/api/v1/catalog/products"),
        ("GET", "/api/v1/finance/balance"),
    ],
)
async def test_admin_routes_require_token(api, method, path):
    missing = await api.client.request(method, path)
    wrong = await api.client.request(method, path, headers={"Authorization": "Bearer nope"})

    for resp in (missing, wrong):
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["code"] == 30001


@pytest.mark.asyncio
async def test_list_and_get_orders(api, uow_factory):
    ids = await seed_catalog(uow_factory)
    first = await _place_order(api, uow_factory, ids)
    second = await _place_order(api, uow_factory, ids)

    listed = await api.client.get("/api/v1/orders", params={"size": 1}, headers=api.admin)
    assert listed.status_code == 200
    page = listed.json()["data"]
    assert page["total"] == 2
    assert page["pages"] == 2
    assert [o["correlation_id"] for o in page["items"]] == [second.correlation_id]

    pending = await api.client.get("/api/v1/orders", params={"status": "APPROVED"}, headers=api.admin)
    assert pending.json()["data"]["total"] == 0

    detail = await api.client.get(f"/api/v1/orders/{first.id}", headers=api.admin)
    assert detail.status_code == 200
    assert detail.json()["data"]["customer"]["email"] == "maria@example.com"

    missing = await api.client.get("/api/v1/orders/9999", headers=api.admin)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_refund_requires_approval(api, uow_factory, attribution_sender):
    ids = await seed_catalog(uow_factory)
    order = await _place_order(api, uow_factory, ids)

    conflict = await api.client.post(f"/api/v1/orders/{order.id}/refund", headers=api.admin)
    assert conflict.status_code == 409
    assert conflict.json()["error"]["type"] == "InvalidOrderTransition"

    async with uow_factory() as uow:
        await uow.order_repository.update_status(
            order.correlation_id, OrderStatus.APPROVED, expected=[OrderStatus.PENDING]
        )

    refunded = await api.client.post(f"/api/v1/orders/{order.id}/refund", headers=api.admin)
    assert refunded.status_code == 200
    assert refunded.json()["data"]["status"] == "REFUNDED"
    assert attribution_sender.statuses == ["refunded"]
    assert (await get_order(uow_factory, order.correlation_id)).status == OrderStatus.REFUNDED


@pytest.mark.asyncio
async def test_recovery_email(api, uow_factory, email_sender):
    ids = await seed_catalog(uow_factory)
    order = await _place_order(api, uow_factory, ids)

    resp = await api.client.post(
        f"/api/v1/orders/{order.id}/recovery-email", json={"kind": "abandoned_cart"}, headers=api.admin
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == {"order_id": order.id, "kind": "abandoned_cart", "sent": True}
    assert "abandoned_cart" in email_sender.kinds

    wrong_kind = await api.client.post(
        f"/api/v1/orders/{order.id}/recovery-email", json={"kind": "purchase_approved"}, headers=api.admin
    )
    assert wrong_kind.status_code == 422


@pytest.mark.asyncio
async def test_catalog_crud(api):
    bump = await api.client.post(
        "/api/v1/catalog/order-bumps",
        json={"name": "Bônus", "title": "Leve também o e-book", "price": 1990},
        headers=api.admin,
    )
    assert bump.status_code == 201
    bump_id = bump.json()["data"]["id"]

    created = await api.client.post(
        "/api/v1/catalog/products",
        json={
            "name": "Curso FastAPI",
            "plans": [{"name": "Vitalício", "price": 19700}],
            "deliverable": {"type": "file", "file_url": "https://cdn.example.com/curso.pdf"},
            "order_bump_ids": [bump_id],
        },
        headers=api.admin,
    )
    assert created.status_code == 201
    product = created.json()["data"]
    product_id = product["id"]
    plan_id = product["plans"][0]["id"]
    assert product["order_bump_ids"] == [bump_id]
    assert product["deliverables"][0]["file_url"] == "https://cdn.example.com/curso.pdf"

    offer = await api.client.get(f"/api/v1/checkout/{product_id}/{plan_id}")
    assert offer.status_code == 200
    assert offer.json()["data"]["order_bumps"][0]["price"] == 1990

    patched = await api.client.patch(
        f"/api/v1/catalog/products/{product_id}",
        json={"description": "Do zero ao deploy", "order_bump_ids": []},
        headers=api.admin,
    )
    assert patched.status_code == 200
    assert patched.json()["data"]["description"] == "Do zero ao deploy"
    assert patched.json()["data"]["order_bump_ids"] == []

    unknown_bump = await api.client.post(
        "/api/v1/catalog/products",
        json={"name": "Outro", "order_bump_ids": ["missing"]},
        headers=api.admin,
    )
    assert unknown_bump.status_code == 404

    deleted = await api.client.delete(f"/api/v1/catalog/products/{product_id}", headers=api.admin)
    assert deleted.status_code == 200
    gone = await api.client.get(f"/api/v1/catalog/products/{product_id}", headers=api.admin)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_invalid_deliverable_rejected(api):
    resp = await api.client.post(
        "/api/v1/catalog/products",
        json={"name": "Curso", "deliverable": {"type": "redirect"}},
        headers=api.admin,
    )

    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_checkout_settings_partial_update(api):
    defaults = await api.client.get("/api/v1/catalog/settings", headers=api.admin)
    assert defaults.json()["data"]["button_text"] == "FINALIZAR COMPRA"

    updated = await api.client.put(
        "/api/v1/catalog/settings", json={"cpf_enabled": True, "timer_duration": 300}, headers=api.admin
    )
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["cpf_enabled"] is True
    assert data["timer_duration"] == 300
    assert data["button_text"] == "FINALIZAR COMPRA"


@pytest.mark.asyncio
async def test_pixels(api):
    created = await api.client.post(
        "/api/v1/catalog/pixels", json={"pixel_id": "555", "name": "Meta", "events": ["Purchase"]}, headers=api.admin
    )
    assert created.status_code == 201
    pixel_id = created.json()["data"]["id"]

    listed = await api.client.get("/api/v1/catalog/pixels", headers=api.admin)
    assert [p["pixel_id"] for p in listed.json()["data"]] == ["555"]

    assert (await api.client.delete(f"/api/v1/catalog/pixels/{pixel_id}", headers=api.admin)).status_code == 200
    assert (await api.client.delete(f"/api/v1/catalog/pixels/{pixel_id}", headers=api.admin)).status_code == 404


@pytest.mark.asyncio
async def test_finance_balance_and_withdraw(api):
    balance = await api.client.get("/api/v1/finance/balance", headers=api.admin)
    assert balance.status_code == 200
    assert balance.json()["data"]["withdraw_balance"] == 12000

    withdraw = await api.client.post("/api/v1/finance/withdraw", json={"value": 5000}, headers=api.admin)
    assert withdraw.status_code == 200
    assert withdraw.json()["data"]["withdraw_id"] == "wd_1"
    assert api.gateway.withdrawals == [(5000, "default")]

    invalid = await api.client.post("/api/v1/finance/withdraw", json={"value": 0}, headers=api.admin)
    assert invalid.status_code == 422
    assert api.gateway.withdrawals == [(5000, "default")]


@pytest.mark.asyncio
async def test_poll_settles_order_visible_to_admin(api, uow_factory):
    ids = await seed_catalog(uow_factory)
    api.gateway.statuses = [ChargeStatus.COMPLETED]

    session = await api.registry.open(checkout_request(ids))
    await session.wait()

    detail = await api.client.get("/api/v1/orders", params={"status": "APPROVED"}, headers=api.admin)
    assert detail.json()["data"]["total"] == 1
