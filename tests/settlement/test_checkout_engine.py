import asyncio
from dataclasses import replace

import pytest

from application.dtos.checkout import ChargeStatus, PixelEvent
from application.services.checkout_engine import CheckoutSession, CheckoutSessionRegistry, SessionState
from application.services.checkout_service import CheckoutService
from application.services.settlement_service import SettlementService
from core.settings import UtmifySettings
from domain.common.exceptions import (
    CheckoutSessionNotFoundException,
    CheckoutSessionStateException,
    CheckoutValidationException,
    GatewayError,
)
from domain.order.entity import OrderStatus

from conftest import StubGateway, checkout_request, count_orders, get_order, seed_catalog


def _session(uow_factory, gateway, dispatcher, flow, navigations=None):
    return CheckoutSession(
        checkout=CheckoutService(uow_factory, gateway, dispatcher, flow=flow),
        settlement=SettlementService(uow_factory, dispatcher, flow=flow, attribution=UtmifySettings()),
        gateway=gateway,
        flow=flow,
        on_navigate=navigations.append if navigations is not None else None,
    )


async def _wait_done(session, timeout=2.0):
    await asyncio.wait_for(session.wait(), timeout=timeout)


@pytest.mark.asyncio
async def test_poll_settles_after_sixth_check(uow_factory, dispatcher, email_sender, attribution_sender, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE] * 5 + [ChargeStatus.COMPLETED])
    navigations = []
    session = _session(uow_factory, gateway, dispatcher, fast_flow, navigations)

    view = await session.submit(checkout_request(ids))
    assert view.state == "CHARGE_CREATED"
    assert view.amount == 9700
    assert view.br_code.startswith("000201")
    assert view.pixel_ids == ["123456789012345"]

    await _wait_done(session)
    await dispatcher.drain(timeout=1.0)

    cid = session.correlation_id
    assert session.state == SessionState.PAID
    assert gateway.status_calls == 6
    assert session.pixel_events == [PixelEvent(name="Purchase", params={"value": 97.0, "currency": "BRL"})]
    assert navigations == [f"/obrigado/{cid}"]
    assert session.view().redirect_to == f"/obrigado/{cid}"

    order = await get_order(uow_factory, cid)
    assert order.status == OrderStatus.APPROVED
    assert order.paid_at is not None

    assert email_sender.kinds.count("purchase_approved") == 1
    assert email_sender.kinds.count("pix_generated") == 1
    assert attribution_sender.statuses == ["paid"]
    assert attribution_sender.sent[0].commission.total_price_in_cents == 9700

    # no further polling once paid
    await asyncio.sleep(0.05)
    assert gateway.status_calls == 6


@pytest.mark.asyncio
async def test_poll_amount_includes_order_bump(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.COMPLETED])
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    await session.submit(checkout_request(ids, order_bump_id=ids.bump_id))
    await _wait_done(session)

    assert gateway.created[0].value == 10700
    assert session.pixel_events[0].params["value"] == 107.0


@pytest.mark.asyncio
async def test_close_stops_polling(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE])
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    await session.submit(checkout_request(ids))
    await asyncio.sleep(0.05)
    assert session.polling

    await session.aclose()
    calls = gateway.status_calls
    await asyncio.sleep(0.05)

    assert not session.polling
    assert gateway.status_calls == calls
    order = await get_order(uow_factory, session.correlation_id)
    assert order.status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_status_errors_do_not_end_polling(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([
        GatewayError("timeout", provider="stub"),
        RuntimeError("connection reset"),
        ChargeStatus.ACTIVE,
        ChargeStatus.COMPLETED,
    ])
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    await session.submit(checkout_request(ids))
    await _wait_done(session)

    assert session.state == SessionState.PAID
    assert gateway.status_calls == 4


@pytest.mark.asyncio
async def test_expired_charge_marks_order_and_sends_email(uow_factory, dispatcher, email_sender, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE, ChargeStatus.EXPIRED])
    navigations = []
    session = _session(uow_factory, gateway, dispatcher, fast_flow, navigations)

    await session.submit(checkout_request(ids))
    await _wait_done(session)
    await dispatcher.drain(timeout=1.0)

    assert session.state == SessionState.EXPIRED
    assert session.pixel_events == []
    assert navigations == []
    order = await get_order(uow_factory, session.correlation_id)
    assert order.status == OrderStatus.EXPIRED

    expired = [m for m in email_sender.sent if m.kind == "pix_expired"]
    assert len(expired) == 1
    assert f"https://loja.example.com/checkout/{ids.product_id}/{ids.plan_id}" in expired[0].html


@pytest.mark.asyncio
async def test_webhook_first_then_poll_sends_one_approval(
    uow_factory, dispatcher, email_sender, attribution_sender, fast_flow
):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE])
    navigations = []
    session = _session(uow_factory, gateway, dispatcher, fast_flow, navigations)
    await session.submit(checkout_request(ids))
    cid = session.correlation_id

    settlement = SettlementService(uow_factory, dispatcher, flow=fast_flow, attribution=UtmifySettings())
    body = (
        '{"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": "%s", "status": "COMPLETED"}}' % cid
    ).encode()
    result = await settlement.handle_webhook(body)
    assert result.status_code == 200
    assert result.body["status"] == "success"

    gateway.statuses = [ChargeStatus.COMPLETED]
    await _wait_done(session)
    await dispatcher.drain(timeout=1.0)

    # the buyer still sees the purchase and the redirect
    assert session.state == SessionState.PAID
    assert [e.name for e in session.pixel_events] == ["Purchase"]
    assert navigations == [f"/obrigado/{cid}"]

    assert email_sender.kinds.count("purchase_approved") == 1
    assert attribution_sender.statuses == ["paid"]


@pytest.mark.asyncio
async def test_gateway_failure_leaves_no_order(uow_factory, dispatcher, email_sender, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway(fail_create=True)
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    with pytest.raises(GatewayError):
        await session.submit(checkout_request(ids))
    await dispatcher.drain(timeout=1.0)

    assert session.state == SessionState.ERROR
    assert session.error == "charge refused"
    assert not session.polling
    assert await count_orders(uow_factory) == 0
    assert email_sender.sent == []


@pytest.mark.asyncio
async def test_retry_after_error_state(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway(fail_create=True)
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    with pytest.raises(GatewayError):
        await session.submit(checkout_request(ids))

    gateway.fail_create = False
    view = await session.submit(checkout_request(ids))
    assert view.state == "CHARGE_CREATED"
    assert view.error is None
    await session.aclose()


@pytest.mark.asyncio
async def test_invalid_form_stays_on_form(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway()
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    with pytest.raises(CheckoutValidationException) as exc_info:
        await session.submit(checkout_request(ids, email="maria@invalid"))

    assert exc_info.value.errors == {"email": "Email inválido"}
    assert session.state == SessionState.FORM
    assert gateway.created == []


@pytest.mark.asyncio
async def test_submit_twice_rejected(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    session = _session(uow_factory, StubGateway(), dispatcher, fast_flow)
    await session.submit(checkout_request(ids))

    with pytest.raises(CheckoutSessionStateException):
        await session.submit(checkout_request(ids))
    await session.aclose()


@pytest.mark.asyncio
async def test_registry_open_get_close(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway()
    registry = CheckoutSessionRegistry(
        lambda: _session(uow_factory, gateway, dispatcher, fast_flow),
        retention_seconds=0,
    )

    session = await registry.open(checkout_request(ids))
    cid = session.correlation_id
    assert len(registry) == 1
    assert registry.get(cid) is session

    await registry.close(cid)
    assert not session.polling
    with pytest.raises(CheckoutSessionNotFoundException):
        registry.get(cid)
    with pytest.raises(CheckoutSessionNotFoundException):
        await registry.close(cid)


@pytest.mark.asyncio
async def test_registry_prunes_finished_sessions(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.COMPLETED])
    registry = CheckoutSessionRegistry(
        lambda: _session(uow_factory, gateway, dispatcher, fast_flow),
        retention_seconds=0,
    )

    session = await registry.open(checkout_request(ids))
    await _wait_done(session)

    assert registry.prune() == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_price_change_while_polling_keeps_charged_amount(
    uow_factory, dispatcher, email_sender, attribution_sender, fast_flow
):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE])
    session = _session(uow_factory, gateway, dispatcher, fast_flow)

    await session.submit(checkout_request(ids, order_bump_id=ids.bump_id))
    assert session.view().amount == 10700

    async with uow_factory() as uow:
        repo = uow.catalog_repository
        product = await repo.get_product(ids.product_id)
        await repo.update_plan(replace(product.plans[0], price=19700))
        bump = await repo.get_order_bump(ids.bump_id)
        await repo.save_order_bump(replace(bump, price=5000))

    gateway.statuses = [ChargeStatus.COMPLETED]
    await _wait_done(session)
    await dispatcher.drain(timeout=1.0)

    order = await get_order(uow_factory, session.correlation_id)
    assert order.status == OrderStatus.APPROVED
    assert order.amount == 10700
    assert session.pixel_events[0].params["value"] == 107.0
    assert attribution_sender.sent[0].commission.total_price_in_cents == 10700


@pytest.mark.asyncio
async def test_registry_drops_session_stopped_at_poll_limit(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE])
    flow = fast_flow.model_copy(update={"max_poll_seconds": 0.03})
    registry = CheckoutSessionRegistry(
        lambda: _session(uow_factory, gateway, dispatcher, flow),
        retention_seconds=0,
    )

    session = await registry.open(checkout_request(ids))
    await _wait_done(session)

    assert session.state == SessionState.CHARGE_CREATED
    assert session.finished
    assert registry.prune() == 1
    assert len(registry) == 0
    assert (await get_order(uow_factory, session.correlation_id)).status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_registry_cancels_abandoned_sessions(uow_factory, dispatcher, fast_flow):
    ids = await seed_catalog(uow_factory)
    gateway = StubGateway([ChargeStatus.ACTIVE])
    registry = CheckoutSessionRegistry(
        lambda: _session(uow_factory, gateway, dispatcher, fast_flow),
        retention_seconds=0.05,
    )

    session = await registry.open(checkout_request(ids))
    assert registry.prune() == 0
    assert session.polling

    await asyncio.sleep(0.1)
    assert registry.prune() == 1
    await _wait_done(session)

    assert not session.polling
    assert len(registry) == 0
    with pytest.raises(CheckoutSessionNotFoundException):
        registry.get(session.correlation_id)
