import pytest

from application.services.notification_dispatcher import NotificationDispatcher
from application.services.order_service import OrderApplicationService
from core.settings import UtmifySettings
from domain.common.exceptions import OrderStoreException
from domain.order.entity import Customer, OrderStatus
from domain.order.service import OrderDomainService

from conftest import StubAttributionSender, get_order


class _BrokenUnitOfWork:
    async def __aenter__(self):
        raise OrderStoreException("Catalog lookup failed")

    async def __aexit__(self, exc_type, exc, tb):
        return False


async def _approved_order(uow_factory, correlation_id="sellpay_refund_00000001"):
    async with uow_factory() as uow:
        service = OrderDomainService(uow.order_repository)
        await service.place_order(
            correlation_id=correlation_id,
            product_id="prod-1",
            plan_id="plan-1",
            customer=Customer(name="Maria Silva", email="maria@example.com", phone="11987654321"),
            amount=9700,
            pix_copy_paste="000201...",
            pix_qr_code="https://example.com/qr.png",
            pix_charge_id="Q2hhcmdlOjE=",
        )
    async with uow_factory() as uow:
        order, _ = await OrderDomainService(uow.order_repository).transition(
            correlation_id, OrderStatus.APPROVED, source="test"
        )
    return order


@pytest.mark.asyncio
async def test_refund_survives_catalog_read_failure(uow_factory, dispatcher, attribution_sender):
    order = await _approved_order(uow_factory)
    readonly_calls = []

    def flaky_factory(readonly: bool = False):
        if readonly:
            readonly_calls.append(1)
            # first read loads the order; the post-commit catalog read fails
            if len(readonly_calls) >= 2:
                return _BrokenUnitOfWork()
        return uow_factory(readonly=readonly)

    service = OrderApplicationService(flaky_factory, dispatcher, attribution=UtmifySettings())
    refunded = await service.refund(order.id)

    assert refunded.status == OrderStatus.REFUNDED
    assert (await get_order(uow_factory, order.correlation_id)).status == OrderStatus.REFUNDED
    assert attribution_sender.statuses == ["refunded"]
    assert attribution_sender.sent[0].commission.total_price_in_cents == 9700


@pytest.mark.asyncio
async def test_refund_attribution_failure_keeps_refund(uow_factory, email_sender):
    order = await _approved_order(uow_factory, "sellpay_refund_00000002")
    failing = StubAttributionSender(fail=True)
    dispatcher = NotificationDispatcher(email_sender=email_sender, attribution_sender=failing)
    service = OrderApplicationService(uow_factory, dispatcher, attribution=UtmifySettings())

    refunded = await service.refund(order.id)

    assert refunded.status == OrderStatus.REFUNDED
    assert failing.sent == []
