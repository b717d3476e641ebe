import pytest

from domain.common.exceptions import InvalidOrderTransitionException, OrderNotFoundException
from domain.order.entity import Customer, Order, OrderStatus
from domain.order.events import OrderApproved
from domain.order.service import OrderDomainService, generate_correlation_id


async def _pending_order(uow_factory, correlation_id="sellpay_test_00000001") -> Order:
    async with uow_factory() as uow:
        return await OrderDomainService(uow.order_repository).place_order(
            correlation_id=correlation_id,
            product_id="prod-1",
            plan_id="plan-1",
            customer=Customer(name="Maria Silva", email="maria@example.com", phone="11987654321"),
            amount=9700,
            pix_copy_paste="000201...",
            pix_qr_code="https://example.com/qr.png",
            pix_charge_id="Q2hhcmdlOjE=",
        )


async def _transition(uow_factory, correlation_id, target, source="test"):
    async with uow_factory() as uow:
        service = OrderDomainService(uow.order_repository)
        order, changed = await service.transition(correlation_id, target, source=source)
        return order, changed, service.clear_events()


def test_correlation_id_format():
    cid = generate_correlation_id()
    prefix, timestamp, suffix = cid.split("_")
    assert prefix == "sellpay"
    assert timestamp.isalnum() and timestamp == timestamp.lower()
    assert len(suffix) == 8
    assert generate_correlation_id() != cid


def test_entity_state_machine():
    order = Order(
        id=1,
        correlation_id="c1",
        product_id="p",
        plan_id="pl",
        customer=Customer(name="A", email="a@b.co", phone="1199999999"),
        amount=100,
    )
    assert order.can_transition_to(OrderStatus.APPROVED)
    assert order.can_transition_to(OrderStatus.EXPIRED)
    assert not order.can_transition_to(OrderStatus.REFUNDED)

    order.transition_to(OrderStatus.APPROVED)
    assert order.paid_at is not None
    assert order.can_transition_to(OrderStatus.REFUNDED)
    with pytest.raises(InvalidOrderTransitionException):
        order.transition_to(OrderStatus.EXPIRED)
    assert order.amount_decimal == 1.0


@pytest.mark.asyncio
async def test_approve_once_then_noop(uow_factory):
    await _pending_order(uow_factory)

    order, changed, events = await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.APPROVED, "webhook")
    assert changed
    assert order.status == OrderStatus.APPROVED
    assert len(events) == 1 and isinstance(events[0], OrderApproved)
    assert events[0].source == "webhook"

    order, changed, events = await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.APPROVED, "poll")
    assert not changed
    assert events == []


@pytest.mark.asyncio
async def test_refund_requires_approval(uow_factory):
    await _pending_order(uow_factory)

    with pytest.raises(InvalidOrderTransitionException):
        await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.REFUNDED)

    await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.APPROVED)
    order, changed, _ = await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.REFUNDED)
    assert changed
    assert order.status == OrderStatus.REFUNDED


@pytest.mark.asyncio
async def test_expired_order_cannot_be_approved(uow_factory):
    await _pending_order(uow_factory)
    await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.EXPIRED)

    with pytest.raises(InvalidOrderTransitionException) as exc_info:
        await _transition(uow_factory, "sellpay_test_00000001", OrderStatus.APPROVED)
    assert exc_info.value.current == "EXPIRED"


@pytest.mark.asyncio
async def test_unknown_order(uow_factory):
    with pytest.raises(OrderNotFoundException):
        await _transition(uow_factory, "sellpay_missing", OrderStatus.APPROVED)


class _RacingRepository:
    """Lets another caller settle the order right after this caller's read."""

    def __init__(self, inner, on_first_read):
        self._inner = inner
        self._hook = on_first_read

    async def get_by_correlation_id(self, correlation_id):
        order = await self._inner.get_by_correlation_id(correlation_id)
        if self._hook is not None:
            hook, self._hook = self._hook, None
            await hook()
        return order

    def __getattr__(self, name):
        return getattr(self._inner, name)


@pytest.mark.asyncio
async def test_stale_reader_loses_race(uow_factory):
    await _pending_order(uow_factory)
    cid = "sellpay_test_00000001"

    async def webhook_wins():
        await _transition(uow_factory, cid, OrderStatus.APPROVED, "webhook")

    async with uow_factory() as uow:
        service = OrderDomainService(_RacingRepository(uow.order_repository, webhook_wins))
        order, changed = await service.transition(cid, OrderStatus.APPROVED, source="poll")

    assert not changed
    assert order.status == OrderStatus.APPROVED
    assert service.clear_events() == []
