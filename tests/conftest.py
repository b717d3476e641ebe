"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

# Mandatory admin token for settings validation
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from application.dtos.checkout import (
    ChargeRequest,
    ChargeStatus,
    ChargeStatusResult,
    CheckoutForm,
    CompanyAccount,
    PixCharge,
    StartCheckoutRequest,
    WithdrawResult,
)
from application.services.notification_dispatcher import NotificationDispatcher
from core.config import CheckoutFlowSettings
from domain.catalog.entity import CheckoutSettings, Deliverable, OrderBump, Pixel, Plan, Product
from domain.common.exceptions import GatewayError, NotificationError
from infrastructure.database import build_engine, create_tables
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


VALID_CPF = "529.982.247-25"


class StubGateway:
    """In-memory PIX gateway. The last queued status repeats forever."""

    provider = "stub"

    def __init__(self, statuses=None, *, fail_create: bool = False):
        self.statuses = list(statuses or [ChargeStatus.ACTIVE])
        self.fail_create = fail_create
        self.created: list[ChargeRequest] = []
        self.status_calls = 0
        self.withdrawals: list[tuple[int, str]] = []
        self.closed = False

    async def create_charge(self, req: ChargeRequest) -> PixCharge:
        if self.fail_create:
            raise GatewayError("charge refused", provider=self.provider, status_code=400)
        self.created.append(req)
        return PixCharge(
            correlation_id=req.correlation_id,
            qr_code_image="https://api.woovi.com/openpix/charge/brcode/image/abc.png",
            br_code=f"00020101021226{req.correlation_id}",
            global_charge_id=f"Q2hhcmdlOj{len(self.created)}",
        )

    async def get_charge_status(self, correlation_id: str) -> ChargeStatusResult:
        self.status_calls += 1
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        paid_at = datetime.now(timezone.utc) if item == ChargeStatus.COMPLETED else None
        return ChargeStatusResult(status=item, paid_at=paid_at)

    async def get_company(self) -> CompanyAccount:
        return CompanyAccount(name="Loja Teste", tax_id="12345678000190", balance=15000, withdraw_balance=12000)

    async def request_withdraw(self, value: int, account_id: str = "default") -> WithdrawResult:
        self.withdrawals.append((value, account_id))
        return WithdrawResult(withdraw_id="wd_1")

    async def aclose(self) -> None:
        self.closed = True


class StubEmailSender:
    channel = "email"

    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent = []

    @property
    def kinds(self) -> list[str]:
        return [m.kind for m in self.sent]

    async def send(self, message) -> Optional[str]:
        if self.fail:
            raise NotificationError("relay down", channel=self.channel, status_code=503)
        self.sent.append(message)
        return f"msg_{len(self.sent)}"

    async def aclose(self) -> None:
        pass


class StubAttributionSender:
    channel = "attribution"

    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent = []

    @property
    def statuses(self) -> list[str]:
        return [o.status for o in self.sent]

    async def send(self, order) -> None:
        if self.fail:
            raise NotificationError("relay down", channel=self.channel, status_code=500)
        self.sent.append(order)

    async def aclose(self) -> None:
        pass


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'sellpay-test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow_factory(engine):
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    def factory(readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory=session_factory, readonly=readonly)

    return factory


@pytest.fixture
def email_sender():
    return StubEmailSender()


@pytest.fixture
def attribution_sender():
    return StubAttributionSender()


@pytest_asyncio.fixture
async def dispatcher(email_sender, attribution_sender):
    dispatcher = NotificationDispatcher(email_sender=email_sender, attribution_sender=attribution_sender)
    yield dispatcher
    await dispatcher.drain(timeout=1.0)


@pytest.fixture
def fast_flow():
    return CheckoutFlowSettings(
        poll_interval_seconds=0.01,
        redirect_delay_seconds=0.0,
        public_base_url="https://loja.example.com",
    )


async def seed_catalog(
    uow_factory,
    *,
    plan_price: int = 9700,
    bump_price: int = 1000,
    cpf_enabled: bool = False,
    deliverables=None,
):
    """Product with one plan, one linked bump, one deliverable and one pixel."""
    if deliverables is None:
        deliverables = [Deliverable(id=None, product_id=None, type="redirect", redirect_url="https://members.example.com/curso")]
    async with uow_factory() as uow:
        repo = uow.catalog_repository
        bump = await repo.save_order_bump(
            OrderBump(id=None, name="Bônus", title="Leve também o e-book", price=bump_price)
        )
        product = await repo.create_product(
            Product(
                id=None,
                name="Curso Python",
                plans=[Plan(id=None, product_id=None, name="Vitalício", price=plan_price)],
                deliverables=deliverables,
                order_bump_ids=[bump.id],
            )
        )
        if cpf_enabled:
            await repo.save_checkout_settings(CheckoutSettings(cpf_enabled=True))
        await repo.save_pixel(Pixel(id=None, pixel_id="123456789012345"))
    return SimpleNamespace(product_id=product.id, plan_id=product.plans[0].id, bump_id=bump.id)


def checkout_request(ids, *, order_bump_id=None, tracking=None, **customer) -> StartCheckoutRequest:
    form = {"name": "Maria Silva", "email": "maria@example.com", "phone": "(11) 98765-4321"}
    form.update(customer)
    return StartCheckoutRequest(
        product_id=ids.product_id,
        plan_id=ids.plan_id,
        order_bump_id=order_bump_id,
        customer=CheckoutForm(**form),
        tracking=tracking or {},
    )


async def get_order(uow_factory, correlation_id: str):
    async with uow_factory(readonly=True) as uow:
        return await uow.order_repository.get_by_correlation_id(correlation_id)


async def count_orders(uow_factory) -> int:
    async with uow_factory(readonly=True) as uow:
        return await uow.order_repository.count()


@pytest_asyncio.fixture
async def api(uow_factory, dispatcher, fast_flow):
    """ASGI client over the real app, wired to the test database and stub gateway."""
    import httpx

    from api.dependencies import get_uow_factory
    from application.services.checkout_engine import CheckoutSession, CheckoutSessionRegistry
    from application.services.checkout_service import CheckoutService
    from application.services.settlement_service import SettlementService
    from core.config import settings
    from core.settings import UtmifySettings
    from main import app

    gateway = StubGateway([ChargeStatus.ACTIVE])

    def new_session() -> CheckoutSession:
        return CheckoutSession(
            checkout=CheckoutService(uow_factory, gateway, dispatcher, flow=fast_flow),
            settlement=SettlementService(uow_factory, dispatcher, flow=fast_flow, attribution=UtmifySettings()),
            gateway=gateway,
            flow=fast_flow,
        )

    registry = CheckoutSessionRegistry(new_session)
    app.state.gateway = gateway
    app.state.dispatcher = dispatcher
    app.state.checkout_registry = registry
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield SimpleNamespace(
            client=client,
            gateway=gateway,
            registry=registry,
            admin={"Authorization": f"Bearer {settings.ADMIN_TOKEN}"},
        )

    await registry.aclose_all()
    app.dependency_overrides.clear()
