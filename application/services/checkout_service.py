"""
Checkout application service - offer lookup and charge creation.

Order rows only exist for charges the gateway accepted: the charge is
requested first and the PENDING order is written after it succeeds.
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable, Optional

from application.dtos.checkout import (
    ChargeCustomer,
    ChargeRequest,
    CheckoutOffer,
    CheckoutSnapshot,
    DeliverableLink,
    OrderBumpView,
    PixCharge,
    PlanView,
    StartCheckoutRequest,
)
from application.ports.payment_gateway import PixGateway
from application.services import email_templates
from application.services.attribution import extract_tracking_parameters
from application.services.notification_dispatcher import NotificationDispatcher
from application.validation import clean_digits, validate_checkout_form
from core.config import CheckoutFlowSettings, settings
from core.logging_config import get_logger
from domain.catalog.entity import CheckoutSettings, OrderBump, Plan, Product
from domain.common.exceptions import CatalogItemNotFoundException, CheckoutValidationException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Customer
from domain.order.service import OrderDomainService, generate_correlation_id


logger = get_logger(__name__)


def deliverable_links(product: Optional[Product]) -> tuple[DeliverableLink, ...]:
    if product is None:
        return ()
    return tuple(
        DeliverableLink(type=d.type.value, url=d.url, label=d.label)
        for d in product.deliverables
    )


def _settings_view(checkout_settings: CheckoutSettings) -> dict:
    data = asdict(checkout_settings)
    data.pop("id", None)
    data.pop("updated_at", None)
    return data


class _OfferContext:
    __slots__ = ("product", "plan", "bumps", "settings", "pixel_ids")

    def __init__(self, product: Product, plan: Plan, bumps: list[OrderBump], settings: CheckoutSettings, pixel_ids: list[str]):
        self.product = product
        self.plan = plan
        self.bumps = bumps
        self.settings = settings
        self.pixel_ids = pixel_ids


class CheckoutService:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        gateway: PixGateway,
        dispatcher: NotificationDispatcher,
        *,
        flow: Optional[CheckoutFlowSettings] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._flow = flow or settings.checkout

    async def _load_context(self, product_id: str, plan_id: str) -> _OfferContext:
        async with self._uow_factory(readonly=True) as uow:
            product = await uow.catalog_repository.get_product(product_id)
            if product is None:
                raise CatalogItemNotFoundException("product", product_id)
            plan = product.find_plan(plan_id)
            if plan is None or not plan.is_active:
                raise CatalogItemNotFoundException("plan", plan_id)
            linked = set(product.order_bump_ids)
            bumps = [b for b in await uow.catalog_repository.list_order_bumps() if b.is_active and b.id in linked]
            checkout_settings = await uow.catalog_repository.get_checkout_settings()
            pixel_ids = [p.pixel_id for p in await uow.catalog_repository.list_pixels() if p.is_active]
        return _OfferContext(product, plan, bumps, checkout_settings, pixel_ids)

    async def load_offer(self, product_id: str, plan_id: str) -> CheckoutOffer:
        ctx = await self._load_context(product_id, plan_id)
        return CheckoutOffer(
            product_id=ctx.product.id,
            product_name=ctx.product.name,
            description=ctx.product.description,
            image_url=ctx.product.image_url,
            cover_image_url=ctx.product.cover_image_url,
            plan=PlanView(
                id=ctx.plan.id,
                name=ctx.plan.name,
                price=ctx.plan.price,
                is_recurring=ctx.plan.is_recurring,
                recurring_interval=ctx.plan.recurring_interval.value if ctx.plan.recurring_interval else None,
            ),
            order_bumps=[
                OrderBumpView(
                    id=b.id,
                    name=b.name,
                    title=b.title,
                    description=b.description,
                    price=b.price,
                    image_url=b.image_url,
                    box_color=b.box_color,
                    text_color=b.text_color,
                    button_text=b.button_text,
                )
                for b in ctx.bumps
            ],
            settings=_settings_view(ctx.settings),
            pixel_ids=ctx.pixel_ids,
        )

    async def start_checkout(self, req: StartCheckoutRequest) -> tuple[CheckoutSnapshot, PixCharge]:
        """
        Validate, charge, persist.

        Raises CheckoutValidationException before any network call,
        GatewayError when the provider refuses the charge (no order is
        written) and OrderStoreException when the order insert fails.
        """
        validate_checkout_form(req.customer)
        ctx = await self._load_context(req.product_id, req.plan_id)
        if ctx.settings.cpf_enabled:
            validate_checkout_form(req.customer, cpf_enabled=True)

        bump: Optional[OrderBump] = None
        if req.order_bump_id:
            bump = next((b for b in ctx.bumps if b.id == req.order_bump_id), None)
            if bump is None:
                raise CheckoutValidationException({"order_bump_id": "Oferta indisponível"})

        amount = ctx.plan.price + (bump.price if bump else 0)
        if amount <= 0:
            raise CheckoutValidationException({"plan_id": "Valor inválido"})

        form = req.customer
        customer = Customer(
            name=form.name.strip(),
            email=form.email.strip(),
            phone=clean_digits(form.phone),
            cpf=clean_digits(form.cpf) or None,
        )
        tracking = extract_tracking_parameters(req.tracking)
        correlation_id = generate_correlation_id(self._flow.correlation_prefix)

        logger.info(
            "checkout_charge_requested",
            correlation_id=correlation_id,
            product_id=ctx.product.id,
            plan_id=ctx.plan.id,
            order_bump_id=bump.id if bump else None,
            amount=amount,
        )
        charge = await self._gateway.create_charge(
            ChargeRequest(
                correlation_id=correlation_id,
                value=amount,
                comment=f"Compra: {ctx.product.name}",
                customer=ChargeCustomer(name=customer.name, email=customer.email, phone=customer.phone),
            )
        )

        async with self._uow_factory() as uow:
            domain_service = OrderDomainService(uow.order_repository)
            order = await domain_service.place_order(
                correlation_id=correlation_id,
                product_id=ctx.product.id,
                plan_id=ctx.plan.id,
                customer=customer,
                amount=amount,
                pix_copy_paste=charge.br_code,
                pix_qr_code=charge.qr_code_image,
                pix_charge_id=charge.global_charge_id,
                order_bump_id=bump.id if bump else None,
                tracking_parameters=tracking,
            )
        logger.info("checkout_order_created", correlation_id=correlation_id, order_id=order.id, amount=amount)

        self._dispatcher.fire_and_forget(
            self._dispatcher.send_email(
                email_templates.pix_generated_email(
                    to=customer.email,
                    customer_name=customer.name,
                    product_name=ctx.product.name,
                    amount=amount,
                    pix_code=charge.br_code,
                )
            )
        )

        snapshot = CheckoutSnapshot(
            correlation_id=correlation_id,
            order_id=order.id,
            product_id=ctx.product.id,
            product_name=ctx.product.name,
            plan_id=ctx.plan.id,
            plan_name=ctx.plan.name,
            order_bump_id=bump.id if bump else None,
            customer_name=customer.name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            customer_cpf=customer.cpf,
            amount=amount,
            deliverables=deliverable_links(ctx.product),
            pixel_ids=tuple(ctx.pixel_ids),
            tracking_parameters=tracking,
            created_at=order.created_at or datetime.now(timezone.utc),
        )
        return snapshot, charge
