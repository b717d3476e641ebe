"""
Server-side checkout sessions.

One CheckoutSession per checkout attempt owns the charge-status poll loop:

    FORM -> CHARGE_CREATED -> PAID
    FORM -> ERROR (charge creation failed; submit again from ERROR)
    CHARGE_CREATED -> EXPIRED (provider reported the charge expired)

The browser reads the session view (QR code, state, pixel events to fire,
redirect target) and deletes the session when the page goes away, which
cancels the poll task.
"""
from __future__ import annotations

import asyncio
import inspect
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Union

from application.dtos.checkout import (
    ChargeStatus,
    CheckoutSessionView,
    CheckoutSnapshot,
    PixCharge,
    PixelEvent,
    StartCheckoutRequest,
)
from application.ports.payment_gateway import PixGateway
from application.services.checkout_service import CheckoutService
from application.services.settlement_service import SettlementService
from core.config import CheckoutFlowSettings, settings
from core.logging_config import get_logger
from core.metrics import CHECKOUT_POLL
from domain.common.exceptions import (
    BusinessException,
    CheckoutSessionNotFoundException,
    CheckoutSessionStateException,
    CheckoutValidationException,
)


logger = get_logger(__name__)

NavigateCallback = Callable[[str], Union[None, Awaitable[None]]]


class SessionState(str, Enum):
    FORM = "FORM"
    CHARGE_CREATED = "CHARGE_CREATED"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    ERROR = "ERROR"


class CheckoutSession:
    def __init__(
        self,
        *,
        checkout: CheckoutService,
        settlement: SettlementService,
        gateway: PixGateway,
        flow: Optional[CheckoutFlowSettings] = None,
        on_navigate: Optional[NavigateCallback] = None,
    ) -> None:
        self._checkout = checkout
        self._settlement = settlement
        self._gateway = gateway
        self._flow = flow or settings.checkout
        self._on_navigate = on_navigate
        self._task: Optional[asyncio.Task] = None

        self.state = SessionState.FORM
        self.snapshot: Optional[CheckoutSnapshot] = None
        self.charge: Optional[PixCharge] = None
        self.poll_count = 0
        self.pixel_events: list[PixelEvent] = []
        self.redirect_to: Optional[str] = None
        self.error: Optional[str] = None
        self.touched_at = time.monotonic()

    @property
    def correlation_id(self) -> Optional[str]:
        return self.snapshot.correlation_id if self.snapshot else None

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def finished(self) -> bool:
        """The poll task has ended, including a stop at ``max_poll_seconds``."""
        return self._task is not None and not self.polling

    async def submit(self, req: StartCheckoutRequest) -> CheckoutSessionView:
        """
        Create the charge and the order, then start polling.

        Validation errors leave the session in FORM; gateway or store
        failures move it to ERROR. Both re-raise for the caller to show.
        """
        if self.state not in (SessionState.FORM, SessionState.ERROR):
            raise CheckoutSessionStateException(self.state.value, "submit")
        self.touched_at = time.monotonic()
        try:
            snapshot, charge = await self._checkout.start_checkout(req)
        except CheckoutValidationException:
            self.state = SessionState.FORM
            raise
        except BusinessException as exc:
            self.state = SessionState.ERROR
            self.error = exc.message
            logger.warning("checkout_session_error", error_type=exc.error_type, error=exc.message)
            raise

        self.snapshot = snapshot
        self.charge = charge
        self.error = None
        self.state = SessionState.CHARGE_CREATED
        self._task = asyncio.create_task(self._poll_loop(), name=f"checkout-poll-{snapshot.correlation_id}")
        logger.info("checkout_session_started", correlation_id=snapshot.correlation_id, amount=snapshot.amount)
        return self.view()

    async def _poll_loop(self) -> None:
        started = time.monotonic()
        interval = self._flow.poll_interval_seconds
        limit = self._flow.max_poll_seconds
        correlation_id = self.correlation_id
        try:
            while self.state == SessionState.CHARGE_CREATED:
                await asyncio.sleep(interval)
                if self.state != SessionState.CHARGE_CREATED:
                    break
                if limit is not None and time.monotonic() - started >= limit:
                    logger.info("checkout_poll_limit_reached", correlation_id=correlation_id, polls=self.poll_count)
                    break
                await self._poll_once()
        except asyncio.CancelledError:
            logger.info("checkout_poll_cancelled", correlation_id=correlation_id, polls=self.poll_count)
            raise

    async def _poll_once(self) -> None:
        self.poll_count += 1
        correlation_id = self.correlation_id
        try:
            result = await self._gateway.get_charge_status(correlation_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # transient failures never end the wait loop
            CHECKOUT_POLL.labels(result="error").inc()
            logger.warning("checkout_poll_failed", correlation_id=correlation_id, error=str(exc))
            return

        CHECKOUT_POLL.labels(result=result.status.value.lower()).inc()
        if result.status == ChargeStatus.COMPLETED:
            await self._on_completed(result.paid_at)
        elif result.status == ChargeStatus.EXPIRED:
            await self._on_expired()

    async def _on_completed(self, paid_at) -> None:
        # flip first so nothing else in this session re-enters settlement
        self.state = SessionState.PAID
        snapshot = self.snapshot
        logger.info("checkout_settlement_detected", correlation_id=snapshot.correlation_id, polls=self.poll_count)

        order = None
        try:
            order = await self._settlement.approve_from_poll(snapshot, paid_at)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("checkout_settlement_store_failed", correlation_id=snapshot.correlation_id, error=str(exc))

        self.pixel_events.append(
            PixelEvent(name="Purchase", params={"value": snapshot.amount / 100, "currency": "BRL"})
        )
        if order is not None:
            await self._settlement.notify_poll_approval(order, snapshot)

        await asyncio.sleep(self._flow.redirect_delay_seconds)
        await self._navigate(self._flow.confirmation_path.format(correlation_id=snapshot.correlation_id))

    async def _on_expired(self) -> None:
        self.state = SessionState.EXPIRED
        snapshot = self.snapshot
        logger.info("checkout_charge_expired", correlation_id=snapshot.correlation_id)
        try:
            await self._settlement.expire_from_poll(snapshot)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("checkout_expire_failed", correlation_id=snapshot.correlation_id, error=str(exc))

    async def _navigate(self, target: str) -> None:
        self.redirect_to = target
        logger.info("checkout_navigate", correlation_id=self.correlation_id, target=target)
        if self._on_navigate is None:
            return
        result = self._on_navigate(target)
        if inspect.isawaitable(result):
            await result

    async def wait(self) -> None:
        """Block until the poll task ends (tests, shutdown)."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def close(self) -> None:
        """Tear the session down; no poll runs after this returns."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        self.close()
        await self.wait()

    def view(self) -> CheckoutSessionView:
        self.touched_at = time.monotonic()
        snapshot = self.snapshot
        return CheckoutSessionView(
            correlation_id=snapshot.correlation_id if snapshot else "",
            state=self.state.value,
            amount=snapshot.amount if snapshot else 0,
            qr_code_image=self.charge.qr_code_image if self.charge else None,
            br_code=self.charge.br_code if self.charge else None,
            pixel_ids=list(snapshot.pixel_ids) if snapshot else [],
            pixel_events=list(self.pixel_events),
            redirect_to=self.redirect_to,
            poll_count=self.poll_count,
            error=self.error,
        )


class CheckoutSessionRegistry:
    """Live sessions keyed by correlation id."""

    def __init__(
        self,
        session_factory: Callable[[], CheckoutSession],
        *,
        retention_seconds: Optional[float] = None,
    ) -> None:
        self._factory = session_factory
        self._retention = retention_seconds if retention_seconds is not None else settings.checkout.session_retention_seconds
        self._sessions: Dict[str, CheckoutSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, req: StartCheckoutRequest) -> CheckoutSession:
        """Submit a new session; it is registered only once its charge exists."""
        self.prune()
        session = self._factory()
        await session.submit(req)
        self._sessions[session.correlation_id] = session
        return session

    def get(self, correlation_id: str) -> CheckoutSession:
        session = self._sessions.get(correlation_id)
        if session is None:
            raise CheckoutSessionNotFoundException(correlation_id)
        return session

    async def close(self, correlation_id: str) -> None:
        session = self._sessions.pop(correlation_id, None)
        if session is None:
            raise CheckoutSessionNotFoundException(correlation_id)
        await session.aclose()
        logger.info("checkout_session_closed", correlation_id=correlation_id, state=session.state.value)

    def prune(self) -> int:
        """
        Drop sessions nobody has read for the retention window.

        Finished sessions are dropped as-is; sessions still waiting on the
        charge are treated as abandoned and their poll task is cancelled.
        A session mid-settlement is left alone until its task ends.
        """
        now = time.monotonic()
        dropped = 0
        for cid, session in list(self._sessions.items()):
            if now - session.touched_at < self._retention:
                continue
            if not session.finished:
                if session.state != SessionState.CHARGE_CREATED:
                    continue
                session.close()
                logger.info("checkout_session_abandoned", correlation_id=cid, polls=session.poll_count)
            self._sessions.pop(cid, None)
            dropped += 1
        return dropped

    async def aclose_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.aclose()
