"""
Best-effort delivery of transactional emails and attribution events.

At most one attempt per call site, no retry queue. Failures are logged and
counted, never raised into the caller's critical path.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, Set

from application.dtos.attribution import AttributionOrder
from application.dtos.notifications import EmailMessage
from application.ports.notifications import AttributionSender, EmailSender
from core.logging_config import get_logger
from core.metrics import NOTIFICATION_DISPATCH


logger = get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, *, email_sender: EmailSender, attribution_sender: AttributionSender) -> None:
        self._email = email_sender
        self._attribution = attribution_sender
        self._pending: Set[asyncio.Task] = set()

    async def send_email(self, message: EmailMessage) -> bool:
        """Returns False instead of raising when delivery fails."""
        try:
            message_id = await self._email.send(message)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            NOTIFICATION_DISPATCH.labels(channel="email", kind=message.kind, result="error").inc()
            logger.warning("email_dispatch_failed", kind=message.kind, to=message.to, error=str(exc))
            return False
        NOTIFICATION_DISPATCH.labels(channel="email", kind=message.kind, result="ok").inc()
        logger.info("email_dispatched", kind=message.kind, to=message.to, message_id=message_id)
        return True

    async def send_attribution_event(self, order: AttributionOrder) -> bool:
        try:
            await self._attribution.send(order)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            NOTIFICATION_DISPATCH.labels(channel="attribution", kind=order.status, result="error").inc()
            logger.warning("attribution_dispatch_failed", order_id=order.order_id, status=order.status, error=str(exc))
            return False
        NOTIFICATION_DISPATCH.labels(channel="attribution", kind=order.status, result="ok").inc()
        logger.info("attribution_dispatched", order_id=order.order_id, status=order.status)
        return True

    def fire_and_forget(self, coro: Awaitable[bool]) -> asyncio.Task:
        """Schedule a send without awaiting it; the task is tracked for drain()."""
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for scheduled sends, e.g. on shutdown or in tests."""
        if not self._pending:
            return
        tasks = list(self._pending)
        _, not_done = await asyncio.wait(tasks, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning("notification_drain_timeout", cancelled=len(not_done))

    async def aclose(self) -> None:
        await self.drain(timeout=5.0)
        for sender in (self._email, self._attribution):
            close = getattr(sender, "aclose", None)
            if callable(close):
                await close()
