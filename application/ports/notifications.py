"""
Notification ports: transactional email and attribution relay.

Adapters raise NotificationError; the dispatcher decides that it never
reaches the caller.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from application.dtos.attribution import AttributionOrder
from application.dtos.notifications import EmailMessage


@runtime_checkable
class EmailSender(Protocol):
    channel: str

    async def send(self, message: EmailMessage) -> Optional[str]:
        """Deliver one email and return the provider message id."""
        ...

    async def aclose(self) -> None: ...


@runtime_checkable
class AttributionSender(Protocol):
    channel: str

    async def send(self, order: AttributionOrder) -> None: ...

    async def aclose(self) -> None: ...
