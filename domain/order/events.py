"""
Order domain events.

Dataclass events record settlement facts (which path won a transition)
for downstream fan-out. The domain stays free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class OrderEvent:
    correlation_id: str
    order_id: Optional[int]
    source: str  # poll | webhook | admin
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OrderApproved(OrderEvent):
    paid_at: Optional[datetime] = None


@dataclass
class OrderExpired(OrderEvent):
    pass


@dataclass
class OrderRefunded(OrderEvent):
    pass
