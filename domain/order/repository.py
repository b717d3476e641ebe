"""
Order repository interface
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, List

from .entity import Order, OrderStatus


@dataclass(frozen=True)
class OrderFilters:
    status: Optional[OrderStatus] = None
    product_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class OrderRepository(ABC):
    """Order store contract used by checkout and settlement."""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """Insert a PENDING order and return it with its store-assigned id."""
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_correlation_id(self, correlation_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def update_status(
        self,
        correlation_id: str,
        status: OrderStatus,
        *,
        expected: Iterable[OrderStatus],
        paid_at: Optional[datetime] = None,
    ) -> bool:
        """Targeted update keyed by correlation_id.

        The row changes only while its current status is one of ``expected``.
        Returns True when this call changed the row.
        """
        pass

    @abstractmethod
    async def list_orders(self, filters: Optional[OrderFilters] = None, skip: int = 0, limit: int = 100) -> List[Order]:
        """Newest first."""
        pass

    @abstractmethod
    async def count(self, filters: Optional[OrderFilters] = None) -> int:
        pass
