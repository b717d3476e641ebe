"""Unit of Work abstraction"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.catalog.repository import CatalogRepository
from domain.order.repository import OrderRepository


class AbstractUnitOfWork(ABC):
    """
    Transaction boundary shared by orders and the catalog.

    Commits on clean exit (unless readonly or already committed), rolls back on error.
    """

    order_repository: OrderRepository
    catalog_repository: CatalogRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly
        self.order_repository = None  # type: ignore[assignment]
        self.catalog_repository = None  # type: ignore[assignment]

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            await self.rollback()
        elif not (self._readonly or self._committed):
            await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
