"""SQLAlchemy Unit of Work

Order and catalog repositories share one session; a failed commit becomes OrderStoreException.
"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import OrderStoreException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.catalog_repository import SQLAlchemyCatalogRepository
from infrastructure.repositories.order_repository import SQLAlchemyOrderRepository


logger = get_logger(__name__)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    ``readonly=True`` serves queries (confirmation page, dashboard lists, notification context)
    and never commits; a session passed in by the caller is closed by the caller.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._owns_session = session is None
        self.session: Optional[AsyncSession] = session

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self.order_repository = SQLAlchemyOrderRepository(self.session)
        self.catalog_repository = SQLAlchemyCatalogRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self._owns_session and self.session is not None:
                await self.session.close()
                self.session = None
            self.order_repository = None  # type: ignore[assignment]
            self.catalog_repository = None  # type: ignore[assignment]

    async def commit(self) -> None:
        if self.readonly:
            self._committed = True
            return
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error("uow_commit_failed", error=str(e))
            await self.session.rollback()
            raise OrderStoreException("Transaction commit failed") from e
        self._committed = True

    async def rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
