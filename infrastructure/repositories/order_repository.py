"""
Order repository backed by SQLAlchemy
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import OrderStoreException
from domain.order.entity import Customer, Order, OrderStatus
from domain.order.repository import OrderFilters, OrderRepository
from infrastructure.models.order import OrderModel


logger = get_logger(__name__)


class SQLAlchemyOrderRepository(OrderRepository):
    """SQLAlchemy order repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        """Model -> entity."""
        return Order(
            id=model.id,
            correlation_id=model.correlation_id,
            product_id=model.product_id,
            plan_id=model.plan_id,
            customer=Customer(
                name=model.customer_name,
                email=model.customer_email,
                phone=model.customer_phone,
                cpf=model.customer_cpf,
            ),
            amount=model.amount,
            status=OrderStatus(model.status),
            order_bump_id=model.order_bump_id,
            pix_copy_paste=model.pix_copy_paste,
            pix_qr_code=model.pix_qr_code,
            pix_charge_id=model.pix_charge_id,
            tracking_parameters=model.tracking_parameters or {},
            created_at=model.created_at,
            updated_at=model.updated_at,
            paid_at=model.paid_at,
        )

    def _to_model(self, entity: Order) -> OrderModel:
        """Entity -> model."""
        return OrderModel(
            id=entity.id,
            correlation_id=entity.correlation_id,
            product_id=entity.product_id,
            plan_id=entity.plan_id,
            order_bump_id=entity.order_bump_id,
            customer_name=entity.customer.name,
            customer_email=entity.customer.email,
            customer_phone=entity.customer.phone,
            customer_cpf=entity.customer.cpf,
            amount=entity.amount,
            status=entity.status.value,
            pix_copy_paste=entity.pix_copy_paste,
            pix_qr_code=entity.pix_qr_code,
            pix_charge_id=entity.pix_charge_id,
            tracking_parameters=entity.tracking_parameters or None,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            paid_at=entity.paid_at,
        )

    def _apply_filters(self, query, filters: Optional[OrderFilters]):
        if filters is None:
            return query
        if filters.status is not None:
            query = query.where(OrderModel.status == OrderStatus(filters.status).value)
        if filters.product_id:
            query = query.where(OrderModel.product_id == filters.product_id)
        if filters.start_date is not None:
            query = query.where(OrderModel.created_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(OrderModel.created_at <= filters.end_date)
        return query

    async def create(self, order: Order) -> Order:
        """Insert a new order."""
        try:
            db_order = self._to_model(order)
            self.session.add(db_order)
            await self.session.flush()  # assigns the id
            await self.session.refresh(db_order)
        except IntegrityError as e:
            logger.error("order_create_conflict", correlation_id=order.correlation_id, error=str(e.orig))
            raise OrderStoreException(
                "Order could not be stored",
                details={"correlation_id": order.correlation_id},
                field="correlation_id",
            ) from e
        except SQLAlchemyError as e:
            logger.error("order_create_failed", correlation_id=order.correlation_id, error=str(e))
            raise OrderStoreException("Order could not be stored", details={"correlation_id": order.correlation_id}) from e
        logger.info("order_created", order_id=db_order.id, correlation_id=db_order.correlation_id, amount=db_order.amount)
        return self._to_entity(db_order)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """Order by primary key."""
        result = await self.session.execute(select(OrderModel).where(OrderModel.id == order_id))
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def get_by_correlation_id(self, correlation_id: str) -> Optional[Order]:
        try:
            result = await self.session.execute(
                select(OrderModel)
                .where(OrderModel.correlation_id == correlation_id)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise OrderStoreException("Order lookup failed", details={"correlation_id": correlation_id}) from e
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def update_status(
        self,
        correlation_id: str,
        status: OrderStatus,
        *,
        expected: Iterable[OrderStatus],
        paid_at: Optional[datetime] = None,
    ) -> bool:
        """Single ``UPDATE ... WHERE correlation_id = ? AND status IN (...)``."""
        sources = [OrderStatus(s).value for s in expected]
        if not sources:
            return False
        values = {"status": OrderStatus(status).value, "updated_at": datetime.now(timezone.utc)}
        if paid_at is not None:
            values["paid_at"] = paid_at
        stmt = (
            update(OrderModel)
            .where(OrderModel.correlation_id == correlation_id, OrderModel.status.in_(sources))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("order_status_update_failed", correlation_id=correlation_id, status=values["status"], error=str(e))
            raise OrderStoreException(
                "Failed to update order",
                details={"correlation_id": correlation_id, "status": values["status"]},
            ) from e
        changed = result.rowcount == 1
        logger.info(
            "order_status_updated" if changed else "order_status_unchanged",
            correlation_id=correlation_id,
            status=values["status"],
            expected=sources,
        )
        return changed

    async def list_orders(self, filters: Optional[OrderFilters] = None, skip: int = 0, limit: int = 100) -> List[Order]:
        """Orders newest first, ties broken by id so pages stay stable."""
        query = self._apply_filters(select(OrderModel), filters)
        query = query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count(self, filters: Optional[OrderFilters] = None) -> int:
        query = self._apply_filters(select(func.count(OrderModel.id)), filters)
        result = await self.session.execute(query)
        return int(result.scalar_one())
