"""
Order Store - field-level persistence of work orders.

The execution engine only ever sees the ``OrderStore`` protocol; the
SQLAlchemy implementation below talks to the backend database.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Mapping, Protocol

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.work_order import OrderStatus, WorkOrder
from app.schemas.work_order import InspectionRecord, MUTABLE_FIELDS

logger = logging.getLogger(__name__)


class OrderStoreError(Exception):
    """The order store rejected or failed a request."""


class OrderNotFoundError(OrderStoreError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Work order {order_id} not found")


class UnknownStatusError(OrderStoreError):
    def __init__(self, status_name: str):
        self.status_name = status_name
        super().__init__(f"Unknown order status '{status_name}'")


class OrderStore(Protocol):
    async def read_order(self, order_id: int) -> InspectionRecord: ...

    async def update_order(self, order_id: int, fields: Mapping[str, Any]) -> None: ...

    async def set_order_status(self, order_id: int, status_name: str) -> None: ...


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


# Driver-level failures (connection refused, timeouts) that SQLAlchemy does not wrap
UNREACHABLE_ERRORS = (OSError, asyncio.TimeoutError)


def snapshot(order: WorkOrder) -> InspectionRecord:
    """Build the engine snapshot, rejecting rows the engine cannot interpret."""
    try:
        return InspectionRecord.from_model(order)
    except ValidationError as e:
        raise OrderStoreError(
            f"Work order {order.id} has invalid data: {e.error_count()} field(s)"
        ) from e


class SQLAlchemyOrderStore:
    """Order store backed by the work_orders table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read_order(self, order_id: int) -> InspectionRecord:
        async with self.session_factory() as session:
            try:
                result = await session.execute(select(WorkOrder).where(WorkOrder.id == order_id))
                order = result.unique().scalar_one_or_none()
            except SQLAlchemyError as e:
                raise OrderStoreError(f"Failed to read work order {order_id}: {type(e).__name__}") from e
            except UNREACHABLE_ERRORS as e:
                raise OrderStoreError(f"Order store unreachable: {type(e).__name__}") from e

            if order is None:
                raise OrderNotFoundError(order_id)
            return snapshot(order)

    async def update_order(self, order_id: int, fields: Mapping[str, Any]) -> None:
        """Apply a partial field update. Writes are idempotent assignments."""
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise OrderStoreError(f"Fields not writable: {', '.join(sorted(unknown))}")
        if not fields:
            return

        values = {name: _column_value(value) for name, value in fields.items()}
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    update(WorkOrder).where(WorkOrder.id == order_id).values(**values)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise OrderNotFoundError(order_id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise OrderStoreError(f"Failed to update work order {order_id}: {type(e).__name__}") from e
            except UNREACHABLE_ERRORS as e:
                raise OrderStoreError(f"Order store unreachable: {type(e).__name__}") from e

        logger.debug(f"Work order {order_id} updated: {sorted(values)}")

    async def set_order_status(self, order_id: int, status_name: str) -> None:
        async with self.session_factory() as session:
            try:
                status_result = await session.execute(
                    select(OrderStatus.id).where(OrderStatus.name == status_name)
                )
                status_id = status_result.scalar_one_or_none()
                if status_id is None:
                    raise UnknownStatusError(status_name)

                result = await session.execute(
                    update(WorkOrder).where(WorkOrder.id == order_id).values(status_id=status_id)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise OrderNotFoundError(order_id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise OrderStoreError(f"Failed to set status on work order {order_id}: {type(e).__name__}") from e
            except UNREACHABLE_ERRORS as e:
                raise OrderStoreError(f"Order store unreachable: {type(e).__name__}") from e

        logger.info(f"Work order {order_id} status set to {status_name}")
