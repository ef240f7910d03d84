"""Append-only status history for orders and payments."""

import enum
import uuid
from typing import Optional, Union

from services.orders_service.models import OrderStatusHistory, StatusType
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

StatusValue = Union[str, enum.Enum]


def _as_str(value: Optional[StatusValue]) -> Optional[str]:
    if value is None:
        return None
    return value.value if isinstance(value, enum.Enum) else value


async def record_status_change(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    status_type: StatusType,
    status_from: Optional[StatusValue],
    status_to: StatusValue,
    actor_id: Optional[uuid.UUID] = None,
    note: Optional[str] = None,
) -> OrderStatusHistory:
    """Add a history row to the caller's transaction.

    Never commits: the entry is persisted together with the status change it
    describes, or not at all.
    """
    entry = OrderStatusHistory(
        pesanan_id=order_id,
        status_type=status_type,
        status_from=_as_str(status_from),
        status_to=_as_str(status_to),
        changed_by=actor_id,
        note=note,
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_status_history(
    db: AsyncSession,
    order_id: uuid.UUID,
    status_type: Optional[StatusType] = None,
) -> list[OrderStatusHistory]:
    """History of an order, newest first."""
    query = select(OrderStatusHistory).where(OrderStatusHistory.pesanan_id == order_id)
    if status_type is not None:
        query = query.where(OrderStatusHistory.status_type == status_type)
    query = query.order_by(
        OrderStatusHistory.created_at.desc(), OrderStatusHistory.id.desc()
    )
    result = await db.execute(query)
    return list(result.scalars().all())
