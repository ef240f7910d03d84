"""Read side of orders: buyer views, admin listing and statistics."""

import uuid
from datetime import date, timedelta
from typing import Any, Optional

from libs.common.datetime_utils import local_day_bounds, local_today
from libs.common.money import ZERO, to_money
from services.orders_service.errors import InvalidOrderRequest, OrderNotFound
from services.orders_service.models import (
    DeliveryType,
    Order,
    OrderStatus,
    PaymentStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

STATISTICS_DEFAULT_DAYS = 30


def _date_filters(
    tanggal_dari: Optional[date], tanggal_sampai: Optional[date]
) -> list[Any]:
    if tanggal_dari and tanggal_sampai and tanggal_dari > tanggal_sampai:
        raise InvalidOrderRequest("tanggal_dari must not be after tanggal_sampai")
    filters = []
    if tanggal_dari:
        filters.append(Order.created_at >= local_day_bounds(tanggal_dari)[0])
    if tanggal_sampai:
        filters.append(Order.created_at <= local_day_bounds(tanggal_sampai)[1])
    return filters


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(
        select(Order).where(Order.id == order_id, Order.deleted_at.is_(None))
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(context={"order_id": str(order_id)})
    return order


async def get_buyer_order(db: AsyncSession, buyer_id: uuid.UUID, kode: str) -> Order:
    """Order by code, visible only to the buyer who placed it."""
    result = await db.execute(
        select(Order).where(
            Order.kode == kode,
            Order.buyer_id == buyer_id,
            Order.deleted_at.is_(None),
        )
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(context={"kode": kode})
    return order


async def list_orders(
    db: AsyncSession,
    *,
    page: int = 1,
    per_page: int = 20,
    buyer_id: Optional[uuid.UUID] = None,
    cari: Optional[str] = None,
    order_status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    delivery_type: Optional[DeliveryType] = None,
    tanggal_dari: Optional[date] = None,
    tanggal_sampai: Optional[date] = None,
) -> tuple[list[Order], int]:
    """Newest-first page of live orders matching the filters."""
    filters = [Order.deleted_at.is_(None)]
    if buyer_id is not None:
        filters.append(Order.buyer_id == buyer_id)
    if cari:
        filters.append(func.lower(Order.kode).like(f"%{cari.strip().lower()}%"))
    if order_status is not None:
        filters.append(Order.order_status == order_status)
    if payment_status is not None:
        filters.append(Order.payment_status == payment_status)
    if delivery_type is not None:
        filters.append(Order.delivery_type == delivery_type)
    filters.extend(_date_filters(tanggal_dari, tanggal_sampai))

    total = (
        await db.execute(select(func.count(Order.id)).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(Order)
        .where(*filters)
        .order_by(Order.created_at.desc(), Order.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def order_statistics(
    db: AsyncSession,
    *,
    tanggal_dari: Optional[date] = None,
    tanggal_sampai: Optional[date] = None,
) -> dict[str, Any]:
    """Order counts and revenue over a date range (default: last 30 days).

    Revenue only counts fully paid orders.
    """
    tanggal_sampai = tanggal_sampai or local_today()
    tanggal_dari = tanggal_dari or tanggal_sampai - timedelta(
        days=STATISTICS_DEFAULT_DAYS
    )
    filters = [
        Order.deleted_at.is_(None),
        *_date_filters(tanggal_dari, tanggal_sampai),
    ]

    total_pesanan = (
        await db.execute(select(func.count(Order.id)).where(*filters))
    ).scalar_one()
    revenue = (
        await db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                *filters, Order.payment_status == PaymentStatus.PAID
            )
        )
    ).scalar_one()

    async def _count_by(column) -> dict[str, int]:
        rows = await db.execute(
            select(column, func.count(Order.id)).where(*filters).group_by(column)
        )
        return {status.value: count for status, count in rows.all()}

    return {
        "tanggal_dari": tanggal_dari,
        "tanggal_sampai": tanggal_sampai,
        "total_pesanan": total_pesanan,
        "total_revenue": to_money(revenue or ZERO),
        "per_status": await _count_by(Order.order_status),
        "per_delivery_type": await _count_by(Order.delivery_type),
        "per_payment_status": await _count_by(Order.payment_status),
    }
