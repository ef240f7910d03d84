"""Coupon usage ledger.

Usage is never tracked as a counter column: every redemption is one
``kupon_usage`` row and the usage count is a ``COUNT`` over those rows, read in
the same transaction that holds the coupon row lock.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.logging import get_logger
from libs.common.money import to_money
from services.orders_service.models import BuyerRef, Coupon, CouponUsage, Order
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def usage_count(db: AsyncSession, coupon_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(CouponUsage.id)).where(CouponUsage.kupon_id == coupon_id)
    )
    return result.scalar_one()


def remaining_from(limit: Optional[int], used: int) -> Optional[int]:
    """Redemptions left for ``used`` redemptions, or None when unlimited."""
    if limit is None:
        return None
    return max(limit - used, 0)


async def remaining_usage(db: AsyncSession, coupon: Coupon) -> Optional[int]:
    if coupon.limit_pemakaian is None:
        return None
    used = await usage_count(db, coupon.id)
    return remaining_from(coupon.limit_pemakaian, used)


async def redeem(
    db: AsyncSession,
    *,
    coupon: Coupon,
    buyer_id: uuid.UUID,
    order_id: uuid.UUID,
    code: str,
    amount: Decimal,
) -> CouponUsage:
    """Record one redemption in the caller's transaction.

    The caller must hold the coupon row lock taken by the validator and commit
    the usage together with the order it belongs to.
    """
    usage = CouponUsage(
        kupon_id=coupon.id,
        buyer_id=buyer_id,
        pesanan_id=order_id,
        kode_kupon=code,
        nilai_potongan=to_money(amount),
    )
    db.add(usage)
    await db.flush()
    logger.info(
        "Redeemed coupon %s for order %s (potongan=%s)", coupon.kode, order_id, amount
    )
    return usage


async def list_usages(
    db: AsyncSession,
    coupon_id: uuid.UUID,
    *,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[tuple[CouponUsage, Optional[str], Optional[str]]], int]:
    """Usage report, newest first.

    Returns ``([(usage, buyer_name, order_code), ...], total)``.
    """
    total = await usage_count(db, coupon_id)
    result = await db.execute(
        select(CouponUsage, BuyerRef.nama, Order.kode)
        .outerjoin(BuyerRef, BuyerRef.id == CouponUsage.buyer_id)
        .outerjoin(Order, Order.id == CouponUsage.pesanan_id)
        .where(CouponUsage.kupon_id == coupon_id)
        .order_by(CouponUsage.created_at.desc(), CouponUsage.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return [tuple(row) for row in result.all()], total
