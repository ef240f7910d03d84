"""Coupon validation and discount computation.

Checks run in a fixed order and the first failure wins:

1. coupon exists (case-insensitive code, not soft-deleted)
2. coupon is active
3. coupon has not expired (valid through the end of its expiry date, local time)
4. usage limit not reached
5. order total meets the minimum purchase
6. order contains a category the coupon applies to
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.datetime_utils import end_of_local_day, ensure_aware, utc_now
from libs.common.logging import get_logger
from libs.common.money import ZERO, percent_of, round_to_unit, to_money
from services.orders_service.errors import (
    CouponBelowMinimum,
    CouponCategoryNotAllowed,
    CouponExpired,
    CouponInactive,
    CouponLimitReached,
    CouponNotFound,
)
from services.orders_service.models import Coupon, DiscountType
from services.orders_service.services.coupon_ledger import usage_count
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount: Decimal


def normalize_code(code: str) -> str:
    return code.strip()


def compute_discount(
    discount_type: DiscountType, value: Decimal, total: Decimal
) -> Decimal:
    """Discount for ``total``; never more than the total itself.

    Percentage discounts are rounded half-up to a whole currency unit.
    """
    total = to_money(total)
    if total <= ZERO:
        return ZERO
    if discount_type == DiscountType.PERCENTAGE:
        discount = round_to_unit(percent_of(total, Decimal(value)))
    else:
        discount = to_money(value)
    return min(discount, total)


def coupon_expires_at(coupon: Coupon) -> datetime:
    return end_of_local_day(coupon.tanggal_kedaluarsa)


def is_coupon_expired(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    return ensure_aware(now or utc_now()) > coupon_expires_at(coupon)


async def get_coupon_by_code(
    db: AsyncSession, code: str, *, lock: bool = False
) -> Optional[Coupon]:
    query = select(Coupon).where(
        func.lower(Coupon.kode) == normalize_code(code).lower(),
        Coupon.deleted_at.is_(None),
    )
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def validate_coupon(
    db: AsyncSession,
    *,
    code: str,
    buyer_id: Optional[uuid.UUID],
    candidate_total: Decimal,
    category_ids: Iterable[uuid.UUID],
    now: Optional[datetime] = None,
    lock: bool = False,
) -> CouponQuote:
    """Validate ``code`` against an order and return the discount it grants.

    With ``lock=True`` the coupon row stays locked until the caller's
    transaction ends, so the usage count read here cannot change before the
    caller records its own redemption. Checkout must always lock; previews
    must not.
    """
    now = now or utc_now()

    coupon = await get_coupon_by_code(db, code, lock=lock)
    if coupon is None:
        raise CouponNotFound(context={"code": code})

    if not coupon.is_active:
        raise CouponInactive(context={"code": coupon.kode})

    if is_coupon_expired(coupon, now):
        raise CouponExpired(context={"code": coupon.kode})

    if coupon.limit_pemakaian is not None:
        used = await usage_count(db, coupon.id)
        if used >= coupon.limit_pemakaian:
            logger.info(
                "Coupon %s limit reached (%d/%d) for buyer %s",
                coupon.kode,
                used,
                coupon.limit_pemakaian,
                buyer_id,
            )
            raise CouponLimitReached(context={"code": coupon.kode})

    candidate_total = to_money(candidate_total)
    if candidate_total < to_money(coupon.minimal_pembelian or ZERO):
        raise CouponBelowMinimum(
            f"Minimum purchase for this coupon is {to_money(coupon.minimal_pembelian)}",
            context={"code": coupon.kode},
        )

    if not coupon.is_all_kategori:
        allowed = set(coupon.category_ids)
        if not allowed.intersection(category_ids):
            raise CouponCategoryNotAllowed(context={"code": coupon.kode})

    discount = compute_discount(
        coupon.jenis_diskon, coupon.nilai_diskon, candidate_total
    )
    return CouponQuote(coupon=coupon, discount=discount)
