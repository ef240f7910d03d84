"""Read-only lookups against catalog, tax and buyer tables owned elsewhere."""

import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.money import ZERO, percent_of, to_money
from services.orders_service.models import (
    BuyerRef,
    CategoryDiscount,
    Ppn,
    Product,
    ProductCategory,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_active_products(
    db: AsyncSession, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    ids = set(product_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Product).where(
            Product.id.in_(ids),
            Product.is_active.is_(True),
            Product.deleted_at.is_(None),
        )
    )
    return {product.id: product for product in result.scalars().all()}


async def get_active_category_discount(
    db: AsyncSession, kategori_id: uuid.UUID, today: date
) -> Optional[CategoryDiscount]:
    """Active discount whose window contains ``today``.

    Overlapping windows are an admin error upstream; the newest row wins.
    """
    result = await db.execute(
        select(CategoryDiscount)
        .where(
            CategoryDiscount.kategori_id == kategori_id,
            CategoryDiscount.is_active.is_(True),
            CategoryDiscount.deleted_at.is_(None),
            CategoryDiscount.tanggal_mulai <= today,
            CategoryDiscount.tanggal_selesai >= today,
        )
        .order_by(CategoryDiscount.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def category_unit_discount(
    price: Decimal, discount: Optional[CategoryDiscount]
) -> Decimal:
    """Per-unit discount: percentage of the price plus the flat amount, capped."""
    if discount is None:
        return ZERO
    amount = percent_of(to_money(price), Decimal(discount.persentase_diskon or 0))
    amount = to_money(amount + Decimal(discount.nominal_diskon or 0))
    return min(amount, to_money(price))


async def get_active_ppn_rate(db: AsyncSession) -> Decimal:
    """Active VAT percentage, 0 when none is configured."""
    result = await db.execute(
        select(Ppn.persentase)
        .where(Ppn.is_active.is_(True), Ppn.deleted_at.is_(None))
        .order_by(Ppn.created_at.desc())
        .limit(1)
    )
    rate = result.scalar_one_or_none()
    return Decimal(rate) if rate is not None else ZERO


async def find_missing_categories(
    db: AsyncSession, category_ids: Iterable[uuid.UUID]
) -> set[uuid.UUID]:
    ids = set(category_ids)
    if not ids:
        return set()
    result = await db.execute(
        select(ProductCategory.id).where(
            ProductCategory.id.in_(ids), ProductCategory.deleted_at.is_(None)
        )
    )
    return ids - set(result.scalars().all())


async def find_missing_buyers(
    db: AsyncSession, buyer_ids: Iterable[uuid.UUID]
) -> set[uuid.UUID]:
    ids = set(buyer_ids)
    if not ids:
        return set()
    result = await db.execute(
        select(BuyerRef.id).where(BuyerRef.id.in_(ids), BuyerRef.deleted_at.is_(None))
    )
    return ids - set(result.scalars().all())
