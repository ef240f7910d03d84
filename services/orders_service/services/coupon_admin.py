"""Coupon administration: CRUD, listing, status toggle and code generation."""

import random
import string
import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import local_today, utc_now
from libs.common.logging import get_logger
from libs.db.session import unit_of_work
from services.orders_service.errors import (
    CategoryNotFound,
    CouponNotFound,
    DuplicateCouponCode,
    InvalidCouponRequest,
)
from services.orders_service.models import (
    Coupon,
    CouponCategory,
    CouponUsage,
    DiscountType,
)
from services.orders_service.schemas.coupon import (
    CouponBase,
    CouponListParams,
)
from services.orders_service.services.catalog import find_missing_categories
from services.orders_service.services.coupon_validator import normalize_code
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def deleted_code(coupon: Coupon) -> str:
    """Code a soft-deleted coupon is renamed to, freeing the original."""
    return f"{coupon.kode}_deleted_{str(coupon.id)[:8]}"


async def get_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> Coupon:
    result = await db.execute(
        select(Coupon).where(Coupon.id == coupon_id, Coupon.deleted_at.is_(None))
    )
    coupon = result.scalar_one_or_none()
    if coupon is None:
        raise CouponNotFound(context={"coupon_id": str(coupon_id)})
    return coupon


async def is_code_taken(
    db: AsyncSession, kode: str, exclude_id: Optional[uuid.UUID] = None
) -> bool:
    query = select(Coupon.id).where(
        func.lower(Coupon.kode) == normalize_code(kode).lower(),
        Coupon.deleted_at.is_(None),
    )
    if exclude_id is not None:
        query = query.where(Coupon.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def _check_payload(
    db: AsyncSession,
    payload: CouponBase,
    *,
    exclude_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> None:
    if payload.jenis_diskon == DiscountType.PERCENTAGE and payload.nilai_diskon > 100:
        raise InvalidCouponRequest("Percentage discount cannot exceed 100")

    if payload.tanggal_kedaluarsa < local_today(now):
        raise InvalidCouponRequest("Expiry date must be today or later")

    if payload.is_all_kategori and payload.kategori:
        raise InvalidCouponRequest(
            "Categories must be empty when the coupon applies to all categories"
        )
    if not payload.is_all_kategori and not payload.kategori:
        raise InvalidCouponRequest(
            "Choose at least one category when the coupon is not for all categories"
        )

    missing = await find_missing_categories(db, payload.kategori)
    if missing:
        raise CategoryNotFound(
            "Category not found: " + ", ".join(sorted(map(str, missing)))
        )

    if await is_code_taken(db, payload.kode, exclude_id):
        raise DuplicateCouponCode(context={"kode": payload.kode})


def _apply_payload(coupon: Coupon, payload: CouponBase) -> None:
    coupon.kode = normalize_code(payload.kode)
    coupon.nama = payload.nama
    coupon.deskripsi = payload.deskripsi
    coupon.jenis_diskon = payload.jenis_diskon
    coupon.nilai_diskon = payload.nilai_diskon
    coupon.minimal_pembelian = payload.minimal_pembelian
    coupon.limit_pemakaian = payload.limit_pemakaian
    coupon.tanggal_kedaluarsa = payload.tanggal_kedaluarsa
    coupon.is_all_kategori = payload.is_all_kategori
    kategori_ids = (
        [] if payload.is_all_kategori else list(dict.fromkeys(payload.kategori))
    )
    coupon.category_links = [CouponCategory(kategori_id=kid) for kid in kategori_ids]


async def create_coupon(
    db: AsyncSession, payload: CouponBase, *, now: Optional[datetime] = None
) -> Coupon:
    try:
        async with unit_of_work(db):
            await _check_payload(db, payload, now=now)
            coupon = Coupon(is_active=True, category_links=[])
            _apply_payload(coupon, payload)
            db.add(coupon)
            await db.flush()
    except IntegrityError as exc:
        # Lost a race with a concurrent create of the same code
        raise DuplicateCouponCode(context={"kode": payload.kode}) from exc

    logger.info("Created coupon %s (%s)", coupon.kode, coupon.id)
    return coupon


async def update_coupon(
    db: AsyncSession,
    coupon_id: uuid.UUID,
    payload: CouponBase,
    *,
    now: Optional[datetime] = None,
) -> Coupon:
    try:
        async with unit_of_work(db):
            coupon = await get_coupon(db, coupon_id)
            await _check_payload(db, payload, exclude_id=coupon.id, now=now)
            # Replace the category scope wholesale
            coupon.category_links.clear()
            await db.flush()
            _apply_payload(coupon, payload)
            await db.flush()
    except IntegrityError as exc:
        raise DuplicateCouponCode(context={"kode": payload.kode}) from exc

    logger.info("Updated coupon %s (%s)", coupon.kode, coupon.id)
    return coupon


async def delete_coupon(
    db: AsyncSession, coupon_id: uuid.UUID, *, now: Optional[datetime] = None
) -> Coupon:
    """Soft delete: rename the code, then mark the row deleted.

    Usage rows keep the code as it was typed at checkout.
    """
    async with unit_of_work(db):
        coupon = await get_coupon(db, coupon_id)
        original = coupon.kode
        coupon.kode = deleted_code(coupon)
        coupon.is_active = False
        coupon.deleted_at = now or utc_now()

    logger.info("Deleted coupon %s, renamed to %s", original, coupon.kode)
    return coupon


async def toggle_coupon_status(db: AsyncSession, coupon_id: uuid.UUID) -> Coupon:
    async with unit_of_work(db):
        coupon = await get_coupon(db, coupon_id)
        coupon.is_active = not coupon.is_active
    logger.info("Coupon %s is_active=%s", coupon.kode, coupon.is_active)
    return coupon


async def generate_coupon_code(
    db: AsyncSession, *, prefix: str = "", length: int = 8, attempts: int = 10
) -> str:
    """Random code not used by any live coupon."""
    prefix = prefix.strip().upper()
    for _ in range(attempts):
        kode = prefix + "".join(random.choices(CODE_ALPHABET, k=length))
        if not await is_code_taken(db, kode):
            return kode
    raise DuplicateCouponCode("Could not generate an unused code, try a longer length")


async def list_coupons(
    db: AsyncSession,
    params: CouponListParams,
    *,
    now: Optional[datetime] = None,
) -> tuple[list[tuple[Coupon, int]], int]:
    """Filtered, sorted page of coupons with their usage counts."""
    usage = (
        select(CouponUsage.kupon_id, func.count(CouponUsage.id).label("used"))
        .group_by(CouponUsage.kupon_id)
        .subquery()
    )
    used = func.coalesce(usage.c.used, 0)

    filters = [Coupon.deleted_at.is_(None)]
    if params.jenis_diskon is not None:
        filters.append(Coupon.jenis_diskon == params.jenis_diskon)
    if params.is_active is not None:
        filters.append(Coupon.is_active.is_(params.is_active))
    if params.is_expired is not None:
        today = local_today(now)
        if params.is_expired:
            filters.append(Coupon.tanggal_kedaluarsa < today)
        else:
            filters.append(Coupon.tanggal_kedaluarsa >= today)
    if params.search:
        pattern = f"%{params.search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Coupon.kode).like(pattern),
                func.lower(Coupon.nama).like(pattern),
            )
        )

    total = (
        await db.execute(select(func.count(Coupon.id)).where(*filters))
    ).scalar_one()

    if params.sort_by == "total_usage":
        sort_column = used
    else:
        sort_column = getattr(Coupon, params.sort_by)
    sort = sort_column.asc() if params.order == "asc" else sort_column.desc()

    result = await db.execute(
        select(Coupon, used)
        .outerjoin(usage, usage.c.kupon_id == Coupon.id)
        .where(*filters)
        .order_by(sort, Coupon.id)
        .offset((params.page - 1) * params.per_page)
        .limit(params.per_page)
    )
    return [(coupon, count) for coupon, count in result.all()], total
