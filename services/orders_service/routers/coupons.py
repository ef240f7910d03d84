"""Coupon CRUD (admin), usage report and the buyer preview endpoint."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.errors import DomainError
from libs.common.logging import get_logger
from libs.common.money import to_money
from libs.db.session import get_async_db
from services.orders_service.routers._helpers import coupon_response
from services.orders_service.schemas.common import Page, PaginationMeta
from services.orders_service.schemas.coupon import (
    CouponCreate,
    CouponListParams,
    CouponPreviewRequest,
    CouponPreviewResponse,
    CouponResponse,
    CouponUpdate,
    CouponUsageResponse,
    GenerateCodeRequest,
    GeneratedCodeResponse,
)
from services.orders_service.services import coupon_admin, coupon_ledger
from services.orders_service.services.coupon_validator import validate_coupon
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/coupons", tags=["coupons"])
admin_router = APIRouter(prefix="/coupons", tags=["admin-coupons"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Buyer
# ---------------------------------------------------------------------------


@router.post("/validate", response_model=CouponPreviewResponse)
async def preview_coupon(
    payload: CouponPreviewRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Check a coupon against a cart total before checkout.
    Takes no lock and records no usage; checkout validates again.
    """
    total = to_money(payload.total)
    try:
        quote = await validate_coupon(
            db,
            code=payload.kode,
            buyer_id=current_user.uuid,
            candidate_total=total,
            category_ids=payload.kategori,
        )
    except DomainError as exc:
        return CouponPreviewResponse(
            valid=False,
            kode=payload.kode,
            total_setelah_potongan=total,
            code=exc.code,
            message=exc.message,
        )

    return CouponPreviewResponse(
        valid=True,
        kode=quote.coupon.kode,
        potongan=quote.discount,
        total_setelah_potongan=total - quote.discount,
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@admin_router.post(
    "", response_model=CouponResponse, status_code=status.HTTP_201_CREATED
)
async def create_coupon(
    payload: CouponCreate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await coupon_admin.create_coupon(db, payload)
    return coupon_response(coupon, 0)


@admin_router.get("", response_model=Page[CouponResponse])
async def list_coupons(
    params: CouponListParams = Depends(),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    rows, total = await coupon_admin.list_coupons(db, params)
    return Page[CouponResponse](
        data=[coupon_response(coupon, used) for coupon, used in rows],
        meta=PaginationMeta.build(params.page, params.per_page, total),
    )


@admin_router.post("/generate-code", response_model=GeneratedCodeResponse)
async def generate_code(
    payload: GenerateCodeRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    kode = await coupon_admin.generate_coupon_code(
        db, prefix=payload.prefix, length=payload.length
    )
    return GeneratedCodeResponse(kode=kode)


@admin_router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(
    coupon_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await coupon_admin.get_coupon(db, coupon_id)
    used = await coupon_ledger.usage_count(db, coupon.id)
    return coupon_response(coupon, used)


@admin_router.put("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    coupon_id: uuid.UUID,
    payload: CouponUpdate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await coupon_admin.update_coupon(db, coupon_id, payload)
    used = await coupon_ledger.usage_count(db, coupon.id)
    return coupon_response(coupon, used)


@admin_router.delete("/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_coupon(
    coupon_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await coupon_admin.delete_coupon(db, coupon_id)


@admin_router.patch("/{coupon_id}/toggle-status", response_model=CouponResponse)
async def toggle_coupon_status(
    coupon_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await coupon_admin.toggle_coupon_status(db, coupon_id)
    used = await coupon_ledger.usage_count(db, coupon.id)
    return coupon_response(coupon, used)


@admin_router.get("/{coupon_id}/usages", response_model=Page[CouponUsageResponse])
async def list_coupon_usages(
    coupon_id: uuid.UUID,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Redemptions of a coupon, newest first."""
    coupon = await coupon_admin.get_coupon(db, coupon_id)
    rows, total = await coupon_ledger.list_usages(
        db, coupon.id, page=page, per_page=per_page
    )
    return Page[CouponUsageResponse](
        data=[
            CouponUsageResponse(
                id=usage.id,
                buyer_id=usage.buyer_id,
                buyer_nama=buyer_nama,
                pesanan_id=usage.pesanan_id,
                pesanan_kode=pesanan_kode,
                kode_kupon=usage.kode_kupon,
                nilai_potongan=usage.nilai_potongan,
                created_at=usage.created_at,
            )
            for usage, buyer_nama, pesanan_kode in rows
        ],
        meta=PaginationMeta.build(page, per_page, total),
    )
