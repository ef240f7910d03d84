"""Coupon schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models import DiscountType

# ============================================================================
# ADMIN CRUD
# ============================================================================


class CouponBase(BaseModel):
    kode: str = Field(..., min_length=3, max_length=50)
    nama: str = Field(..., max_length=255)
    deskripsi: Optional[str] = None
    jenis_diskon: DiscountType
    nilai_diskon: Decimal = Field(..., gt=0)
    minimal_pembelian: Decimal = Field(Decimal("0"), ge=0)
    limit_pemakaian: Optional[int] = Field(None, gt=0)
    tanggal_kedaluarsa: date
    is_all_kategori: bool = True
    kategori: list[uuid.UUID] = []


class CouponCreate(CouponBase):
    pass


class CouponUpdate(CouponBase):
    pass


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    kode: str
    nama: str
    deskripsi: Optional[str] = None
    jenis_diskon: DiscountType
    nilai_diskon: Decimal
    minimal_pembelian: Decimal
    limit_pemakaian: Optional[int] = None
    tanggal_kedaluarsa: date
    is_all_kategori: bool
    is_active: bool
    kategori: list[uuid.UUID] = []
    total_usage: int = 0
    remaining_usage: Optional[int] = None
    is_expired: bool = False
    created_at: datetime
    updated_at: datetime


class CouponListParams(BaseModel):
    page: int = Field(1, ge=1)
    per_page: int = Field(20, ge=1, le=100)
    search: Optional[str] = None
    jenis_diskon: Optional[DiscountType] = None
    is_active: Optional[bool] = None
    is_expired: Optional[bool] = None
    sort_by: Literal[
        "created_at", "updated_at", "tanggal_kedaluarsa", "total_usage"
    ] = "updated_at"
    order: Literal["asc", "desc"] = "desc"


class GenerateCodeRequest(BaseModel):
    prefix: str = Field("", max_length=20)
    length: int = Field(8, ge=4, le=20)


class GeneratedCodeResponse(BaseModel):
    kode: str


class CouponUsageResponse(BaseModel):
    id: uuid.UUID
    buyer_id: uuid.UUID
    buyer_nama: Optional[str] = None
    pesanan_id: uuid.UUID
    pesanan_kode: Optional[str] = None
    kode_kupon: str
    nilai_potongan: Decimal
    created_at: datetime


# ============================================================================
# PREVIEW
# ============================================================================


class CouponPreviewRequest(BaseModel):
    kode: str = Field(..., min_length=1, max_length=100)
    total: Decimal = Field(..., ge=0)
    kategori: list[uuid.UUID] = []


class CouponPreviewResponse(BaseModel):
    valid: bool
    kode: str
    potongan: Decimal = Decimal("0")
    total_setelah_potongan: Decimal
    code: Optional[str] = None  # Error code when invalid
    message: Optional[str] = None
