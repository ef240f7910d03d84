"""Coupon models: coupons, their category scope and the usage ledger."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.orders_service.models.enums import DiscountType, enum_values
from sqlalchemy import Boolean, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Coupon(Base):
    """Discount coupons redeemable at checkout."""

    __tablename__ = "kupon"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Wide enough for the "_deleted_<id>" suffix applied on soft delete
    kode: Mapped[str] = mapped_column(String(100), nullable=False)
    nama: Mapped[str] = mapped_column(String(255), nullable=False)
    deskripsi: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    jenis_diskon: Mapped[DiscountType] = mapped_column(
        SAEnum(
            DiscountType,
            values_callable=enum_values,
            name="kupon_jenis_diskon_enum",
        ),
        nullable=False,
    )
    nilai_diskon: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    minimal_pembelian: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0")
    )
    # NULL means unlimited
    limit_pemakaian: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Valid through the end of this day in local time
    tanggal_kedaluarsa: Mapped[date] = mapped_column(Date, nullable=False)

    is_all_kategori: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    category_links = relationship(
        "CouponCategory",
        back_populates="coupon",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def category_ids(self) -> list[uuid.UUID]:
        return [link.kategori_id for link in self.category_links]

    def __repr__(self):
        return f"<Coupon {self.kode}>"


# Codes are unique ignoring case, among coupons that are not soft-deleted
Index(
    "uq_kupon_kode_lower_active",
    func.lower(Coupon.kode),
    unique=True,
    postgresql_where=Coupon.deleted_at.is_(None),
    sqlite_where=Coupon.deleted_at.is_(None),
)


class CouponCategory(Base):
    """Categories a coupon is restricted to when not valid for all."""

    __tablename__ = "kupon_kategori"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kupon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kupon.id", ondelete="CASCADE"), nullable=False
    )
    kategori_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kategori_produk.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (UniqueConstraint("kupon_id", "kategori_id"),)

    coupon = relationship("Coupon", back_populates="category_links")


class CouponUsage(Base):
    """One row per redemption. Usage counts are always counted from here."""

    __tablename__ = "kupon_usage"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kupon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kupon.id"), nullable=False, index=True
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buyer.id"), nullable=False
    )
    pesanan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pesanan.id"), nullable=False
    )
    # Code as typed at checkout, kept even if the coupon is renamed later
    kode_kupon: Mapped[str] = mapped_column(String(100), nullable=False)
    nilai_potongan: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (UniqueConstraint("kupon_id", "pesanan_id"),)

    def __repr__(self):
        return f"<CouponUsage {self.kode_kupon} order={self.pesanan_id}>"
