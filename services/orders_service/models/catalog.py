"""Read-only references to tables owned by the catalog and buyer services.

Only the columns this service reads are mapped. Alembic skips these tables.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

_EXTERNAL = {"extend_existing": True, "info": {"skip_autogenerate": True}}


class BuyerRef(Base):
    """Reference to the shared buyer table."""

    __tablename__ = "buyer"
    __table_args__ = _EXTERNAL

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    nama: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class ProductCategory(Base):
    __tablename__ = "kategori_produk"
    __table_args__ = _EXTERNAL

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    nama: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class Product(Base):
    __tablename__ = "produk"
    __table_args__ = _EXTERNAL

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    nama: Mapped[str] = mapped_column(String(255), nullable=False)
    # Warehouse SKU
    id_cargo: Mapped[str] = mapped_column(String(100), nullable=False)
    kategori_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kategori_produk.id"), nullable=False
    )
    harga_sebelum_diskon: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )
    persentase_diskon: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0)
    harga_sesudah_diskon: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class CategoryDiscount(Base):
    """Time-boxed discount on every product of a category."""

    __tablename__ = "diskon_kategori"
    __table_args__ = _EXTERNAL

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kategori_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kategori_produk.id"), nullable=False
    )
    persentase_diskon: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0)
    nominal_diskon: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0)
    tanggal_mulai: Mapped[date] = mapped_column(Date, nullable=False)
    tanggal_selesai: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class Ppn(Base):
    """VAT rate configuration; a single row is active at a time."""

    __tablename__ = "ppn"
    __table_args__ = _EXTERNAL

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    persentase: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
