"""Order models: orders, line items, payments and status history."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.orders_service.models.enums import (
    DeliveryType,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    StatusType,
    enum_values,
)
from sqlalchemy import BigInteger, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# ORDERS
# ============================================================================


class Order(Base):
    """Customer orders.

    ``biaya_produk`` already has the coupon discount subtracted, so
    ``total = biaya_produk + biaya_pengiriman + biaya_ppn + biaya_lainnya``.
    """

    __tablename__ = "pesanan"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kode: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buyer.id"), nullable=False, index=True
    )
    delivery_type: Mapped[DeliveryType] = mapped_column(
        SAEnum(DeliveryType, values_callable=enum_values, name="delivery_type_enum"),
        nullable=False,
    )
    # Address lives in the buyer service
    alamat_buyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    payment_type: Mapped[PaymentType] = mapped_column(
        SAEnum(PaymentType, values_callable=enum_values, name="payment_type_enum"),
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, values_callable=enum_values, name="payment_status_enum"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    order_status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, values_callable=enum_values, name="order_status_enum"),
        default=OrderStatus.PENDING,
        nullable=False,
    )

    # Money
    biaya_produk: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    biaya_pengiriman: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0")
    )
    biaya_ppn: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    biaya_lainnya: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # Coupon applied at checkout
    kupon_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("kupon.id"), nullable=True
    )
    kode_kupon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    potongan_kupon: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0")
    )

    catatan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    catatan_admin: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Status timestamps, each written once
    expired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ready_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Fulfillment references
    deliveree_booking_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    forwarder_tracking_no: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("total >= 0", name="total_non_negative"),
        Index("ix_pesanan_status_created", "order_status", "created_at"),
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.nama_produk",
    )
    payments = relationship(
        "OrderPayment",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderPayment.xendit_external_id",
    )

    @property
    def requires_refund(self) -> bool:
        """Cancelled with money still captured on at least one payment."""
        return self.order_status == OrderStatus.CANCELLED and any(
            p.status in (PaymentStatus.PAID, PaymentStatus.PARTIAL)
            for p in self.payments
        )

    def __repr__(self):
        return f"<Order {self.kode}>"


class OrderItem(Base):
    """Order line items (snapshot at order time)."""

    __tablename__ = "pesanan_item"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pesanan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pesanan.id", ondelete="CASCADE"), nullable=False, index=True
    )
    produk_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("produk.id"), nullable=False
    )
    kategori_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    # Snapshot fields
    nama_produk: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    harga_satuan: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    diskon_satuan: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0")
    )
    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (CheckConstraint("qty >= 1", name="qty_positive"),)

    order = relationship("Order", back_populates="items")


# ============================================================================
# PAYMENTS
# ============================================================================


class OrderPayment(Base):
    """A payable share of an order. REGULAR orders have one, SPLIT one per buyer."""

    __tablename__ = "pesanan_pembayaran"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pesanan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pesanan.id", ondelete="CASCADE"), nullable=False, index=True
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buyer.id"), nullable=False
    )
    jumlah: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, values_callable=enum_values, name="payment_status_enum"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )

    # Gateway correlation
    xendit_invoice_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, index=True
    )
    xendit_external_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False
    )
    xendit_payment_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    xendit_payment_method: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True
    )

    expired_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (CheckConstraint("jumlah > 0", name="jumlah_positive"),)

    order = relationship("Order", back_populates="payments")

    def __repr__(self):
        return f"<OrderPayment {self.xendit_external_id} status={self.status}>"


# ============================================================================
# STATUS HISTORY
# ============================================================================


class OrderStatusHistory(Base):
    """Append-only log of order and payment status transitions."""

    __tablename__ = "pesanan_status_history"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    pesanan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pesanan.id", ondelete="CASCADE"), nullable=False
    )
    status_type: Mapped[StatusType] = mapped_column(
        SAEnum(StatusType, values_callable=enum_values, name="status_type_enum"),
        nullable=False,
    )
    # NULL for the initial entry
    status_from: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status_to: Mapped[str] = mapped_column(String(20), nullable=False)
    # NULL for system changes (gateway callbacks, sweeps)
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_pesanan_status_history_order_created", "pesanan_id", "created_at"),
    )

    def __repr__(self):
        return (
            f"<OrderStatusHistory {self.status_type} "
            f"{self.status_from}->{self.status_to}>"
        )
