"""Order, payment and status history schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models import (
    DeliveryType,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    StatusType,
)

# ============================================================================
# CHECKOUT
# ============================================================================


class OrderItemCreate(BaseModel):
    produk_id: uuid.UUID
    qty: int = Field(..., ge=1)


class SplitPaymentCreate(BaseModel):
    buyer_id: uuid.UUID
    jumlah: Decimal = Field(..., gt=0)


class OrderCreate(BaseModel):
    delivery_type: DeliveryType
    alamat_buyer_id: Optional[uuid.UUID] = None
    payment_type: PaymentType = PaymentType.REGULAR
    items: list[OrderItemCreate] = Field(..., min_length=1)
    biaya_pengiriman: Decimal = Field(Decimal("0"), ge=0)
    biaya_lainnya: Decimal = Field(Decimal("0"), ge=0)
    kode_kupon: Optional[str] = Field(None, max_length=100)
    catatan: Optional[str] = None
    split_payments: list[SplitPaymentCreate] = []


# ============================================================================
# RESPONSES
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    produk_id: uuid.UUID
    nama_produk: str
    sku: str
    qty: int
    harga_satuan: Decimal
    diskon_satuan: Decimal
    subtotal: Decimal


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    buyer_id: uuid.UUID
    jumlah: Decimal
    status: PaymentStatus
    xendit_external_id: str
    xendit_invoice_id: Optional[str] = None
    xendit_payment_url: Optional[str] = None
    xendit_payment_method: Optional[str] = None
    expired_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status_type: StatusType
    status_from: Optional[str] = None
    status_to: str
    changed_by: Optional[uuid.UUID] = None
    note: Optional[str] = None
    created_at: datetime


class OrderSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    kode: str
    buyer_id: uuid.UUID
    delivery_type: DeliveryType
    payment_type: PaymentType
    order_status: OrderStatus
    payment_status: PaymentStatus
    total: Decimal
    expired_at: datetime
    created_at: datetime


class OrderResponse(OrderSummaryResponse):
    alamat_buyer_id: Optional[uuid.UUID] = None
    biaya_produk: Decimal
    biaya_pengiriman: Decimal
    biaya_ppn: Decimal
    biaya_lainnya: Decimal
    kode_kupon: Optional[str] = None
    potongan_kupon: Decimal
    catatan: Optional[str] = None
    paid_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_reason: Optional[str] = None
    deliveree_booking_id: Optional[str] = None
    forwarder_tracking_no: Optional[str] = None
    requires_refund: bool = False
    items: list[OrderItemResponse] = []
    payments: list[PaymentResponse] = []


class AdminOrderResponse(OrderResponse):
    catatan_admin: Optional[str] = None
    history: list[StatusHistoryResponse] = []


# ============================================================================
# ADMIN ACTIONS
# ============================================================================


class OrderStatusUpdate(BaseModel):
    order_status: OrderStatus
    note: Optional[str] = None


class OrderStatusUpdateResponse(BaseModel):
    id: uuid.UUID
    kode: str
    order_status: OrderStatus
    previous_status: OrderStatus
    payment_status: PaymentStatus
    requires_refund: bool
    updated_by: uuid.UUID


class OrderDetailsUpdate(BaseModel):
    catatan_admin: Optional[str] = None
    deliveree_booking_id: Optional[str] = Field(None, max_length=100)
    forwarder_tracking_no: Optional[str] = Field(None, max_length=100)


class RefundRequest(BaseModel):
    note: Optional[str] = None


class OrderStatisticsResponse(BaseModel):
    tanggal_dari: date
    tanggal_sampai: date
    total_pesanan: int
    total_revenue: Decimal
    per_status: dict[str, int]
    per_delivery_type: dict[str, int]
    per_payment_status: dict[str, int]
