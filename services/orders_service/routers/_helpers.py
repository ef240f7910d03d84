"""Shared response builders for orders service routers."""

from services.orders_service.models import Coupon, Order, OrderStatusHistory
from services.orders_service.schemas.coupon import CouponResponse
from services.orders_service.schemas.order import (
    AdminOrderResponse,
    StatusHistoryResponse,
)
from services.orders_service.services.coupon_ledger import remaining_from
from services.orders_service.services.coupon_validator import is_coupon_expired


def coupon_response(coupon: Coupon, used: int) -> CouponResponse:
    return CouponResponse(
        id=coupon.id,
        kode=coupon.kode,
        nama=coupon.nama,
        deskripsi=coupon.deskripsi,
        jenis_diskon=coupon.jenis_diskon,
        nilai_diskon=coupon.nilai_diskon,
        minimal_pembelian=coupon.minimal_pembelian,
        limit_pemakaian=coupon.limit_pemakaian,
        tanggal_kedaluarsa=coupon.tanggal_kedaluarsa,
        is_all_kategori=coupon.is_all_kategori,
        is_active=coupon.is_active,
        kategori=coupon.category_ids,
        total_usage=used,
        remaining_usage=remaining_from(coupon.limit_pemakaian, used),
        is_expired=is_coupon_expired(coupon),
        created_at=coupon.created_at,
        updated_at=coupon.updated_at,
    )


def admin_order_response(
    order: Order, history: list[OrderStatusHistory]
) -> AdminOrderResponse:
    response = AdminOrderResponse.model_validate(order)
    response.history = [StatusHistoryResponse.model_validate(h) for h in history]
    return response
