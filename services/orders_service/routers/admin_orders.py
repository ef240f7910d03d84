"""Admin order management: listing, detail, status transitions, refunds."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.models import (
    DeliveryType,
    OrderStatus,
    PaymentStatus,
    StatusType,
)
from services.orders_service.routers._helpers import admin_order_response
from services.orders_service.schemas.common import Page, PaginationMeta
from services.orders_service.schemas.order import (
    AdminOrderResponse,
    OrderDetailsUpdate,
    OrderStatisticsResponse,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
    OrderSummaryResponse,
    PaymentResponse,
    RefundRequest,
    StatusHistoryResponse,
)
from services.orders_service.services import order_queries, state_machine
from services.orders_service.services.settlement import refund_payment
from services.orders_service.services.status_history import list_status_history
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["admin-orders"])
logger = get_logger(__name__)


@router.get("", response_model=Page[OrderSummaryResponse])
async def admin_list_orders(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    cari: Optional[str] = Query(None, description="Search by order code"),
    order_status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    delivery_type: Optional[DeliveryType] = None,
    buyer_id: Optional[uuid.UUID] = None,
    tanggal_dari: Optional[date] = None,
    tanggal_sampai: Optional[date] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    orders, total = await order_queries.list_orders(
        db,
        page=page,
        per_page=per_page,
        buyer_id=buyer_id,
        cari=cari,
        order_status=order_status,
        payment_status=payment_status,
        delivery_type=delivery_type,
        tanggal_dari=tanggal_dari,
        tanggal_sampai=tanggal_sampai,
    )
    return Page[OrderSummaryResponse](
        data=[OrderSummaryResponse.model_validate(o) for o in orders],
        meta=PaginationMeta.build(page, per_page, total),
    )


@router.get("/statistics", response_model=OrderStatisticsResponse)
async def admin_order_statistics(
    tanggal_dari: Optional[date] = None,
    tanggal_sampai: Optional[date] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Order counts per status and revenue of paid orders (default: 30 days)."""
    return await order_queries.order_statistics(
        db, tanggal_dari=tanggal_dari, tanggal_sampai=tanggal_sampai
    )


@router.get("/{order_id}", response_model=AdminOrderResponse)
async def admin_get_order(
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_queries.get_order(db, order_id)
    history = await list_status_history(db, order.id)
    return admin_order_response(order, history)


@router.get("/{order_id}/history", response_model=list[StatusHistoryResponse])
async def admin_get_order_history(
    order_id: uuid.UUID,
    status_type: Optional[StatusType] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_queries.get_order(db, order_id)
    return await list_status_history(db, order.id, status_type)


@router.patch("/{order_id}/status", response_model=OrderStatusUpdateResponse)
async def admin_update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Move an order along PENDING -> PROCESSING -> READY -> SHIPPED -> COMPLETED,
    or cancel it (a note is required as the reason).
    """
    order, previous_status = await state_machine.transition_order(
        db,
        order_id=order_id,
        to_status=payload.order_status,
        actor_id=admin.uuid,
        note=payload.note,
    )
    return OrderStatusUpdateResponse(
        id=order.id,
        kode=order.kode,
        order_status=order.order_status,
        previous_status=previous_status,
        payment_status=order.payment_status,
        requires_refund=order.requires_refund,
        updated_by=admin.uuid,
    )


@router.patch("/{order_id}", response_model=AdminOrderResponse)
async def admin_update_order_details(
    order_id: uuid.UUID,
    payload: OrderDetailsUpdate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit admin notes and fulfillment references."""
    order = await state_machine.update_order_details(
        db, order_id=order_id, changes=payload.model_dump(exclude_unset=True)
    )
    history = await list_status_history(db, order.id)
    return admin_order_response(order, history)


@router.post(
    "/{order_id}/payments/{payment_id}/refund", response_model=PaymentResponse
)
async def admin_refund_payment(
    order_id: uuid.UUID,
    payment_id: uuid.UUID,
    payload: RefundRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Record the refund of a captured payment on a cancelled order."""
    return await refund_payment(
        db,
        order_id=order_id,
        payment_id=payment_id,
        actor_id=admin.uuid,
        note=payload.note,
    )


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_order(
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Soft-delete a cancelled order."""
    await state_machine.soft_delete_order(db, order_id=order_id)
