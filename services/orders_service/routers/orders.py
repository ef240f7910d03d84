"""Buyer-facing order endpoints: checkout, order list and order detail."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.models import OrderStatus, StatusType
from services.orders_service.schemas.common import Page, PaginationMeta
from services.orders_service.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderSummaryResponse,
    StatusHistoryResponse,
)
from services.orders_service.services import order_queries
from services.orders_service.services.order_builder import OrderLine, build_order
from services.orders_service.services.settlement import SplitShare
from services.orders_service.services.status_history import list_status_history
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order for the authenticated buyer."""
    order = await build_order(
        db,
        buyer_id=current_user.uuid,
        delivery_type=payload.delivery_type,
        payment_type=payload.payment_type,
        items=[OrderLine(produk_id=i.produk_id, qty=i.qty) for i in payload.items],
        biaya_pengiriman=payload.biaya_pengiriman,
        biaya_lainnya=payload.biaya_lainnya,
        alamat_buyer_id=payload.alamat_buyer_id,
        kode_kupon=payload.kode_kupon,
        catatan=payload.catatan,
        split_shares=[
            SplitShare(buyer_id=s.buyer_id, jumlah=s.jumlah)
            for s in payload.split_payments
        ],
    )
    return order


@router.get("", response_model=Page[OrderSummaryResponse])
async def list_my_orders(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    order_status: Optional[OrderStatus] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    orders, total = await order_queries.list_orders(
        db,
        page=page,
        per_page=per_page,
        buyer_id=current_user.uuid,
        order_status=order_status,
    )
    return Page[OrderSummaryResponse](
        data=[OrderSummaryResponse.model_validate(o) for o in orders],
        meta=PaginationMeta.build(page, per_page, total),
    )


@router.get("/{kode}", response_model=OrderResponse)
async def get_my_order(
    kode: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_queries.get_buyer_order(db, current_user.uuid, kode)


@router.get("/{kode}/history", response_model=list[StatusHistoryResponse])
async def get_my_order_history(
    kode: str,
    status_type: Optional[StatusType] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Status timeline of one of the buyer's orders, newest first."""
    order = await order_queries.get_buyer_order(db, current_user.uuid, kode)
    return await list_status_history(db, order.id, status_type)
