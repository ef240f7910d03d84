"""Order status state machine.

PENDING -> PROCESSING -> READY -> SHIPPED -> COMPLETED, with CANCELLED
reachable from every non-terminal state. Every transition stamps its
timestamp once (first write wins) and appends an ORDER history row in the
same transaction.
"""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.session import unit_of_work
from services.orders_service.errors import (
    InvalidOrderRequest,
    InvalidTransition,
    OrderNotFound,
)
from services.orders_service.models import (
    Order,
    OrderStatus,
    PaymentStatus,
    StatusType,
)
from services.orders_service.services.payment_status import sync_payment_status
from services.orders_service.services.status_history import record_status_change
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

STATUS_TIMESTAMPS: dict[OrderStatus, str] = {
    OrderStatus.PROCESSING: "processed_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


async def get_order_for_update(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Load a live order holding its row lock until the transaction ends."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id, Order.deleted_at.is_(None))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(context={"order_id": str(order_id)})
    return order


def _stamp(order: Order, attr: str, now: datetime) -> None:
    if getattr(order, attr) is None:
        setattr(order, attr, now)


async def apply_transition(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    *,
    now: datetime,
    actor_id: Optional[uuid.UUID] = None,
    note: Optional[str] = None,
) -> None:
    """Move a locked order to ``target`` inside the caller's transaction.

    Raises ``InvalidTransition`` before touching anything when the move is
    not allowed. Cancelling voids payments that are still PENDING; captured
    payments are left for an explicit refund.
    """
    current = order.order_status
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot change order status from {current.value} to {target.value}",
            context={"order": order.kode, "from": current.value, "to": target.value},
        )
    if target == OrderStatus.CANCELLED and not (note and note.strip()):
        raise InvalidOrderRequest("A reason is required to cancel an order")

    order.order_status = target
    _stamp(order, STATUS_TIMESTAMPS[target], now)
    if target == OrderStatus.CANCELLED and order.cancelled_reason is None:
        order.cancelled_reason = note.strip()

    await record_status_change(
        db,
        order_id=order.id,
        status_type=StatusType.ORDER,
        status_from=current,
        status_to=target,
        actor_id=actor_id,
        note=note,
    )

    if target == OrderStatus.CANCELLED:
        voided = 0
        for payment in order.payments:
            if payment.status == PaymentStatus.PENDING:
                payment.status = PaymentStatus.FAILED
                voided += 1
        if voided:
            await sync_payment_status(
                db,
                order,
                now=now,
                actor_id=actor_id,
                note="Pending payments voided by cancellation",
            )


async def transition_order(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    to_status: OrderStatus,
    actor_id: Optional[uuid.UUID] = None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[Order, OrderStatus]:
    """Admin status change, committed atomically with its history row.

    Returns the order and the status it had under the row lock.
    """
    now = now or utc_now()
    async with unit_of_work(db):
        order = await get_order_for_update(db, order_id)
        previous = order.order_status
        await apply_transition(
            db, order, to_status, now=now, actor_id=actor_id, note=note
        )

    logger.info(
        "Order %s status %s -> %s by %s",
        order.kode,
        previous.value,
        to_status.value,
        actor_id,
    )
    if order.requires_refund:
        logger.warning(
            "Order %s cancelled with captured payments; refund required", order.kode
        )
    return order, previous


async def on_payment_status_changed(
    db: AsyncSession,
    order: Order,
    previous: PaymentStatus,
    current: PaymentStatus,
    now: datetime,
) -> None:
    """Hook run by settlement after the aggregate payment status changes.

    Full payment stamps ``paid_at`` and moves a PENDING order to PROCESSING
    as a system transition (no actor).
    """
    if current != PaymentStatus.PAID:
        return

    _stamp(order, "paid_at", now)
    if order.order_status == OrderStatus.PENDING:
        await apply_transition(
            db,
            order,
            OrderStatus.PROCESSING,
            now=now,
            note="Payment completed",
        )
        logger.info("Order %s fully paid, moved to PROCESSING", order.kode)


async def update_order_details(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    changes: dict,
) -> Order:
    """Edit admin-owned fields (notes and fulfillment references)."""
    allowed = {"catatan_admin", "deliveree_booking_id", "forwarder_tracking_no"}
    unknown = set(changes) - allowed
    if unknown:
        raise InvalidOrderRequest(
            "Fields cannot be edited: " + ", ".join(sorted(unknown))
        )

    async with unit_of_work(db):
        order = await get_order_for_update(db, order_id)
        for field, value in changes.items():
            setattr(order, field, value)
    return order


async def soft_delete_order(
    db: AsyncSession, *, order_id: uuid.UUID, now: Optional[datetime] = None
) -> None:
    """Hide a cancelled order. Other statuses cannot be deleted."""
    async with unit_of_work(db):
        order = await get_order_for_update(db, order_id)
        if order.order_status != OrderStatus.CANCELLED:
            raise InvalidTransition(
                "Only CANCELLED orders can be deleted",
                code="order_not_deletable",
            )
        order.deleted_at = now or utc_now()
    logger.info("Soft-deleted order %s", order.kode)
