"""Payment status rules shared by settlement and the order state machine.

The transition table and the aggregate reducer are pure. ``sync_payment_status``
applies the reducer to a locked order inside the caller's transaction.
"""

import uuid
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional

from services.orders_service.models import (
    Order,
    OrderStatus,
    PaymentStatus,
    StatusType,
)
from services.orders_service.services.status_history import record_status_change
from sqlalchemy.ext.asyncio import AsyncSession

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {
            PaymentStatus.PARTIAL,
            PaymentStatus.PAID,
            PaymentStatus.EXPIRED,
            PaymentStatus.FAILED,
        }
    ),
    PaymentStatus.PARTIAL: frozenset(
        {PaymentStatus.PAID, PaymentStatus.EXPIRED, PaymentStatus.FAILED}
    ),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.EXPIRED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

# Statuses holding money that a refund can return
REFUNDABLE = frozenset({PaymentStatus.PAID, PaymentStatus.PARTIAL})


def can_transition_payment(
    current: PaymentStatus, target: PaymentStatus, order_status: OrderStatus
) -> bool:
    """Whether a single payment may move from ``current`` to ``target``.

    Refunds are only reachable from captured payments of a cancelled order.
    """
    if target == PaymentStatus.REFUNDED:
        return current in REFUNDABLE and order_status == OrderStatus.CANCELLED
    return target in PAYMENT_TRANSITIONS[current]


def aggregate_payment_status(statuses: Iterable[PaymentStatus]) -> PaymentStatus:
    """Derive the order-level payment status from its payments.

    - no payments, or all PENDING -> PENDING
    - all PAID -> PAID
    - any PAID or PARTIAL -> PARTIAL
    - any REFUNDED -> REFUNDED
    - any FAILED -> FAILED
    - otherwise (some EXPIRED) -> EXPIRED
    """
    statuses = list(statuses)
    if not statuses:
        return PaymentStatus.PENDING

    present = set(statuses)
    if present == {PaymentStatus.PAID}:
        return PaymentStatus.PAID
    if present & REFUNDABLE:
        return PaymentStatus.PARTIAL
    if PaymentStatus.REFUNDED in present:
        return PaymentStatus.REFUNDED
    if present == {PaymentStatus.PENDING}:
        return PaymentStatus.PENDING
    if PaymentStatus.FAILED in present:
        return PaymentStatus.FAILED
    return PaymentStatus.EXPIRED


# ---------------------------------------------------------------------------
# Aggregate sync (runs inside the caller's transaction)
# ---------------------------------------------------------------------------

PaymentStatusHook = Callable[
    [AsyncSession, Order, PaymentStatus, PaymentStatus, datetime], Awaitable[None]
]


async def sync_payment_status(
    db: AsyncSession,
    order: Order,
    *,
    now: datetime,
    actor_id: Optional[uuid.UUID] = None,
    note: Optional[str] = None,
    on_change: Optional[PaymentStatusHook] = None,
) -> bool:
    """Recompute ``order.payment_status`` from its payments.

    The caller must hold the order row lock. A PAYMENT history row is written
    only when the aggregate actually changes, then ``on_change`` runs with the
    previous and new aggregate. Returns whether the aggregate changed.
    """
    previous = order.payment_status
    current = aggregate_payment_status(p.status for p in order.payments)
    if current == previous:
        return False

    order.payment_status = current
    await record_status_change(
        db,
        order_id=order.id,
        status_type=StatusType.PAYMENT,
        status_from=previous,
        status_to=current,
        actor_id=actor_id,
        note=note,
    )
    if on_change is not None:
        await on_change(db, order, previous, current, now)
    return True
