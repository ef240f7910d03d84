"""Payment settlement: payment records, gateway callbacks, refunds and expiry.

Every status change locks the owning order row first, then recomputes the
aggregate ``payment_status`` in the same transaction, so two callbacks for the
two halves of a split order can never both read a stale aggregate.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from libs.common.datetime_utils import utc_now
from libs.common.errors import DomainError
from libs.common.logging import get_logger
from libs.common.money import ZERO, money_sum, to_money
from libs.db.session import unit_of_work
from services.orders_service.errors import (
    InvalidOrderRequest,
    InvalidTransition,
    PaymentNotFound,
)
from services.orders_service.models import (
    Order,
    OrderPayment,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    StatusType,
)
from services.orders_service.services.payment_status import (
    can_transition_payment,
    sync_payment_status,
)
from services.orders_service.services.state_machine import (
    get_order_for_update,
    on_payment_status_changed,
)
from services.orders_service.services.status_history import record_status_change
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Xendit invoice statuses that mean money was captured
GATEWAY_PAID_STATUSES = {"PAID", "SETTLED"}
GATEWAY_EXPIRED_STATUSES = {"EXPIRED"}
GATEWAY_FAILED_STATUSES = {"FAILED"}


@dataclass(frozen=True)
class SplitShare:
    buyer_id: uuid.UUID
    jumlah: Decimal


# ---------------------------------------------------------------------------
# Payment creation
# ---------------------------------------------------------------------------


def build_payments(
    order: Order,
    *,
    split_shares: Optional[Sequence[SplitShare]] = None,
) -> list[OrderPayment]:
    """Create the payment records of a new order (not yet flushed).

    REGULAR orders get one payment for the whole total owed by the buyer.
    SPLIT orders get one payment per buyer; shares must be positive, the
    buyers distinct and the shares must not add up to more than the total.
    """
    total = to_money(order.total)

    if order.payment_type == PaymentType.REGULAR:
        if split_shares:
            raise InvalidOrderRequest("Split shares are only accepted for SPLIT orders")
        shares = [SplitShare(buyer_id=order.buyer_id, jumlah=total)]
    else:
        shares = list(split_shares or [])
        if len(shares) < 2:
            raise InvalidOrderRequest("A SPLIT order needs at least two payments")
        buyer_ids = [share.buyer_id for share in shares]
        if len(set(buyer_ids)) != len(buyer_ids):
            raise InvalidOrderRequest("Each buyer may appear only once in a split")
        if any(to_money(share.jumlah) <= ZERO for share in shares):
            raise InvalidOrderRequest("Split payment amounts must be positive")
        if money_sum(share.jumlah for share in shares) > total:
            raise InvalidOrderRequest("Split payments exceed the order total")

    payments = []
    for index, share in enumerate(shares, start=1):
        payments.append(
            OrderPayment(
                buyer_id=share.buyer_id,
                jumlah=to_money(share.jumlah),
                status=PaymentStatus.PENDING,
                xendit_external_id=f"{order.kode}-{index}",
                expired_at=order.expired_at,
            )
        )
    order.payments = payments
    return payments


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


async def _order_id_for_payment(
    db: AsyncSession,
    *,
    payment_id: Optional[uuid.UUID] = None,
    external_id: Optional[str] = None,
) -> tuple[uuid.UUID, uuid.UUID]:
    query = select(OrderPayment.id, OrderPayment.pesanan_id)
    if payment_id is not None:
        query = query.where(OrderPayment.id == payment_id)
    else:
        query = query.where(OrderPayment.xendit_external_id == external_id)
    row = (await db.execute(query)).first()
    if row is None:
        raise PaymentNotFound(
            context={"payment_id": str(payment_id), "external_id": external_id}
        )
    return row[0], row[1]


def _payment_of(order: Order, payment_id: uuid.UUID) -> OrderPayment:
    for payment in order.payments:
        if payment.id == payment_id:
            return payment
    raise PaymentNotFound(context={"payment_id": str(payment_id)})


async def apply_payment_status(
    db: AsyncSession,
    *,
    payment_id: Optional[uuid.UUID] = None,
    external_id: Optional[str] = None,
    status: PaymentStatus,
    actor_id: Optional[uuid.UUID] = None,
    note: Optional[str] = None,
    gateway_fields: Optional[dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> tuple[OrderPayment, bool]:
    """Set one payment's status and settle the order aggregate.

    1. Resolve the payment and lock its order row
    2. Same status again is a no-op (gateway retries)
    3. Validate the per-payment transition
    4. Recompute the aggregate, record history, run the order hook
    5. Commit atomically

    Returns ``(payment, changed)``. REFUNDED is not accepted here; use
    ``refund_payment``.
    """
    now = now or utc_now()
    if status == PaymentStatus.REFUNDED:
        raise InvalidTransition("Refunds go through the refund action")

    async with unit_of_work(db):
        payment_id, order_id = await _order_id_for_payment(
            db, payment_id=payment_id, external_id=external_id
        )
        order = await get_order_for_update(db, order_id)
        payment = _payment_of(order, payment_id)

        if payment.status == status:
            logger.info(
                "Payment %s already %s, nothing to do",
                payment.xendit_external_id,
                status.value,
            )
            return payment, False

        if not can_transition_payment(payment.status, status, order.order_status):
            raise InvalidTransition(
                f"Cannot change payment status from {payment.status.value} "
                f"to {status.value}",
                context={"payment": payment.xendit_external_id},
            )

        previous = payment.status
        payment.status = status
        if status == PaymentStatus.PAID and payment.paid_at is None:
            payment.paid_at = now
        for field, value in (gateway_fields or {}).items():
            if value is not None:
                setattr(payment, field, value)

        await sync_payment_status(
            db,
            order,
            now=now,
            actor_id=actor_id,
            note=note,
            on_change=on_payment_status_changed,
        )

    logger.info(
        "Payment %s %s -> %s (order %s payment_status=%s)",
        payment.xendit_external_id,
        previous.value,
        status.value,
        order.kode,
        order.payment_status.value,
    )
    return payment, True


async def refund_payment(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    payment_id: uuid.UUID,
    actor_id: Optional[uuid.UUID],
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OrderPayment:
    """Mark a captured payment of a cancelled order as refunded.

    Writes its own PAYMENT history entry for the refunded payment, then
    settles the aggregate (which writes another entry if it changes).
    """
    now = now or utc_now()
    async with unit_of_work(db):
        order = await get_order_for_update(db, order_id)
        payment = _payment_of(order, payment_id)

        if not can_transition_payment(
            payment.status, PaymentStatus.REFUNDED, order.order_status
        ):
            raise InvalidTransition(
                "Only PAID or PARTIAL payments of a CANCELLED order can be refunded",
                code="refund_not_allowed",
            )

        previous = payment.status
        payment.status = PaymentStatus.REFUNDED
        await record_status_change(
            db,
            order_id=order.id,
            status_type=StatusType.PAYMENT,
            status_from=previous,
            status_to=PaymentStatus.REFUNDED,
            actor_id=actor_id,
            note=note or f"Refund of payment {payment.xendit_external_id}",
        )
        await sync_payment_status(db, order, now=now, actor_id=actor_id, note=note)

    logger.info(
        "Refunded payment %s of order %s (%s)",
        payment.xendit_external_id,
        order.kode,
        payment.jumlah,
    )
    return payment


# ---------------------------------------------------------------------------
# Gateway callbacks
# ---------------------------------------------------------------------------


def map_invoice_status(payload: dict[str, Any]) -> Optional[PaymentStatus]:
    """Translate a Xendit invoice callback into a payment status.

    A paid amount below the invoiced amount is a partial payment. Unknown
    statuses and non-numeric amounts map to None.
    """
    gateway_status = str(payload.get("status") or "").upper()
    if gateway_status in GATEWAY_PAID_STATUSES:
        paid_amount = payload.get("paid_amount")
        amount = payload.get("amount")
        if paid_amount is not None and amount is not None:
            try:
                partial = to_money(paid_amount) < to_money(amount)
            except InvalidOperation:
                logger.warning(
                    "Invoice callback %s has a malformed amount: paid=%r amount=%r",
                    payload.get("external_id"),
                    paid_amount,
                    amount,
                )
                return None
            if partial:
                return PaymentStatus.PARTIAL
        return PaymentStatus.PAID
    if gateway_status in GATEWAY_EXPIRED_STATUSES:
        return PaymentStatus.EXPIRED
    if gateway_status in GATEWAY_FAILED_STATUSES:
        return PaymentStatus.FAILED
    return None


async def handle_invoice_callback(
    db: AsyncSession, payload: dict[str, Any]
) -> dict[str, Any]:
    """Apply an invoice callback. Never raises for domain problems.

    Unknown correlation ids and illegal transitions are logged for manual
    reconciliation and acknowledged, so the gateway stops retrying.
    """
    external_id = payload.get("external_id")
    status = map_invoice_status(payload)
    if not external_id or status is None:
        logger.warning(
            "Ignoring invoice callback external_id=%s status=%s",
            external_id,
            payload.get("status"),
        )
        return {"received": True, "processed": False}

    gateway_fields = {
        "xendit_invoice_id": payload.get("id"),
        "xendit_payment_method": payload.get("payment_method"),
    }
    try:
        _, changed = await apply_payment_status(
            db,
            external_id=external_id,
            status=status,
            note=f"Xendit callback {payload.get('status')}",
            gateway_fields=gateway_fields,
        )
    except DomainError as exc:
        logger.warning(
            "Invoice callback for %s not applied: %s (%s)",
            external_id,
            exc.message,
            exc.code,
        )
        return {"received": True, "processed": False}

    return {"received": True, "processed": changed}


# ---------------------------------------------------------------------------
# Expiry sweep
# ---------------------------------------------------------------------------


async def expire_overdue_payments(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
    batch_size: int = 200,
) -> int:
    """Expire PENDING payments of orders past their payment deadline.

    Each order is settled in its own transaction. The order itself stays in
    its current status; cancelling is left to an admin. Returns the number
    of orders touched.
    """
    now = now or utc_now()
    result = await db.execute(
        select(Order.id)
        .where(
            Order.deleted_at.is_(None),
            Order.order_status == OrderStatus.PENDING,
            Order.expired_at < now,
            Order.payments.any(OrderPayment.status == PaymentStatus.PENDING),
        )
        .order_by(Order.expired_at)
        .limit(batch_size)
    )
    order_ids = list(result.scalars().all())
    # Release the read transaction before taking per-order locks
    await db.commit()

    expired_orders = 0
    for order_id in order_ids:
        async with unit_of_work(db):
            order = await get_order_for_update(db, order_id)
            if order.order_status != OrderStatus.PENDING:
                continue
            expired = 0
            for payment in order.payments:
                if payment.status == PaymentStatus.PENDING:
                    payment.status = PaymentStatus.EXPIRED
                    expired += 1
            if not expired:
                continue
            await sync_payment_status(
                db, order, now=now, note="Payment deadline passed"
            )
        expired_orders += 1
        logger.info("Expired %d pending payment(s) of order %s", expired, order.kode)

    return expired_orders
