"""Order state machine: transitions, timestamps, history, cancel and refund."""

import uuid
from datetime import timedelta

import pytest
from libs.common.datetime_utils import ensure_aware, utc_now
from services.orders_service.errors import (
    InvalidOrderRequest,
    InvalidTransition,
    OrderNotFound,
)
from services.orders_service.models import (
    DeliveryType,
    Order,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    StatusType,
)
from services.orders_service.services.order_builder import OrderLine, build_order
from services.orders_service.services.order_queries import get_order
from services.orders_service.services.settlement import (
    apply_payment_status,
    refund_payment,
)
from services.orders_service.services.state_machine import (
    soft_delete_order,
    transition_order,
    update_order_details,
)
from services.orders_service.services.status_history import list_status_history
from sqlalchemy import select

ADMIN_ID = uuid.uuid4()


async def _new_order(db, buyer, catalog) -> Order:
    return await build_order(
        db,
        buyer_id=buyer.id,
        delivery_type=DeliveryType.PICKUP,
        payment_type=PaymentType.REGULAR,
        items=[OrderLine(catalog.beras.id, 1)],
    )


async def _reload(db, order_id) -> Order:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _order_path(db, order_id) -> list[tuple]:
    history = await list_status_history(db, order_id, StatusType.ORDER)
    return [(h.status_from, h.status_to) for h in reversed(history)]


# ---------------------------------------------------------------------------
# Forward path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_lifecycle_stamps_each_step(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    start = utc_now()
    steps = [
        OrderStatus.PROCESSING,
        OrderStatus.READY,
        OrderStatus.SHIPPED,
        OrderStatus.COMPLETED,
    ]

    previous = OrderStatus.PENDING
    for offset, target in enumerate(steps, start=1):
        order, before = await transition_order(
            db_session,
            order_id=order.id,
            to_status=target,
            actor_id=ADMIN_ID,
            now=start + timedelta(minutes=offset),
        )
        assert order.order_status == target
        assert before == previous
        previous = target

    order = await _reload(db_session, order.id)
    assert ensure_aware(order.processed_at) == start + timedelta(minutes=1)
    assert ensure_aware(order.ready_at) == start + timedelta(minutes=2)
    assert ensure_aware(order.shipped_at) == start + timedelta(minutes=3)
    assert ensure_aware(order.completed_at) == start + timedelta(minutes=4)
    assert order.cancelled_at is None

    assert await _order_path(db_session, order.id) == [
        (None, "PENDING"),
        ("PENDING", "PROCESSING"),
        ("PROCESSING", "READY"),
        ("READY", "SHIPPED"),
        ("SHIPPED", "COMPLETED"),
    ]
    history = await list_status_history(db_session, order.id, StatusType.ORDER)
    assert history[0].changed_by == ADMIN_ID


@pytest.mark.asyncio
@pytest.mark.integration
async def test_skipping_a_step_changes_nothing(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    order_id = order.id

    with pytest.raises(InvalidTransition) as exc_info:
        await transition_order(
            db_session,
            order_id=order_id,
            to_status=OrderStatus.SHIPPED,
            actor_id=ADMIN_ID,
        )

    assert exc_info.value.code == "invalid_transition"
    order = await _reload(db_session, order_id)
    assert order.order_status == OrderStatus.PENDING
    assert order.shipped_at is None
    assert await _order_path(db_session, order_id) == [(None, "PENDING")]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_completed_order_cannot_be_cancelled(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    order_id = order.id
    for target in (
        OrderStatus.PROCESSING,
        OrderStatus.READY,
        OrderStatus.SHIPPED,
        OrderStatus.COMPLETED,
    ):
        await transition_order(db_session, order_id=order_id, to_status=target)

    with pytest.raises(InvalidTransition):
        await transition_order(
            db_session,
            order_id=order_id,
            to_status=OrderStatus.CANCELLED,
            note="Terlambat",
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_order(db_session):
    with pytest.raises(OrderNotFound):
        await transition_order(
            db_session, order_id=uuid.uuid4(), to_status=OrderStatus.PROCESSING
        )


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_requires_reason(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    order_id = order.id

    with pytest.raises(InvalidOrderRequest):
        await transition_order(
            db_session, order_id=order_id, to_status=OrderStatus.CANCELLED, note="  "
        )

    order = await _reload(db_session, order_id)
    assert order.order_status == OrderStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_unpaid_order_voids_payments(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)

    order, _ = await transition_order(
        db_session,
        order_id=order.id,
        to_status=OrderStatus.CANCELLED,
        actor_id=ADMIN_ID,
        note="Stok habis",
    )

    assert order.order_status == OrderStatus.CANCELLED
    assert order.cancelled_reason == "Stok habis"
    assert order.cancelled_at is not None
    assert [p.status for p in order.payments] == [PaymentStatus.FAILED]
    assert order.payment_status == PaymentStatus.FAILED
    assert not order.requires_refund

    payment_history = await list_status_history(
        db_session, order.id, StatusType.PAYMENT
    )
    assert (payment_history[0].status_from, payment_history[0].status_to) == (
        "PENDING",
        "FAILED",
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_paid_order_then_refund(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    payment_id = order.payments[0].id
    await apply_payment_status(
        db_session, payment_id=payment_id, status=PaymentStatus.PAID
    )

    order, _ = await transition_order(
        db_session,
        order_id=order.id,
        to_status=OrderStatus.CANCELLED,
        actor_id=ADMIN_ID,
        note="Dibatalkan pembeli",
    )
    assert order.payment_status == PaymentStatus.PAID
    assert order.requires_refund

    payment = await refund_payment(
        db_session,
        order_id=order.id,
        payment_id=payment_id,
        actor_id=ADMIN_ID,
        note="Transfer balik",
    )

    assert payment.status == PaymentStatus.REFUNDED
    order = await _reload(db_session, order.id)
    assert order.payment_status == PaymentStatus.REFUNDED
    assert not order.requires_refund

    history = await list_status_history(db_session, order.id, StatusType.PAYMENT)
    latest = [(h.status_from, h.status_to, h.changed_by) for h in history[:2]]
    assert ("PAID", "REFUNDED", ADMIN_ID) in latest


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refund_only_after_cancellation(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    order_id, payment_id = order.id, order.payments[0].id
    await apply_payment_status(
        db_session, payment_id=payment_id, status=PaymentStatus.PAID
    )

    with pytest.raises(InvalidTransition) as exc_info:
        await refund_payment(
            db_session, order_id=order_id, payment_id=payment_id, actor_id=ADMIN_ID
        )

    assert exc_info.value.code == "refund_not_allowed"


# ---------------------------------------------------------------------------
# Payment driven transition
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_payment_moves_order_to_processing(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    now = utc_now()

    await apply_payment_status(
        db_session,
        payment_id=order.payments[0].id,
        status=PaymentStatus.PAID,
        now=now,
    )

    order = await _reload(db_session, order.id)
    assert order.order_status == OrderStatus.PROCESSING
    assert ensure_aware(order.paid_at) == now
    assert ensure_aware(order.processed_at) == now

    history = await list_status_history(db_session, order.id, StatusType.ORDER)
    assert history[0].status_to == "PROCESSING"
    assert history[0].changed_by is None
    assert history[0].note == "Payment completed"


# ---------------------------------------------------------------------------
# Admin edits and soft delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_order_details(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)

    order = await update_order_details(
        db_session,
        order_id=order.id,
        changes={"catatan_admin": "Kirim pagi", "forwarder_tracking_no": "JNE123"},
    )

    assert order.catatan_admin == "Kirim pagi"
    assert order.forwarder_tracking_no == "JNE123"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_order_details_rejects_other_fields(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)

    with pytest.raises(InvalidOrderRequest):
        await update_order_details(
            db_session, order_id=order.id, changes={"total": 1}
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_only_cancelled_orders_can_be_deleted(db_session, buyer, catalog):
    order = await _new_order(db_session, buyer, catalog)
    order_id = order.id

    with pytest.raises(InvalidTransition) as exc_info:
        await soft_delete_order(db_session, order_id=order_id)
    assert exc_info.value.code == "order_not_deletable"

    await transition_order(
        db_session,
        order_id=order_id,
        to_status=OrderStatus.CANCELLED,
        note="Duplikat",
    )
    await soft_delete_order(db_session, order_id=order_id)

    with pytest.raises(OrderNotFound):
        await get_order(db_session, order_id)
