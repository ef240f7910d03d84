"""Scheduled maintenance tasks."""

from datetime import timedelta

import pytest
from libs.common.datetime_utils import utc_now
from services.orders_service.models import (
    DeliveryType,
    Order,
    PaymentStatus,
    PaymentType,
)
from services.orders_service.services.order_builder import OrderLine, build_order
from services.orders_service.tasks import expire_overdue_order_payments
from sqlalchemy import select


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expiry_task_uses_its_own_session(
    db_session, session_factory, buyer, catalog
):
    order = await build_order(
        db_session,
        buyer_id=buyer.id,
        delivery_type=DeliveryType.PICKUP,
        payment_type=PaymentType.REGULAR,
        items=[OrderLine(catalog.beras.id, 1)],
        now=utc_now() - timedelta(days=3),
    )
    order_id = order.id

    assert await expire_overdue_order_payments(session_factory) == 1

    reloaded = (
        await db_session.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert reloaded.payment_status == PaymentStatus.EXPIRED


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expiry_task_with_nothing_to_do(session_factory):
    assert await expire_overdue_order_payments(session_factory) == 0
