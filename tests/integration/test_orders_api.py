"""HTTP tests for buyer order endpoints, admin order endpoints and webhooks."""

import uuid
from decimal import Decimal

import pytest
from jose import jwt
from libs.common.config import get_settings
from services.orders_service.models import (
    DeliveryType,
    OrderStatus,
    PaymentStatus,
    PaymentType,
)
from services.orders_service.services.order_builder import OrderLine, build_order
from services.orders_service.services.settlement import apply_payment_status
from tests.factories import BuyerFactory, CouponFactory


async def _seed_order(db, buyer_id, product_id, qty=1):
    return await build_order(
        db,
        buyer_id=buyer_id,
        delivery_type=DeliveryType.PICKUP,
        payment_type=PaymentType.REGULAR,
        items=[OrderLine(product_id, qty)],
    )


def _callback_headers(token=None):
    return {"x-callback-token": token or get_settings().XENDIT_CALLBACK_TOKEN}


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order(buyer_client, buyer, catalog, db_session):
    """POST /orders — creates the order with items and one payment."""
    db_session.add(CouponFactory.create(kode="SAVE10", nilai_diskon=Decimal("10")))
    await db_session.commit()

    response = await buyer_client.post(
        "/orders",
        json={
            "delivery_type": "PICKUP",
            "items": [{"produk_id": str(catalog.beras.id), "qty": 2}],
            "kode_kupon": "save10",
            "catatan": "Ambil sore",
        },
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["order_status"] == "PENDING"
    assert data["payment_status"] == "PENDING"
    assert Decimal(data["potongan_kupon"]) == Decimal("20000")
    assert Decimal(data["total"]) == Decimal("180000")
    assert data["kode_kupon"] == "SAVE10"
    assert data["buyer_id"] == str(buyer.id)
    assert len(data["items"]) == 1
    assert data["items"][0]["qty"] == 2
    assert len(data["payments"]) == 1
    assert data["payments"][0]["xendit_external_id"] == f"{data['kode']}-1"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_split_order(buyer_client, buyer, catalog, db_session):
    partner = BuyerFactory.create()
    db_session.add(partner)
    await db_session.commit()

    response = await buyer_client.post(
        "/orders",
        json={
            "delivery_type": "PICKUP",
            "payment_type": "SPLIT",
            "items": [{"produk_id": str(catalog.beras.id), "qty": 2}],
            "split_payments": [
                {"buyer_id": str(buyer.id), "jumlah": "150000"},
                {"buyer_id": str(partner.id), "jumlah": "50000"},
            ],
        },
    )

    assert response.status_code == 201, response.text
    payments = response.json()["payments"]
    assert len(payments) == 2
    assert {p["buyer_id"] for p in payments} == {str(buyer.id), str(partner.id)}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_coupon_error_has_stable_code(
    buyer_client, catalog, db_session
):
    db_session.add(CouponFactory.create(kode="OFF", is_active=False))
    await db_session.commit()

    response = await buyer_client.post(
        "/orders",
        json={
            "delivery_type": "PICKUP",
            "items": [{"produk_id": str(catalog.beras.id), "qty": 1}],
            "kode_kupon": "OFF",
        },
    )

    assert response.status_code == 422
    assert response.json()["code"] == "coupon_inactive"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_unknown_product(buyer_client, catalog):
    response = await buyer_client.post(
        "/orders",
        json={
            "delivery_type": "PICKUP",
            "items": [{"produk_id": str(uuid.uuid4()), "qty": 1}],
        },
    )

    assert response.status_code == 404
    assert response.json()["code"] == "product_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_requires_address_for_delivery(buyer_client, catalog):
    response = await buyer_client.post(
        "/orders",
        json={
            "delivery_type": "DELIVEREE",
            "items": [{"produk_id": str(catalog.beras.id), "qty": 1}],
        },
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_order"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_schema_validation(buyer_client, catalog):
    response = await buyer_client.post(
        "/orders", json={"delivery_type": "PICKUP", "items": []}
    )

    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_token_is_rejected(client):
    response = await client.get(
        "/orders", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signed_token_is_accepted(client, buyer):
    token = jwt.encode(
        {"sub": str(buyer.id), "role": "authenticated"},
        get_settings().JWT_SECRET,
        algorithm="HS256",
    )

    response = await client.get(
        "/orders", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 200, response.text
    assert response.json()["meta"]["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_cannot_use_admin_routes(buyer_client):
    response = await buyer_client.get("/admin/orders")

    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Buyer views
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_sees_only_own_orders(buyer_client, buyer, catalog, db_session):
    other = BuyerFactory.create()
    db_session.add(other)
    await db_session.commit()
    mine = await _seed_order(db_session, buyer.id, catalog.beras.id)
    theirs = await _seed_order(db_session, other.id, catalog.teh.id)

    response = await buyer_client.get("/orders")
    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["total"] == 1
    assert [o["kode"] for o in body["data"]] == [mine.kode]

    response = await buyer_client.get(f"/orders/{theirs.kode}")
    assert response.status_code == 404
    assert response.json()["code"] == "order_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_order_detail_and_history(
    buyer_client, buyer, catalog, db_session
):
    order = await _seed_order(db_session, buyer.id, catalog.beras.id)

    response = await buyer_client.get(f"/orders/{order.kode}")
    assert response.status_code == 200
    assert response.json()["id"] == str(order.id)

    response = await buyer_client.get(
        f"/orders/{order.kode}/history", params={"status_type": "ORDER"}
    )
    assert response.status_code == 200
    history = response.json()
    assert len(history) == 1
    assert history[0]["status_to"] == "PENDING"
    assert history[0]["status_from"] is None


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_filters(admin_client, buyer, catalog, db_session):
    first = await _seed_order(db_session, buyer.id, catalog.beras.id)
    await _seed_order(db_session, buyer.id, catalog.teh.id)
    await apply_payment_status(
        db_session, payment_id=first.payments[0].id, status=PaymentStatus.PAID
    )

    response = await admin_client.get(
        "/admin/orders", params={"order_status": "PROCESSING"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["kode"] == first.kode

    response = await admin_client.get(
        "/admin/orders", params={"cari": first.kode.lower()}
    )
    assert response.json()["meta"]["total"] == 1

    response = await admin_client.get(
        "/admin/orders", params={"buyer_id": str(buyer.id)}
    )
    assert response.json()["meta"]["total"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_rejects_inverted_date_range(admin_client):
    response = await admin_client.get(
        "/admin/orders",
        params={"tanggal_dari": "2026-02-01", "tanggal_sampai": "2026-01-01"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_status_update_flow(
    admin_client, admin_user, buyer, catalog, db_session
):
    order = await _seed_order(db_session, buyer.id, catalog.beras.id)
    order_id = order.id

    response = await admin_client.patch(
        f"/admin/orders/{order_id}/status", json={"order_status": "SHIPPED"}
    )
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"

    response = await admin_client.patch(
        f"/admin/orders/{order_id}/status", json={"order_status": "PROCESSING"}
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["previous_status"] == "PENDING"
    assert data["order_status"] == "PROCESSING"
    assert data["updated_by"] == admin_user.user_id

    response = await admin_client.get(f"/admin/orders/{order_id}")
    assert response.status_code == 200
    detail = response.json()
    assert detail["processed_at"] is not None
    order_rows = [h for h in detail["history"] if h["status_type"] == "ORDER"]
    assert [h["status_to"] for h in order_rows] == ["PROCESSING", "PENDING"]
    assert order_rows[0]["changed_by"] == admin_user.user_id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_cancel_paid_order_and_refund(
    admin_client, buyer, catalog, db_session
):
    order = await _seed_order(db_session, buyer.id, catalog.beras.id)
    order_id, payment_id = order.id, order.payments[0].id
    await apply_payment_status(
        db_session, payment_id=payment_id, status=PaymentStatus.PAID
    )

    response = await admin_client.patch(
        f"/admin/orders/{order_id}/status", json={"order_status": "CANCELLED"}
    )
    assert response.status_code == 400

    response = await admin_client.patch(
        f"/admin/orders/{order_id}/status",
        json={"order_status": "CANCELLED", "note": "Gudang kosong"},
    )
    assert response.status_code == 200
    assert response.json()["requires_refund"] is True

    response = await admin_client.post(
        f"/admin/orders/{order_id}/payments/{payment_id}/refund",
        json={"note": "Refund manual"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "REFUNDED"

    response = await admin_client.get(f"/admin/orders/{order_id}")
    detail = response.json()
    assert detail["payment_status"] == "REFUNDED"
    assert detail["cancelled_reason"] == "Gudang kosong"
    assert detail["requires_refund"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_edit_and_delete(admin_client, buyer, catalog, db_session):
    order = await _seed_order(db_session, buyer.id, catalog.beras.id)
    order_id = order.id

    response = await admin_client.patch(
        f"/admin/orders/{order_id}",
        json={"catatan_admin": "Prioritas", "deliveree_booking_id": "DLV-9"},
    )
    assert response.status_code == 200
    assert response.json()["catatan_admin"] == "Prioritas"
    assert response.json()["deliveree_booking_id"] == "DLV-9"

    response = await admin_client.delete(f"/admin/orders/{order_id}")
    assert response.status_code == 409
    assert response.json()["code"] == "order_not_deletable"

    await admin_client.patch(
        f"/admin/orders/{order_id}/status",
        json={"order_status": "CANCELLED", "note": "Salah input"},
    )
    response = await admin_client.delete(f"/admin/orders/{order_id}")
    assert response.status_code == 204

    response = await admin_client.get(f"/admin/orders/{order_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_statistics(admin_client, buyer, catalog, db_session):
    paid = await _seed_order(db_session, buyer.id, catalog.beras.id, qty=3)
    await _seed_order(db_session, buyer.id, catalog.teh.id)
    await apply_payment_status(
        db_session, payment_id=paid.payments[0].id, status=PaymentStatus.PAID
    )

    response = await admin_client.get("/admin/orders/statistics")

    assert response.status_code == 200, response.text
    stats = response.json()
    assert stats["total_pesanan"] == 2
    assert Decimal(stats["total_revenue"]) == Decimal("300000")
    assert stats["per_status"] == {
        OrderStatus.PROCESSING.value: 1,
        OrderStatus.PENDING.value: 1,
    }
    assert stats["per_payment_status"] == {"PAID": 1, "PENDING": 1}
    assert stats["per_delivery_type"] == {"PICKUP": 2}


# ---------------------------------------------------------------------------
# Gateway webhook
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_rejects_bad_token(client):
    response = await client.post(
        "/webhooks/xendit/invoice",
        json={"external_id": "x", "status": "PAID"},
        headers=_callback_headers("wrong"),
    )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_marks_payment_paid(client, buyer, catalog, db_session):
    order = await _seed_order(db_session, buyer.id, catalog.beras.id)
    payload = {
        "id": "inv-abc",
        "external_id": order.payments[0].xendit_external_id,
        "status": "PAID",
        "amount": 100000,
        "paid_amount": 100000,
        "payment_method": "QRIS",
    }

    response = await client.post(
        "/webhooks/xendit/invoice", json=payload, headers=_callback_headers()
    )
    assert response.status_code == 200
    assert response.json() == {"received": True, "processed": True}

    replay = await client.post(
        "/webhooks/xendit/invoice", json=payload, headers=_callback_headers()
    )
    assert replay.json() == {"received": True, "processed": False}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_acknowledges_unknown_payment(client):
    response = await client.post(
        "/webhooks/xendit/invoice",
        json={"external_id": "BLK-19990101-ZZZZZ-1", "status": "PAID"},
        headers=_callback_headers(),
    )

    assert response.status_code == 200
    assert response.json()["processed"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_acknowledges_malformed_amount(
    client, buyer, catalog, db_session
):
    order = await _seed_order(db_session, buyer.id, catalog.beras.id)

    response = await client.post(
        "/webhooks/xendit/invoice",
        json={
            "external_id": order.payments[0].xendit_external_id,
            "status": "PAID",
            "amount": "n/a",
            "paid_amount": 100000,
        },
        headers=_callback_headers(),
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "processed": False}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
