"""Checkout: turn a buyer's cart lines into a persisted order."""

import random
import string
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from libs.common.config import get_settings
from libs.common.datetime_utils import local_today, to_local, utc_now
from libs.common.errors import InternalError
from libs.common.logging import get_logger
from libs.common.money import ZERO, money_sum, percent_of, to_money
from libs.db.session import unit_of_work
from services.orders_service.errors import InvalidOrderRequest, ProductNotFound
from services.orders_service.models import (
    CategoryDiscount,
    DeliveryType,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    StatusType,
)
from services.orders_service.services import catalog
from services.orders_service.services.coupon_ledger import redeem
from services.orders_service.services.coupon_validator import (
    CouponQuote,
    validate_coupon,
)
from services.orders_service.services.settlement import SplitShare, build_payments
from services.orders_service.services.status_history import record_status_change
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ORDER_CODE_ATTEMPTS = 5


@dataclass(frozen=True)
class OrderLine:
    produk_id: uuid.UUID
    qty: int


def merge_lines(lines: Sequence[OrderLine]) -> list[OrderLine]:
    """Validate quantities and merge repeated products into one line."""
    if not lines:
        raise InvalidOrderRequest("An order needs at least one item")

    merged: dict[uuid.UUID, int] = {}
    for line in lines:
        if line.qty < 1:
            raise InvalidOrderRequest("Item quantity must be at least 1")
        merged[line.produk_id] = merged.get(line.produk_id, 0) + line.qty
    return [OrderLine(produk_id=pid, qty=qty) for pid, qty in merged.items()]


def generate_order_code(now: datetime) -> str:
    """Order code like BLK-20260104-A1B2C, dated in local time."""
    date_part = to_local(now).strftime("%Y%m%d")
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{get_settings().ORDER_CODE_PREFIX}-{date_part}-{random_part}"


async def _unique_order_code(db: AsyncSession, now: datetime) -> str:
    for _ in range(ORDER_CODE_ATTEMPTS):
        kode = generate_order_code(now)
        taken = await db.execute(select(Order.id).where(Order.kode == kode))
        if taken.first() is None:
            return kode
    raise InternalError(
        "Could not generate a unique order code",
        code="order_code_exhausted",
        context={"attempts": ORDER_CODE_ATTEMPTS},
    )


async def build_order(
    db: AsyncSession,
    *,
    buyer_id: uuid.UUID,
    delivery_type: DeliveryType,
    payment_type: PaymentType,
    items: Sequence[OrderLine],
    biaya_pengiriman: Decimal = ZERO,
    biaya_lainnya: Decimal = ZERO,
    alamat_buyer_id: Optional[uuid.UUID] = None,
    kode_kupon: Optional[str] = None,
    catatan: Optional[str] = None,
    split_shares: Optional[Sequence[SplitShare]] = None,
    now: Optional[datetime] = None,
) -> Order:
    """Create an order with its items, payments, history and coupon usage.

    1. Validate the request shape (items, fees, address)
    2. Snapshot product prices and active category discounts
    3. Validate the coupon with its row locked, against the product total
    4. Compute PPN on the discounted product cost and the grand total
    5. Persist order, items, payments and the initial history rows
    6. Record the coupon redemption
    7. Commit once; any failure rolls back every step
    """
    now = now or utc_now()
    settings = get_settings()

    lines = merge_lines(items)
    biaya_pengiriman = to_money(biaya_pengiriman)
    biaya_lainnya = to_money(biaya_lainnya)
    if biaya_pengiriman < ZERO or biaya_lainnya < ZERO:
        raise InvalidOrderRequest("Fees cannot be negative")
    if delivery_type.requires_address and alamat_buyer_id is None:
        raise InvalidOrderRequest(
            f"Delivery type {delivery_type.value} needs a delivery address"
        )

    async with unit_of_work(db):
        buyers = {buyer_id} | {share.buyer_id for share in split_shares or []}
        missing_buyers = await catalog.find_missing_buyers(db, buyers)
        if missing_buyers:
            raise InvalidOrderRequest(
                "Unknown buyer(s): " + ", ".join(sorted(map(str, missing_buyers)))
            )

        # 2. Snapshot lines
        products = await catalog.get_active_products(
            db, [line.produk_id for line in lines]
        )
        missing = [line.produk_id for line in lines if line.produk_id not in products]
        if missing:
            raise ProductNotFound(
                f"Product not found or inactive: {missing[0]}",
                context={"produk_id": str(missing[0])},
            )

        today = local_today(now)
        category_discounts: dict[uuid.UUID, Optional[CategoryDiscount]] = {}
        order_items = []
        for line in lines:
            product = products[line.produk_id]
            if product.kategori_id not in category_discounts:
                category_discounts[product.kategori_id] = (
                    await catalog.get_active_category_discount(
                        db, product.kategori_id, today
                    )
                )
            harga = to_money(product.harga_sesudah_diskon)
            diskon = catalog.category_unit_discount(
                harga, category_discounts[product.kategori_id]
            )
            order_items.append(
                OrderItem(
                    produk_id=product.id,
                    kategori_id=product.kategori_id,
                    nama_produk=product.nama,
                    sku=product.id_cargo,
                    qty=line.qty,
                    harga_satuan=harga,
                    diskon_satuan=diskon,
                    subtotal=to_money((harga - diskon) * line.qty),
                )
            )

        biaya_produk = money_sum(item.subtotal for item in order_items)

        # 3. Coupon
        quote: Optional[CouponQuote] = None
        potongan = ZERO
        if kode_kupon:
            quote = await validate_coupon(
                db,
                code=kode_kupon,
                buyer_id=buyer_id,
                candidate_total=biaya_produk,
                category_ids={item.kategori_id for item in order_items},
                now=now,
                lock=True,
            )
            potongan = quote.discount
        biaya_produk = max(biaya_produk - potongan, ZERO)

        # 4. Tax and total
        ppn_rate = await catalog.get_active_ppn_rate(db)
        biaya_ppn = to_money(percent_of(biaya_produk, ppn_rate))
        total = money_sum([biaya_produk, biaya_pengiriman, biaya_ppn, biaya_lainnya])
        if total <= ZERO:
            raise InvalidOrderRequest("Order total must be greater than zero")

        # 5. Persist
        order = Order(
            kode=await _unique_order_code(db, now),
            buyer_id=buyer_id,
            delivery_type=delivery_type,
            alamat_buyer_id=alamat_buyer_id,
            payment_type=payment_type,
            payment_status=PaymentStatus.PENDING,
            order_status=OrderStatus.PENDING,
            biaya_produk=biaya_produk,
            biaya_pengiriman=biaya_pengiriman,
            biaya_ppn=biaya_ppn,
            biaya_lainnya=biaya_lainnya,
            total=total,
            kupon_id=quote.coupon.id if quote else None,
            kode_kupon=quote.coupon.kode if quote else None,
            potongan_kupon=potongan,
            catatan=catatan,
            expired_at=now + timedelta(hours=settings.ORDER_PAYMENT_EXPIRY_HOURS),
        )
        order.items = order_items
        build_payments(order, split_shares=split_shares)
        db.add(order)
        await db.flush()

        initial = (
            (StatusType.ORDER, order.order_status),
            (StatusType.PAYMENT, order.payment_status),
        )
        for status_type, status in initial:
            await record_status_change(
                db,
                order_id=order.id,
                status_type=status_type,
                status_from=None,
                status_to=status,
                actor_id=buyer_id,
                note="Order created",
            )

        # 6. Coupon usage
        if quote is not None:
            await redeem(
                db,
                coupon=quote.coupon,
                buyer_id=buyer_id,
                order_id=order.id,
                code=kode_kupon.strip(),
                amount=potongan,
            )

    logger.info(
        "Created order %s for buyer %s total=%s payment_type=%s coupon=%s",
        order.kode,
        buyer_id,
        order.total,
        payment_type.value,
        order.kode_kupon,
    )
    return order
