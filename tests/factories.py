"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    coupon = CouponFactory.create(kode="SAVE10", limit_pemakaian=1)
    db_session.add(coupon)
    await db_session.commit()
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _in_days(days: int) -> date:
    return date.today() + timedelta(days=days)


def _unique_email() -> str:
    return f"buyer-{uuid.uuid4().hex[:8]}@tokobulky.co.id"


def _unique_code(prefix: str = "KUPON") -> str:
    return f"{prefix}{uuid.uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# External references (buyers, catalog, tax)
# ---------------------------------------------------------------------------


class BuyerFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import BuyerRef

        defaults = {
            "id": _uuid(),
            "nama": "Toko Sumber Rejeki",
            "email": _unique_email(),
        }
        defaults.update(overrides)
        return BuyerRef(**defaults)


class CategoryFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import ProductCategory

        defaults = {
            "id": _uuid(),
            "nama": "Sembako",
            "is_active": True,
        }
        defaults.update(overrides)
        return ProductCategory(**defaults)


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import Product

        price = Decimal(overrides.pop("price", "100000.00"))
        defaults = {
            "id": _uuid(),
            "nama": "Beras Premium 25kg",
            "id_cargo": f"CRG-{uuid.uuid4().hex[:8].upper()}",
            "harga_sebelum_diskon": price,
            "persentase_diskon": Decimal("0"),
            "harga_sesudah_diskon": price,
            "quantity": 100,
            "is_active": True,
        }
        defaults.update(overrides)
        return Product(**defaults)


class CategoryDiscountFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import CategoryDiscount

        defaults = {
            "id": _uuid(),
            "persentase_diskon": Decimal("0"),
            "nominal_diskon": Decimal("0"),
            "tanggal_mulai": _in_days(-7),
            "tanggal_selesai": _in_days(7),
            "is_active": True,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return CategoryDiscount(**defaults)


class PpnFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import Ppn

        defaults = {
            "id": _uuid(),
            "persentase": Decimal("11"),
            "is_active": True,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Ppn(**defaults)


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


class CouponFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import Coupon, CouponCategory, DiscountType

        kategori_ids = overrides.pop("kategori_ids", [])
        defaults = {
            "id": _uuid(),
            "kode": _unique_code(),
            "nama": "Promo Grosir",
            "jenis_diskon": DiscountType.PERCENTAGE,
            "nilai_diskon": Decimal("10"),
            "minimal_pembelian": Decimal("0"),
            "limit_pemakaian": None,
            "tanggal_kedaluarsa": _in_days(30),
            "is_all_kategori": not kategori_ids,
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        coupon = Coupon(**defaults)
        coupon.category_links = [CouponCategory(kategori_id=k) for k in kategori_ids]
        return coupon
