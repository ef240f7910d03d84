"""Orders Service models package."""

from services.orders_service.models.catalog import (
    BuyerRef,
    CategoryDiscount,
    Ppn,
    Product,
    ProductCategory,
)
from services.orders_service.models.coupon import Coupon, CouponCategory, CouponUsage
from services.orders_service.models.enums import (
    DeliveryType,
    DiscountType,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    StatusType,
)
from services.orders_service.models.order import (
    Order,
    OrderItem,
    OrderPayment,
    OrderStatusHistory,
)

__all__ = [
    "BuyerRef",
    "CategoryDiscount",
    "Coupon",
    "CouponCategory",
    "CouponUsage",
    "DeliveryType",
    "DiscountType",
    "Order",
    "OrderItem",
    "OrderPayment",
    "OrderStatus",
    "OrderStatusHistory",
    "PaymentStatus",
    "PaymentType",
    "Ppn",
    "Product",
    "ProductCategory",
    "StatusType",
]
