"""Orders service errors, each with a stable code for API clients."""

from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UnprocessableError,
    ValidationError,
)

# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


class CouponNotFound(NotFoundError):
    code = "coupon_not_found"
    message = "Coupon not found"


class CouponInactive(UnprocessableError):
    code = "coupon_inactive"
    message = "Coupon is not active"


class CouponExpired(UnprocessableError):
    code = "coupon_expired"
    message = "Coupon has expired"


class CouponLimitReached(ConflictError):
    code = "coupon_limit_reached"
    message = "Coupon usage limit has been reached"


class CouponBelowMinimum(UnprocessableError):
    code = "coupon_below_minimum"
    message = "Order total is below the coupon minimum purchase"


class CouponCategoryNotAllowed(UnprocessableError):
    code = "coupon_category_not_allowed"
    message = "Coupon does not apply to the products in this order"


class DuplicateCouponCode(ConflictError):
    code = "duplicate_coupon_code"
    message = "Coupon code already exists"


# ---------------------------------------------------------------------------
# Orders and payments
# ---------------------------------------------------------------------------


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    message = "Order not found"


class PaymentNotFound(NotFoundError):
    code = "payment_not_found"
    message = "Payment not found"


class ProductNotFound(NotFoundError):
    code = "product_not_found"
    message = "Product not found or inactive"


class CategoryNotFound(NotFoundError):
    code = "category_not_found"
    message = "Category not found"


class InvalidTransition(ConflictError):
    code = "invalid_transition"
    message = "Status transition is not allowed"


class InvalidOrderRequest(ValidationError):
    code = "invalid_order"
    message = "Invalid order request"


class InvalidCouponRequest(ValidationError):
    code = "invalid_coupon"
    message = "Invalid coupon request"
