"""Enum definitions for orders service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class DeliveryType(str, enum.Enum):
    PICKUP = "PICKUP"
    DELIVEREE = "DELIVEREE"
    FORWARDER = "FORWARDER"

    @property
    def requires_address(self) -> bool:
        return self is not DeliveryType.PICKUP


class PaymentType(str, enum.Enum):
    REGULAR = "REGULAR"
    SPLIT = "SPLIT"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    READY = "READY"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class StatusType(str, enum.Enum):
    ORDER = "ORDER"
    PAYMENT = "PAYMENT"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "persentase"
    FIXED_AMOUNT = "jumlah_tetap"
