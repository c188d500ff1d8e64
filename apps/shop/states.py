from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Awaiting payment"
    PAID = "PAID", "Paid"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"

    def can_transition_to(self, target) -> bool:
        return OrderStatus(target) in ORDER_TRANSITIONS[self]

    @property
    def is_cancellable(self) -> bool:
        return self in (OrderStatus.PENDING, OrderStatus.PAID)


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class OrderItemStatus(models.TextChoices):
    NORMAL = "NORMAL", "Normal"
    RETURN_REQUESTED = "RETURN_REQUESTED", "Return requested"
    RETURN_APPROVED = "RETURN_APPROVED", "Return approved"
    RETURNED = "RETURNED", "Returned"
    RETURN_REJECTED = "RETURN_REJECTED", "Return rejected"
    CANCELLED = "CANCELLED", "Cancelled"

    def can_transition_to(self, target) -> bool:
        return OrderItemStatus(target) in ITEM_TRANSITIONS[self]


# RETURN_REJECTED -> RETURN_REQUESTED is a re-application inside the return window.
ITEM_TRANSITIONS = {
    OrderItemStatus.NORMAL: frozenset({OrderItemStatus.RETURN_REQUESTED, OrderItemStatus.CANCELLED}),
    OrderItemStatus.RETURN_REQUESTED: frozenset(
        {OrderItemStatus.RETURN_APPROVED, OrderItemStatus.RETURN_REJECTED}
    ),
    OrderItemStatus.RETURN_APPROVED: frozenset({OrderItemStatus.RETURNED}),
    OrderItemStatus.RETURN_REJECTED: frozenset({OrderItemStatus.RETURN_REQUESTED}),
    OrderItemStatus.RETURNED: frozenset(),
    OrderItemStatus.CANCELLED: frozenset(),
}


class PaymentMethod(models.TextChoices):
    CARD = "CARD", "Credit/debit card"
    BANK = "BANK", "Bank transfer"
    KAKAO = "KAKAO", "KakaoPay"
    NAVER = "NAVER", "NaverPay"
    PAYCO = "PAYCO", "PAYCO"

    @classmethod
    def from_code(cls, value):
        if not value or not str(value).strip():
            return None
        code = str(value).strip().upper()
        return cls(code) if code in cls.values else None


class ReturnReason(models.TextChoices):
    DEFECT = "DEFECT", "Defective product"
    WRONG_ITEM = "WRONG_ITEM", "Wrong item delivered"
    CHANGE_OF_MIND = "CHANGE_OF_MIND", "Changed mind"
    SIZE_ISSUE = "SIZE_ISSUE", "Size issue"
    OTHER = "OTHER", "Other"


class RefundReason(models.TextChoices):
    CANCEL = "CANCEL", "Full cancel"
    PARTIAL_CANCEL = "PARTIAL_CANCEL", "Partial cancel"
    RETURN = "RETURN", "Return"


class StockChangeType(models.TextChoices):
    IN = "IN", "Stock in"
    OUT = "OUT", "Stock out"


class PointChangeType(models.TextChoices):
    EARN = "EARN", "Earned"
    USE = "USE", "Used"
    REFUND = "REFUND", "Refunded"


class DiscountType(models.TextChoices):
    FIXED = "FIXED", "Fixed amount"
    PERCENT = "PERCENT", "Percent"
