from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .exceptions import BusinessRuleViolation, InvalidStatusTransition
from .states import (
    DiscountType,
    OrderItemStatus,
    OrderStatus,
    PaymentMethod,
    PointChangeType,
    ReturnReason,
    StockChangeType,
)

ZERO = Decimal("0.00")


class Tier(models.Model):
    name = models.CharField(max_length=30, unique=True)
    level = models.PositiveSmallIntegerField(unique=True)
    min_spent = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)
    discount_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)  # 5.00 = 5%
    point_earn_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    # 0 means every order ships free
    free_shipping_threshold = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)

    class Meta:
        ordering = ["level"]

    def __str__(self):
        return self.name


class Wallet(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="wallet")
    tier = models.ForeignKey(Tier, on_delete=models.PROTECT, related_name="wallets")
    point_balance = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)
    updated_at = models.DateTimeField(auto_now=True)

    def add_total_spent(self, amount: Decimal):
        self.total_spent = max(ZERO, self.total_spent + amount)

    def add_points(self, points: int):
        self.point_balance = max(0, self.point_balance + points)

    def use_points(self, points: int):
        if points > self.point_balance:
            raise BusinessRuleViolation(
                f"Not enough points (balance {self.point_balance}P, requested {points}P)",
                code="INSUFFICIENT_POINTS",
            )
        self.point_balance -= points


class Product(models.Model):
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    stock_quantity = models.PositiveIntegerField(default=0)
    sales_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def decrease_stock(self, quantity: int):
        if self.stock_quantity < quantity:
            raise ValueError("stock would go negative")
        self.stock_quantity -= quantity
        self.sales_count += quantity

    def adjust_stock(self, amount: int):
        """Manual correction: moves stock only, sales are untouched."""
        if self.stock_quantity + amount < 0:
            raise ValueError("stock would go negative")
        self.stock_quantity += amount

    def increase_stock_and_rollback_sales(self, quantity: int):
        if self.sales_count < quantity:
            raise ValueError("sales count would go negative")
        self.stock_quantity += quantity
        self.sales_count -= quantity


class CartLine(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="cart_lines")
    product = models.ForeignKey(Product, on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField()
    added_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "product"], name="cart_line_unique_product"),
        ]


class Coupon(models.Model):
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    discount_type = models.CharField(max_length=10, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_quantity = models.PositiveIntegerField(null=True, blank=True)
    used_quantity = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    def is_valid(self, now=None) -> bool:
        now = now or timezone.now()
        return (
            self.is_active
            and self.valid_from <= now <= self.valid_until
            and (self.total_quantity is None or self.used_quantity < self.total_quantity)
        )


class UserCoupon(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="coupons")
    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name="issued")
    is_used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    order = models.ForeignKey("Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    issued_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()

    def is_available(self, now=None) -> bool:
        now = now or timezone.now()
        return not self.is_used and now < self.expires_at and self.coupon.is_valid(now)


class Order(models.Model):
    order_number = models.CharField(max_length=50, unique=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)

    total_amount = models.DecimalField(max_digits=15, decimal_places=2)  # item subtotal
    tier_discount_amount = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)
    coupon_discount_amount = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)
    discount_amount = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)
    shipping_fee = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    final_amount = models.DecimalField(max_digits=15, decimal_places=2)
    refunded_amount = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)

    used_points = models.PositiveIntegerField(default=0)
    refunded_points = models.PositiveIntegerField(default=0)
    point_earn_rate_snapshot = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    earned_points_snapshot = models.PositiveIntegerField(default=0)
    points_settled = models.BooleanField(default=False)

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    shipping_address = models.TextField(blank=True)
    recipient_name = models.CharField(max_length=100, blank=True)
    recipient_phone = models.CharField(max_length=20, blank=True)

    ordered_at = models.DateTimeField(default=timezone.now)
    paid_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-ordered_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(refunded_amount__gte=0) & Q(refunded_amount__lte=F("final_amount")),
                name="order_refunded_amount_within_final",
            ),
            models.CheckConstraint(
                condition=Q(refunded_points__lte=F("used_points")),
                name="order_refunded_points_within_used",
            ),
        ]

    def __str__(self):
        return self.order_number

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_cancellable(self) -> bool:
        return self.order_status.is_cancellable

    @property
    def refundable_amount(self) -> Decimal:
        return self.final_amount - self.refunded_amount

    @property
    def refundable_points(self) -> int:
        return self.used_points - self.refunded_points

    def _transition(self, target: OrderStatus):
        if not self.order_status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Order {self.order_number} cannot move from {self.status} to {target}"
            )
        self.status = target

    def mark_paid(self):
        self._transition(OrderStatus.PAID)
        self.paid_at = timezone.now()

    def mark_shipped(self):
        self._transition(OrderStatus.SHIPPED)
        self.shipped_at = timezone.now()

    def mark_delivered(self):
        self._transition(OrderStatus.DELIVERED)
        self.delivered_at = timezone.now()

    def cancel(self):
        self._transition(OrderStatus.CANCELLED)
        self.cancelled_at = timezone.now()

    def add_refunded_amount(self, amount: Decimal):
        if self.refunded_amount + amount > self.final_amount:
            raise BusinessRuleViolation(
                f"Refund {amount} exceeds refundable {self.refundable_amount}", code="OVER_REFUND"
            )
        self.refunded_amount += amount

    def add_refunded_points(self, points: int):
        if self.refunded_points + points > self.used_points:
            raise BusinessRuleViolation(
                f"Point refund {points} exceeds refundable {self.refundable_points}", code="OVER_REFUND"
            )
        self.refunded_points += points


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    subtotal = models.DecimalField(max_digits=15, decimal_places=2)

    cancelled_quantity = models.PositiveIntegerField(default=0)
    returned_quantity = models.PositiveIntegerField(default=0)
    pending_return_quantity = models.PositiveIntegerField(default=0)
    cancelled_amount = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)
    returned_amount = models.DecimalField(max_digits=15, decimal_places=2, default=ZERO)

    status = models.CharField(max_length=20, choices=OrderItemStatus.choices, default=OrderItemStatus.NORMAL)
    return_reason = models.CharField(max_length=20, choices=ReturnReason.choices, blank=True)
    reject_reason = models.CharField(max_length=500, blank=True)
    return_requested_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["product_id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(
                    quantity__gte=F("cancelled_quantity") + F("returned_quantity") + F("pending_return_quantity")
                ),
                name="order_item_quantities_within_ordered",
            ),
        ]

    @property
    def item_status(self) -> OrderItemStatus:
        return OrderItemStatus(self.status)

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - self.cancelled_quantity - self.returned_quantity - self.pending_return_quantity

    def _transition(self, target: OrderItemStatus):
        if not self.item_status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Order item {self.pk} cannot move from {self.status} to {target}",
                code="INVALID_ITEM_STATUS_TRANSITION",
            )
        self.status = target

    def request_return(self, quantity: int, reason: str):
        """NORMAL/RETURN_REJECTED -> RETURN_REQUESTED. Quantity is only held as pending."""
        self._transition(OrderItemStatus.RETURN_REQUESTED)
        self.return_reason = reason
        self.reject_reason = ""
        self.pending_return_quantity = quantity
        self.return_requested_at = timezone.now()

    def approve_return(self, quantity: int, refund_amount: Decimal):
        self._transition(OrderItemStatus.RETURN_APPROVED)
        self._transition(OrderItemStatus.RETURNED)
        self.returned_quantity += quantity
        self.returned_amount += refund_amount
        self.pending_return_quantity = 0
        self.returned_at = timezone.now()

    def reject_return(self, reject_reason: str):
        self._transition(OrderItemStatus.RETURN_REJECTED)
        self.reject_reason = reject_reason
        self.pending_return_quantity = 0

    def apply_cancel(self, quantity: int, refund_amount: Decimal):
        if self.item_status is not OrderItemStatus.NORMAL:
            raise InvalidStatusTransition(
                f"Order item {self.pk} in {self.status} cannot be cancelled",
                code="INVALID_ITEM_STATUS_TRANSITION",
            )
        self.cancelled_quantity += quantity
        self.cancelled_amount += refund_amount
        if self.remaining_quantity == 0:
            self._transition(OrderItemStatus.CANCELLED)


class InventoryMovement(models.Model):
    """Append-only stock ledger."""

    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="movements")
    change_type = models.CharField(max_length=3, choices=StockChangeType.choices)
    change_amount = models.PositiveIntegerField()
    before_quantity = models.PositiveIntegerField()
    after_quantity = models.PositiveIntegerField()
    reason = models.CharField(max_length=20)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, null=True, blank=True, related_name="movements")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)


class PointHistory(models.Model):
    """Append-only point ledger."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="point_history")
    change_type = models.CharField(max_length=10, choices=PointChangeType.choices)
    amount = models.IntegerField()
    balance_after = models.PositiveIntegerField()
    reference_type = models.CharField(max_length=20)  # ORDER, DELIVERY or a RefundReason
    order = models.ForeignKey(Order, on_delete=models.PROTECT, null=True, blank=True, related_name="point_history")
    description = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
