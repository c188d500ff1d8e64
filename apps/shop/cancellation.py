"""Cancellation and return compensation.

Full cancel, partial cancel and return approval all funnel into
``_apply_refund``, which runs under the lock order
Order (held by the caller) -> Product -> UserCoupon -> Wallet.

| operation       | caller | item transition                   | stock / money |
|-----------------|--------|-----------------------------------|---------------|
| cancel_order    | owner  | NORMAL -> CANCELLED (all items)   | yes           |
| partial_cancel  | owner  | NORMAL -> CANCELLED when drained  | yes           |
| request_return  | owner  | NORMAL/REJECTED -> RETURN_REQUESTED | no          |
| approve_return  | admin  | RETURN_REQUESTED -> RETURNED      | yes           |
| reject_return   | admin  | RETURN_REQUESTED -> RETURN_REJECTED | no          |
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from . import conf
from .events import publish_stock_changed
from .exceptions import BusinessRuleViolation, DataIntegrityError, ResourceNotFound, ValidationFailed
from .inventory import restore_stock
from .locks import lock_order
from .models import Order, OrderItem, UserCoupon
from .refunds import proportional_point_refund, proportional_refund, remaining_refund
from .states import OrderItemStatus, OrderStatus, PointChangeType, RefundReason, ReturnReason
from .tx_retry import surface_transient_errors
from .wallet import lock_order_wallet, recompute_tier, record_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefundLine:
    item: OrderItem
    quantity: int
    amount: Decimal  # item-level share, kept on the item for audit


# ============================================================
# SHARED REFUND PRIMITIVE
# ============================================================

def _restore_coupon(order: Order) -> None:
    restored = UserCoupon.objects.filter(order=order, is_used=True).update(is_used=False, used_at=None, order=None)
    if restored:
        logger.info(f"coupon restored for order {order.order_number}")


def _apply_refund(order, lines, *, refund_amount: Decimal, point_refund: int, reason: str, actor) -> None:
    # 1) stock, products ascending by id
    for line in sorted(lines, key=lambda l: l.item.product_id):
        restore_stock(line.item.product_id, line.quantity, reason=reason, order=order, actor=actor)

    if reason == RefundReason.CANCEL:
        _restore_coupon(order)

    # 2) wallet: spend, points, tier
    wallet = lock_order_wallet(order)
    wallet.add_total_spent(-refund_amount)
    if point_refund > 0:
        wallet.add_points(point_refund)
        order.add_refunded_points(point_refund)
        record_points(
            wallet,
            change_type=PointChangeType.REFUND,
            amount=point_refund,
            reference_type=reason,
            order=order,
            description=f"{RefundReason(reason).label} point refund (order {order.order_number})",
        )
    recompute_tier(wallet)
    wallet.save(update_fields=["point_balance", "total_spent", "tier", "updated_at"])

    # 3) item/order bookkeeping; RETURN is finalized by approve_return itself
    if reason != RefundReason.RETURN:
        for line in lines:
            line.item.apply_cancel(line.quantity, line.amount)
            line.item.save()
        order.add_refunded_amount(refund_amount)
        _cancel_if_drained(order)

    publish_stock_changed(line.item.product_id for line in lines)


def _cancel_if_drained(order: Order) -> None:
    if order.is_cancellable and all(item.remaining_quantity == 0 for item in order.items.all()):
        order.cancel()


# ============================================================
# LOOKUPS / CHECKS
# ============================================================

def _find_item(order: Order, item_id: int) -> OrderItem:
    item = order.items.filter(pk=item_id).first()
    if item is None:
        raise ResourceNotFound("order item", item_id)
    return item


def _validate_quantity(quantity) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationFailed(f"Quantity must be a positive integer, got {quantity!r}", code="INVALID_QUANTITY")


def _check_remaining(item: OrderItem, quantity: int) -> None:
    remaining = item.remaining_quantity
    if quantity > remaining:
        raise ValidationFailed(
            f"Invalid quantity (remaining {remaining}, requested {quantity})", code="INVALID_QUANTITY"
        )


def _check_return_window(order: Order, now) -> None:
    if order.delivered_at is None:
        logger.error(f"order {order.pk} is DELIVERED but has no delivered_at")
        raise DataIntegrityError(
            f"Order {order.order_number} has no delivery timestamp", code="MISSING_DELIVERED_AT"
        )
    deadline = order.delivered_at + timedelta(days=conf.return_period_days())
    if now > deadline:
        raise BusinessRuleViolation(
            f"Return period ended {deadline:%Y-%m-%d} (delivered {order.delivered_at:%Y-%m-%d})",
            code="RETURN_PERIOD_EXPIRED",
        )


# ============================================================
# FULL CANCEL
# ============================================================

def cancel_locked_order(order: Order, *, actor) -> Order:
    """Full cancel of an order the caller already holds the lock on."""
    if not order.is_cancellable:
        raise BusinessRuleViolation(
            f"Order {order.order_number} in {order.status} cannot be cancelled", code="CANCEL_NOT_ALLOWED"
        )

    # remaining, not full: a prior partial cancel already refunded its share
    refund_amount, point_refund = remaining_refund(order)
    lines = [
        RefundLine(item, item.remaining_quantity, proportional_refund(order, item, item.remaining_quantity))
        for item in order.items.all()
        if item.remaining_quantity > 0
    ]
    _apply_refund(
        order, lines, refund_amount=refund_amount, point_refund=point_refund, reason=RefundReason.CANCEL, actor=actor
    )
    if order.status != OrderStatus.CANCELLED:
        order.cancel()
    order.save()

    logger.info(f"order cancelled: {order.order_number} refund={refund_amount} points={point_refund}")
    return order


@surface_transient_errors
@transaction.atomic
def cancel_order(*, order_id: int, user) -> Order:
    order = lock_order(order_id, user=user)
    return cancel_locked_order(order, actor=user)


# ============================================================
# PARTIAL CANCEL
# ============================================================

@surface_transient_errors
@transaction.atomic
def partial_cancel(*, order_id: int, item_id: int, quantity: int, user) -> Order:
    _validate_quantity(quantity)

    order = lock_order(order_id, user=user)
    if not order.is_cancellable:
        raise BusinessRuleViolation(
            f"Order {order.order_number} in {order.status} cannot be partially cancelled",
            code="PARTIAL_CANCEL_NOT_ALLOWED",
        )
    item = _find_item(order, item_id)
    _check_remaining(item, quantity)

    refund_amount = proportional_refund(order, item, quantity)
    point_refund = proportional_point_refund(order, item, quantity)
    _apply_refund(
        order,
        [RefundLine(item, quantity, refund_amount)],
        refund_amount=refund_amount,
        point_refund=point_refund,
        reason=RefundReason.PARTIAL_CANCEL,
        actor=user,
    )
    order.save()

    logger.info(
        f"partial cancel: {order.order_number} item={item.pk} qty={quantity} "
        f"refund={refund_amount} points={point_refund}"
    )
    return order


# ============================================================
# RETURNS (two-phase)
# ============================================================

@surface_transient_errors
@transaction.atomic
def request_return(*, order_id: int, item_id: int, quantity: int, reason: str, user, now=None) -> OrderItem:
    """Hold ``quantity`` as pending. No stock or money moves until an admin approves."""
    _validate_quantity(quantity)
    if reason not in ReturnReason.values:
        raise ValidationFailed(f"Unknown return reason: {reason}", code="INVALID_RETURN_REASON")

    order = lock_order(order_id, user=user)
    if order.status != OrderStatus.DELIVERED:
        raise BusinessRuleViolation("Returns are only accepted for delivered orders", code="RETURN_NOT_ALLOWED")
    _check_return_window(order, now or timezone.now())

    item = _find_item(order, item_id)
    _check_remaining(item, quantity)
    item.request_return(quantity, reason)
    item.save()

    logger.info(f"return requested: {order.order_number} item={item.pk} qty={quantity} reason={reason}")
    return item


@surface_transient_errors
@transaction.atomic
def approve_return(*, order_id: int, item_id: int, actor=None) -> OrderItem:
    order = lock_order(order_id)
    item = _find_item(order, item_id)
    if item.status != OrderItemStatus.RETURN_REQUESTED:
        raise BusinessRuleViolation(
            f"Only items with a pending return can be approved (item is {item.status})",
            code="INVALID_ITEM_STATUS",
        )

    quantity = item.pending_return_quantity
    refund_amount = proportional_refund(order, item, quantity)
    point_refund = proportional_point_refund(order, item, quantity)
    _apply_refund(
        order,
        [RefundLine(item, quantity, refund_amount)],
        refund_amount=refund_amount,
        point_refund=point_refund,
        reason=RefundReason.RETURN,
        actor=actor,
    )
    item.approve_return(quantity, refund_amount)
    item.save()
    order.add_refunded_amount(refund_amount)
    order.save()

    logger.info(
        f"return approved: {order.order_number} item={item.pk} qty={quantity} "
        f"refund={refund_amount} points={point_refund}"
    )
    return item


@surface_transient_errors
@transaction.atomic
def reject_return(*, order_id: int, item_id: int, reject_reason: str) -> OrderItem:
    order = lock_order(order_id)
    item = _find_item(order, item_id)
    if item.status != OrderItemStatus.RETURN_REQUESTED:
        raise BusinessRuleViolation(
            f"Only items with a pending return can be rejected (item is {item.status})",
            code="INVALID_ITEM_STATUS",
        )
    item.reject_return(reject_reason)
    item.save()

    logger.info(f"return rejected: {order.order_number} item={item.pk} reason={reject_reason}")
    return item
