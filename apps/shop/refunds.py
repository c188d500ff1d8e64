"""Proportional refund calculator.

Refunds are a share of what the customer actually paid for goods, never the
pre-discount unit price:

    effective_paid = final_amount - shipping_fee
    refund = effective_paid * (item_subtotal / order_subtotal) * (quantity / item_quantity)

rounded half-up to 2 decimal places and capped at what is still refundable on
the order. Points follow the same share of ``used_points``, floored to whole
points and capped at the unrefunded points. Shipping is only ever returned by
a full cancel, which refunds ``final_amount - refunded_amount`` outright.

Everything here is pure: no queries, no writes.
"""
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def proportional_refund(order, item, quantity: int) -> Decimal:
    effective_paid = order.final_amount - order.shipping_fee
    if effective_paid <= 0 or order.total_amount == 0 or item.quantity == 0:
        return ZERO

    # single division keeps the intermediate exact
    refund = (effective_paid * item.subtotal * quantity) / (order.total_amount * item.quantity)
    refund = refund.quantize(CENT, rounding=ROUND_HALF_UP)

    max_refundable = order.final_amount - order.refunded_amount
    return max(ZERO, min(refund, max_refundable))


def proportional_point_refund(order, item, quantity: int) -> int:
    if order.used_points <= 0 or order.total_amount == 0 or item.quantity == 0:
        return 0

    share = (Decimal(order.used_points) * item.subtotal * quantity) / (order.total_amount * item.quantity)
    points = int(share.to_integral_value(rounding=ROUND_FLOOR))

    max_refundable = max(0, order.used_points - order.refunded_points)
    return max(0, min(points, max_refundable))


def remaining_refund(order) -> tuple[Decimal, int]:
    """What a full cancel gives back: everything not yet refunded, shipping included."""
    return (
        max(ZERO, order.final_amount - order.refunded_amount),
        max(0, order.used_points - order.refunded_points),
    )
