from decimal import ROUND_FLOOR, Decimal

from . import conf
from .states import DiscountType

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def _floor_won(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("1"), rounding=ROUND_FLOOR)


def tier_discount_for_line(line_subtotal: Decimal, discount_rate: Decimal) -> Decimal:
    # floored per line, not on the order total
    return _floor_won(line_subtotal * discount_rate / HUNDRED)


def coupon_discount(coupon, order_amount: Decimal) -> Decimal:
    if order_amount < coupon.min_order_amount:
        return ZERO
    if coupon.discount_type == DiscountType.PERCENT:
        discount = _floor_won(order_amount * coupon.discount_value / HUNDRED)
        if coupon.max_discount is not None and discount > coupon.max_discount:
            discount = coupon.max_discount
        return discount
    return coupon.discount_value


def max_usable_points(subtotal: Decimal, total_discount: Decimal) -> int:
    """Points cover goods only: never shipping, never below zero."""
    return max(0, int(_floor_won(subtotal - total_discount)))


def shipping_fee(tier, item_total: Decimal) -> Decimal:
    threshold = tier.free_shipping_threshold
    if threshold == 0 or item_total >= threshold:
        return ZERO
    return conf.base_shipping_fee()


def final_amount(item_total: Decimal, total_deduction: Decimal, fee: Decimal) -> Decimal:
    """item total - (discounts + points) + shipping, clamped at zero."""
    return max(ZERO, item_total - total_deduction + fee)


def earned_points(final: Decimal, earn_rate: Decimal) -> int:
    return int(_floor_won(final * earn_rate / HUNDRED))
