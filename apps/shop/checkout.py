"""Order creation: cart -> priced, paid order.

Flow, all inside one atomic block:
1) validate input (no locks yet)
2) per-user checkout lock, then load the selected cart lines
3) lock products in ascending id order, check and decrement stock
4) tier discount per line, coupon discount on the pre-discount subtotal
5) reserve the coupon with a conditional update
6) lock the wallet, clamp and debit points
7) shipping fee, final amount, earned-points snapshot (credited on delivery)
8) persist order, items, then inventory/point ledgers with the order id
9) drop the ordered cart lines, announce stock change after commit
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from . import pricing
from .events import publish_stock_changed
from .exceptions import BusinessRuleViolation, ResourceNotFound, ValidationFailed
from .inventory import record_movements, reserve_stock
from .locks import acquire_checkout_lock, lock_wallet
from .models import CartLine, Order, OrderItem, UserCoupon, Wallet
from .states import PaymentMethod, PointChangeType
from .tx_retry import surface_transient_errors
from .wallet import recompute_tier, record_points

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CheckoutRequest:
    payment_method: str
    shipping_address: str = ""
    recipient_name: str = ""
    recipient_phone: str = ""
    user_coupon_id: int | None = None
    use_points: int = 0
    cart_line_ids: tuple | None = None  # None = whole cart


@dataclass(frozen=True)
class _Line:
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


def generate_order_number() -> str:
    stamp = timezone.localtime().strftime("%Y%m%d%H%M%S%f")[:-3]
    return f"{stamp}-{uuid.uuid4().hex[:12].upper()}"


def _validate(request: CheckoutRequest) -> tuple:
    payment_method = PaymentMethod.from_code(request.payment_method)
    if payment_method is None:
        raise ValidationFailed(
            f"Unsupported payment method: {request.payment_method}", code="UNSUPPORTED_PAYMENT_METHOD"
        )
    if request.use_points is None or request.use_points < 0:
        raise ValidationFailed("Points to use must be zero or more", code="INVALID_POINTS")

    line_ids = None
    if request.cart_line_ids is not None:
        line_ids = sorted(set(request.cart_line_ids))
        if not line_ids:
            raise ValidationFailed("No cart lines selected", code="EMPTY_SELECTION")
    return payment_method, line_ids


def _load_cart_lines(user, line_ids) -> list:
    qs = CartLine.objects.filter(user=user)
    if line_ids is None:
        lines = list(qs)
        if not lines:
            raise ValidationFailed("Cart is empty", code="EMPTY_SELECTION")
        return lines

    lines = list(qs.filter(pk__in=line_ids))
    if len(lines) != len(line_ids):
        missing = sorted(set(line_ids) - {line.pk for line in lines})
        raise ValidationFailed(
            f"Cart lines not found or not owned by user: {missing}", code="INVALID_CART_SELECTION"
        )
    return lines


def _reserve_coupon(user, user_coupon_id: int, subtotal: Decimal):
    user_coupon = UserCoupon.objects.select_related("coupon").filter(pk=user_coupon_id).first()
    if user_coupon is None:
        raise ResourceNotFound("coupon", user_coupon_id)
    if user_coupon.user_id != user.pk:
        raise BusinessRuleViolation("Coupon belongs to another user", code="COUPON_INVALID")
    if user_coupon.is_used:
        raise BusinessRuleViolation("Coupon already used", code="COUPON_ALREADY_USED")
    now = timezone.now()
    if not user_coupon.is_available(now):
        raise BusinessRuleViolation("Coupon is expired or inactive", code="COUPON_EXPIRED")

    discount = pricing.coupon_discount(user_coupon.coupon, subtotal)

    # only one request can flip is_used; anyone else sees 0 rows
    updated = UserCoupon.objects.filter(pk=user_coupon.pk, is_used=False).update(is_used=True, used_at=now)
    if updated != 1:
        raise BusinessRuleViolation("Coupon already used", code="COUPON_ALREADY_USED")
    return user_coupon, discount


@surface_transient_errors
@transaction.atomic
def place_order(*, user, request: CheckoutRequest) -> Order:
    payment_method, line_ids = _validate(request)

    acquire_checkout_lock(user.pk)
    cart_lines = _load_cart_lines(user, line_ids)
    # global lock order: products ascending by id
    cart_lines.sort(key=lambda c: c.product_id)

    current = Wallet.objects.select_related("tier").filter(user=user).first()
    if current is None:
        raise ResourceNotFound("wallet", user.pk)
    tier = current.tier

    reservations, lines = [], []
    subtotal = tier_discount = ZERO
    for cart_line in cart_lines:
        product, before, after = reserve_stock(cart_line.product_id, cart_line.quantity)
        line_subtotal = product.price * cart_line.quantity
        subtotal += line_subtotal
        tier_discount += pricing.tier_discount_for_line(line_subtotal, tier.discount_rate)
        reservations.append((product, before, after))
        lines.append(_Line(product.pk, product.name, cart_line.quantity, product.price, line_subtotal))

    user_coupon, coupon_discount = None, ZERO
    if request.user_coupon_id is not None:
        user_coupon, coupon_discount = _reserve_coupon(user, request.user_coupon_id, subtotal)
    total_discount = tier_discount + coupon_discount

    wallet = lock_wallet(user.pk)
    use_points = request.use_points
    if use_points > 0:
        if use_points > wallet.point_balance:
            raise BusinessRuleViolation(
                f"Not enough points (balance {wallet.point_balance}P, requested {use_points}P)",
                code="INSUFFICIENT_POINTS",
            )
        use_points = min(use_points, pricing.max_usable_points(subtotal, total_discount))
        wallet.use_points(use_points)

    fee = pricing.shipping_fee(tier, subtotal)
    final = pricing.final_amount(subtotal, total_discount + use_points, fee)

    order = Order(
        order_number=generate_order_number(),
        user=user,
        total_amount=subtotal,
        tier_discount_amount=tier_discount,
        coupon_discount_amount=coupon_discount,
        discount_amount=total_discount,
        shipping_fee=fee,
        final_amount=final,
        used_points=use_points,
        point_earn_rate_snapshot=tier.point_earn_rate,
        earned_points_snapshot=pricing.earned_points(final, tier.point_earn_rate),
        payment_method=payment_method,
        shipping_address=request.shipping_address,
        recipient_name=request.recipient_name,
        recipient_phone=request.recipient_phone,
    )
    # payment is captured synchronously
    order.mark_paid()
    order.save()
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount_rate=tier.discount_rate,
                subtotal=line.subtotal,
            )
            for line in lines
        ]
    )

    # ledgers only once the order id exists
    record_movements(reservations, order=order, actor=user)
    if user_coupon is not None:
        UserCoupon.objects.filter(pk=user_coupon.pk).update(order=order)
    if use_points > 0:
        record_points(
            wallet,
            change_type=PointChangeType.USE,
            amount=-use_points,
            reference_type="ORDER",
            order=order,
            description=f"Points used (order {order.order_number})",
        )

    wallet.add_total_spent(final)
    recompute_tier(wallet)
    wallet.save(update_fields=["point_balance", "total_spent", "tier", "updated_at"])

    CartLine.objects.filter(pk__in=[c.pk for c in cart_lines]).delete()
    publish_stock_changed(line.product_id for line in lines)

    logger.info(
        f"order placed: {order.order_number} user={user.pk} final={final} "
        f"points_used={use_points} items={len(lines)}"
    )
    return order
