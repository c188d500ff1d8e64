import itertools
from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.shop.checkout import CheckoutRequest, place_order
from apps.shop.fulfillment import update_order_status
from apps.shop.models import CartLine, Coupon, Product, Tier, UserCoupon, Wallet
from apps.shop.states import DiscountType


@pytest.fixture
def tiers(transactional_db):
    return {
        "BRONZE": Tier.objects.create(
            name="BRONZE", level=1, min_spent=Decimal("0"), discount_rate=Decimal("0"),
            point_earn_rate=Decimal("1.00"), free_shipping_threshold=Decimal("50000"),
        ),
        "SILVER": Tier.objects.create(
            name="SILVER", level=2, min_spent=Decimal("100000"), discount_rate=Decimal("5.00"),
            point_earn_rate=Decimal("2.00"), free_shipping_threshold=Decimal("30000"),
        ),
        "GOLD": Tier.objects.create(
            name="GOLD", level=3, min_spent=Decimal("500000"), discount_rate=Decimal("10.00"),
            point_earn_rate=Decimal("3.00"), free_shipping_threshold=Decimal("0"),
        ),
    }


@pytest.fixture
def make_user(tiers):
    seq = itertools.count(1)

    def _make(*, points=0, tier="BRONZE", total_spent="0", **extra):
        n = next(seq)
        user = get_user_model().objects.create_user(f"user{n}", f"user{n}@test.com", "pw", **extra)
        Wallet.objects.create(user=user, tier=tiers[tier], point_balance=points, total_spent=Decimal(total_spent))
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def staff(make_user):
    return make_user(is_staff=True)


@pytest.fixture
def make_product(transactional_db):
    seq = itertools.count(1)

    def _make(*, price="10000", stock=10, name=None):
        return Product.objects.create(
            name=name or f"product-{next(seq)}", price=Decimal(price), stock_quantity=stock
        )

    return _make


@pytest.fixture
def make_coupon(transactional_db):
    seq = itertools.count(1)

    def _make(owner, *, discount_type=DiscountType.FIXED, value="5000", min_order="0",
              max_discount=None, expires_at=None):
        now = timezone.now()
        n = next(seq)
        coupon = Coupon.objects.create(
            code=f"C{n:04d}",
            name=f"coupon {n}",
            discount_type=discount_type,
            discount_value=Decimal(value),
            min_order_amount=Decimal(min_order),
            max_discount=Decimal(max_discount) if max_discount is not None else None,
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=30),
        )
        return UserCoupon.objects.create(
            user=owner, coupon=coupon, expires_at=expires_at or now + timedelta(days=7)
        )

    return _make


def fill_cart(user, *lines):
    return [CartLine.objects.create(user=user, product=product, quantity=qty) for product, qty in lines]


@pytest.fixture
def buy():
    """Fill the cart with ``(product, qty)`` pairs and check out everything."""
    def _buy(user, *lines, payment_method="CARD", **kwargs):
        fill_cart(user, *lines)
        return place_order(user=user, request=CheckoutRequest(payment_method=payment_method, **kwargs))

    return _buy


@pytest.fixture
def deliver():
    def _deliver(order):
        update_order_status(order_id=order.pk, status="SHIPPED")
        return update_order_status(order_id=order.pk, status="DELIVERED")

    return _deliver
