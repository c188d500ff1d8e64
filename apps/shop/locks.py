"""Row and advisory locks.

Every mutating path takes locks in one order:

    Order -> Product (ascending id) -> UserCoupon -> Wallet

Checkout has no order row yet; it starts with the per-user checkout lock and
then follows the same sequence from Product on.
"""
from django.contrib.auth import get_user_model
from django.db import connection

from .exceptions import ResourceNotFound
from .models import Order, Product, Wallet


def acquire_checkout_lock(user_id: int) -> None:
    """Serialize checkouts of one user until the surrounding transaction ends."""
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute("SELECT pg_advisory_xact_lock(%s)", [user_id])
        return
    # no advisory locks elsewhere: the auth user row is never locked by any other path
    list(get_user_model().objects.select_for_update().filter(pk=user_id).values_list("pk", flat=True))


def lock_order(order_id: int, user=None) -> Order:
    qs = Order.objects.select_for_update().filter(pk=order_id)
    if user is not None:
        qs = qs.filter(user=user)
    order = qs.first()
    if order is None:
        raise ResourceNotFound("order", order_id)
    return order


def lock_product(product_id: int) -> Product:
    # fresh locked read; never trust an instance loaded before the lock
    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None:
        raise ResourceNotFound("product", product_id)
    return product


def lock_wallet(user_id: int) -> Wallet:
    wallet = Wallet.objects.select_for_update().filter(user_id=user_id).first()
    if wallet is None:
        raise ResourceNotFound("wallet", user_id)
    return wallet
