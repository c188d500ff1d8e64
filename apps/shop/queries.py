"""Read-only lookups for the API layer. No locks are taken here."""
from .exceptions import ResourceNotFound
from .models import Order, OrderItem
from .states import OrderItemStatus


def orders_for_user(user):
    return Order.objects.filter(user=user).prefetch_related("items").order_by("-ordered_at", "-pk")


def order_detail(order_id: int, user) -> Order:
    order = orders_for_user(user).filter(pk=order_id).first()
    if order is None:
        raise ResourceNotFound("order", order_id)
    return order


def pending_returns():
    """Items waiting for an admin decision, oldest request first."""
    return (
        OrderItem.objects.filter(status=OrderItemStatus.RETURN_REQUESTED)
        .select_related("order__user")
        .order_by("return_requested_at", "pk")
    )


def pending_return_count() -> int:
    return OrderItem.objects.filter(status=OrderItemStatus.RETURN_REQUESTED).count()
