import logging

from django.db import transaction

from .cancellation import cancel_locked_order
from .exceptions import ValidationFailed
from .locks import lock_order
from .models import Order
from .states import OrderStatus, PointChangeType
from .tx_retry import surface_transient_errors
from .wallet import lock_order_wallet, record_points

logger = logging.getLogger(__name__)


def settle_earned_points(order: Order) -> int:
    """Credit the earned-points snapshot exactly once. Caller holds the order lock."""
    if order.points_settled:
        return 0
    points = order.earned_points_snapshot
    wallet = lock_order_wallet(order)
    if points > 0:
        wallet.add_points(points)
        wallet.save(update_fields=["point_balance", "updated_at"])
        record_points(
            wallet,
            change_type=PointChangeType.EARN,
            amount=points,
            reference_type="DELIVERY",
            order=order,
            description=f"Points earned (order {order.order_number})",
        )
    order.points_settled = True
    logger.info(f"points settled: {order.order_number} +{points}P")
    return points


@surface_transient_errors
@transaction.atomic
def update_order_status(*, order_id: int, status: str, actor=None) -> Order:
    """Admin status change. CANCELLED goes through the full compensation path."""
    try:
        target = OrderStatus(str(status).strip().upper())
    except ValueError:
        raise ValidationFailed(f"Unknown order status: {status}", code="INVALID_STATUS") from None

    order = lock_order(order_id)
    if target == OrderStatus.CANCELLED:
        return cancel_locked_order(order, actor=actor)

    if target == OrderStatus.PAID:
        order.mark_paid()
    elif target == OrderStatus.SHIPPED:
        order.mark_shipped()
    elif target == OrderStatus.DELIVERED:
        order.mark_delivered()
        settle_earned_points(order)
    else:
        raise ValidationFailed(f"{target} cannot be set directly", code="INVALID_STATUS")
    order.save()

    logger.info(f"order {order.order_number} -> {order.status}")
    return order
