import logging

from .exceptions import DataIntegrityError, ResourceNotFound
from .locks import lock_wallet
from .models import PointHistory, Tier

logger = logging.getLogger(__name__)


def lock_order_wallet(order):
    """Wallet lock for refunds and point settlement on an existing order; a missing wallet is corrupt data."""
    try:
        return lock_wallet(order.user_id)
    except ResourceNotFound as exc:
        logger.error(f"wallet missing during compensation: order={order.pk} user={order.user_id}")
        raise DataIntegrityError(
            f"Wallet for user {order.user_id} referenced by order {order.order_number} no longer exists"
        ) from exc


def recompute_tier(wallet) -> None:
    """Tier is a pure function of cumulative spend: the highest tier whose minimum is reached."""
    tier = Tier.objects.filter(min_spent__lte=wallet.total_spent).order_by("-level").first()
    if tier is not None:
        wallet.tier = tier


def record_points(wallet, *, change_type: str, amount: int, reference_type: str, order, description=""):
    return PointHistory.objects.create(
        user_id=wallet.user_id,
        change_type=change_type,
        amount=amount,
        balance_after=wallet.point_balance,
        reference_type=reference_type,
        order=order,
        description=description,
    )
