"""Stock ledger operations.

Stock only moves through these functions, each under the product row lock,
and each move is recorded in ``InventoryMovement`` with before/after values.
"""
import logging

from django.db import transaction

from .events import publish_stock_changed
from .exceptions import DataIntegrityError, InsufficientStock, ResourceNotFound, ValidationFailed
from .locks import lock_product
from .models import InventoryMovement
from .states import StockChangeType
from .tx_retry import surface_transient_errors

logger = logging.getLogger(__name__)


def reserve_stock(product_id: int, quantity: int) -> tuple:
    """Lock, check and decrement. Returns ``(product, before, after)``.

    The movement row is written later by ``record_movements`` once the order id exists.
    """
    product = lock_product(product_id)
    if product.stock_quantity < quantity:
        raise InsufficientStock(product.name, quantity, product.stock_quantity)
    before = product.stock_quantity
    product.decrease_stock(quantity)
    product.save(update_fields=["stock_quantity", "sales_count", "updated_at"])
    return product, before, product.stock_quantity


def record_movements(reservations, *, order, actor) -> None:
    InventoryMovement.objects.bulk_create(
        [
            InventoryMovement(
                product=product,
                change_type=StockChangeType.OUT,
                change_amount=before - after,
                before_quantity=before,
                after_quantity=after,
                reason="ORDER",
                order=order,
                created_by=actor,
            )
            for product, before, after in reservations
        ]
    )


def restore_stock(product_id: int, quantity: int, *, reason: str, order, actor) -> InventoryMovement:
    try:
        product = lock_product(product_id)
    except ResourceNotFound as exc:
        logger.error(f"product vanished during compensation: order={order.pk} product={product_id}")
        raise DataIntegrityError(
            f"Product {product_id} referenced by order {order.order_number} no longer exists"
        ) from exc

    before = product.stock_quantity
    try:
        product.increase_stock_and_rollback_sales(quantity)
    except ValueError as exc:
        logger.error(f"sales count underflow: order={order.pk} product={product_id} qty={quantity}")
        raise DataIntegrityError(str(exc)) from exc
    product.save(update_fields=["stock_quantity", "sales_count", "updated_at"])

    return InventoryMovement.objects.create(
        product=product,
        change_type=StockChangeType.IN,
        change_amount=quantity,
        before_quantity=before,
        after_quantity=product.stock_quantity,
        reason=reason,
        order=order,
        created_by=actor,
    )


@surface_transient_errors
@transaction.atomic
def adjust_stock(product_id: int, amount: int, *, reason: str, actor) -> InventoryMovement:
    """Admin correction outside any order. Positive ``amount`` is IN, negative is OUT."""
    if amount == 0:
        raise ValidationFailed("Adjustment amount must not be zero", code="INVALID_QUANTITY")

    product = lock_product(product_id)
    if product.stock_quantity + amount < 0:
        raise InsufficientStock(product.name, -amount, product.stock_quantity)
    before = product.stock_quantity
    product.adjust_stock(amount)
    product.save(update_fields=["stock_quantity", "updated_at"])

    movement = InventoryMovement.objects.create(
        product=product,
        change_type=StockChangeType.IN if amount > 0 else StockChangeType.OUT,
        change_amount=abs(amount),
        before_quantity=before,
        after_quantity=product.stock_quantity,
        reason=reason,
        order=None,
        created_by=actor,
    )
    publish_stock_changed([product.pk])
    logger.info(f"stock adjusted: product={product.pk} {before}->{product.stock_quantity} ({reason})")
    return movement
