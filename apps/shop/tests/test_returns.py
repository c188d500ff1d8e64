from datetime import timedelta
from decimal import Decimal

import pytest

from apps.shop.cancellation import approve_return, reject_return, request_return
from apps.shop.exceptions import (
    BusinessRuleViolation,
    DataIntegrityError,
    InvalidStatusTransition,
    ValidationFailed,
)
from apps.shop.models import InventoryMovement, Order, PointHistory, Wallet
from apps.shop.states import OrderItemStatus, OrderStatus, PointChangeType, RefundReason, StockChangeType

pytestmark = pytest.mark.django_db(transaction=True)


@pytest.fixture
def delivered(user, make_product, buy, deliver):
    product = make_product(price="10000", stock=10)
    order = deliver(buy(user, (product, 2)))
    return order, order.items.get(), product


def test_request_holds_quantity_without_moving_stock(user, delivered):
    order, item, product = delivered

    item = request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)

    assert item.status == OrderItemStatus.RETURN_REQUESTED
    assert item.pending_return_quantity == 1
    assert item.return_reason == "DEFECT"
    product.refresh_from_db()
    assert product.stock_quantity == 8
    assert Order.objects.get(pk=order.pk).refunded_amount == 0


def test_approve_refunds_and_restocks(user, staff, delivered):
    order, item, product = delivered
    request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)

    item = approve_return(order_id=order.pk, item_id=item.pk, actor=staff)

    assert item.status == OrderItemStatus.RETURNED
    assert (item.returned_quantity, item.pending_return_quantity) == (1, 0)
    assert item.returned_amount == Decimal("10000")
    assert item.returned_at is not None

    order.refresh_from_db()
    assert order.refunded_amount == Decimal("10000")
    assert order.status == OrderStatus.DELIVERED

    product.refresh_from_db()
    assert (product.stock_quantity, product.sales_count) == (9, 1)
    restock = InventoryMovement.objects.get(order=order, change_type=StockChangeType.IN)
    assert (restock.reason, restock.created_by_id) == (RefundReason.RETURN, staff.pk)

    wallet = Wallet.objects.get(user=user)
    assert wallet.total_spent == Decimal("13000")
    # earned points settled on delivery stay with the customer
    assert wallet.point_balance == 230


def test_approve_returns_points_share(make_user, make_product, buy, deliver):
    user = make_user(points=4000)
    product = make_product(price="10000")
    order = deliver(buy(user, (product, 4), use_points=4000))
    item = order.items.get()
    request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="SIZE_ISSUE", user=user)

    approve_return(order_id=order.pk, item_id=item.pk)

    order.refresh_from_db()
    assert order.refunded_points == 1000
    refund = PointHistory.objects.get(order=order, change_type=PointChangeType.REFUND)
    assert (refund.amount, refund.reference_type) == (1000, RefundReason.RETURN)


def test_approving_twice_fails_without_side_effects(user, delivered):
    order, item, product = delivered
    request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)
    approve_return(order_id=order.pk, item_id=item.pk)

    with pytest.raises(BusinessRuleViolation) as exc:
        approve_return(order_id=order.pk, item_id=item.pk)

    assert exc.value.code == "INVALID_ITEM_STATUS"
    product.refresh_from_db()
    assert product.stock_quantity == 9
    assert Order.objects.get(pk=order.pk).refunded_amount == Decimal("10000")


def test_reject_then_reapply(user, delivered):
    order, item, product = delivered
    request_return(order_id=order.pk, item_id=item.pk, quantity=2, reason="CHANGE_OF_MIND", user=user)

    item = reject_return(order_id=order.pk, item_id=item.pk, reject_reason="Tags removed")

    assert item.status == OrderItemStatus.RETURN_REJECTED
    assert item.reject_reason == "Tags removed"
    assert item.pending_return_quantity == 0
    product.refresh_from_db()
    assert product.stock_quantity == 8

    item = request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)
    assert item.status == OrderItemStatus.RETURN_REQUESTED
    assert item.reject_reason == ""


def test_reject_requires_pending_return(delivered):
    order, item, _ = delivered
    with pytest.raises(BusinessRuleViolation) as exc:
        reject_return(order_id=order.pk, item_id=item.pk, reject_reason="no")
    assert exc.value.code == "INVALID_ITEM_STATUS"


def test_second_request_while_pending_is_refused(user, delivered):
    order, item, _ = delivered
    request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)

    with pytest.raises(InvalidStatusTransition):
        request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)


def test_return_window_boundary(user, delivered):
    order, item, _ = delivered
    order.refresh_from_db()
    deadline = order.delivered_at + timedelta(days=14)

    with pytest.raises(BusinessRuleViolation) as exc:
        request_return(
            order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user,
            now=deadline + timedelta(seconds=1),
        )
    assert exc.value.code == "RETURN_PERIOD_EXPIRED"

    item = request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user, now=deadline)
    assert item.status == OrderItemStatus.RETURN_REQUESTED


def test_return_window_follows_settings(settings, user, delivered):
    settings.SHOP = {**settings.SHOP, "RETURN_PERIOD_DAYS": 3}
    order, item, _ = delivered
    order.refresh_from_db()

    with pytest.raises(BusinessRuleViolation) as exc:
        request_return(
            order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user,
            now=order.delivered_at + timedelta(days=4),
        )
    assert exc.value.code == "RETURN_PERIOD_EXPIRED"


def test_delivered_order_without_timestamp_is_an_integrity_error(user, delivered):
    order, item, _ = delivered
    Order.objects.filter(pk=order.pk).update(delivered_at=None)

    with pytest.raises(DataIntegrityError) as exc:
        request_return(order_id=order.pk, item_id=item.pk, quantity=1, reason="DEFECT", user=user)
    assert exc.value.code == "MISSING_DELIVERED_AT"
    assert exc.value.http_status == 500


def test_return_before_delivery_is_refused(user, make_product, buy):
    order = buy(user, (make_product(), 1))
    with pytest.raises(BusinessRuleViolation) as exc:
        request_return(order_id=order.pk, item_id=order.items.get().pk, quantity=1, reason="DEFECT", user=user)
    assert exc.value.code == "RETURN_NOT_ALLOWED"


@pytest.mark.parametrize(
    "quantity,reason,code",
    [(0, "DEFECT", "INVALID_QUANTITY"), (3, "DEFECT", "INVALID_QUANTITY"), (1, "BORED", "INVALID_RETURN_REASON")],
)
def test_request_validation(user, delivered, quantity, reason, code):
    order, item, _ = delivered
    with pytest.raises(ValidationFailed) as exc:
        request_return(order_id=order.pk, item_id=item.pk, quantity=quantity, reason=reason, user=user)
    assert exc.value.code == code
