import pytest

from apps.shop.exceptions import InvalidStatusTransition
from apps.shop.models import Order, OrderItem
from apps.shop.states import OrderItemStatus, OrderStatus, PaymentMethod


@pytest.mark.parametrize(
    "source,target,allowed",
    [
        (OrderStatus.PENDING, OrderStatus.PAID, True),
        (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
        (OrderStatus.PAID, OrderStatus.SHIPPED, True),
        (OrderStatus.PAID, OrderStatus.CANCELLED, True),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED, True),
        (OrderStatus.PAID, OrderStatus.DELIVERED, False),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, False),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
        (OrderStatus.CANCELLED, OrderStatus.PAID, False),
        (OrderStatus.PAID, OrderStatus.PAID, False),
    ],
)
def test_order_transition_table(source, target, allowed):
    assert source.can_transition_to(target) is allowed


def test_only_pending_and_paid_are_cancellable():
    cancellable = {s for s in OrderStatus if s.is_cancellable}
    assert cancellable == {OrderStatus.PENDING, OrderStatus.PAID}


@pytest.mark.parametrize(
    "source,target,allowed",
    [
        (OrderItemStatus.NORMAL, OrderItemStatus.RETURN_REQUESTED, True),
        (OrderItemStatus.NORMAL, OrderItemStatus.CANCELLED, True),
        (OrderItemStatus.RETURN_REQUESTED, OrderItemStatus.RETURN_APPROVED, True),
        (OrderItemStatus.RETURN_REQUESTED, OrderItemStatus.RETURN_REJECTED, True),
        (OrderItemStatus.RETURN_APPROVED, OrderItemStatus.RETURNED, True),
        (OrderItemStatus.RETURN_REJECTED, OrderItemStatus.RETURN_REQUESTED, True),
        (OrderItemStatus.NORMAL, OrderItemStatus.RETURNED, False),
        (OrderItemStatus.RETURNED, OrderItemStatus.RETURN_REQUESTED, False),
        (OrderItemStatus.CANCELLED, OrderItemStatus.NORMAL, False),
        (OrderItemStatus.RETURN_REQUESTED, OrderItemStatus.CANCELLED, False),
    ],
)
def test_item_transition_table(source, target, allowed):
    assert source.can_transition_to(target) is allowed


def test_order_rejects_skipping_shipment():
    order = Order(order_number="T-1", status=OrderStatus.PAID)
    with pytest.raises(InvalidStatusTransition):
        order.mark_delivered()
    assert order.status == OrderStatus.PAID
    assert order.delivered_at is None


def test_order_transitions_stamp_timestamps():
    order = Order(order_number="T-2", status=OrderStatus.PENDING)
    order.mark_paid()
    order.mark_shipped()
    order.mark_delivered()
    assert order.status == OrderStatus.DELIVERED
    assert order.paid_at and order.shipped_at and order.delivered_at


def test_item_approve_goes_through_approved_to_returned():
    item = OrderItem(quantity=3, status=OrderItemStatus.NORMAL)
    item.request_return(2, "DEFECT")
    assert item.pending_return_quantity == 2
    assert item.remaining_quantity == 1

    item.approve_return(2, 0)
    assert item.status == OrderItemStatus.RETURNED
    assert item.returned_quantity == 2
    assert item.pending_return_quantity == 0


def test_item_cancel_requires_normal_status():
    item = OrderItem(quantity=2, status=OrderItemStatus.RETURN_REQUESTED, pending_return_quantity=1)
    with pytest.raises(InvalidStatusTransition) as exc:
        item.apply_cancel(1, 0)
    assert exc.value.code == "INVALID_ITEM_STATUS_TRANSITION"


def test_item_becomes_cancelled_only_when_drained():
    item = OrderItem(quantity=2, status=OrderItemStatus.NORMAL)
    item.apply_cancel(1, 0)
    assert item.status == OrderItemStatus.NORMAL
    item.apply_cancel(1, 0)
    assert item.status == OrderItemStatus.CANCELLED


@pytest.mark.parametrize("raw,expected", [("CARD", "CARD"), (" kakao ", "KAKAO"), ("naver", "NAVER")])
def test_payment_method_from_code(raw, expected):
    assert PaymentMethod.from_code(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "BITCOIN"])
def test_payment_method_from_code_rejects_unknown(raw):
    assert PaymentMethod.from_code(raw) is None
