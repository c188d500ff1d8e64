import logging

from django.urls import reverse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import exception_handler

from . import cancellation, fulfillment, inventory, queries
from .checkout import CheckoutRequest, place_order
from .exceptions import ShopError
from .models import Order
from .serializers import (
    CheckoutIn,
    OrderItemOut,
    OrderOut,
    PartialCancelIn,
    RejectReturnIn,
    ReturnIn,
    ReturnRequestOut,
    StatusUpdateIn,
    StockAdjustIn,
)
from .tx_retry import retry_on_tx_failure

logger = logging.getLogger(__name__)


class ShopPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "size"
    max_page_size = 100


def shop_exception_handler(exc, context):
    if isinstance(exc, ShopError):
        if exc.http_status >= 500:
            logger.error(f"{exc}")
        else:
            logger.warning(f"{exc}")
        return Response({"code": exc.code, "message": exc.message}, status=exc.http_status)
    return exception_handler(exc, context)


def _reload(order_id):
    return Order.objects.prefetch_related("items").get(pk=order_id)


def _paginated(request, queryset, serializer_class):
    paginator = ShopPagination()
    page = paginator.paginate_queryset(queryset, request)
    return paginator.get_paginated_response(serializer_class(page, many=True).data)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def orders_view(request):
    if request.method == "GET":
        return _paginated(request, queries.orders_for_user(request.user), OrderOut)

    ser = CheckoutIn(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    line_ids = data.get("cart_line_ids")

    checkout = CheckoutRequest(
        payment_method=data["payment_method"],
        shipping_address=data["shipping_address"],
        recipient_name=data["recipient_name"],
        recipient_phone=data["recipient_phone"],
        user_coupon_id=data["user_coupon_id"],
        use_points=data["use_points"],
        cart_line_ids=tuple(line_ids) if line_ids is not None else None,
    )
    order = retry_on_tx_failure(max_attempts=3)(place_order)(user=request.user, request=checkout)

    headers = {"Location": reverse("order-detail", args=[order.id])}
    return Response(OrderOut(_reload(order.id)).data, status=status.HTTP_201_CREATED, headers=headers)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def order_detail_view(request, order_id):
    return Response(OrderOut(queries.order_detail(order_id, request.user)).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def cancel_order_view(request, order_id):
    retry_on_tx_failure(max_attempts=3)(cancellation.cancel_order)(order_id=order_id, user=request.user)
    return Response(OrderOut(_reload(order_id)).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def partial_cancel_view(request, order_id):
    ser = PartialCancelIn(data=request.data)
    ser.is_valid(raise_exception=True)
    retry_on_tx_failure(max_attempts=3)(cancellation.partial_cancel)(
        order_id=order_id,
        item_id=ser.validated_data["item_id"],
        quantity=ser.validated_data["quantity"],
        user=request.user,
    )
    return Response(OrderOut(_reload(order_id)).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def request_return_view(request, order_id):
    ser = ReturnIn(data=request.data)
    ser.is_valid(raise_exception=True)
    item = cancellation.request_return(
        order_id=order_id,
        item_id=ser.validated_data["item_id"],
        quantity=ser.validated_data["quantity"],
        reason=ser.validated_data["reason"],
        user=request.user,
    )
    return Response(OrderItemOut(item).data, status=status.HTTP_202_ACCEPTED)


@api_view(["POST"])
@permission_classes([IsAdminUser])
def approve_return_view(request, order_id, item_id):
    item = retry_on_tx_failure(max_attempts=3)(cancellation.approve_return)(
        order_id=order_id, item_id=item_id, actor=request.user
    )
    return Response(OrderItemOut(item).data)


@api_view(["POST"])
@permission_classes([IsAdminUser])
def reject_return_view(request, order_id, item_id):
    ser = RejectReturnIn(data=request.data)
    ser.is_valid(raise_exception=True)
    item = cancellation.reject_return(
        order_id=order_id, item_id=item_id, reject_reason=ser.validated_data["reject_reason"]
    )
    return Response(OrderItemOut(item).data)


@api_view(["POST"])
@permission_classes([IsAdminUser])
def update_status_view(request, order_id):
    ser = StatusUpdateIn(data=request.data)
    ser.is_valid(raise_exception=True)
    fulfillment.update_order_status(order_id=order_id, status=ser.validated_data["status"], actor=request.user)
    return Response(OrderOut(_reload(order_id)).data)


@api_view(["GET"])
@permission_classes([IsAdminUser])
def pending_returns_view(request):
    return _paginated(request, queries.pending_returns(), ReturnRequestOut)


@api_view(["GET"])
@permission_classes([IsAdminUser])
def pending_return_count_view(request):
    return Response({"count": queries.pending_return_count()})


@api_view(["POST"])
@permission_classes([IsAdminUser])
def adjust_stock_view(request, product_id):
    ser = StockAdjustIn(data=request.data)
    ser.is_valid(raise_exception=True)
    movement = retry_on_tx_failure(max_attempts=3)(inventory.adjust_stock)(
        product_id, ser.validated_data["amount"], reason=ser.validated_data["reason"], actor=request.user
    )
    return Response(
        {
            "product_id": product_id,
            "change_type": movement.change_type,
            "before_quantity": movement.before_quantity,
            "after_quantity": movement.after_quantity,
        }
    )
