from rest_framework import serializers

from .models import Order, OrderItem
from .states import OrderStatus, PaymentMethod, ReturnReason


class CheckoutIn(serializers.Serializer):
    payment_method = serializers.CharField()
    shipping_address = serializers.CharField(allow_blank=True, required=False, default="")
    recipient_name = serializers.CharField(max_length=100, allow_blank=True, required=False, default="")
    recipient_phone = serializers.CharField(max_length=20, allow_blank=True, required=False, default="")
    user_coupon_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    use_points = serializers.IntegerField(min_value=0, required=False, default=0)
    cart_line_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_null=True)

    def validate_payment_method(self, value):
        method = PaymentMethod.from_code(value)
        if method is None:
            raise serializers.ValidationError("Unsupported payment method.")
        return method.value

    def validate_cart_line_ids(self, value):
        if value is not None and not value:
            raise serializers.ValidationError("Select at least one cart line.")
        return value


class PartialCancelIn(serializers.Serializer):
    item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class ReturnIn(serializers.Serializer):
    item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.ChoiceField(choices=ReturnReason.choices)


class RejectReturnIn(serializers.Serializer):
    reject_reason = serializers.CharField(max_length=500)


class StatusUpdateIn(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class OrderItemOut(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)
    remaining_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id", "product_id", "product_name", "quantity", "unit_price", "subtotal",
            "cancelled_quantity", "returned_quantity", "pending_return_quantity", "remaining_quantity",
            "cancelled_amount", "returned_amount", "status", "return_reason", "reject_reason",
        ]


class OrderOut(serializers.ModelSerializer):
    items = OrderItemOut(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "status", "total_amount", "tier_discount_amount",
            "coupon_discount_amount", "shipping_fee", "final_amount", "refunded_amount",
            "used_points", "refunded_points", "earned_points_snapshot", "points_settled",
            "payment_method", "ordered_at", "paid_at", "shipped_at", "delivered_at", "cancelled_at",
            "items",
        ]


class ReturnRequestOut(serializers.ModelSerializer):
    order_id = serializers.IntegerField(read_only=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    user_id = serializers.IntegerField(source="order.user_id", read_only=True)
    username = serializers.CharField(source="order.user.username", read_only=True)
    email = serializers.EmailField(source="order.user.email", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id", "order_id", "order_number", "product_name", "pending_return_quantity",
            "return_reason", "return_requested_at", "user_id", "username", "email",
        ]


class StockAdjustIn(serializers.Serializer):
    amount = serializers.IntegerField()
    reason = serializers.CharField(max_length=20)
