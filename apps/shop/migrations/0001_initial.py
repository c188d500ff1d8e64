import decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Tier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=30, unique=True)),
                ("level", models.PositiveSmallIntegerField(unique=True)),
                ("min_spent", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("discount_rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=5)),
                ("point_earn_rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=5)),
                (
                    "free_shipping_threshold",
                    models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15),
                ),
            ],
            options={"ordering": ["level"]},
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("stock_quantity", models.PositiveIntegerField(default=0)),
                ("sales_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True)),
                ("name", models.CharField(max_length=100)),
                (
                    "discount_type",
                    models.CharField(choices=[("FIXED", "Fixed amount"), ("PERCENT", "Percent")], max_length=10),
                ),
                ("discount_value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("min_order_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("max_discount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("total_quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("used_quantity", models.PositiveIntegerField(default=0)),
                ("valid_from", models.DateTimeField()),
                ("valid_until", models.DateTimeField()),
                ("is_active", models.BooleanField(default=True)),
            ],
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=50, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Awaiting payment"),
                            ("PAID", "Paid"),
                            ("SHIPPED", "Shipped"),
                            ("DELIVERED", "Delivered"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("tier_discount_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("coupon_discount_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("shipping_fee", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10)),
                ("final_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("refunded_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("used_points", models.PositiveIntegerField(default=0)),
                ("refunded_points", models.PositiveIntegerField(default=0)),
                (
                    "point_earn_rate_snapshot",
                    models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=5),
                ),
                ("earned_points_snapshot", models.PositiveIntegerField(default=0)),
                ("points_settled", models.BooleanField(default=False)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("CARD", "Credit/debit card"),
                            ("BANK", "Bank transfer"),
                            ("KAKAO", "KakaoPay"),
                            ("NAVER", "NaverPay"),
                            ("PAYCO", "PAYCO"),
                        ],
                        max_length=20,
                    ),
                ),
                ("shipping_address", models.TextField(blank=True)),
                ("recipient_name", models.CharField(blank=True, max_length=100)),
                ("recipient_phone", models.CharField(blank=True, max_length=20)),
                ("ordered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-ordered_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("refunded_amount__gte", 0), ("refunded_amount__lte", models.F("final_amount"))),
                        name="order_refunded_amount_within_final",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("refunded_points__lte", models.F("used_points"))),
                        name="order_refunded_points_within_used",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("point_balance", models.PositiveIntegerField(default=0)),
                ("total_spent", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="wallets", to="shop.tier"
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wallet",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="CartLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField()),
                ("added_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="shop.product"),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cart_lines",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("user", "product"), name="cart_line_unique_product"),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserCoupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("is_used", models.BooleanField(default=False)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("issued_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("expires_at", models.DateTimeField()),
                (
                    "coupon",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="issued", to="shop.coupon"
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="shop.order",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="coupons",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(max_length=200)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("discount_rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=5)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=15)),
                ("cancelled_quantity", models.PositiveIntegerField(default=0)),
                ("returned_quantity", models.PositiveIntegerField(default=0)),
                ("pending_return_quantity", models.PositiveIntegerField(default=0)),
                ("cancelled_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("returned_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("NORMAL", "Normal"),
                            ("RETURN_REQUESTED", "Return requested"),
                            ("RETURN_APPROVED", "Return approved"),
                            ("RETURNED", "Returned"),
                            ("RETURN_REJECTED", "Return rejected"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="NORMAL",
                        max_length=20,
                    ),
                ),
                (
                    "return_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("DEFECT", "Defective product"),
                            ("WRONG_ITEM", "Wrong item delivered"),
                            ("CHANGE_OF_MIND", "Changed mind"),
                            ("SIZE_ISSUE", "Size issue"),
                            ("OTHER", "Other"),
                        ],
                        max_length=20,
                    ),
                ),
                ("reject_reason", models.CharField(blank=True, max_length=500)),
                ("return_requested_at", models.DateTimeField(blank=True, null=True)),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="items", to="shop.order"
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="+", to="shop.product"
                    ),
                ),
            ],
            options={
                "ordering": ["product_id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "quantity__gte",
                                models.F("cancelled_quantity") + models.F("returned_quantity") + models.F("pending_return_quantity"),
                            )
                        ),
                        name="order_item_quantities_within_ordered",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("change_type", models.CharField(choices=[("IN", "Stock in"), ("OUT", "Stock out")], max_length=3)),
                ("change_amount", models.PositiveIntegerField()),
                ("before_quantity", models.PositiveIntegerField()),
                ("after_quantity", models.PositiveIntegerField()),
                ("reason", models.CharField(max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="shop.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="shop.product"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="PointHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "change_type",
                    models.CharField(
                        choices=[("EARN", "Earned"), ("USE", "Used"), ("REFUND", "Refunded")], max_length=10
                    ),
                ),
                ("amount", models.IntegerField()),
                ("balance_after", models.PositiveIntegerField()),
                ("reference_type", models.CharField(max_length=20)),
                ("description", models.CharField(blank=True, max_length=200)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="point_history",
                        to="shop.order",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="point_history",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
    ]
