from django.urls import path

from . import views

urlpatterns = [
    path("orders", views.orders_view, name="orders"),
    path("orders/<int:order_id>", views.order_detail_view, name="order-detail"),
    path("orders/<int:order_id>/cancel", views.cancel_order_view, name="order-cancel"),
    path("orders/<int:order_id>/partial-cancel", views.partial_cancel_view, name="order-partial-cancel"),
    path("orders/<int:order_id>/returns", views.request_return_view, name="order-return-request"),
    path("admin/returns", views.pending_returns_view, name="return-queue"),
    path("admin/returns/count", views.pending_return_count_view, name="return-queue-count"),
    path(
        "admin/orders/<int:order_id>/items/<int:item_id>/approve-return",
        views.approve_return_view,
        name="order-return-approve",
    ),
    path(
        "admin/orders/<int:order_id>/items/<int:item_id>/reject-return",
        views.reject_return_view,
        name="order-return-reject",
    ),
    path("admin/orders/<int:order_id>/status", views.update_status_view, name="order-status-update"),
    path("admin/products/<int:product_id>/stock", views.adjust_stock_view, name="product-stock-adjust"),
]
