from django.urls import path

from .views import CancelOrderView, CloseOrderView, CloseSplitOrderView, OrderTotalsView

app_name = "orders"

urlpatterns = [
    path("<uuid:order_id>/close/", CloseOrderView.as_view(), name="order-close"),
    path("<uuid:order_id>/close-split/", CloseSplitOrderView.as_view(), name="order-close-split"),
    path("<uuid:order_id>/cancel/", CancelOrderView.as_view(), name="order-cancel"),
    path("<uuid:order_id>/totals/", OrderTotalsView.as_view(), name="order-totals"),
]
