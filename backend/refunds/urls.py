from django.urls import path

from .views import OrderRefundsView

app_name = "refunds"

urlpatterns = [
    path("<uuid:order_id>/refunds/", OrderRefundsView.as_view(), name="order-refunds"),
]
