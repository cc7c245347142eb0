"""
URL configuration for the POS settlement backend.
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_check(request):
    """Simple health check endpoint that doesn't require a tenant"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    path("api/orders/", include("orders.urls")),
    path("api/orders/", include("refunds.urls")),
    path("api/payments/", include("payments.urls")),
]
