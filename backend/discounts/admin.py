from django.contrib import admin

from .models import Discount, ServiceChargePolicy


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "scope", "type", "value", "is_active", "starts_at", "ends_at")
    list_filter = ("tenant", "scope", "type", "is_active")
    search_fields = ("name", "code")


@admin.register(ServiceChargePolicy)
class ServiceChargePolicyAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "type", "value", "is_active")
    list_filter = ("tenant", "type", "is_active")
