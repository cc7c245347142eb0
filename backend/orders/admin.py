from django.contrib import admin

from .models import BusinessPricingPolicy, Order, OrderItem, OrderTip


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "variation", "service", "reservation", "quantity")


class OrderTipInline(admin.StackedInline):
    model = OrderTip
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "status", "refund_status", "currency", "opened_at", "closed_at")
    list_filter = ("tenant", "status", "refund_status")
    search_fields = ("id",)
    readonly_fields = ("status", "closed_at", "cancelled_at", "refund_status")
    inlines = [OrderItemInline, OrderTipInline]


admin.site.register(BusinessPricingPolicy)
