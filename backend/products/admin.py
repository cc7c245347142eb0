from django.contrib import admin

from .models import Product, ProductVariation, Service, Reservation


class ProductVariationInline(admin.TabularInline):
    model = ProductVariation
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "price", "tax_category", "is_active")
    list_filter = ("tenant", "is_active")
    search_fields = ("name",)
    inlines = [ProductVariationInline]


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "default_price", "duration_minutes", "is_active")
    list_filter = ("tenant", "is_active")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("service", "tenant", "customer_name", "starts_at")
    list_filter = ("tenant",)
