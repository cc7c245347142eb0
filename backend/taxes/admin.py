from django.contrib import admin

from .models import TaxCategory, TaxRate


class TaxRateInline(admin.TabularInline):
    model = TaxRate
    extra = 0
    fields = ("rate_percent", "effective_from", "effective_to", "is_active")


@admin.register(TaxCategory)
class TaxCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "is_active", "deleted_at")
    list_filter = ("tenant", "is_active")
    inlines = [TaxRateInline]
