from django.contrib import admin

from .models import Refund


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "order", "payment", "amount", "is_partial", "created_at")
    list_filter = ("tenant", "is_partial", "created_at")
    search_fields = ("order__id", "payment__id", "reason")
    readonly_fields = [field.name for field in Refund._meta.fields]

    def has_add_permission(self, request):
        # Refunds should only be created via the refund processor
        return False

    def has_delete_permission(self, request, obj=None):
        # Refunds are the audit trail
        return False
