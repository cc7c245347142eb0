from django.contrib import admin

from .models import GiftCard, GiftCardPayment, Payment


class GiftCardPaymentInline(admin.TabularInline):
    model = GiftCardPayment
    extra = 0
    readonly_fields = ("gift_card", "amount_used")
    can_delete = False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "method", "status", "amount", "currency", "created_at")
    list_filter = ("tenant", "method", "status")
    search_fields = ("id", "order__id", "payment_intent_id", "idempotency_key")
    readonly_fields = [field.name for field in Payment._meta.fields]
    inlines = [GiftCardPaymentInline]

    def has_add_permission(self, request):
        # Payments are only created by the settlement service
        return False


@admin.register(GiftCard)
class GiftCardAdmin(admin.ModelAdmin):
    list_display = ("code", "tenant", "balance", "initial_balance", "is_active", "expires_at")
    list_filter = ("tenant", "is_active")
    search_fields = ("code",)
    readonly_fields = ("balance", "last_used_at")
