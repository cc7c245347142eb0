from rest_framework import serializers

from payments.serializers import PaymentSerializer
from .models import Order, OrderItem, OrderTip


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "product", "variation", "service", "reservation", "quantity"]


class OrderTipSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderTip
        fields = ["source", "amount", "created_at"]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "refund_status",
            "currency",
            "note",
            "items",
            "opened_at",
            "closed_at",
            "cancelled_at",
        ]
        read_only_fields = fields


# ============================================================================
# TOTALS
# ============================================================================


def money_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class PricedLineSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()
    product_id = serializers.IntegerField(allow_null=True)
    service_id = serializers.IntegerField(allow_null=True)
    unit_price = money_field()
    quantity = serializers.IntegerField()
    subtotal = money_field()
    tax_category_id = serializers.IntegerField(allow_null=True)
    rate_percent = serializers.DecimalField(max_digits=5, decimal_places=2)
    tax = money_field()


class TaxBreakdownEntrySerializer(serializers.Serializer):
    tax_category_id = serializers.IntegerField()
    category_name = serializers.CharField()
    rate_percent = serializers.DecimalField(max_digits=5, decimal_places=2)
    amount = money_field()


class OrderTotalsSerializer(serializers.Serializer):
    currency = serializers.CharField()
    subtotal = money_field()
    tax = money_field()
    discount = money_field()
    service_charge = money_field()
    tip = money_field()
    total = money_field()
    paid = money_field()
    remaining = money_field()
    tax_breakdown = TaxBreakdownEntrySerializer(many=True)
    lines = PricedLineSerializer(many=True)


class TotalsQuerySerializer(serializers.Serializer):
    """Optional overrides accepted by the totals preview."""

    discount_amount = money_field(min_value=0, required=False, allow_null=True)
    service_charge_amount = money_field(min_value=0, required=False, allow_null=True)
    tip_amount = money_field(min_value=0, required=False, allow_null=True)


class SettlementResultSerializer(serializers.Serializer):
    order = OrderSerializer()
    totals = OrderTotalsSerializer()
    payments = PaymentSerializer(many=True)
    change = money_field(allow_null=True)
    payment_intent_id = serializers.CharField(allow_null=True)
    requires_3ds = serializers.BooleanField()
