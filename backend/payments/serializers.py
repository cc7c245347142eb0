from rest_framework import serializers

from .models import GiftCardPayment, Payment
from .tenders import SplitGroup, TipRequest, build_tender


# ============================================================================
# READ SERIALIZERS
# ============================================================================


class GiftCardPaymentSerializer(serializers.ModelSerializer):
    gift_card_code = serializers.CharField(source="gift_card.code", read_only=True)

    class Meta:
        model = GiftCardPayment
        fields = ["gift_card_code", "amount_used"]


class PaymentSerializer(serializers.ModelSerializer):
    order_items = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    gift_card_uses = GiftCardPaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "order",
            "method",
            "status",
            "amount",
            "tendered_amount",
            "currency",
            "provider",
            "idempotency_key",
            "payment_intent_id",
            "transaction_id",
            "order_items",
            "gift_card_uses",
            "created_at",
        ]
        read_only_fields = fields


# ============================================================================
# SETTLEMENT REQUEST SERIALIZERS
# ============================================================================


class TenderSerializer(serializers.Serializer):
    """One requested payment of a close request."""

    method = serializers.ChoiceField(choices=Payment.PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField(max_length=3)
    provider = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    idempotency_key = serializers.CharField(
        max_length=255, required=False, allow_null=True, allow_blank=True
    )
    gift_card_code = serializers.CharField(
        max_length=32, required=False, allow_null=True, allow_blank=True
    )
    payment_method_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def to_tender(self, data):
        return build_tender(
            data["method"],
            data["amount"],
            data["currency"],
            provider=data.get("provider") or None,
            idempotency_key=data.get("idempotency_key") or None,
            gift_card_code=data.get("gift_card_code") or None,
            payment_method_id=data.get("payment_method_id") or None,
        )


class TipSerializer(serializers.Serializer):
    source = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)

    def to_tip(self, data):
        return TipRequest(amount=data["amount"], source=data.get("source", ""))


class AdjustmentOverridesMixin(serializers.Serializer):
    tip = TipSerializer(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    service_charge_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )

    def settlement_kwargs(self):
        data = self.validated_data
        tip = data.get("tip")
        return {
            "tip": TipSerializer().to_tip(tip) if tip else None,
            "discount_amount": data.get("discount_amount"),
            "service_charge_amount": data.get("service_charge_amount"),
        }


class CloseOrderSerializer(AdjustmentOverridesMixin):
    payments = TenderSerializer(many=True, allow_empty=True)

    def tenders(self):
        return [TenderSerializer().to_tender(item) for item in self.validated_data["payments"]]


class SplitGroupSerializer(serializers.Serializer):
    order_item_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=False
    )
    method = serializers.ChoiceField(choices=Payment.PaymentMethod.choices)
    currency = serializers.CharField(max_length=3)
    provider = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    idempotency_key = serializers.CharField(
        max_length=255, required=False, allow_null=True, allow_blank=True
    )
    gift_card_code = serializers.CharField(
        max_length=32, required=False, allow_null=True, allow_blank=True
    )
    payment_method_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_order_item_ids(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Order item ids must be unique within a group.")
        return value

    def to_group(self, data):
        return SplitGroup(
            order_item_ids=frozenset(data["order_item_ids"]),
            method=data["method"],
            currency=data["currency"].upper(),
            provider=data.get("provider") or None,
            idempotency_key=data.get("idempotency_key") or None,
            gift_card_code=data.get("gift_card_code") or None,
            payment_method_id=data.get("payment_method_id") or None,
        )


class CloseSplitOrderSerializer(AdjustmentOverridesMixin):
    splits = SplitGroupSerializer(many=True, allow_empty=False)

    def groups(self):
        return [SplitGroupSerializer().to_group(item) for item in self.validated_data["splits"]]
