from rest_framework import serializers

from .models import Refund


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = ["id", "order", "payment", "amount", "reason", "is_partial", "created_at"]
        read_only_fields = fields


class CreateRefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    payment_id = serializers.UUIDField(required=False, allow_null=True)
