from rest_framework import status

from payments.views.base import BaseSettlementView
from .serializers import CreateRefundSerializer, RefundSerializer
from .services import RefundProcessor


class OrderRefundsView(BaseSettlementView):
    """
    GET lists the refunds of an order; POST refunds part or all of one of
    its payments.
    """

    def get(self, request, order_id):
        refunds = RefundProcessor(self.get_settlement_context()).refunds_for_order(order_id)
        return self.create_success_response(RefundSerializer(refunds, many=True).data)

    def post(self, request, order_id):
        serializer = CreateRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        refund = RefundProcessor(self.get_settlement_context()).create_refund(
            order_id,
            data["amount"],
            reason=data.get("reason", ""),
            payment_id=data.get("payment_id"),
        )
        return self.create_success_response(
            RefundSerializer(refund).data, status.HTTP_201_CREATED
        )
