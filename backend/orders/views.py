import logging

from rest_framework import status

from payments.serializers import CloseOrderSerializer, CloseSplitOrderSerializer
from payments.services import SettlementService
from payments.views.base import BaseSettlementView
from .serializers import (
    OrderSerializer,
    OrderTotalsSerializer,
    SettlementResultSerializer,
    TotalsQuerySerializer,
)

logger = logging.getLogger(__name__)


class CloseOrderView(BaseSettlementView):
    """
    Settle an order with a list of payments.

    Responds 200 with the closed order, or 202 when a card needs 3-D Secure;
    in that case nothing was recorded and the client retries with the same
    idempotency key once the cardholder has authenticated.
    """

    def post(self, request, order_id):
        serializer = CloseOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = SettlementService(self.get_settlement_context())
        result = service.close_order_with_payments(
            order_id, serializer.tenders(), **serializer.settlement_kwargs()
        )
        return self._settlement_response(result)

    def _settlement_response(self, result):
        status_code = status.HTTP_202_ACCEPTED if result.requires_3ds else status.HTTP_200_OK
        return self.create_success_response(SettlementResultSerializer(result).data, status_code)


class CloseSplitOrderView(CloseOrderView):
    """Settle an order split by item groups."""

    def post(self, request, order_id):
        serializer = CloseSplitOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = SettlementService(self.get_settlement_context())
        result = service.close_order_with_split_payments(
            order_id, serializer.groups(), **serializer.settlement_kwargs()
        )
        return self._settlement_response(result)


class CancelOrderView(BaseSettlementView):
    def post(self, request, order_id):
        order = SettlementService(self.get_settlement_context()).cancel_order(order_id)
        return self.create_success_response(OrderSerializer(order).data)


class OrderTotalsView(BaseSettlementView):
    """Read-only totals; query parameters override persisted adjustments."""

    def get(self, request, order_id):
        query = TotalsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        totals = SettlementService(self.get_settlement_context()).preview_totals(
            order_id,
            discount_amount=query.validated_data.get("discount_amount"),
            service_charge_amount=query.validated_data.get("service_charge_amount"),
            tip_amount=query.validated_data.get("tip_amount"),
        )
        return self.create_success_response(OrderTotalsSerializer(totals).data)
