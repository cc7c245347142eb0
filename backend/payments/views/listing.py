from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics

from ..filters import PaymentFilter
from ..models import Payment
from ..serializers import PaymentSerializer
from .base import TenantContextMixin


class PaymentListView(TenantContextMixin, generics.ListAPIView):
    """
    Payments of the request's tenant, newest first.
    Filterable by ``method``, ``status`` and ``order``.
    """

    serializer_class = PaymentSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = PaymentFilter

    def get_queryset(self):
        ctx = self.get_settlement_context()
        return (
            Payment.objects.using(ctx.using)
            .for_tenant(ctx.tenant)
            .select_related("order")
            .prefetch_related("order_items", "gift_card_uses__gift_card")
        )


class PaymentDetailView(TenantContextMixin, generics.RetrieveAPIView):
    serializer_class = PaymentSerializer

    def get_queryset(self):
        ctx = self.get_settlement_context()
        return (
            Payment.objects.using(ctx.using)
            .for_tenant(ctx.tenant)
            .prefetch_related("order_items", "gift_card_uses__gift_card")
        )
