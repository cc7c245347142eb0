import django_filters

from .models import Payment


class PaymentFilter(django_filters.FilterSet):
    """Filter payments by method, status and order."""

    method = django_filters.CharFilter(method="filter_by_method")
    status = django_filters.ChoiceFilter(choices=Payment.PaymentStatus.choices)
    order = django_filters.UUIDFilter(field_name="order_id")

    class Meta:
        model = Payment
        fields = ["method", "status", "order"]

    def filter_by_method(self, queryset, name, value):
        """Case-insensitive method filter; ``SPLIT`` selects payments that covered item groups."""
        if not value:
            return queryset
        if value.upper() == "SPLIT":
            return queryset.filter(order_items__isnull=False).distinct()
        return queryset.filter(method=value.upper())
