import uuid

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class Refund(models.Model):
    """
    Money returned against one payment of a closed order.

    The sum of refunds against a payment never exceeds the payment's amount;
    the refund processor enforces this while holding a lock on the payment.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="refunds"
    )
    order = models.ForeignKey(
        "orders.Order", on_delete=models.PROTECT, related_name="refunds"
    )
    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text=_("The payment being refunded"),
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    reason = models.TextField(blank=True)
    is_partial = models.BooleanField(
        default=False,
        help_text=_("True when less than the full payment amount was refunded"),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        db_table = "refunds_refund"
        ordering = ["-created_at"]
        verbose_name = _("Refund")
        verbose_name_plural = _("Refunds")
        indexes = [
            models.Index(fields=["order", "created_at"]),
            models.Index(fields=["payment"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0), name="refund_amount_positive"
            ),
        ]

    def __str__(self):
        kind = "Partial refund" if self.is_partial else "Refund"
        return f"{kind} of {self.amount} for payment {self.payment_id}"
