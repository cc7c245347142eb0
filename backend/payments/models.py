import uuid

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class Payment(models.Model):
    """
    One applied tender of a settled order.

    Payments are only created by the settlement service; once an order is
    closed or cancelled no further payments are recorded against it.
    ``amount`` is what was applied to the order. For cash, ``tendered_amount``
    keeps what the customer handed over (amount + change).
    """

    class PaymentMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        GIFT_CARD = "GIFT_CARD", _("Gift Card")

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        SUCCEEDED = "SUCCEEDED", _("Succeeded")
        FAILED = "FAILED", _("Failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="payments"
    )
    order = models.ForeignKey(
        "orders.Order", on_delete=models.PROTECT, related_name="payments"
    )
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Amount applied to the order"),
    )
    tendered_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Cash handed over by the customer, including change"),
    )
    currency = models.CharField(max_length=3)
    provider = models.CharField(max_length=50, null=True, blank=True)
    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text=_("Client-generated key that makes card charges safe to retry"),
    )
    payment_intent_id = models.CharField(max_length=255, null=True, blank=True)
    transaction_id = models.CharField(max_length=255, null=True, blank=True)
    order_items = models.ManyToManyField(
        "orders.OrderItem",
        blank=True,
        related_name="payments",
        help_text=_("Items covered by this payment in a split settlement"),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        indexes = [
            models.Index(fields=["order", "status"]),
            models.Index(fields=["tenant", "method"]),
            models.Index(fields=["payment_intent_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "idempotency_key"],
                condition=Q(idempotency_key__isnull=False),
                name="unique_payment_idempotency_key_per_tenant",
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=0), name="payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.method} {self.amount} {self.currency} for order {self.order_id}"


class GiftCard(models.Model):
    """
    Represents a gift card that can be used for payments.

    ``0 <= balance <= initial_balance`` always holds; the ledger rejects
    debits that would break it and the database constraint backs it up.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="gift_cards"
    )
    code = models.CharField(
        max_length=20,
        help_text=_("Unique gift card code"),
        db_index=True,
    )
    initial_balance = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Balance when the gift card was issued"),
    )
    balance = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Current remaining balance on the gift card"),
    )
    issued_at = models.DateTimeField(
        help_text=_("Date when the gift card was issued"),
    )
    expires_at = models.DateTimeField(
        blank=True,
        null=True,
        help_text=_("Optional expiry date for the gift card"),
    )
    last_used_at = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(blank=True, null=True)

    objects = TenantManager()

    class Meta:
        ordering = ["-issued_at"]
        verbose_name = _("Gift Card")
        verbose_name_plural = _("Gift Cards")
        indexes = [
            models.Index(fields=["tenant", "code"]),
            models.Index(fields=["expires_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "code"], name="unique_gift_card_code_per_tenant"
            ),
            models.CheckConstraint(
                condition=Q(balance__gte=0) & Q(balance__lte=F("initial_balance")),
                name="gift_card_balance_within_bounds",
            ),
        ]

    def __str__(self):
        return f"Gift Card {self.code} - {self.balance}"

    def is_usable(self, at) -> bool:
        """Active, not deleted and not expired at ``at``."""
        if not self.is_active or self.deleted_at is not None:
            return False
        return self.expires_at is None or self.expires_at > at


class GiftCardPayment(models.Model):
    """Amount of a gift card used by a payment."""

    payment = models.ForeignKey(
        Payment, on_delete=models.CASCADE, related_name="gift_card_uses"
    )
    gift_card = models.ForeignKey(
        GiftCard, on_delete=models.PROTECT, related_name="payments"
    )
    amount_used = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["payment", "gift_card"], name="unique_gift_card_payment"
            ),
            models.CheckConstraint(
                condition=Q(amount_used__gt=0), name="gift_card_payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.amount_used} from {self.gift_card_id} for payment {self.payment_id}"
