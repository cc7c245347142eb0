import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class BusinessPricingPolicy(models.Model):
    """
    Merchant pricing flags attached to an order.

    The flags are stored for reporting; settlement always treats unit
    prices as tax-exclusive and rounds half-to-even.
    """

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="pricing_policies"
    )
    name = models.CharField(max_length=100, default="Default")
    unit_price_includes_tax = models.BooleanField(default=False)
    money_rounding_mode = models.CharField(
        max_length=20,
        default="HALF_EVEN",
        help_text=_("Informational; settlement always rounds half-to-even."),
    )
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        verbose_name = _("Business Pricing Policy")
        verbose_name_plural = _("Business Pricing Policies")

    def __str__(self):
        return self.name


class Order(models.Model):
    class OrderStatus(models.TextChoices):
        OPEN = "OPEN", _("Open")
        CLOSED = "CLOSED", _("Closed")
        CANCELLED = "CANCELLED", _("Cancelled")

    class RefundStatus(models.TextChoices):
        NONE = "NONE", _("Not Refunded")
        PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED", _("Partially Refunded")
        REFUNDED = "REFUNDED", _("Refunded")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="orders"
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.OPEN
    )
    refund_status = models.CharField(
        max_length=20, choices=RefundStatus.choices, default=RefundStatus.NONE
    )
    currency = models.CharField(max_length=3, default="EUR")
    note = models.TextField(blank=True)
    pricing_policy = models.ForeignKey(
        BusinessPricingPolicy,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    discounts = models.ManyToManyField(
        "discounts.Discount", blank=True, related_name="orders"
    )
    service_charge_policies = models.ManyToManyField(
        "discounts.ServiceChargePolicy", blank=True, related_name="orders"
    )

    opened_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()

    class Meta:
        ordering = ["-opened_at"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=["tenant", "status"]),
            models.Index(fields=["tenant", "opened_at"]),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.status})"

    @property
    def is_open(self):
        return self.status == self.OrderStatus.OPEN


class OrderItem(models.Model):
    """
    One line of an order. Exactly one of product, service or reservation is
    set; a variation may accompany a product.
    """

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="order_items"
    )
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "products.Product", on_delete=models.PROTECT, null=True, blank=True
    )
    variation = models.ForeignKey(
        "products.ProductVariation", on_delete=models.PROTECT, null=True, blank=True
    )
    service = models.ForeignKey(
        "products.Service", on_delete=models.PROTECT, null=True, blank=True
    )
    reservation = models.ForeignKey(
        "products.Reservation", on_delete=models.PROTECT, null=True, blank=True
    )
    quantity = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(product__isnull=False, service__isnull=True, reservation__isnull=True)
                    | Q(product__isnull=True, service__isnull=False, reservation__isnull=True)
                    | Q(product__isnull=True, service__isnull=True, reservation__isnull=False)
                ),
                name="order_item_exactly_one_sellable",
            ),
            models.CheckConstraint(
                condition=Q(variation__isnull=True) | Q(product__isnull=False),
                name="order_item_variation_requires_product",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="order_item_quantity_positive",
            ),
        ]

    def __str__(self):
        return f"OrderItem {self.pk} x{self.quantity}"


class OrderTip(models.Model):
    """Tip attached to an order. Added on top of the total, never taxed."""

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="tip")
    source = models.CharField(max_length=50, blank=True, default="")
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gte=0), name="order_tip_amount_non_negative"
            ),
        ]

    def __str__(self):
        return f"Tip {self.amount} on order {self.order_id}"
