from django.db import models
from django.db.models import Q

from tenant.managers import TenantManager


class Discount(models.Model):
    class DiscountType(models.TextChoices):
        PERCENTAGE = "PERCENTAGE", "Percentage"
        FIXED_AMOUNT = "FIXED_AMOUNT", "Fixed Amount"

    class DiscountScope(models.TextChoices):
        ORDER = "ORDER", "Entire Order"
        PRODUCT = "PRODUCT", "Specific Product"
        SERVICE = "SERVICE", "Specific Service"

    tenant = models.ForeignKey('tenant.Tenant', on_delete=models.CASCADE, related_name='discounts')

    name = models.CharField(max_length=255)
    code = models.CharField(
        max_length=50, null=True, blank=True, help_text="Optional code for manual discounts (unique per tenant)"
    )
    type = models.CharField(
        max_length=20,
        choices=DiscountType.choices,
    )
    scope = models.CharField(
        max_length=20,
        choices=DiscountScope.choices,
        default=DiscountScope.ORDER,
    )
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Percentage (e.g. 10 for 10%) or fixed amount, depending on type.",
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='discounts',
        help_text="Target product for PRODUCT scope discounts.",
    )
    service = models.ForeignKey(
        'products.Service',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='discounts',
        help_text="Target service for SERVICE scope discounts.",
    )
    starts_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="The date and time when the discount becomes active.",
    )
    ends_at = models.DateTimeField(
        null=True, blank=True, help_text="The date and time when the discount expires."
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'code'],
                condition=Q(code__isnull=False),
                name='unique_discount_code_per_tenant',
            ),
            models.CheckConstraint(
                condition=Q(value__gte=0),
                name='discount_value_non_negative',
            ),
        ]

    def is_currently_active(self, at):
        """True when the discount is enabled and ``at`` falls in its window."""
        if not self.is_active:
            return False
        if self.starts_at and at < self.starts_at:
            return False
        if self.ends_at and at > self.ends_at:
            return False
        return True

    def __str__(self):
        return self.name


class ServiceChargePolicy(models.Model):
    """
    A service charge added on top of the order (e.g. 10% table service).
    """

    class ChargeType(models.TextChoices):
        PERCENTAGE = "PERCENTAGE", "Percentage"
        FIXED_AMOUNT = "FIXED_AMOUNT", "Fixed Amount"

    tenant = models.ForeignKey(
        'tenant.Tenant', on_delete=models.CASCADE, related_name='service_charge_policies'
    )
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=20, choices=ChargeType.choices)
    value = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Service charge policies"
        constraints = [
            models.CheckConstraint(
                condition=Q(value__gte=0),
                name='service_charge_value_non_negative',
            ),
        ]

    def __str__(self):
        return self.name
