from django.db import models
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class TaxCategory(models.Model):
    """
    A merchant-defined tax category (e.g. "Food", "Alcohol").
    Products and services point at a category; the applicable rate is
    looked up from the category's effective-dated ``TaxRate`` history.
    """

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="tax_categories"
    )
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        ordering = ["name"]
        verbose_name = _("Tax Category")
        verbose_name_plural = _("Tax Categories")
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "name"], name="unique_tax_category_name_per_tenant"
            ),
        ]

    def __str__(self):
        return self.name


class TaxRate(models.Model):
    """
    One period of a tax category's rate history.

    The period is half-open: ``effective_from <= t < effective_to``.
    ``effective_to = None`` means the rate is open-ended. Active periods of
    the same category never overlap (enforced by TaxRateService.add_rate).
    """

    tax_category = models.ForeignKey(
        TaxCategory, on_delete=models.CASCADE, related_name="rates"
    )
    rate_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text=_("Rate in whole percent, e.g. 21.00 for 21%."),
    )
    effective_from = models.DateTimeField()
    effective_to = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["tax_category", "-effective_from"]
        verbose_name = _("Tax Rate")
        verbose_name_plural = _("Tax Rates")
        indexes = [
            models.Index(fields=["tax_category", "effective_from"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rate_percent__gte=0) & models.Q(rate_percent__lte=100),
                name="tax_rate_percent_range",
            ),
        ]

    def __str__(self):
        end = self.effective_to.isoformat() if self.effective_to else "open"
        return f"{self.tax_category.name}: {self.rate_percent}% from {self.effective_from.isoformat()} to {end}"

    def covers(self, instant) -> bool:
        """True when ``instant`` falls within this rate's period."""
        if instant < self.effective_from:
            return False
        return self.effective_to is None or instant < self.effective_to
