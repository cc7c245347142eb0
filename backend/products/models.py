from django.db import models
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class Product(models.Model):
    """
    A sellable product. Order items referencing a product are priced from
    ``price`` (or from a variation, when one is selected).
    """

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="products"
    )
    name = models.CharField(max_length=200, help_text=_("Name of the product."))
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Unit price. Missing prices are treated as zero."),
    )
    tax_category = models.ForeignKey(
        "taxes.TaxCategory",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
        help_text=_("Tax category used to resolve the applicable rate."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        ordering = ["name"]
        verbose_name = _("Product")
        verbose_name_plural = _("Products")
        indexes = [
            models.Index(fields=["tenant", "is_active"]),
        ]

    def __str__(self):
        return self.name


class ProductVariation(models.Model):
    """
    A variant of a product (size, flavour, ...). ``price_adjustment`` is the
    absolute unit price of the variant, not a delta.
    """

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="product_variations"
    )
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="variations"
    )
    name = models.CharField(max_length=100)
    price_adjustment = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Unit price charged when this variation is selected."),
    )
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        ordering = ["product", "name"]
        verbose_name = _("Product Variation")
        verbose_name_plural = _("Product Variations")

    def __str__(self):
        return f"{self.product.name} - {self.name}"


class Service(models.Model):
    """A bookable service (haircut, massage, ...) sold as an order item."""

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="services"
    )
    name = models.CharField(max_length=200)
    default_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Unit price. Missing prices are treated as zero."),
    )
    duration_minutes = models.PositiveIntegerField(default=30)
    tax_category = models.ForeignKey(
        "taxes.TaxCategory",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="services",
    )
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        ordering = ["name"]
        verbose_name = _("Service")
        verbose_name_plural = _("Services")

    def __str__(self):
        return self.name


class Reservation(models.Model):
    """
    A booked slot for a service. When added to an order it is priced and
    taxed as the underlying service.
    """

    tenant = models.ForeignKey(
        "tenant.Tenant", on_delete=models.CASCADE, related_name="reservations"
    )
    service = models.ForeignKey(
        Service, on_delete=models.PROTECT, related_name="reservations"
    )
    customer_name = models.CharField(max_length=200, blank=True)
    starts_at = models.DateTimeField()

    objects = TenantManager()

    class Meta:
        ordering = ["starts_at"]
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")

    def __str__(self):
        return f"{self.service.name} @ {self.starts_at:%Y-%m-%d %H:%M}"
