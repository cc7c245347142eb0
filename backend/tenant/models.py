import uuid
from django.db import models


class Tenant(models.Model):
    """
    Root entity for multi-tenancy.
    Each merchant is a tenant; every settlement entity belongs to exactly one.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=255,
        help_text="Display name for the merchant (e.g., Joe's Pizza)"
    )
    slug = models.SlugField(
        unique=True,
        help_text="URL-safe identifier sent in the X-Tenant-Slug header"
    )
    default_currency = models.CharField(
        max_length=3,
        default='EUR',
        help_text="Currency assigned to new orders (ISO 4217)"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive tenants cannot settle orders"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tenants'
        ordering = ['name']
        indexes = [
            models.Index(fields=['slug']),
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        return self.name
