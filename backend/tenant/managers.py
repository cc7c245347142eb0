from django.db import models


class TenantQuerySet(models.QuerySet):
    """
    QuerySet for models that carry a ``tenant`` foreign key.

    Tenant scoping is always explicit: services pass the tenant from their
    settlement context instead of relying on request-global state.

    Usage:
        class Order(models.Model):
            tenant = models.ForeignKey('tenant.Tenant', on_delete=models.CASCADE)

            objects = TenantQuerySet.as_manager()

        Order.objects.for_tenant(ctx.tenant).get(pk=order_id)
    """

    def for_tenant(self, tenant):
        """
        Return rows owned by ``tenant``.

        FAILS CLOSED: a missing tenant yields an empty queryset.
        """
        if tenant is None:
            return self.none()
        return self.filter(tenant=tenant)


class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    """Default manager exposing ``for_tenant`` on every tenant-owned model."""
    pass
