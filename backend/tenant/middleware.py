from django.conf import settings
from django.http import JsonResponse

from .models import Tenant


class TenantNotFoundError(Exception):
    """Raised when tenant cannot be resolved from request."""
    pass


def resolve_tenant(request):
    """
    Resolve the tenant named by the X-Tenant-Slug header.

    Returns:
        Active Tenant instance

    Raises:
        TenantNotFoundError: header missing, unknown slug or inactive tenant
    """
    header = getattr(settings, 'TENANT_HEADER', 'HTTP_X_TENANT_SLUG')
    slug = request.META.get(header, '').strip()
    if not slug:
        raise TenantNotFoundError("X-Tenant-Slug header is required")

    try:
        tenant = Tenant.objects.get(slug=slug)
    except Tenant.DoesNotExist:
        raise TenantNotFoundError(f"Tenant '{slug}' not found")

    if not tenant.is_active:
        raise TenantNotFoundError(f"Tenant '{slug}' is inactive")
    return tenant


class TenantMiddleware:
    """
    Attaches ``request.tenant`` for API requests.

    The tenant is only attached to the request; services receive it
    explicitly through their settlement context.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith('/api/') or request.path.startswith('/api/health/'):
            request.tenant = None
            return self.get_response(request)

        try:
            request.tenant = resolve_tenant(request)
        except TenantNotFoundError as e:
            return JsonResponse({
                'error': str(e),
                'code': 'TENANT_NOT_FOUND'
            }, status=400)

        return self.get_response(request)
