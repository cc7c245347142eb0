"""
Tests for tenant resolution on API requests.
"""
import pytest
from django.test import RequestFactory

from tenant.middleware import TenantMiddleware, TenantNotFoundError, resolve_tenant


@pytest.fixture
def rf():
    return RequestFactory()


@pytest.mark.django_db
class TestResolveTenant:
    def test_resolves_active_tenant(self, rf, tenant_a):
        request = rf.get('/api/payments/', HTTP_X_TENANT_SLUG='corner-cafe')
        assert resolve_tenant(request) == tenant_a

    def test_missing_header(self, rf):
        with pytest.raises(TenantNotFoundError, match='required'):
            resolve_tenant(rf.get('/api/payments/'))

    def test_unknown_slug(self, rf, tenant_a):
        request = rf.get('/api/payments/', HTTP_X_TENANT_SLUG='nowhere')
        with pytest.raises(TenantNotFoundError, match='not found'):
            resolve_tenant(request)

    def test_inactive_tenant(self, rf, inactive_tenant):
        request = rf.get('/api/payments/', HTTP_X_TENANT_SLUG=inactive_tenant.slug)
        with pytest.raises(TenantNotFoundError, match='inactive'):
            resolve_tenant(request)


@pytest.mark.django_db
class TestTenantMiddlewareAPI:
    def test_api_without_tenant_is_rejected(self, api_client):
        response = api_client.get('/api/payments/')

        assert response.status_code == 400
        assert response.json()['code'] == 'TENANT_NOT_FOUND'

    def test_health_check_needs_no_tenant(self, api_client):
        response = api_client.get('/api/health/')
        assert response.status_code == 200

    def test_tenant_attached_to_request(self, rf, tenant_a):
        seen = {}

        def get_response(request):
            seen['tenant'] = request.tenant
            return None

        request = rf.get('/api/orders/', HTTP_X_TENANT_SLUG=tenant_a.slug)
        TenantMiddleware(get_response)(request)

        assert seen['tenant'] == tenant_a

    def test_non_api_paths_have_no_tenant(self, rf):
        seen = {}

        def get_response(request):
            seen['tenant'] = request.tenant
            return None

        TenantMiddleware(get_response)(rf.get('/admin/'))
        assert seen['tenant'] is None
