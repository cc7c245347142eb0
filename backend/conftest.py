"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_simulated_gateway():
    """
    Clear the simulated card gateway after each test.

    Its idempotency store is process-wide; results must not leak between tests.
    """
    from payments.gateways import SimulatedCardGateway

    SimulatedCardGateway.reset()
    yield
    SimulatedCardGateway.reset()


@pytest.fixture(autouse=True)
def reload_settlement_settings():
    """Re-read SETTLEMENT before and after each test so overrides don't leak."""
    from pos_backend.config import settlement_settings

    settlement_settings.reload()
    yield
    settlement_settings.reload()


@pytest.fixture
def settlement_overrides(settings):
    """
    Override SETTLEMENT keys for one test.

    Usage:
        def test_strict_tax(settlement_overrides):
            settlement_overrides(MISSING_TAX_RATE_POLICY="error")
    """
    from pos_backend.config import settlement_settings

    def _override(**values):
        settings.SETTLEMENT = {**settings.SETTLEMENT, **values}
        settlement_settings.reload()
    return _override


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/health/')
            assert response.status_code == 200
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def tenant_client_a(api_client, tenant_a):
    """API client that selects tenant A through the X-Tenant-Slug header."""
    api_client.credentials(HTTP_X_TENANT_SLUG=tenant_a.slug)
    return api_client


# ============================================================================
# IMPORT ALL FIXTURES FROM pos_backend/tests/fixtures.py
# ============================================================================
from pos_backend.tests.fixtures import *
