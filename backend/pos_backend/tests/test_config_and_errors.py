"""
Tests for settlement configuration, the explicit context and the
error-to-HTTP mapping.
"""
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

from django.core.exceptions import ImproperlyConfigured
from rest_framework.exceptions import ValidationError as DRFValidationError

from pos_backend.config import settlement_settings
from pos_backend.context import SettlementContext
from pos_backend.exceptions import (
    BusinessRuleError,
    ConcurrencyConflictError,
    GatewayTimeoutError,
    IdempotencyKeyReusedError,
    InsufficientBalanceError,
    OrderNotFoundError,
    SettlementValidationError,
    settlement_exception_handler,
)


class TestSettlementSettings:
    def test_defaults(self):
        assert settlement_settings.card_gateway_backend == 'simulated'
        assert settlement_settings.simulated_3ds_threshold == Decimal('100.00')
        assert settlement_settings.rounding_tolerance == Decimal('0.01')
        assert settlement_settings.missing_tax_rate_policy == 'zero'

    def test_override_is_picked_up_after_reload(self, settlement_overrides):
        settlement_overrides(MISSING_TAX_RATE_POLICY='ERROR', ROUNDING_TOLERANCE='0.05')

        assert settlement_settings.missing_tax_rate_policy == 'error'
        assert settlement_settings.rounding_tolerance == Decimal('0.05')

    def test_unknown_backend_rejected(self, settlement_overrides):
        with pytest.raises(ImproperlyConfigured, match='CARD_GATEWAY_BACKEND'):
            settlement_overrides(CARD_GATEWAY_BACKEND='paypal')
            settlement_settings.card_gateway_backend

    def test_unknown_tax_policy_rejected(self, settlement_overrides):
        with pytest.raises(ImproperlyConfigured, match='MISSING_TAX_RATE_POLICY'):
            settlement_overrides(MISSING_TAX_RATE_POLICY='guess')
            settlement_settings.missing_tax_rate_policy

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            settlement_settings.does_not_exist


@pytest.mark.django_db
class TestSettlementContext:
    def test_requires_tenant(self):
        with pytest.raises(ValueError):
            SettlementContext(tenant=None)

    def test_requires_aware_now(self, tenant_a):
        with pytest.raises(ValueError, match='timezone-aware'):
            SettlementContext(tenant=tenant_a, now=datetime(2024, 1, 1, 12, 0))

    def test_for_tenant_defaults(self, tenant_a):
        ctx = SettlementContext.for_tenant(tenant_a)
        assert ctx.tenant == tenant_a
        assert ctx.using == 'default'
        assert ctx.now.tzinfo is not None


class TestSettlementExceptionHandler:
    def handle(self, exc):
        return settlement_exception_handler(exc, {'view': MagicMock()})

    @pytest.mark.parametrize('exc, status_code, kind, retryable', [
        (SettlementValidationError('bad amount'), 400, 'validation', False),
        (OrderNotFoundError('abc'), 404, 'not_found', False),
        (ConcurrencyConflictError('raced'), 409, 'concurrency_conflict', True),
        (BusinessRuleError('not enough'), 422, 'business_rule', False),
        (InsufficientBalanceError('GIFT1', Decimal('1.00'), Decimal('2.00')), 422, 'business_rule', False),
        (IdempotencyKeyReusedError('k1'), 422, 'business_rule', False),
        (GatewayTimeoutError(), 502, 'gateway', True),
    ])
    def test_maps_kind_to_status(self, exc, status_code, kind, retryable):
        response = self.handle(exc)

        assert response.status_code == status_code
        assert response.data == {'error': kind, 'message': exc.reason, 'retryable': retryable}

    def test_other_exceptions_use_drf_handler(self):
        response = self.handle(DRFValidationError({'amount': ['required']}))

        assert response.status_code == 400
        assert response.data == {'amount': ['required']}

    def test_unhandled_exceptions_fall_through(self):
        assert self.handle(RuntimeError('boom')) is None
