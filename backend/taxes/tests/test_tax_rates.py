"""
Tests for effective-dated tax rate resolution and rate-history maintenance.
"""
import pytest
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from pos_backend.context import SettlementContext
from pos_backend.exceptions import (
    BusinessRuleError,
    NoApplicableRateError,
    NotFoundError,
    SettlementValidationError,
)
from taxes.models import TaxCategory, TaxRate
from taxes.services import TaxRateResolver, TaxRateService


def utc(year, month, day, hour=0):
    return datetime(year, month, day, hour, tzinfo=dt_timezone.utc)


@pytest.fixture
def vat(tenant_a):
    """VAT raised from 19% to 21% on 2024-07-01"""
    category = TaxCategory.objects.create(tenant=tenant_a, name='VAT')
    TaxRate.objects.create(
        tax_category=category,
        rate_percent=Decimal('19.00'),
        effective_from=utc(2020, 1, 1),
        effective_to=utc(2024, 7, 1),
    )
    TaxRate.objects.create(
        tax_category=category,
        rate_percent=Decimal('21.00'),
        effective_from=utc(2024, 7, 1),
    )
    return category


@pytest.mark.django_db
class TestTaxRateResolver:
    def test_rate_in_force_before_change(self, ctx, vat):
        resolver = TaxRateResolver(ctx)
        assert resolver.rate_at(vat.pk, utc(2024, 6, 30, 23)) == Decimal('19.00')

    def test_period_end_is_exclusive(self, ctx, vat):
        resolver = TaxRateResolver(ctx)
        assert resolver.rate_at(vat.pk, utc(2024, 7, 1)) == Decimal('21.00')

    def test_open_ended_rate_applies_far_ahead(self, ctx, vat):
        resolver = TaxRateResolver(ctx)
        assert resolver.rate_at(vat.pk, utc(2040, 1, 1)) == Decimal('21.00')

    def test_before_first_period_has_no_rate(self, ctx, vat):
        with pytest.raises(NoApplicableRateError):
            TaxRateResolver(ctx).rate_at(vat.pk, utc(2019, 12, 31))

    def test_naive_instant_rejected(self, ctx, vat):
        with pytest.raises(SettlementValidationError):
            TaxRateResolver(ctx).rate_at(vat.pk, datetime(2024, 1, 1))

    def test_inactive_rate_ignored(self, ctx, vat):
        vat.rates.filter(rate_percent=Decimal('21.00')).update(is_active=False)
        with pytest.raises(NoApplicableRateError):
            TaxRateResolver(ctx).rate_at(vat.pk, utc(2025, 1, 1))

    def test_deleted_category_has_no_rate(self, ctx, vat):
        TaxRateService.deactivate_category(ctx, vat)
        with pytest.raises(NoApplicableRateError):
            TaxRateResolver(ctx).rate_at(vat.pk, utc(2025, 1, 1))

    def test_other_tenant_cannot_resolve(self, ctx_b, vat):
        with pytest.raises(NoApplicableRateError):
            TaxRateResolver(ctx_b).rate_at(vat.pk, utc(2025, 1, 1))

    def test_lookups_are_memoised(self, ctx, vat, django_assert_num_queries):
        resolver = TaxRateResolver(ctx)
        resolver.rate_at(vat.pk, utc(2025, 1, 1))
        with django_assert_num_queries(0):
            assert resolver.rate_at(vat.pk, utc(2025, 1, 1)) == Decimal('21.00')


@pytest.mark.django_db
class TestTaxRateService:
    def test_add_rate_after_closing_open_period(self, ctx, vat):
        TaxRateService.close_open_rate(ctx, vat, utc(2026, 1, 1))
        rate = TaxRateService.add_rate(ctx, vat, Decimal('22'), utc(2026, 1, 1))

        assert rate.rate_percent == Decimal('22')
        resolver = TaxRateResolver(ctx)
        assert resolver.rate_at(vat.pk, utc(2025, 12, 31)) == Decimal('21.00')
        assert resolver.rate_at(vat.pk, utc(2026, 1, 1)) == Decimal('22.00')

    def test_overlapping_period_rejected(self, ctx, vat):
        with pytest.raises(BusinessRuleError, match="overlaps"):
            TaxRateService.add_rate(ctx, vat, Decimal('5'), utc(2023, 1, 1), utc(2023, 2, 1))

    def test_adjacent_period_allowed(self, ctx, tenant_a):
        category = TaxCategory.objects.create(tenant=tenant_a, name='Food')
        TaxRateService.add_rate(ctx, category, Decimal('9'), utc(2024, 1, 1), utc(2025, 1, 1))
        TaxRateService.add_rate(ctx, category, Decimal('10'), utc(2025, 1, 1))
        assert category.rates.count() == 2

    def test_invalid_percent_rejected(self, ctx, vat):
        with pytest.raises(SettlementValidationError):
            TaxRateService.add_rate(ctx, vat, Decimal('101'), utc(2030, 1, 1))

    def test_empty_period_rejected(self, ctx, vat):
        with pytest.raises(SettlementValidationError):
            TaxRateService.add_rate(ctx, vat, Decimal('5'), utc(2030, 1, 1), utc(2030, 1, 1))

    def test_inactive_category_rejects_new_rates(self, ctx, vat):
        TaxRateService.deactivate_category(ctx, vat)
        with pytest.raises(BusinessRuleError, match="inactive"):
            TaxRateService.add_rate(ctx, vat, Decimal('5'), utc(2030, 1, 1))

    def test_deactivate_and_restore_cascade_to_rates(self, ctx, vat):
        TaxRateService.deactivate_category(ctx, vat)
        assert not vat.rates.filter(is_active=True).exists()
        assert not vat.rates.filter(deleted_at__isnull=True).exists()

        TaxRateService.restore_category(ctx, vat)
        vat.refresh_from_db()
        assert vat.is_active and vat.deleted_at is None
        assert vat.rates.filter(is_active=True).count() == 2
        assert TaxRateResolver(ctx).rate_at(vat.pk, utc(2025, 1, 1)) == Decimal('21.00')

    def test_rates_as_of(self, ctx, vat):
        rates = TaxRateService.rates_as_of(ctx, vat, utc(2022, 5, 5))
        assert [rate.rate_percent for rate in rates] == [Decimal('19.00')]

    def test_other_tenant_category_not_found(self, ctx_b, vat):
        with pytest.raises(NotFoundError):
            TaxRateService.add_rate(ctx_b, vat, Decimal('5'), utc(2030, 1, 1))

    def test_close_before_effective_rejected(self, ctx, vat):
        with pytest.raises(BusinessRuleError):
            TaxRateService.close_open_rate(ctx, vat, utc(2024, 1, 1))

    def test_get_category_scoped_to_tenant(self, ctx, ctx_b, vat):
        assert TaxRateService.get_category(ctx, vat.pk) == vat
        with pytest.raises(NotFoundError):
            TaxRateService.get_category(ctx_b, vat.pk)
