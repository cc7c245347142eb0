"""
Tests for OrderTotalsCalculator.

cafe_order: 2 x coffee (2.50, 21%) and 1 x sandwich (7.00, 9%)
    subtotal 12.00, tax 1.05 + 0.63 = 1.68, total 13.68
"""
import pytest
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from discounts.models import Discount, ServiceChargePolicy
from orders.calculators import OrderTotalsCalculator
from orders.models import OrderTip
from payments.models import Payment
from pos_backend.exceptions import NoApplicableRateError, SettlementValidationError
from products.models import Product
from taxes.models import TaxCategory


@pytest.mark.django_db
class TestOrderTotals:
    def test_subtotal_tax_and_total(self, ctx, cafe_order):
        totals = OrderTotalsCalculator(ctx).compute(cafe_order)

        assert totals.subtotal == Decimal('12.00')
        assert totals.tax == Decimal('1.68')
        assert totals.total == Decimal('13.68')
        assert totals.paid == Decimal('0.00')
        assert totals.remaining == Decimal('13.68')

    def test_tax_breakdown_per_category(self, ctx, cafe_order, standard_tax, reduced_tax):
        totals = OrderTotalsCalculator(ctx).compute(cafe_order)

        by_category = {entry.tax_category_id: entry for entry in totals.tax_breakdown}
        assert by_category[standard_tax.pk].amount == Decimal('1.05')
        assert by_category[standard_tax.pk].rate_percent == Decimal('21.00')
        assert by_category[reduced_tax.pk].amount == Decimal('0.63')
        assert by_category[reduced_tax.pk].category_name == 'Reduced'

    def test_lines_carry_gross_amounts(self, ctx, cafe_order):
        totals = OrderTotalsCalculator(ctx).compute(cafe_order)
        gross = sorted(line.subtotal + line.tax for line in totals.lines)
        assert gross == [Decimal('6.05'), Decimal('7.63')]

    def test_variation_price_replaces_product_price(self, ctx, make_order, large_coffee):
        order = make_order([(large_coffee, 1)])
        totals = OrderTotalsCalculator(ctx).compute(order)
        assert totals.subtotal == Decimal('3.20')
        # 21% of 3.20 = 0.672
        assert totals.tax == Decimal('0.67')

    def test_service_and_reservation_lines(self, ctx, make_order, haircut, haircut_reservation):
        order = make_order([(haircut, 1), (haircut_reservation, 1)])
        totals = OrderTotalsCalculator(ctx).compute(order)
        assert totals.subtotal == Decimal('60.00')
        assert totals.tax == Decimal('12.60')
        assert {line.service_id for line in totals.lines} == {haircut.pk}

    def test_untaxed_product(self, ctx, tenant_a, make_order):
        water = Product.objects.create(tenant=tenant_a, name='Tap water', price=Decimal('0.00'))
        bread = Product.objects.create(tenant=tenant_a, name='Bread', price=Decimal('1.10'))
        totals = OrderTotalsCalculator(ctx).compute(make_order([(water, 1), (bread, 2)]))
        assert totals.tax == Decimal('0.00')
        assert totals.total == Decimal('2.20')

    def test_empty_order(self, ctx, make_order):
        totals = OrderTotalsCalculator(ctx).compute(make_order([]))
        assert totals.total == Decimal('0.00')
        assert totals.lines == []

    def test_historical_instant_uses_rate_then_in_force(self, ctx, cafe_order):
        before_rates = datetime(2019, 6, 1, tzinfo=dt_timezone.utc)
        totals = OrderTotalsCalculator(ctx).compute(cafe_order, at=before_rates)
        # No rate in force: taxed at 0% under the default policy
        assert totals.tax == Decimal('0.00')

    def test_missing_rate_raises_when_policy_is_error(self, ctx, tenant_a, make_order, settlement_overrides):
        settlement_overrides(MISSING_TAX_RATE_POLICY='error')
        empty = TaxCategory.objects.create(tenant=tenant_a, name='Unrated')
        product = Product.objects.create(tenant=tenant_a, name='Mystery', price=Decimal('1.00'), tax_category=empty)

        with pytest.raises(NoApplicableRateError):
            OrderTotalsCalculator(ctx).compute(make_order([(product, 1)]))


@pytest.mark.django_db
class TestAdjustments:
    def test_overrides_win_over_persisted_values(self, ctx, tenant_a, cafe_order):
        cafe_order.discounts.add(Discount.objects.create(
            tenant=tenant_a,
            name='Half off',
            type=Discount.DiscountType.PERCENTAGE,
            scope=Discount.DiscountScope.ORDER,
            value=Decimal('50'),
        ))
        totals = OrderTotalsCalculator(ctx).compute(
            cafe_order,
            discount_amount=Decimal('1.00'),
            service_charge_amount=Decimal('0.50'),
            tip_amount=Decimal('2.00'),
        )
        assert totals.discount == Decimal('1.00')
        assert totals.service_charge == Decimal('0.50')
        assert totals.tip == Decimal('2.00')
        assert totals.total == Decimal('15.18')

    def test_persisted_discount_charge_and_tip(self, ctx, tenant_a, cafe_order):
        cafe_order.discounts.add(Discount.objects.create(
            tenant=tenant_a,
            name='Ten percent',
            type=Discount.DiscountType.PERCENTAGE,
            scope=Discount.DiscountScope.ORDER,
            value=Decimal('10'),
        ))
        cafe_order.service_charge_policies.add(ServiceChargePolicy.objects.create(
            tenant=tenant_a,
            name='Service',
            type=ServiceChargePolicy.ChargeType.PERCENTAGE,
            value=Decimal('10'),
        ))
        OrderTip.objects.create(order=cafe_order, amount=Decimal('1.50'))

        totals = OrderTotalsCalculator(ctx).compute_persisted(cafe_order)
        assert totals.discount == Decimal('1.20')
        # 10% of (12.00 - 1.20)
        assert totals.service_charge == Decimal('1.08')
        assert totals.tip == Decimal('1.50')
        # 12.00 + 1.68 - 1.20 + 1.08 + 1.50
        assert totals.total == Decimal('15.06')

    def test_total_never_negative(self, ctx, cafe_order):
        totals = OrderTotalsCalculator(ctx).compute(cafe_order, discount_amount=Decimal('500'))
        assert totals.total == Decimal('0.00')
        assert totals.remaining == Decimal('0.00')

    def test_negative_override_rejected(self, ctx, cafe_order):
        with pytest.raises(SettlementValidationError):
            OrderTotalsCalculator(ctx).compute(cafe_order, tip_amount=Decimal('-1'))

    def test_paid_reduces_remaining(self, ctx, tenant_a, cafe_order):
        Payment.objects.create(
            tenant=tenant_a,
            order=cafe_order,
            method=Payment.PaymentMethod.CASH,
            status=Payment.PaymentStatus.SUCCEEDED,
            amount=Decimal('10.00'),
            currency='EUR',
        )
        Payment.objects.create(
            tenant=tenant_a,
            order=cafe_order,
            method=Payment.PaymentMethod.CARD,
            status=Payment.PaymentStatus.FAILED,
            amount=Decimal('3.68'),
            currency='EUR',
        )
        totals = OrderTotalsCalculator(ctx).compute(cafe_order)
        assert totals.paid == Decimal('10.00')
        assert totals.remaining == Decimal('3.68')
