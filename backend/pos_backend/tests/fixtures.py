"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like tenants, tax categories, products, orders and gift cards.
"""
import pytest
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from django.utils import timezone

from tenant.models import Tenant
from taxes.models import TaxCategory, TaxRate
from products.models import Product, ProductVariation, Service, Reservation
from orders.models import Order, OrderItem
from payments.models import GiftCard
from pos_backend.context import SettlementContext

RATES_SINCE = datetime(2020, 1, 1, tzinfo=dt_timezone.utc)


# ============================================================================
# TENANT FIXTURES
# ============================================================================

@pytest.fixture
def tenant_a(db):
    """Create test tenant A (Corner Cafe)"""
    return Tenant.objects.create(
        name='Corner Cafe',
        slug='corner-cafe',
        is_active=True
    )


@pytest.fixture
def tenant_b(db):
    """Create test tenant B (Barber Shop)"""
    return Tenant.objects.create(
        name='Barber Shop',
        slug='barber-shop',
        is_active=True
    )


@pytest.fixture
def inactive_tenant(db):
    """Create inactive test tenant"""
    return Tenant.objects.create(
        name='Closed Bakery',
        slug='closed-bakery',
        is_active=False
    )


@pytest.fixture
def ctx(tenant_a):
    """Settlement context for tenant A at the current instant"""
    return SettlementContext.for_tenant(tenant_a)


@pytest.fixture
def ctx_b(tenant_b):
    return SettlementContext.for_tenant(tenant_b)


# ============================================================================
# TAX FIXTURES
# ============================================================================

@pytest.fixture
def standard_tax(tenant_a):
    """Standard tax category for tenant A (21% since 2020)"""
    category = TaxCategory.objects.create(tenant=tenant_a, name='Standard')
    TaxRate.objects.create(
        tax_category=category,
        rate_percent=Decimal('21.00'),
        effective_from=RATES_SINCE,
    )
    return category


@pytest.fixture
def reduced_tax(tenant_a):
    """Reduced tax category for tenant A (9% since 2020)"""
    category = TaxCategory.objects.create(tenant=tenant_a, name='Reduced')
    TaxRate.objects.create(
        tax_category=category,
        rate_percent=Decimal('9.00'),
        effective_from=RATES_SINCE,
    )
    return category


# ============================================================================
# PRODUCT FIXTURES
# ============================================================================

@pytest.fixture
def coffee(tenant_a, standard_tax):
    """Coffee at 2.50, standard tax"""
    return Product.objects.create(
        tenant=tenant_a,
        name='Coffee',
        price=Decimal('2.50'),
        tax_category=standard_tax,
    )


@pytest.fixture
def large_coffee(tenant_a, coffee):
    """Large variation of coffee, priced 3.20"""
    return ProductVariation.objects.create(
        tenant=tenant_a,
        product=coffee,
        name='Large',
        price_adjustment=Decimal('3.20'),
    )


@pytest.fixture
def sandwich(tenant_a, reduced_tax):
    """Sandwich at 7.00, reduced tax"""
    return Product.objects.create(
        tenant=tenant_a,
        name='Sandwich',
        price=Decimal('7.00'),
        tax_category=reduced_tax,
    )


@pytest.fixture
def haircut(tenant_a, standard_tax):
    """Haircut service at 30.00, standard tax"""
    return Service.objects.create(
        tenant=tenant_a,
        name='Haircut',
        default_price=Decimal('30.00'),
        tax_category=standard_tax,
    )


@pytest.fixture
def haircut_reservation(tenant_a, haircut):
    return Reservation.objects.create(
        tenant=tenant_a,
        service=haircut,
        customer_name='Alex',
        starts_at=timezone.now() + timedelta(hours=2),
    )


# ============================================================================
# ORDER FIXTURES
# ============================================================================

@pytest.fixture
def make_order(tenant_a):
    """
    Factory for open orders.

    Usage:
        order = make_order([(coffee, 2), (sandwich, 1)])
    """
    def _make(lines, tenant=None, currency='EUR'):
        tenant = tenant or tenant_a
        order = Order.objects.create(tenant=tenant, currency=currency)
        for sellable, quantity in lines:
            kwargs = {}
            if isinstance(sellable, Product):
                kwargs['product'] = sellable
            elif isinstance(sellable, ProductVariation):
                kwargs['product'] = sellable.product
                kwargs['variation'] = sellable
            elif isinstance(sellable, Service):
                kwargs['service'] = sellable
            elif isinstance(sellable, Reservation):
                kwargs['reservation'] = sellable
            else:
                raise TypeError(f"Cannot put {sellable!r} on an order")
            OrderItem.objects.create(tenant=tenant, order=order, quantity=quantity, **kwargs)
        return order
    return _make


@pytest.fixture
def cafe_order(make_order, coffee, sandwich):
    """
    Open order: 2 x coffee (5.00 + 1.05 tax) and 1 x sandwich (7.00 + 0.63 tax).
    Total 13.68.
    """
    return make_order([(coffee, 2), (sandwich, 1)])


# ============================================================================
# GIFT CARD FIXTURES
# ============================================================================

@pytest.fixture
def gift_card(tenant_a):
    """Active gift card for tenant A with 20.00 left"""
    return GiftCard.objects.create(
        tenant=tenant_a,
        code='GIFT00000001',
        initial_balance=Decimal('20.00'),
        balance=Decimal('20.00'),
        issued_at=timezone.now() - timedelta(days=1),
    )


@pytest.fixture
def small_gift_card(tenant_a):
    """Active gift card for tenant A with 5.00 left of 25.00"""
    return GiftCard.objects.create(
        tenant=tenant_a,
        code='GIFT00000002',
        initial_balance=Decimal('25.00'),
        balance=Decimal('5.00'),
        issued_at=timezone.now() - timedelta(days=30),
    )
