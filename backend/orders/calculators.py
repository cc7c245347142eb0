"""
Order totals calculator.

Aggregates an order's priced lines, per-line tax (resolved from the
effective-dated rate history), discount, service charge and tip into an
``OrderTotals`` snapshot. The calculator only reads; it never writes.

Usage:
    calculator = OrderTotalsCalculator(ctx)

    # Close/preview time: explicit adjustments, persisted values for the rest
    totals = calculator.compute(order, discount_amount=Decimal("5.00"), tip_amount=Decimal("2.00"))

    # Everything from the order's persisted discounts, charges and tip
    totals = calculator.compute_persisted(order)
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from django.db.models import Sum

from discounts.services import AdjustmentService
from payments.models import Payment
from payments.money import ZERO, percentage_of, quantize
from pos_backend.config import settlement_settings
from pos_backend.exceptions import NoApplicableRateError, SettlementValidationError
from taxes.services import TaxRateResolver
from .models import OrderItem, OrderTip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricedLine:
    """One order item with its resolved price and tax."""

    order_item_id: int
    product_id: Optional[int]
    service_id: Optional[int]
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    tax_category_id: Optional[int]
    rate_percent: Decimal
    tax: Decimal


@dataclass(frozen=True)
class TaxBreakdownEntry:
    tax_category_id: int
    category_name: str
    rate_percent: Decimal
    amount: Decimal


@dataclass(frozen=True)
class OrderTotals:
    currency: str
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    service_charge: Decimal
    tip: Decimal
    total: Decimal
    paid: Decimal
    remaining: Decimal
    tax_breakdown: List[TaxBreakdownEntry] = field(default_factory=list)
    lines: List[PricedLine] = field(default_factory=list)

    def line_for(self, order_item_id: int) -> Optional[PricedLine]:
        for line in self.lines:
            if line.order_item_id == order_item_id:
                return line
        return None


class OrderTotalsCalculator:
    """
    Computes what an order owes.

    One calculator should be created per request: the tax resolver it holds
    memoises rate lookups for the context's tenant.
    """

    def __init__(self, ctx):
        self.ctx = ctx
        self.resolver = TaxRateResolver(ctx)

    def compute(
        self,
        order,
        *,
        at: Optional[datetime] = None,
        discount_amount: Optional[Decimal] = None,
        service_charge_amount: Optional[Decimal] = None,
        tip_amount: Optional[Decimal] = None,
    ) -> OrderTotals:
        """
        Compute totals with explicit adjustment overrides.

        Any override left as None falls back to the order's persisted value:
        discounts and service-charge policies for ``discount_amount`` and
        ``service_charge_amount``, the recorded OrderTip for ``tip_amount``.

        Args:
            order: Order to evaluate
            at: Instant for tax lookups and discount windows (default: ctx.now)
            discount_amount: Discount to subtract
            service_charge_amount: Service charge to add
            tip_amount: Tip to add (never taxed)

        Raises:
            SettlementValidationError: negative override amounts
            NoApplicableRateError: no rate covers ``at`` and the missing-rate
                policy is "error"
        """
        for name, value in (
            ("discount_amount", discount_amount),
            ("service_charge_amount", service_charge_amount),
            ("tip_amount", tip_amount),
        ):
            if value is not None and Decimal(str(value)) < 0:
                raise SettlementValidationError(f"{name} must not be negative")

        at = at or self.ctx.now
        currency = order.currency
        lines, breakdown = self._price_lines(order, at)
        subtotal = sum((line.subtotal for line in lines), ZERO)
        tax = sum((line.tax for line in lines), ZERO)

        if discount_amount is None or service_charge_amount is None:
            persisted_discount, persisted_charge = AdjustmentService.resolve(
                order, lines, at, using=self.ctx.using
            )
        else:
            persisted_discount = persisted_charge = ZERO

        discount = quantize(currency, discount_amount) if discount_amount is not None else persisted_discount
        service_charge = (
            quantize(currency, service_charge_amount)
            if service_charge_amount is not None
            else persisted_charge
        )
        tip = quantize(currency, tip_amount) if tip_amount is not None else self._persisted_tip(order)

        total = max(subtotal + tax - discount + service_charge + tip, ZERO)
        paid = self._paid(order)
        remaining = max(total - paid, ZERO)

        return OrderTotals(
            currency=currency,
            subtotal=quantize(currency, subtotal),
            tax=quantize(currency, tax),
            discount=discount,
            service_charge=service_charge,
            tip=tip,
            total=quantize(currency, total),
            paid=quantize(currency, paid),
            remaining=quantize(currency, remaining),
            tax_breakdown=breakdown,
            lines=lines,
        )

    def compute_persisted(self, order, at: Optional[datetime] = None) -> OrderTotals:
        """Compute totals purely from the order's persisted adjustments and tip."""
        return self.compute(order, at=at)

    def _price_lines(self, order, at: datetime) -> Tuple[List[PricedLine], List[TaxBreakdownEntry]]:
        items = (
            OrderItem.objects.using(self.ctx.using)
            .filter(order_id=order.pk)
            .select_related(
                "product",
                "product__tax_category",
                "variation",
                "service",
                "service__tax_category",
                "reservation__service",
                "reservation__service__tax_category",
            )
            .order_by("created_at", "id")
        )

        lines: List[PricedLine] = []
        breakdown: Dict[Tuple[int, Decimal], Decimal] = {}
        category_names: Dict[int, str] = {}

        for item in items:
            unit_price, sellable = self._unit_price(item)
            line_subtotal = quantize(order.currency, unit_price * item.quantity)

            tax_category = sellable.tax_category if sellable is not None else None
            rate = ZERO
            line_tax = ZERO
            if tax_category is not None:
                rate = self._rate_for(tax_category.pk, at)
                line_tax = percentage_of(order.currency, line_subtotal, rate)
                key = (tax_category.pk, rate)
                breakdown[key] = breakdown.get(key, ZERO) + line_tax
                category_names[tax_category.pk] = tax_category.name

            lines.append(
                PricedLine(
                    order_item_id=item.pk,
                    product_id=item.product_id,
                    service_id=item.service_id or (item.reservation.service_id if item.reservation_id else None),
                    unit_price=unit_price,
                    quantity=item.quantity,
                    subtotal=line_subtotal,
                    tax_category_id=tax_category.pk if tax_category is not None else None,
                    rate_percent=rate,
                    tax=line_tax,
                )
            )

        entries = [
            TaxBreakdownEntry(
                tax_category_id=category_id,
                category_name=category_names[category_id],
                rate_percent=rate,
                amount=amount,
            )
            for (category_id, rate), amount in breakdown.items()
        ]
        return lines, entries

    @staticmethod
    def _unit_price(item):
        """
        Returns (unit_price, sellable) where sellable carries the tax category.
        Variation prices are absolute; missing prices count as zero.
        """
        if item.product_id is not None:
            if item.variation_id is not None:
                return item.variation.price_adjustment, item.product
            return item.product.price or ZERO, item.product
        if item.service_id is not None:
            return item.service.default_price or ZERO, item.service
        if item.reservation_id is not None:
            service = item.reservation.service
            return service.default_price or ZERO, service
        return ZERO, None

    def _rate_for(self, tax_category_id: int, at: datetime) -> Decimal:
        try:
            return self.resolver.rate_at(tax_category_id, at)
        except NoApplicableRateError:
            if settlement_settings.missing_tax_rate_policy == "error":
                raise
            logger.warning(
                f"No tax rate for category {tax_category_id} at {at.isoformat()}, taxing at 0%"
            )
            return ZERO

    def _persisted_tip(self, order) -> Decimal:
        amount = (
            OrderTip.objects.using(self.ctx.using)
            .filter(order_id=order.pk)
            .values_list("amount", flat=True)
            .first()
        )
        return quantize(order.currency, amount) if amount is not None else ZERO

    def _paid(self, order) -> Decimal:
        paid = (
            Payment.objects.using(self.ctx.using)
            .filter(order_id=order.pk, status=Payment.PaymentStatus.SUCCEEDED)
            .aggregate(total=Sum("amount"))["total"]
        )
        return paid or ZERO
