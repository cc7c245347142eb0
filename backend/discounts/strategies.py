from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Sequence
import logging

from payments.money import ZERO, percentage_of, quantize
from .models import Discount, ServiceChargePolicy

logger = logging.getLogger(__name__)


class DiscountStrategy(ABC):
    """
    The interface for a discount strategy.

    ``lines`` are the priced order lines produced by the totals calculator;
    each exposes ``product_id``, ``service_id``, ``quantity`` and ``subtotal``.
    """

    @abstractmethod
    def apply(self, lines: Sequence, discount: Discount, currency: str) -> Decimal:
        pass


class OrderPercentageDiscountStrategy(DiscountStrategy):
    """Applies a percentage-based discount to the order subtotal."""

    def apply(self, lines, discount, currency):
        subtotal = sum((line.subtotal for line in lines), ZERO)
        if subtotal <= 0:
            return ZERO
        return percentage_of(currency, subtotal, discount.value)


class OrderFixedAmountDiscountStrategy(DiscountStrategy):
    """Applies a fixed amount discount, never more than the order subtotal."""

    def apply(self, lines, discount, currency):
        subtotal = sum((line.subtotal for line in lines), ZERO)
        return quantize(currency, min(discount.value, subtotal))


class TargetedDiscountStrategy(DiscountStrategy):
    """Base for discounts that only apply to lines of one product or service."""

    def matches(self, line, discount: Discount) -> bool:
        raise NotImplementedError

    def line_discount(self, line, discount: Discount, currency: str) -> Decimal:
        raise NotImplementedError

    def apply(self, lines, discount, currency):
        total = ZERO
        for line in lines:
            if not self.matches(line, discount):
                continue
            # Capped at the line so a line never goes negative
            total += min(self.line_discount(line, discount, currency), line.subtotal)
        return total


class ProductMatchMixin:
    def matches(self, line, discount):
        return discount.product_id is not None and line.product_id == discount.product_id


class ServiceMatchMixin:
    def matches(self, line, discount):
        return discount.service_id is not None and line.service_id == discount.service_id


class PercentageLineMixin:
    def line_discount(self, line, discount, currency):
        return percentage_of(currency, line.subtotal, discount.value)


class FixedPerUnitLineMixin:
    def line_discount(self, line, discount, currency):
        return quantize(currency, discount.value * line.quantity)


class ProductPercentageDiscountStrategy(ProductMatchMixin, PercentageLineMixin, TargetedDiscountStrategy):
    pass


class ProductFixedAmountDiscountStrategy(ProductMatchMixin, FixedPerUnitLineMixin, TargetedDiscountStrategy):
    pass


class ServicePercentageDiscountStrategy(ServiceMatchMixin, PercentageLineMixin, TargetedDiscountStrategy):
    pass


class ServiceFixedAmountDiscountStrategy(ServiceMatchMixin, FixedPerUnitLineMixin, TargetedDiscountStrategy):
    pass


class ServiceChargeStrategy(ABC):
    """
    Prices a service charge. ``base`` is the order subtotal after discounts.
    """

    @abstractmethod
    def apply(self, base: Decimal, policy: ServiceChargePolicy, currency: str) -> Decimal:
        pass


class PercentageServiceChargeStrategy(ServiceChargeStrategy):
    def apply(self, base, policy, currency):
        return percentage_of(currency, max(base, ZERO), policy.value)


class FixedServiceChargeStrategy(ServiceChargeStrategy):
    def apply(self, base, policy, currency):
        return quantize(currency, policy.value)
