from decimal import Decimal
from typing import Sequence, Tuple
import logging

from payments.money import ZERO, quantize
from .factories import AdjustmentStrategyFactory

logger = logging.getLogger(__name__)


class AdjustmentService:
    """
    Turns an order's persisted discounts and service-charge policies into
    amounts for the totals calculator. Read-only.
    """

    @staticmethod
    def resolve(order, lines: Sequence, at, using: str = "default") -> Tuple[Decimal, Decimal]:
        """
        Returns:
            (discount, service_charge), both quantized and non-negative.
            The discount never exceeds the order subtotal.
        """
        currency = order.currency
        subtotal = sum((line.subtotal for line in lines), ZERO)

        discount_total = ZERO
        for discount in order.discounts.using(using).all():
            if not discount.is_currently_active(at):
                logger.debug(f"Discount {discount.pk} not active at {at.isoformat()}, skipped")
                continue
            strategy = AdjustmentStrategyFactory.for_discount(discount)
            discount_total += strategy.apply(lines, discount, currency)
        discount_total = quantize(currency, min(discount_total, subtotal))

        charge_total = ZERO
        charge_base = subtotal - discount_total
        for policy in order.service_charge_policies.using(using).filter(is_active=True):
            strategy = AdjustmentStrategyFactory.for_service_charge(policy)
            charge_total += strategy.apply(charge_base, policy, currency)
        charge_total = quantize(currency, charge_total)

        return discount_total, charge_total
