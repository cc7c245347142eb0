from .models import Discount, ServiceChargePolicy
from .strategies import (
    DiscountStrategy,
    FixedServiceChargeStrategy,
    OrderFixedAmountDiscountStrategy,
    OrderPercentageDiscountStrategy,
    PercentageServiceChargeStrategy,
    ProductFixedAmountDiscountStrategy,
    ProductPercentageDiscountStrategy,
    ServiceChargeStrategy,
    ServiceFixedAmountDiscountStrategy,
    ServicePercentageDiscountStrategy,
)

Scope = Discount.DiscountScope
Kind = Discount.DiscountType


class AdjustmentStrategyFactory:
    """
    Picks the strategy that prices an order adjustment.

    Discounts are looked up by scope, then by type. Service charges only
    have a type.
    """

    _discount_strategies = {
        Scope.ORDER: {
            Kind.PERCENTAGE: OrderPercentageDiscountStrategy,
            Kind.FIXED_AMOUNT: OrderFixedAmountDiscountStrategy,
        },
        Scope.PRODUCT: {
            Kind.PERCENTAGE: ProductPercentageDiscountStrategy,
            Kind.FIXED_AMOUNT: ProductFixedAmountDiscountStrategy,
        },
        Scope.SERVICE: {
            Kind.PERCENTAGE: ServicePercentageDiscountStrategy,
            Kind.FIXED_AMOUNT: ServiceFixedAmountDiscountStrategy,
        },
    }

    _service_charge_strategies = {
        ServiceChargePolicy.ChargeType.PERCENTAGE: PercentageServiceChargeStrategy,
        ServiceChargePolicy.ChargeType.FIXED_AMOUNT: FixedServiceChargeStrategy,
    }

    @classmethod
    def for_discount(cls, discount: Discount) -> DiscountStrategy:
        strategy_class = cls._discount_strategies.get(discount.scope, {}).get(discount.type)
        if strategy_class is None:
            raise NotImplementedError(
                f"No strategy implemented for discount type '{discount.type}' "
                f"and scope '{discount.scope}'"
            )
        return strategy_class()

    @classmethod
    def for_service_charge(cls, policy: ServiceChargePolicy) -> ServiceChargeStrategy:
        strategy_class = cls._service_charge_strategies.get(policy.type)
        if strategy_class is None:
            raise NotImplementedError(f"No service charge strategy for type '{policy.type}'")
        return strategy_class()
