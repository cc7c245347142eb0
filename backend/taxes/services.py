"""
Tax rate resolution and rate-history maintenance.

TaxRateResolver answers "which rate applies to this category at this
instant" for the totals calculator. TaxRateService maintains the
effective-dated rate history (non-overlapping periods, soft delete and
restore cascading from a category to its rates).
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from pos_backend.exceptions import (
    BusinessRuleError,
    NoApplicableRateError,
    NotFoundError,
    SettlementValidationError,
)
from .models import TaxCategory, TaxRate

logger = logging.getLogger(__name__)


def _require_aware(instant: datetime, name: str = "instant") -> None:
    if instant is None or timezone.is_naive(instant):
        raise SettlementValidationError(f"{name} must be a timezone-aware datetime")


class TaxRateResolver:
    """
    Resolves the rate of a tax category at an instant.

    Lookups are memoised per (category, instant) for the lifetime of the
    resolver, so one resolver should be created per calculation.

    Usage:
        resolver = TaxRateResolver(ctx)
        rate = resolver.rate_at(product.tax_category_id, ctx.now)  # Decimal('21.00')
    """

    def __init__(self, ctx):
        self.ctx = ctx
        self._cache: Dict[Tuple[int, datetime], Decimal] = {}

    def rate_at(self, tax_category_id: int, instant: datetime) -> Decimal:
        """
        Return the rate percent in force for ``tax_category_id`` at ``instant``.

        Only active, non-deleted rates of an active, non-deleted category of
        the context's tenant are considered. When several periods match (which
        add_rate prevents) the latest ``effective_from`` wins.

        Raises:
            SettlementValidationError: ``instant`` is naive
            NoApplicableRateError: no rate covers ``instant``
        """
        _require_aware(instant)

        key = (tax_category_id, instant)
        if key in self._cache:
            return self._cache[key]

        rate = (
            TaxRate.objects.using(self.ctx.using)
            .filter(
                tax_category_id=tax_category_id,
                tax_category__tenant=self.ctx.tenant,
                tax_category__is_active=True,
                tax_category__deleted_at__isnull=True,
                is_active=True,
                deleted_at__isnull=True,
                effective_from__lte=instant,
            )
            .filter(Q(effective_to__isnull=True) | Q(effective_to__gt=instant))
            .order_by("-effective_from")
            .values_list("rate_percent", flat=True)
            .first()
        )
        if rate is None:
            raise NoApplicableRateError(tax_category_id, instant)

        self._cache[key] = rate
        return rate


class TaxRateService:
    """
    Maintains the effective-dated rate history of tax categories.
    """

    @staticmethod
    def get_category(ctx, category_id: int, include_inactive: bool = False) -> TaxCategory:
        queryset = TaxCategory.objects.using(ctx.using).for_tenant(ctx.tenant)
        if not include_inactive:
            queryset = queryset.filter(is_active=True)
        try:
            return queryset.get(pk=category_id)
        except TaxCategory.DoesNotExist:
            raise NotFoundError(f"Tax category {category_id} not found")

    @staticmethod
    def _lock_category(ctx, category_id: int) -> TaxCategory:
        try:
            return (
                TaxCategory.objects.using(ctx.using)
                .select_for_update()
                .for_tenant(ctx.tenant)
                .get(pk=category_id)
            )
        except TaxCategory.DoesNotExist:
            raise NotFoundError(f"Tax category {category_id} not found")

    @staticmethod
    def _overlaps(
        start: datetime,
        end: Optional[datetime],
        other_start: datetime,
        other_end: Optional[datetime],
    ) -> bool:
        # Half-open intervals; None is unbounded.
        starts_before_other_ends = other_end is None or start < other_end
        other_starts_before_end = end is None or other_start < end
        return starts_before_other_ends and other_starts_before_end

    @staticmethod
    def add_rate(
        ctx,
        category: TaxCategory,
        rate_percent: Decimal,
        effective_from: datetime,
        effective_to: Optional[datetime] = None,
    ) -> TaxRate:
        """
        Add a rate period to ``category``.

        Raises:
            SettlementValidationError: bad percent, naive datetimes or empty period
            BusinessRuleError: inactive category or a period overlapping an active rate
        """
        rate_percent = Decimal(str(rate_percent))
        if rate_percent < 0 or rate_percent > 100:
            raise SettlementValidationError("rate_percent must be between 0 and 100")
        _require_aware(effective_from, "effective_from")
        if effective_to is not None:
            _require_aware(effective_to, "effective_to")
            if effective_to <= effective_from:
                raise SettlementValidationError("effective_to must be after effective_from")

        with transaction.atomic(using=ctx.using):
            category = TaxRateService._lock_category(ctx, category.pk)
            if not category.is_active:
                raise BusinessRuleError(f"Tax category '{category.name}' is inactive")

            active_rates = category.rates.using(ctx.using).filter(is_active=True)
            for existing in active_rates:
                if TaxRateService._overlaps(
                    effective_from, effective_to, existing.effective_from, existing.effective_to
                ):
                    raise BusinessRuleError(
                        f"Rate period overlaps existing rate {existing.pk} "
                        f"of tax category '{category.name}'"
                    )

            rate = TaxRate.objects.using(ctx.using).create(
                tax_category=category,
                rate_percent=rate_percent,
                effective_from=effective_from,
                effective_to=effective_to,
            )

        logger.info(
            f"Tax rate {rate.pk} added to category {category.pk}: {rate_percent}% "
            f"from {effective_from.isoformat()}"
        )
        return rate

    @staticmethod
    def close_open_rate(ctx, category: TaxCategory, at: datetime) -> Optional[TaxRate]:
        """
        End the category's open-ended rate at ``at`` so a new period may start there.
        Returns the closed rate, or None when the category has no open-ended rate.
        """
        _require_aware(at, "at")
        with transaction.atomic(using=ctx.using):
            open_rate = (
                TaxRate.objects.using(ctx.using)
                .select_for_update()
                .filter(
                    tax_category=category,
                    tax_category__tenant=ctx.tenant,
                    is_active=True,
                    effective_to__isnull=True,
                )
                .first()
            )
            if open_rate is None:
                return None
            if at <= open_rate.effective_from:
                raise BusinessRuleError(
                    f"Cannot close rate {open_rate.pk} before it becomes effective"
                )
            open_rate.effective_to = at
            open_rate.save(update_fields=["effective_to"])

        logger.info(f"Tax rate {open_rate.pk} closed at {at.isoformat()}")
        return open_rate

    @staticmethod
    def deactivate_category(ctx, category: TaxCategory) -> TaxCategory:
        """Soft-delete a category together with its active rates."""
        with transaction.atomic(using=ctx.using):
            category = TaxRateService._lock_category(ctx, category.pk)
            if not category.is_active:
                return category

            category.is_active = False
            category.deleted_at = ctx.now
            category.save(update_fields=["is_active", "deleted_at"])
            count = category.rates.using(ctx.using).filter(is_active=True).update(
                is_active=False, deleted_at=ctx.now
            )

        logger.info(f"Tax category {category.pk} deactivated with {count} rate(s)")
        return category

    @staticmethod
    def restore_category(ctx, category: TaxCategory) -> TaxCategory:
        """Restore a soft-deleted category together with its rates."""
        with transaction.atomic(using=ctx.using):
            category = TaxRateService._lock_category(ctx, category.pk)
            if category.is_active:
                return category

            category.is_active = True
            category.deleted_at = None
            category.save(update_fields=["is_active", "deleted_at"])
            count = category.rates.using(ctx.using).filter(is_active=False).update(
                is_active=True, deleted_at=None
            )

        logger.info(f"Tax category {category.pk} restored with {count} rate(s)")
        return category

    @staticmethod
    def rates_as_of(ctx, category: TaxCategory, instant: datetime) -> List[TaxRate]:
        """Active rates of ``category`` whose period covers ``instant``."""
        _require_aware(instant)
        return list(
            TaxRate.objects.using(ctx.using)
            .filter(
                tax_category=category,
                tax_category__tenant=ctx.tenant,
                is_active=True,
                effective_from__lte=instant,
            )
            .filter(Q(effective_to__isnull=True) | Q(effective_to__gt=instant))
            .order_by("-effective_from")
        )
