"""
Explicit per-request context for settlement operations.

Every service call receives a ``SettlementContext`` instead of reading the
tenant, clock or database alias from global state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from django.db import DEFAULT_DB_ALIAS
from django.utils import timezone


@dataclass(frozen=True)
class SettlementContext:
    """
    Attributes:
        tenant: Tenant owning every row touched by the operation
        now: Instant used for tax lookups, expiry checks and timestamps
        using: Database alias for reads, locks and the transaction
    """

    tenant: "Tenant"
    now: datetime = field(default_factory=timezone.now)
    using: str = DEFAULT_DB_ALIAS

    def __post_init__(self):
        if self.tenant is None:
            raise ValueError("SettlementContext requires a tenant")
        if timezone.is_naive(self.now):
            raise ValueError("SettlementContext.now must be timezone-aware")

    @classmethod
    def for_tenant(cls, tenant, now: Optional[datetime] = None, using: str = DEFAULT_DB_ALIAS):
        return cls(tenant=tenant, now=now or timezone.now(), using=using)
