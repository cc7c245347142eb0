"""
Payment views package.

- base.py: Shared base classes for settlement views
- listing.py: Read-only payment endpoints
"""

from .base import BaseSettlementView, TenantContextMixin
from .listing import PaymentDetailView, PaymentListView

__all__ = [
    "BaseSettlementView",
    "TenantContextMixin",
    "PaymentListView",
    "PaymentDetailView",
]
