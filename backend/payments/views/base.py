"""
Base classes and utilities for settlement views.

Contains shared functionality used across the order, payment and refund
endpoints.
"""

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
import logging

from pos_backend.context import SettlementContext

logger = logging.getLogger(__name__)


class TenantContextMixin:
    """
    Builds the explicit settlement context from the tenant the middleware
    resolved for the request.
    """

    def get_settlement_context(self) -> SettlementContext:
        return SettlementContext.for_tenant(self.request.tenant)


class BaseSettlementView(TenantContextMixin, APIView):
    """
    Base class for all settlement views with common functionality.
    """

    def handle_exception(self, exc):
        """
        Centralized exception handling for settlement views.
        """
        logger.debug(f"Settlement view error in {self.__class__.__name__}: {exc}")
        return super().handle_exception(exc)

    def create_success_response(self, data, status_code=status.HTTP_200_OK):
        """
        Creates a standardized success response.
        """
        return Response(data, status=status_code)
