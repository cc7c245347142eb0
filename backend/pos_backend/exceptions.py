"""
Error taxonomy for the settlement engine.

Every failure the engine reports carries a ``kind`` (used by the API layer
to pick an HTTP status), a human readable ``reason`` and a ``retryable``
flag. The engine itself never retries; callers decide based on the flag.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SettlementError(Exception):
    """Base exception for settlement-related errors."""

    kind = "error"
    retryable = False

    def __init__(self, reason=None):
        self.reason = reason or "Settlement failed"
        super().__init__(self.reason)


class SettlementValidationError(SettlementError):
    """Raised when a request is malformed or a tender fails validation."""

    kind = "validation"


class BusinessRuleError(SettlementError):
    """Raised when a request is well formed but violates a business rule."""

    kind = "business_rule"


class ConcurrencyConflictError(SettlementError):
    """Raised when a concurrent writer changed a row between read and write."""

    kind = "concurrency_conflict"
    retryable = True


class GatewayError(SettlementError):
    """Raised when the card gateway fails or times out."""

    kind = "gateway"
    retryable = True


class GatewayTimeoutError(GatewayError):
    """Raised when the card gateway does not answer in time."""

    def __init__(self, message=None):
        super().__init__(message or "Card gateway timed out")


class PaymentDeclinedError(BusinessRuleError):
    """Raised when the card gateway declines a charge."""

    def __init__(self, reason=None):
        super().__init__(reason or "Card payment was declined")


class IdempotencyKeyReusedError(BusinessRuleError):
    """Raised when a card idempotency key belongs to a different charge."""

    def __init__(self, idempotency_key, message=None):
        self.idempotency_key = idempotency_key
        if message is None:
            message = f"Idempotency key '{idempotency_key}' is already used"
        super().__init__(message)


class NotFoundError(SettlementError):
    """Raised when a referenced entity does not exist within the tenant."""

    kind = "not_found"


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id, message=None):
        self.order_id = order_id
        if message is None:
            message = f"Order {order_id} not found"
        super().__init__(message)


class OrderAlreadyClosedError(BusinessRuleError):
    def __init__(self, order_id, message=None):
        self.order_id = order_id
        if message is None:
            message = f"Order {order_id} is already closed"
        super().__init__(message)


class OrderCancelledError(BusinessRuleError):
    def __init__(self, order_id, message=None):
        self.order_id = order_id
        if message is None:
            message = f"Order {order_id} is cancelled"
        super().__init__(message)


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id=None, message=None):
        self.payment_id = payment_id
        if message is None:
            message = (
                f"Payment {payment_id} not found"
                if payment_id
                else "No successful payment found"
            )
        super().__init__(message)


class NoApplicableRateError(NotFoundError):
    """Raised when no tax rate covers the requested instant."""

    def __init__(self, tax_category_id, at, message=None):
        self.tax_category_id = tax_category_id
        self.at = at
        if message is None:
            message = f"No tax rate for category {tax_category_id} at {at.isoformat()}"
        super().__init__(message)


class GiftCardNotFoundError(NotFoundError):
    def __init__(self, code, message=None):
        self.code = code
        if message is None:
            message = f"Gift card '{code}' not found"
        super().__init__(message)


class GiftCardInactiveError(BusinessRuleError):
    """Raised when a gift card is inactive, deleted or expired."""

    def __init__(self, code, message=None):
        self.code = code
        if message is None:
            message = f"Gift card '{code}' is inactive or expired"
        super().__init__(message)


class InsufficientBalanceError(BusinessRuleError):
    def __init__(self, code, balance, requested, message=None):
        self.code = code
        self.balance = balance
        self.requested = requested
        if message is None:
            message = (
                f"Gift card '{code}' has insufficient balance: "
                f"{balance} available, {requested} requested"
            )
        super().__init__(message)


class RefundExceedsPaymentError(BusinessRuleError):
    def __init__(self, payment_id, refundable, requested, message=None):
        self.payment_id = payment_id
        self.refundable = refundable
        self.requested = requested
        if message is None:
            message = (
                f"Refund of {requested} exceeds refundable amount "
                f"{refundable} for payment {payment_id}"
            )
        super().__init__(message)


# Maps error kinds to HTTP status codes
STATUS_BY_KIND = {
    SettlementValidationError.kind: status.HTTP_400_BAD_REQUEST,
    NotFoundError.kind: status.HTTP_404_NOT_FOUND,
    ConcurrencyConflictError.kind: status.HTTP_409_CONFLICT,
    BusinessRuleError.kind: status.HTTP_422_UNPROCESSABLE_ENTITY,
    GatewayError.kind: status.HTTP_502_BAD_GATEWAY,
}


def settlement_exception_handler(exc, context):
    """
    DRF exception handler that renders SettlementError subclasses as
    ``{"error": kind, "message": reason, "retryable": bool}``.

    Anything else falls through to DRF's default handler.
    """
    if isinstance(exc, SettlementError):
        status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
        view = context.get("view")
        view_name = view.__class__.__name__ if view else "unknown"
        if status_code >= 500:
            logger.error(f"Settlement error in {view_name}: {exc.kind}: {exc.reason}")
        else:
            logger.warning(f"Settlement error in {view_name}: {exc.kind}: {exc.reason}")
        return Response(
            {"error": exc.kind, "message": exc.reason, "retryable": exc.retryable},
            status=status_code,
        )
    return exception_handler(exc, context)
