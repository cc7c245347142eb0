"""
Refund processing.

Refunds are recorded against a single payment of a closed order. The
payment row is locked while the refundable amount is checked, so two
concurrent refunds can never together exceed what was paid.
"""

from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum

from orders.models import Order
from payments.gift_cards import GiftCardLedger
from payments.models import Payment
from payments.money import ZERO, allocate, quantize
from pos_backend.exceptions import (
    BusinessRuleError,
    OrderCancelledError,
    OrderNotFoundError,
    PaymentNotFoundError,
    RefundExceedsPaymentError,
    SettlementValidationError,
)
from .models import Refund
from .signals import refund_created

logger = logging.getLogger(__name__)


class RefundValidator:
    """
    Validates refund requests before processing.
    """

    @staticmethod
    def validate_order(order: Order) -> Tuple[bool, Optional[str]]:
        if order.status == Order.OrderStatus.CLOSED:
            return True, None
        if order.status == Order.OrderStatus.CANCELLED:
            return False, "Cancelled orders cannot be refunded"
        return False, "Only closed orders can be refunded"

    @staticmethod
    def validate_payment_refund(payment: Payment, order: Order) -> Tuple[bool, Optional[str]]:
        """
        Validate that a payment can be refunded.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if payment.order_id != order.pk:
            return False, f"Payment {payment.pk} does not belong to order {order.pk}"
        if payment.status != Payment.PaymentStatus.SUCCEEDED:
            return False, f"Cannot refund payment with status {payment.status}"
        return True, None


class RefundProcessor:
    """
    Records refunds and restores gift card balances.

    Card payments are not reversed with the provider here; the refund row
    is the record the operator reconciles against.

    Usage:
        processor = RefundProcessor(ctx)
        refund = processor.create_refund(order.id, Decimal("5.00"), "Cold coffee")
    """

    def __init__(self, ctx):
        self.ctx = ctx
        self.ledger = GiftCardLedger(ctx)

    def create_refund(
        self,
        order_id,
        amount: Decimal,
        reason: str = "",
        payment_id=None,
    ) -> Refund:
        """
        Refund ``amount`` against a payment of a closed order.

        Without ``payment_id`` the most recent successful payment is used.

        Raises:
            OrderNotFoundError / PaymentNotFoundError
            OrderCancelledError, BusinessRuleError: order not refundable
            SettlementValidationError: amount not positive or too precise
            RefundExceedsPaymentError: amount above what is left to refund
        """
        try:
            amount = Decimal(str(amount))
        except ArithmeticError:
            raise SettlementValidationError(f"Invalid refund amount: {amount}")
        if not amount.is_finite() or amount <= 0:
            raise SettlementValidationError("Refund amount must be positive")

        with transaction.atomic(using=self.ctx.using):
            order = self._lock_order(order_id)
            is_valid, error = RefundValidator.validate_order(order)
            if not is_valid:
                if order.status == Order.OrderStatus.CANCELLED:
                    raise OrderCancelledError(order.pk, error)
                raise BusinessRuleError(error)

            if quantize(order.currency, amount) != amount:
                raise SettlementValidationError(
                    f"Refund amount {amount} has more precision than {order.currency} allows"
                )

            payment = self._lock_payment(order, payment_id)
            is_valid, error = RefundValidator.validate_payment_refund(payment, order)
            if not is_valid:
                raise BusinessRuleError(error)

            refundable = self.refundable_amount(payment)
            if amount > refundable:
                raise RefundExceedsPaymentError(payment.pk, refundable, amount)

            refund = Refund.objects.using(self.ctx.using).create(
                tenant=self.ctx.tenant,
                order=order,
                payment=payment,
                amount=amount,
                reason=reason or "",
                is_partial=amount < payment.amount,
            )

            if payment.method == Payment.PaymentMethod.GIFT_CARD:
                self._recredit_gift_cards(payment, amount)
            elif payment.method == Payment.PaymentMethod.CARD:
                logger.info(
                    f"Refund {refund.id}: card payment {payment.payment_intent_id} "
                    f"is not reversed automatically"
                )

            self._update_refund_status(order)

            transaction.on_commit(
                lambda: refund_created.send_robust(sender=RefundProcessor, refund=refund),
                using=self.ctx.using,
            )

        logger.info(
            f"Refunded {amount} {order.currency} of payment {payment.pk} "
            f"(order {order.pk}, {refundable - amount} left refundable)"
        )
        return refund

    def refunds_for_order(self, order_id) -> List[Refund]:
        try:
            order = Order.objects.using(self.ctx.using).for_tenant(self.ctx.tenant).get(pk=order_id)
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise OrderNotFoundError(order_id)
        return list(
            Refund.objects.using(self.ctx.using)
            .for_tenant(self.ctx.tenant)
            .filter(order=order)
            .select_related("payment")
        )

    def refundable_amount(self, payment: Payment) -> Decimal:
        """Payment amount minus everything already refunded against it."""
        refunded = (
            Refund.objects.using(self.ctx.using)
            .filter(payment=payment)
            .aggregate(total=Sum("amount"))["total"]
        ) or ZERO
        return max(payment.amount - refunded, ZERO)

    def _recredit_gift_cards(self, payment: Payment, amount: Decimal) -> None:
        uses = list(payment.gift_card_uses.using(self.ctx.using).order_by("pk"))
        if not uses:
            logger.warning(f"Gift card payment {payment.pk} has no gift card usage rows")
            return

        shares = allocate(payment.currency, [use.amount_used for use in uses], amount)
        for use, share in zip(uses, shares):
            if share > 0:
                self.ledger.credit(use.gift_card_id, share)

    def _update_refund_status(self, order: Order) -> None:
        paid = (
            Payment.objects.using(self.ctx.using)
            .filter(order=order, status=Payment.PaymentStatus.SUCCEEDED)
            .aggregate(total=Sum("amount"))["total"]
        ) or ZERO
        refunded = (
            Refund.objects.using(self.ctx.using)
            .filter(order=order)
            .aggregate(total=Sum("amount"))["total"]
        ) or ZERO

        if refunded <= 0:
            new_status = Order.RefundStatus.NONE
        elif refunded >= paid:
            new_status = Order.RefundStatus.REFUNDED
        else:
            new_status = Order.RefundStatus.PARTIALLY_REFUNDED

        if order.refund_status != new_status:
            logger.info(f"Order {order.pk}: refund status {order.refund_status} -> {new_status}")
            order.refund_status = new_status
            order.save(update_fields=["refund_status", "updated_at"])

    def _lock_order(self, order_id) -> Order:
        try:
            return (
                Order.objects.using(self.ctx.using)
                .for_tenant(self.ctx.tenant)
                .select_for_update()
                .get(pk=order_id)
            )
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise OrderNotFoundError(order_id)

    def _lock_payment(self, order: Order, payment_id) -> Payment:
        payments = Payment.objects.using(self.ctx.using).for_tenant(self.ctx.tenant).select_for_update()
        if payment_id is not None:
            try:
                return payments.get(pk=payment_id)
            except (Payment.DoesNotExist, ValidationError, ValueError):
                raise PaymentNotFoundError(payment_id)

        payment = (
            payments.filter(order=order, status=Payment.PaymentStatus.SUCCEEDED)
            .order_by("-created_at")
            .first()
        )
        if payment is None:
            raise PaymentNotFoundError()
        return payment
