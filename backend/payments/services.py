"""
Order settlement.

SettlementService turns an open order plus a list of tenders into a
closed order with Payment rows, all inside one database transaction.
Either every payment row, gift card debit, tip and the CLOSED state
commit together, or none of them do.

Lifecycle (VALIDATING and APPLYING are transient and only logged):

    OPEN -> VALIDATING -> APPLYING -> CLOSED
    OPEN -> CANCELLED
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from orders.calculators import OrderTotals, OrderTotalsCalculator
from orders.models import Order, OrderItem, OrderTip
from pos_backend.config import settlement_settings
from pos_backend.exceptions import (
    BusinessRuleError,
    ConcurrencyConflictError,
    IdempotencyKeyReusedError,
    OrderAlreadyClosedError,
    OrderCancelledError,
    OrderNotFoundError,
    PaymentDeclinedError,
    SettlementValidationError,
)
from .factories import CardGatewayFactory
from .gateways import CardGateway, ChargeResult
from .gift_cards import GiftCardLedger, normalize_code
from .models import GiftCard, GiftCardPayment, Payment
from .money import ZERO, allocate_minor, format_money, from_minor, to_minor, validate_minor_sum
from .signals import order_cancelled, order_closed
from .tenders import (
    CardTender,
    CashTender,
    GiftCardTender,
    SplitGroup,
    Tender,
    TipRequest,
    build_tender,
)
from .validators import PaymentValidator

logger = logging.getLogger(__name__)


class SettlementPhase:
    OPEN = "OPEN"
    VALIDATING = "VALIDATING"
    APPLYING = "APPLYING"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


@dataclass
class SettlementResult:
    order: Order
    totals: OrderTotals
    payments: List[Payment] = field(default_factory=list)
    change: Optional[Decimal] = None
    payment_intent_id: Optional[str] = None
    requires_3ds: bool = False


# A planned tender and the order items it covers (split settlements only)
PlannedTender = Tuple[Tender, Optional[FrozenSet[int]]]


class SettlementService:
    """
    Settlement with formal phase transition management.

    Usage:
        service = SettlementService(ctx)
        result = service.close_order_with_payments(
            order.id,
            [CashTender(amount=Decimal("20.00"), currency="EUR")],
        )
    """

    # Phase transition map - defines valid transitions of a settlement
    VALID_TRANSITIONS = {
        SettlementPhase.OPEN: [SettlementPhase.VALIDATING, SettlementPhase.CANCELLED],
        SettlementPhase.VALIDATING: [SettlementPhase.APPLYING, SettlementPhase.OPEN],
        SettlementPhase.APPLYING: [SettlementPhase.CLOSED, SettlementPhase.OPEN],
        SettlementPhase.CLOSED: [],  # Terminal state
        SettlementPhase.CANCELLED: [],  # Terminal state
    }

    def __init__(self, ctx, gateway_factory=CardGatewayFactory):
        self.ctx = ctx
        self.gateway_factory = gateway_factory
        self.calculator = OrderTotalsCalculator(ctx)
        self.validator = PaymentValidator(ctx)
        self.ledger = GiftCardLedger(ctx)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def close_order_with_payments(
        self,
        order_id,
        tenders: Sequence[Tender],
        tip: Optional[TipRequest] = None,
        discount_amount: Optional[Decimal] = None,
        service_charge_amount: Optional[Decimal] = None,
    ) -> SettlementResult:
        """
        Settle an open order with tenders applied in submission order.

        Returns:
            SettlementResult. When a card needs 3-D Secure, nothing is
            written, the order stays OPEN and ``requires_3ds`` is True.

        Raises:
            OrderNotFoundError, OrderAlreadyClosedError, OrderCancelledError
            SettlementValidationError: a tender failed validation
            BusinessRuleError: tenders do not cover the total, currency mismatch,
                gift card failures at apply time, declined cards, a card
                idempotency key that belongs to another payment or amount
            ConcurrencyConflictError: gift card balance or card key raced
            GatewayError: card gateway failure or timeout (retryable)
        """
        tenders = list(tenders)

        def plan(order, totals):
            return [(tender, None) for tender in tenders]

        return self._close(order_id, plan, tip, discount_amount, service_charge_amount)

    def close_order_with_split_payments(
        self,
        order_id,
        groups: Sequence[SplitGroup],
        tip: Optional[TipRequest] = None,
        discount_amount: Optional[Decimal] = None,
        service_charge_amount: Optional[Decimal] = None,
    ) -> SettlementResult:
        """
        Settle an open order split by item groups.

        Every order item must belong to exactly one group. A group owes the
        subtotal and tax of its items plus its proportional share of the
        service charge and tip, minus its proportional share of the
        discount. Shares are allocated in cents so the groups add up to the
        order total exactly.
        """
        groups = list(groups)

        def plan(order, totals):
            amounts = self.partition(order, totals, groups)
            return [
                (self._tender_for_group(order, index, group, amount), frozenset(group.order_item_ids))
                for index, (group, amount) in enumerate(zip(groups, amounts))
            ]

        return self._close(order_id, plan, tip, discount_amount, service_charge_amount)

    def cancel_order(self, order_id) -> Order:
        """
        Cancel an open order that has no successful payments.
        Orders with payments must be refunded, not cancelled.
        """
        with transaction.atomic(using=self.ctx.using):
            order = self._lock_order(order_id)
            if order.status == Order.OrderStatus.CLOSED:
                raise OrderAlreadyClosedError(order.id)
            if order.status == Order.OrderStatus.CANCELLED:
                raise OrderCancelledError(order.id)

            has_payments = (
                Payment.objects.using(self.ctx.using)
                .filter(order=order, status=Payment.PaymentStatus.SUCCEEDED)
                .exists()
            )
            if has_payments:
                raise BusinessRuleError(
                    f"Order {order.id} has payments and must be refunded instead of cancelled"
                )

            self._log_transition(order, SettlementPhase.OPEN, SettlementPhase.CANCELLED)
            order.status = Order.OrderStatus.CANCELLED
            order.cancelled_at = self.ctx.now
            order.save(update_fields=["status", "cancelled_at", "updated_at"])

            transaction.on_commit(
                lambda: self._emit(order_cancelled, order=order), using=self.ctx.using
            )
        return order

    def preview_totals(
        self,
        order_id,
        discount_amount: Optional[Decimal] = None,
        service_charge_amount: Optional[Decimal] = None,
        tip_amount: Optional[Decimal] = None,
    ) -> OrderTotals:
        """Read-only totals for an order of the context's tenant."""
        order = self._get_order(order_id)
        return self.calculator.compute(
            order,
            discount_amount=discount_amount,
            service_charge_amount=service_charge_amount,
            tip_amount=tip_amount,
        )

    def partition(self, order, totals: OrderTotals, groups: Sequence[SplitGroup]) -> List[Decimal]:
        """
        Amount owed by each split group.

        Raises:
            SettlementValidationError: empty, unknown, duplicate or uncovered items
            BusinessRuleError: a group would owe nothing
        """
        if not groups:
            raise SettlementValidationError("At least one split group is required")

        lines = {line.order_item_id: line for line in totals.lines}
        seen = set()
        for index, group in enumerate(groups):
            item_ids = set(group.order_item_ids)
            if not item_ids:
                raise SettlementValidationError(f"Split group {index} covers no order items")
            unknown = item_ids - lines.keys()
            if unknown:
                raise SettlementValidationError(
                    f"Split group {index} references items not on the order: {sorted(unknown)}"
                )
            duplicated = item_ids & seen
            if duplicated:
                raise SettlementValidationError(
                    f"Order items {sorted(duplicated)} appear in more than one split group"
                )
            seen |= item_ids

        uncovered = lines.keys() - seen
        if uncovered:
            raise SettlementValidationError(
                f"Order items {sorted(uncovered)} are not covered by any split group"
            )

        currency = order.currency
        # Each group weighs what its lines cost with tax, in minor units
        weights = [
            sum(
                to_minor(currency, lines[item_id].subtotal) + to_minor(currency, lines[item_id].tax)
                for item_id in group.order_item_ids
            )
            for group in groups
        ]
        discount_parts = allocate_minor(weights, to_minor(currency, totals.discount))
        charge_parts = allocate_minor(weights, to_minor(currency, totals.service_charge))
        tip_parts = allocate_minor(weights, to_minor(currency, totals.tip))

        amounts_minor = [
            base + charge + tip - discount
            for base, charge, tip, discount in zip(weights, charge_parts, tip_parts, discount_parts)
        ]
        for index, amount in enumerate(amounts_minor):
            if amount <= 0:
                raise BusinessRuleError(
                    f"Split group {index} owes nothing; merge its items into another group"
                )
        validate_minor_sum(
            amounts_minor, to_minor(currency, totals.total), context=f"split of order {order.id}"
        )
        return [from_minor(currency, amount) for amount in amounts_minor]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _close(
        self,
        order_id,
        plan: Callable[[Order, OrderTotals], List[PlannedTender]],
        tip: Optional[TipRequest],
        discount_amount: Optional[Decimal],
        service_charge_amount: Optional[Decimal],
    ) -> SettlementResult:
        captured: List[Tuple[CardGateway, ChargeResult]] = []
        try:
            with transaction.atomic(using=self.ctx.using):
                order = self._lock_open_order(order_id)
                totals = self.calculator.compute(
                    order,
                    discount_amount=discount_amount,
                    service_charge_amount=service_charge_amount,
                    tip_amount=tip.amount if tip is not None else None,
                )
                planned = plan(order, totals)

                self._log_transition(order, SettlementPhase.OPEN, SettlementPhase.VALIDATING)
                self._validate(order, totals, [tender for tender, _ in planned])

                self._log_transition(order, SettlementPhase.VALIDATING, SettlementPhase.APPLYING)
                result = self._apply(order, totals, planned, captured)

                if result.requires_3ds:
                    transaction.set_rollback(True, using=self.ctx.using)
                else:
                    self._finish(order, tip, discount_amount, service_charge_amount, result)
        except Exception:
            self._compensate(captured)
            raise

        if result.requires_3ds:
            self._compensate(captured)
            self._log_transition(order, SettlementPhase.APPLYING, SettlementPhase.OPEN)
            logger.info(
                f"Order {order.id}: 3-D Secure required for {result.payment_intent_id}, "
                f"settlement rolled back"
            )
        return result

    def _validate(self, order: Order, totals: OrderTotals, tenders: List[Tender]) -> None:
        if not tenders:
            if totals.remaining == ZERO:
                return
            raise SettlementValidationError("At least one payment is required")

        index, error = self.validator.validate_sequence(tenders, totals.remaining)
        if error is not None:
            raise SettlementValidationError(f"Payment {index + 1}: {error}")

        for tender in tenders:
            if tender.currency.upper() != order.currency.upper():
                raise BusinessRuleError(
                    f"Payment currency {tender.currency} does not match order currency {order.currency}"
                )

        tendered = sum((tender.amount for tender in tenders), ZERO)
        shortfall = totals.remaining - tendered
        if shortfall > settlement_settings.rounding_tolerance:
            raise BusinessRuleError(
                f"Payments of {format_money(order.currency, tendered)} do not cover "
                f"the remaining {format_money(order.currency, totals.remaining)}"
            )

    def _apply(
        self,
        order: Order,
        totals: OrderTotals,
        planned: List[PlannedTender],
        captured: List[Tuple[CardGateway, ChargeResult]],
    ) -> SettlementResult:
        result = SettlementResult(order=order, totals=totals)
        remaining = totals.remaining

        for tender, item_ids in planned:
            applied = min(tender.amount, remaining)
            if applied <= 0:
                raise BusinessRuleError(
                    f"Nothing left to pay for a {tender.method} payment of "
                    f"{format_money(order.currency, tender.amount)}"
                )

            if isinstance(tender, CashTender):
                payment = self._apply_cash(order, tender, applied)
                if tender.amount > applied:
                    result.change = tender.amount - applied
            elif isinstance(tender, GiftCardTender):
                payment = self._apply_gift_card(order, tender)
            elif isinstance(tender, CardTender):
                charge, payment = self._apply_card(order, tender, captured)
                if charge.requires_3ds:
                    result.requires_3ds = True
                    result.payment_intent_id = charge.payment_intent_id
                    result.payments = []
                    return result
                result.payment_intent_id = charge.payment_intent_id
            else:
                raise TypeError(f"Unknown tender type: {type(tender).__name__}")

            if item_ids:
                payment.order_items.set(
                    OrderItem.objects.using(self.ctx.using).filter(order=order, pk__in=item_ids)
                )
            result.payments.append(payment)
            remaining -= applied

        return result

    def _apply_cash(self, order: Order, tender: CashTender, applied: Decimal) -> Payment:
        return Payment.objects.using(self.ctx.using).create(
            tenant=self.ctx.tenant,
            order=order,
            method=Payment.PaymentMethod.CASH,
            status=Payment.PaymentStatus.SUCCEEDED,
            amount=applied,
            tendered_amount=tender.amount,
            currency=order.currency,
        )

    def _apply_gift_card(self, order: Order, tender: GiftCardTender) -> Payment:
        code = normalize_code(tender.gift_card_code)
        self.ledger.debit(code, tender.amount)
        card = GiftCard.objects.using(self.ctx.using).for_tenant(self.ctx.tenant).get(code=code)

        payment = Payment.objects.using(self.ctx.using).create(
            tenant=self.ctx.tenant,
            order=order,
            method=Payment.PaymentMethod.GIFT_CARD,
            status=Payment.PaymentStatus.SUCCEEDED,
            amount=tender.amount,
            currency=order.currency,
        )
        GiftCardPayment.objects.using(self.ctx.using).create(
            payment=payment, gift_card=card, amount_used=tender.amount
        )
        return payment

    def _apply_card(
        self,
        order: Order,
        tender: CardTender,
        captured: List[Tuple[CardGateway, ChargeResult]],
    ) -> Tuple[ChargeResult, Optional[Payment]]:
        key = tender.idempotency_key
        self._ensure_key_unused(key)

        gateway = self.gateway_factory.get_gateway(tender.provider)

        # The gateway is the source of truth for whether this key already charged
        charge = gateway.lookup(key)
        if charge is None:
            charge = gateway.charge(
                tender.amount,
                order.currency,
                key,
                payment_method_id=tender.payment_method_id,
            )
        else:
            logger.info(
                f"Order {order.id}: found earlier charge for key {key} "
                f"(success={charge.success}, 3ds={charge.requires_3ds})"
            )
        self._check_charge_matches(order, tender, charge)

        if charge.requires_3ds:
            return charge, None
        if not charge.success:
            raise PaymentDeclinedError(charge.error_message)

        captured.append((gateway, charge))
        try:
            with transaction.atomic(using=self.ctx.using):
                payment = Payment.objects.using(self.ctx.using).create(
                    tenant=self.ctx.tenant,
                    order=order,
                    method=Payment.PaymentMethod.CARD,
                    status=Payment.PaymentStatus.SUCCEEDED,
                    amount=tender.amount,
                    currency=order.currency,
                    provider=tender.provider.upper(),
                    idempotency_key=key,
                    payment_intent_id=charge.payment_intent_id,
                    transaction_id=charge.transaction_id,
                )
        except IntegrityError:
            # A concurrent settlement recorded this charge first; it owns it now
            captured.pop()
            raise ConcurrencyConflictError(
                f"Idempotency key '{key}' was used by a concurrent settlement"
            )
        return charge, payment

    def _ensure_key_unused(self, key: str) -> None:
        # Gateways share one key space across tenants
        if Payment.objects.using(self.ctx.using).filter(idempotency_key=key).exists():
            raise IdempotencyKeyReusedError(key)

    @staticmethod
    def _check_charge_matches(order: Order, tender: CardTender, charge: ChargeResult) -> None:
        if charge.amount is None:
            return
        currency = (charge.currency or order.currency).upper()
        if charge.amount != tender.amount or currency != order.currency.upper():
            raise IdempotencyKeyReusedError(
                tender.idempotency_key,
                f"Idempotency key '{tender.idempotency_key}' is already used for a charge of "
                f"{format_money(currency, charge.amount)}; retry with that amount or a new key",
            )

    def _finish(
        self,
        order: Order,
        tip: Optional[TipRequest],
        discount_amount: Optional[Decimal],
        service_charge_amount: Optional[Decimal],
        result: SettlementResult,
    ) -> None:
        if tip is not None:
            OrderTip.objects.using(self.ctx.using).update_or_create(
                order=order,
                defaults={"amount": tip.amount, "source": tip.source or "", "created_at": self.ctx.now},
            )

        self._log_transition(order, SettlementPhase.APPLYING, SettlementPhase.CLOSED)
        order.status = Order.OrderStatus.CLOSED
        order.closed_at = self.ctx.now
        order.save(update_fields=["status", "closed_at", "updated_at"])

        result.totals = self.calculator.compute(
            order,
            discount_amount=discount_amount,
            service_charge_amount=service_charge_amount,
            tip_amount=tip.amount if tip is not None else None,
        )

        payments = list(result.payments)
        change = result.change
        transaction.on_commit(
            lambda: self._emit(order_closed, order=order, payments=payments, change=change),
            using=self.ctx.using,
        )

    def _compensate(self, captured: List[Tuple[CardGateway, ChargeResult]]) -> None:
        """Reverse card charges captured by a settlement that did not commit."""
        for gateway, charge in captured:
            if gateway.cancel(charge.payment_intent_id):
                logger.info(f"Reversed charge {charge.payment_intent_id} after rollback")
            else:
                logger.error(
                    f"Could not reverse charge {charge.payment_intent_id} after rollback; "
                    f"manual reversal required"
                )
        captured.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tender_for_group(self, order: Order, index: int, group: SplitGroup, amount: Decimal) -> Tender:
        idempotency_key = group.idempotency_key
        if (group.method or "").upper() == Payment.PaymentMethod.CARD and not idempotency_key:
            # Same order, group and amount produce the same key on retry
            idempotency_key = f"split-{order.id}-{index}-{to_minor(order.currency, amount)}"
        try:
            return build_tender(
                group.method,
                amount,
                group.currency,
                provider=group.provider,
                idempotency_key=idempotency_key,
                gift_card_code=group.gift_card_code,
                payment_method_id=group.payment_method_id,
            )
        except ValueError as e:
            raise SettlementValidationError(f"Split group {index}: {e}")

    def _order_queryset(self):
        return Order.objects.using(self.ctx.using).for_tenant(self.ctx.tenant)

    def _get_order(self, order_id) -> Order:
        try:
            return self._order_queryset().get(pk=order_id)
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise OrderNotFoundError(order_id)

    def _lock_order(self, order_id) -> Order:
        try:
            return self._order_queryset().select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise OrderNotFoundError(order_id)

    def _lock_open_order(self, order_id) -> Order:
        order = self._lock_order(order_id)
        if order.status == Order.OrderStatus.CLOSED:
            raise OrderAlreadyClosedError(order.id)
        if order.status == Order.OrderStatus.CANCELLED:
            raise OrderCancelledError(order.id)
        return order

    @classmethod
    def _log_transition(cls, order: Order, current: str, target: str) -> None:
        if target not in cls.VALID_TRANSITIONS.get(current, []):
            raise ValueError(
                f"Invalid settlement transition from {current} to {target}. "
                f"Valid transitions from {current}: {cls.VALID_TRANSITIONS.get(current, [])}"
            )
        logger.info(f"Order {order.id}: settlement {current} -> {target}")

    @staticmethod
    def _emit(signal, **kwargs) -> None:
        """Deferred signal emission - runs after the transaction commits."""
        for receiver, response in signal.send_robust(sender=SettlementService, **kwargs):
            if isinstance(response, Exception):
                # Settlement already committed; receivers cannot undo it
                logger.error(f"Error in settlement signal receiver {receiver}: {response}")
