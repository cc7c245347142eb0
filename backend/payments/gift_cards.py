"""
Gift card ledger.

Balance changes go through a row lock (``select_for_update``) and a
compare-and-swap update on the stored balance, so two concurrent
settlements can never both spend the same funds. Debits are
all-or-nothing; nothing here ever clamps an amount to fit.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging
import secrets
import string

from django.db import transaction
from django.db.models import F

from pos_backend.exceptions import (
    BusinessRuleError,
    ConcurrencyConflictError,
    GiftCardInactiveError,
    GiftCardNotFoundError,
    InsufficientBalanceError,
    SettlementValidationError,
)
from .models import GiftCard
from .money import quantize

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 12
MAX_CODE_ATTEMPTS = 10


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class GiftCardLedger:
    """
    Debits, credits and issues gift cards for one tenant.

    Usage:
        ledger = GiftCardLedger(ctx)
        new_balance = ledger.debit("ABCD1234EFGH", Decimal("20.00"))
    """

    def __init__(self, ctx):
        self.ctx = ctx

    def _queryset(self):
        return GiftCard.objects.using(self.ctx.using).for_tenant(self.ctx.tenant)

    def debit(self, code: str, amount: Decimal) -> Decimal:
        """
        Subtract ``amount`` from the card's balance.

        Returns:
            The new balance

        Raises:
            SettlementValidationError: amount is not positive
            GiftCardNotFoundError: no card with ``code`` in the tenant
            GiftCardInactiveError: card inactive, deleted or expired
            InsufficientBalanceError: balance below ``amount``
            ConcurrencyConflictError: balance changed between read and write
        """
        code = normalize_code(code)
        amount = Decimal(str(amount))
        if amount <= 0:
            raise SettlementValidationError("Gift card debit amount must be positive")

        with transaction.atomic(using=self.ctx.using):
            try:
                card = self._queryset().select_for_update().get(code=code)
            except GiftCard.DoesNotExist:
                raise GiftCardNotFoundError(code)

            if not card.is_usable(self.ctx.now):
                raise GiftCardInactiveError(code)

            expected = card.balance
            if expected < amount:
                raise InsufficientBalanceError(code, expected, amount)

            # Compare-and-swap: only succeeds if nobody changed the balance
            updated = (
                GiftCard.objects.using(self.ctx.using)
                .filter(pk=card.pk, balance=expected)
                .update(balance=F("balance") - amount, last_used_at=self.ctx.now)
            )
            if updated != 1:
                current = (
                    GiftCard.objects.using(self.ctx.using)
                    .filter(pk=card.pk)
                    .values_list("balance", flat=True)
                    .first()
                )
                if current is not None and current < amount:
                    raise InsufficientBalanceError(code, current, amount)
                raise ConcurrencyConflictError(
                    f"Gift card '{code}' balance changed during debit, retry the request"
                )

        new_balance = expected - amount
        logger.info(f"Gift card {code}: debited {amount}, balance {expected} -> {new_balance}")
        return new_balance

    def credit(self, gift_card_id, amount: Decimal) -> Decimal:
        """
        Add ``amount`` back to a card (used by refunds).

        The balance never exceeds the initial balance; any excess is dropped
        and logged.

        Returns:
            The new balance
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise SettlementValidationError("Gift card credit amount must be positive")

        with transaction.atomic(using=self.ctx.using):
            try:
                card = self._queryset().select_for_update().get(pk=gift_card_id)
            except GiftCard.DoesNotExist:
                raise GiftCardNotFoundError(str(gift_card_id))

            headroom = card.initial_balance - card.balance
            credited = min(amount, headroom)
            if credited < amount:
                logger.warning(
                    f"Gift card {card.code}: credit of {amount} capped at {credited} "
                    f"(initial balance {card.initial_balance})"
                )
            if credited > 0:
                updated = (
                    GiftCard.objects.using(self.ctx.using)
                    .filter(pk=card.pk, balance=card.balance)
                    .update(balance=F("balance") + credited)
                )
                if updated != 1:
                    raise ConcurrencyConflictError(
                        f"Gift card '{card.code}' balance changed during credit, retry the request"
                    )

        new_balance = card.balance + credited
        logger.info(f"Gift card {card.code}: credited {credited}, balance {card.balance} -> {new_balance}")
        return new_balance

    def issue(
        self,
        initial_balance: Decimal,
        code: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        currency: str = "EUR",
    ) -> GiftCard:
        """
        Create a new active card. A unique 12-character code is generated
        when ``code`` is not given.

        Raises:
            SettlementValidationError: non-positive balance or past expiry
            BusinessRuleError: ``code`` already used in the tenant
        """
        initial_balance = quantize(currency, initial_balance)
        if initial_balance <= 0:
            raise SettlementValidationError("Initial balance must be positive")
        if expires_at is not None and expires_at <= self.ctx.now:
            raise SettlementValidationError("Expiry must be in the future")

        if code:
            code = normalize_code(code)
            if self._queryset().filter(code=code).exists():
                raise BusinessRuleError(f"Gift card code '{code}' already exists")
        else:
            code = self._generate_unique_code()

        card = GiftCard.objects.using(self.ctx.using).create(
            tenant=self.ctx.tenant,
            code=code,
            initial_balance=initial_balance,
            balance=initial_balance,
            issued_at=self.ctx.now,
            expires_at=expires_at,
        )
        logger.info(f"Gift card {code} issued with balance {initial_balance}")
        return card

    def _generate_unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if not self._queryset().filter(code=code).exists():
                return code
        raise ConcurrencyConflictError("Could not generate a unique gift card code")
