"""
Tender validation.

Expected business-rule failures are returned as ``(False, reason)`` and
never raised. Only infrastructure faults (e.g. the database being
unavailable) propagate as exceptions.
"""

from decimal import Decimal
from typing import Optional, Sequence, Tuple
import logging

from .models import GiftCard, Payment
from .money import SUPPORTED_CURRENCIES, format_money
from .tenders import CardTender, CashTender, GiftCardTender, Tender

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = tuple(Payment.PaymentMethod.values)
SUPPORTED_CARD_PROVIDERS = ("STRIPE",)

ValidationResult = Tuple[bool, Optional[str]]


def is_supported_currency(code: Optional[str]) -> bool:
    return bool(code) and code.upper() in SUPPORTED_CURRENCIES


def is_supported_method(code: Optional[str]) -> bool:
    return bool(code) and code.upper() in SUPPORTED_METHODS


class PaymentValidator:
    """
    Validates tenders against the balance still owed on an order.

    Checks:
    - Amount is positive and the currency is supported
    - Cash may exceed the remaining balance only as the last tender (change)
    - Card never exceeds the remaining balance and carries a supported
      provider and an idempotency key
    - Gift card exists in the tenant, is usable and covers the amount
    """

    def __init__(self, ctx):
        self.ctx = ctx

    def validate(self, tender: Tender, remaining_balance: Decimal, is_last: bool = True) -> ValidationResult:
        """
        Validate one tender.

        Args:
            tender: Tender to validate
            remaining_balance: Amount still owed before this tender
            is_last: Whether this is the final tender of the request

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)

        Raises:
            TypeError: ``tender`` is not one of the tender variants
        """
        if tender.amount is None or tender.amount <= 0:
            return (False, "Amount must be positive")

        if not is_supported_currency(tender.currency):
            return (False, f"Currency '{tender.currency}' is not supported")

        if isinstance(tender, CashTender):
            return self._validate_cash(tender, remaining_balance, is_last)
        if isinstance(tender, CardTender):
            return self._validate_card(tender, remaining_balance)
        if isinstance(tender, GiftCardTender):
            return self._validate_gift_card(tender, remaining_balance)
        raise TypeError(f"Unknown tender type: {type(tender).__name__}")

    def validate_sequence(
        self, tenders: Sequence[Tender], remaining_balance: Decimal
    ) -> Tuple[Optional[int], Optional[str]]:
        """
        Validate tenders in submission order against the running balance.
        Each accepted tender reduces the balance seen by the next one.

        Returns:
            (index, error) of the first failing tender, or (None, None)
        """
        remaining = remaining_balance
        last_index = len(tenders) - 1
        for index, tender in enumerate(tenders):
            is_valid, error = self.validate(tender, remaining, is_last=index == last_index)
            if not is_valid:
                logger.warning(
                    f"Tender {index} ({tender.method}) rejected: {error}"
                )
                return index, error
            remaining = max(remaining - tender.amount, Decimal("0.00"))
        return None, None

    def _validate_cash(self, tender: CashTender, remaining: Decimal, is_last: bool) -> ValidationResult:
        if tender.amount > remaining and not is_last:
            return (
                False,
                f"Cash of {format_money(tender.currency, tender.amount)} exceeds the remaining "
                f"{format_money(tender.currency, remaining)}; change is only given on the last payment",
            )
        return (True, None)

    def _validate_card(self, tender: CardTender, remaining: Decimal) -> ValidationResult:
        if not tender.provider or not tender.provider.strip():
            return (False, "Card payments require a provider (e.g., 'STRIPE')")

        if not tender.idempotency_key or not tender.idempotency_key.strip():
            return (False, "Card payments require an idempotency key")

        if tender.provider.upper() not in SUPPORTED_CARD_PROVIDERS:
            return (False, f"Payment provider '{tender.provider}' is not supported")

        if tender.amount > remaining:
            return (
                False,
                f"Card amount {format_money(tender.currency, tender.amount)} exceeds the remaining "
                f"{format_money(tender.currency, remaining)}; no change is given on card",
            )
        return (True, None)

    def _validate_gift_card(self, tender: GiftCardTender, remaining: Decimal) -> ValidationResult:
        if not tender.gift_card_code or not tender.gift_card_code.strip():
            return (False, "Gift card payments require a gift card code")

        if tender.amount > remaining:
            return (
                False,
                f"Gift card amount {format_money(tender.currency, tender.amount)} exceeds the remaining "
                f"{format_money(tender.currency, remaining)}",
            )

        card = (
            GiftCard.objects.using(self.ctx.using)
            .for_tenant(self.ctx.tenant)
            .filter(code=tender.gift_card_code.strip().upper())
            .first()
        )
        if card is None:
            return (False, f"Gift card '{tender.gift_card_code}' not found")

        if not card.is_usable(self.ctx.now):
            return (False, f"Gift card '{card.code}' is inactive or expired")

        if card.balance < tender.amount:
            return (
                False,
                f"Gift card '{card.code}' has insufficient balance "
                f"({format_money(tender.currency, card.balance)} available)",
            )
        return (True, None)
