"""
Tender variants.

A tender is one requested payment before it is applied. The set of
variants is closed: every dispatch over tenders handles Cash, Card and
GiftCard explicitly and raises TypeError for anything else.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import FrozenSet, Optional, Union

from .models import Payment


@dataclass(frozen=True)
class CashTender:
    amount: Decimal
    currency: str
    method = Payment.PaymentMethod.CASH


@dataclass(frozen=True)
class CardTender:
    amount: Decimal
    currency: str
    provider: Optional[str] = None
    idempotency_key: Optional[str] = None
    payment_method_id: Optional[str] = None
    method = Payment.PaymentMethod.CARD


@dataclass(frozen=True)
class GiftCardTender:
    amount: Decimal
    currency: str
    gift_card_code: Optional[str] = None
    method = Payment.PaymentMethod.GIFT_CARD


Tender = Union[CashTender, CardTender, GiftCardTender]


@dataclass(frozen=True)
class SplitGroup:
    """
    One group of a split settlement: the items it covers and how they are paid.
    The amount is derived from the covered items, never supplied by the caller.
    """

    order_item_ids: FrozenSet[int]
    method: str
    currency: str
    provider: Optional[str] = None
    idempotency_key: Optional[str] = None
    gift_card_code: Optional[str] = None
    payment_method_id: Optional[str] = None


def build_tender(
    method: str,
    amount: Decimal,
    currency: str,
    provider: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    gift_card_code: Optional[str] = None,
    payment_method_id: Optional[str] = None,
) -> Tender:
    """
    Build the tender variant for ``method``.

    Raises:
        ValueError: unknown payment method
    """
    method = (method or "").upper()
    currency = (currency or "").upper()
    if method == Payment.PaymentMethod.CASH:
        return CashTender(amount=amount, currency=currency)
    if method == Payment.PaymentMethod.CARD:
        return CardTender(
            amount=amount,
            currency=currency,
            provider=provider,
            idempotency_key=idempotency_key,
            payment_method_id=payment_method_id,
        )
    if method == Payment.PaymentMethod.GIFT_CARD:
        return GiftCardTender(amount=amount, currency=currency, gift_card_code=gift_card_code)
    raise ValueError(f"Unsupported payment method '{method}'")


@dataclass(frozen=True)
class TipRequest:
    amount: Decimal
    source: str = ""
