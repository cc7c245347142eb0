"""
Card gateway adapters.

The settlement service talks to card processors only through the
``CardGateway`` interface. Every charge carries a caller-generated
idempotency key; retrying a key never charges twice, and ``lookup`` lets
the caller ask whether a charge already happened before retrying.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from decimal import Decimal
from threading import Lock
from typing import Dict, Optional
import logging
import uuid

import stripe
from django.conf import settings

from pos_backend.config import settlement_settings
from pos_backend.exceptions import GatewayError, GatewayTimeoutError
from .money import from_minor, to_minor

logger = logging.getLogger(__name__)

REVERSED_METADATA_KEY = "reversed"


@dataclass(frozen=True)
class ChargeResult:
    success: bool
    payment_intent_id: Optional[str] = None
    transaction_id: Optional[str] = None
    requires_3ds: bool = False
    error_message: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None


class CardGateway(ABC):
    """
    The Abstract Base Class for a card gateway.
    """

    @abstractmethod
    def charge(
        self,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        payment_method_id: Optional[str] = None,
    ) -> ChargeResult:
        """
        Charge ``amount``. Declines and 3-D Secure challenges are returned
        as results; transport failures raise GatewayError/GatewayTimeoutError.
        """
        pass

    @abstractmethod
    def lookup(self, idempotency_key: str) -> Optional[ChargeResult]:
        """
        Return the outcome of an earlier charge with this key, or None when
        the key is unused. Gateways that cannot reuse a key after ``cancel``
        report it as a failed result.
        """
        pass

    @abstractmethod
    def cancel(self, payment_intent_id: str) -> bool:
        """
        Void or reverse a charge made in a settlement that was rolled back.
        """
        pass


class SimulatedCardGateway(CardGateway):
    """
    In-process stand-in for a card processor.

    Results are kept in a process-wide store keyed by idempotency key.
    Amounts above ``SIMULATED_3DS_THRESHOLD`` require 3-D Secure; calling
    ``confirm_3ds`` simulates the cardholder completing the challenge.
    """

    _store: Dict[str, ChargeResult] = {}
    _lock = Lock()

    def charge(self, amount, currency, idempotency_key, payment_method_id=None):
        with self._lock:
            cached = self._store.get(idempotency_key)
            if cached is not None:
                logger.info(f"Simulated gateway: replaying result for key {idempotency_key}")
                return cached

            if amount > settlement_settings.simulated_3ds_threshold:
                result = ChargeResult(
                    success=False,
                    payment_intent_id=f"pi_{uuid.uuid4().hex}",
                    requires_3ds=True,
                    error_message="3D Secure authentication required",
                    amount=amount,
                    currency=currency.upper(),
                )
            else:
                result = ChargeResult(
                    success=True,
                    payment_intent_id=f"pi_{uuid.uuid4().hex}",
                    transaction_id=f"txn_{uuid.uuid4().hex}",
                    amount=amount,
                    currency=currency.upper(),
                )
            self._store[idempotency_key] = result

        logger.info(
            f"Simulated gateway: charged {amount} {currency} "
            f"(key={idempotency_key}, success={result.success}, 3ds={result.requires_3ds})"
        )
        return result

    def lookup(self, idempotency_key):
        with self._lock:
            return self._store.get(idempotency_key)

    def cancel(self, payment_intent_id):
        with self._lock:
            for key, result in list(self._store.items()):
                if result.payment_intent_id == payment_intent_id:
                    # A voided charge frees its key for a fresh attempt
                    del self._store[key]
                    logger.info(f"Simulated gateway: cancelled {payment_intent_id}")
                    return True
        logger.warning(f"Simulated gateway: nothing to cancel for {payment_intent_id}")
        return False

    def confirm_3ds(self, payment_intent_id: str) -> bool:
        """Mark a pending 3-D Secure charge as authenticated and captured."""
        with self._lock:
            for key, result in self._store.items():
                if result.payment_intent_id == payment_intent_id and result.requires_3ds:
                    self._store[key] = replace(
                        result,
                        success=True,
                        requires_3ds=False,
                        transaction_id=f"txn_{uuid.uuid4().hex}",
                        error_message=None,
                    )
                    return True
        return False

    @classmethod
    def reset(cls):
        """Clear the store. Used by tests."""
        with cls._lock:
            cls._store.clear()


class StripeCardGateway(CardGateway):
    """
    Stripe PaymentIntents.

    The idempotency key is sent to Stripe on create and stored in the
    intent's metadata so ``lookup`` can find it again.
    """

    def __init__(self):
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.default_http_client = stripe.new_default_http_client(
            timeout=settlement_settings.gateway_timeout_seconds
        )

    @staticmethod
    def _is_reversed(intent) -> bool:
        metadata = getattr(intent, "metadata", None) or {}
        return intent.status == "canceled" or metadata.get(REVERSED_METADATA_KEY) == "true"

    @staticmethod
    def _intent_amount(intent):
        minor = getattr(intent, "amount", None)
        currency = getattr(intent, "currency", None)
        if minor is None or not currency:
            return {}
        currency = currency.upper()
        return {"amount": from_minor(currency, minor), "currency": currency}

    @classmethod
    def _result_from_intent(cls, intent) -> ChargeResult:
        if intent.status == "succeeded":
            return ChargeResult(
                success=True,
                payment_intent_id=intent.id,
                transaction_id=getattr(intent, "latest_charge", None),
                **cls._intent_amount(intent),
            )
        if intent.status == "requires_action":
            return ChargeResult(
                success=False,
                payment_intent_id=intent.id,
                requires_3ds=True,
                error_message="3D Secure authentication required",
                **cls._intent_amount(intent),
            )
        return ChargeResult(
            success=False,
            payment_intent_id=intent.id,
            error_message=f"Payment intent is {intent.status}",
        )

    def charge(self, amount, currency, idempotency_key, payment_method_id=None):
        if not payment_method_id:
            return ChargeResult(success=False, error_message="A card payment method is required")

        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor(currency, amount),
                currency=currency.lower(),
                payment_method=payment_method_id,
                payment_method_types=["card"],
                confirm=True,
                metadata={"idempotency_key": idempotency_key},
                idempotency_key=idempotency_key,
            )
        except stripe.CardError as e:
            logger.warning(f"Stripe declined charge (key={idempotency_key}): {e.user_message}")
            return ChargeResult(success=False, error_message=e.user_message or str(e))
        except stripe.APIConnectionError as e:
            logger.error(f"Stripe connection error (key={idempotency_key}): {e}")
            raise GatewayTimeoutError(f"Card gateway unreachable: {e}")
        except stripe.StripeError as e:
            logger.error(f"Stripe API error (key={idempotency_key}): {e}")
            raise GatewayError(f"Card gateway error: {e}")

        logger.info(f"Stripe PaymentIntent {intent.id} created with status {intent.status}")
        return self._result_from_intent(intent)

    def lookup(self, idempotency_key):
        try:
            found = stripe.PaymentIntent.search(
                query=f"metadata['idempotency_key']:'{idempotency_key}'", limit=1
            )
        except stripe.APIConnectionError as e:
            raise GatewayTimeoutError(f"Card gateway unreachable: {e}")
        except stripe.StripeError as e:
            raise GatewayError(f"Card gateway error: {e}")

        if not found.data:
            return None
        intent = found.data[0]
        if self._is_reversed(intent):
            # Stripe replays the original response for a reused key
            return ChargeResult(
                success=False,
                payment_intent_id=intent.id,
                error_message="The charge for this idempotency key was reversed; retry with a new key",
            )
        return self._result_from_intent(intent)

    def cancel(self, payment_intent_id):
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
            if intent.status == "succeeded":
                stripe.Refund.create(payment_intent=payment_intent_id, reason="requested_by_customer")
                stripe.PaymentIntent.modify(payment_intent_id, metadata={REVERSED_METADATA_KEY: "true"})
                logger.info(f"Refunded captured Stripe PI {payment_intent_id}")
            else:
                stripe.PaymentIntent.cancel(payment_intent_id)
                logger.info(f"Successfully cancelled Stripe PI: {payment_intent_id}")
            return True
        except stripe.InvalidRequestError as e:
            # Usually means the intent is already canceled or in a final state.
            logger.warning(
                f"Could not cancel Stripe PI {payment_intent_id} (likely already finalized): {e}"
            )
            return True
        except stripe.StripeError as e:
            logger.error(f"Unexpected error cancelling Stripe PI {payment_intent_id}: {e}")
            return False
