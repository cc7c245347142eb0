"""
Tests for PaymentValidator.

Business-rule failures come back as (False, reason) tuples; only a value
outside the tender variants raises.
"""
import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone

from payments.tenders import CardTender, CashTender, GiftCardTender
from payments.validators import PaymentValidator


def card(amount, provider='STRIPE', key='key-1', currency='EUR'):
    return CardTender(amount=Decimal(amount), currency=currency, provider=provider, idempotency_key=key)


@pytest.mark.django_db
class TestCommonRules:
    def test_non_positive_amount(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(CashTender(Decimal('0'), 'EUR'), Decimal('10'))
        assert not is_valid
        assert error == "Amount must be positive"

    def test_unsupported_currency(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(CashTender(Decimal('5'), 'JPY'), Decimal('10'))
        assert not is_valid
        assert "JPY" in error

    def test_currency_is_case_insensitive(self, ctx):
        assert PaymentValidator(ctx).validate(CashTender(Decimal('5'), 'eur'), Decimal('10')) == (True, None)

    def test_unknown_tender_type_raises(self, ctx):
        class Cheque:
            amount = Decimal('5')
            currency = 'EUR'

        with pytest.raises(TypeError):
            PaymentValidator(ctx).validate(Cheque(), Decimal('10'))


@pytest.mark.django_db
class TestCashRules:
    def test_overpay_allowed_when_last(self, ctx):
        result = PaymentValidator(ctx).validate(CashTender(Decimal('20'), 'EUR'), Decimal('13.68'), is_last=True)
        assert result == (True, None)

    def test_overpay_rejected_when_not_last(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(
            CashTender(Decimal('20'), 'EUR'), Decimal('13.68'), is_last=False
        )
        assert not is_valid
        assert "change" in error


@pytest.mark.django_db
class TestCardRules:
    def test_valid_card(self, ctx):
        assert PaymentValidator(ctx).validate(card('10.00'), Decimal('13.68')) == (True, None)

    def test_missing_provider(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(card('10.00', provider=None), Decimal('13.68'))
        assert not is_valid
        assert "provider" in error

    def test_unsupported_provider(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(card('10.00', provider='PAYPAL'), Decimal('13.68'))
        assert not is_valid
        assert "PAYPAL" in error

    def test_missing_idempotency_key(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(card('10.00', key='  '), Decimal('13.68'))
        assert not is_valid
        assert "idempotency key" in error

    def test_card_never_overpays(self, ctx):
        is_valid, error = PaymentValidator(ctx).validate(card('13.69'), Decimal('13.68'))
        assert not is_valid
        assert "no change is given on card" in error


@pytest.mark.django_db
class TestGiftCardRules:
    def test_valid_gift_card(self, ctx, gift_card):
        tender = GiftCardTender(Decimal('10.00'), 'EUR', gift_card_code='gift00000001')
        assert PaymentValidator(ctx).validate(tender, Decimal('13.68')) == (True, None)

    def test_missing_code(self, ctx):
        tender = GiftCardTender(Decimal('10.00'), 'EUR', gift_card_code=None)
        is_valid, error = PaymentValidator(ctx).validate(tender, Decimal('13.68'))
        assert not is_valid
        assert "code" in error

    def test_unknown_code(self, ctx, gift_card):
        tender = GiftCardTender(Decimal('10.00'), 'EUR', gift_card_code='NOPE')
        is_valid, error = PaymentValidator(ctx).validate(tender, Decimal('13.68'))
        assert not is_valid
        assert "not found" in error

    def test_other_tenant_card_is_not_found(self, ctx_b, gift_card):
        tender = GiftCardTender(Decimal('10.00'), 'EUR', gift_card_code=gift_card.code)
        is_valid, error = PaymentValidator(ctx_b).validate(tender, Decimal('13.68'))
        assert not is_valid
        assert "not found" in error

    def test_insufficient_balance(self, ctx, small_gift_card):
        tender = GiftCardTender(Decimal('6.00'), 'EUR', gift_card_code=small_gift_card.code)
        is_valid, error = PaymentValidator(ctx).validate(tender, Decimal('13.68'))
        assert not is_valid
        assert "insufficient balance" in error

    def test_expired_card(self, ctx, gift_card):
        gift_card.expires_at = timezone.now() - timedelta(minutes=1)
        gift_card.save()
        tender = GiftCardTender(Decimal('5.00'), 'EUR', gift_card_code=gift_card.code)
        is_valid, error = PaymentValidator(ctx).validate(tender, Decimal('13.68'))
        assert not is_valid
        assert "expired" in error

    def test_amount_above_remaining(self, ctx, gift_card):
        tender = GiftCardTender(Decimal('15.00'), 'EUR', gift_card_code=gift_card.code)
        is_valid, error = PaymentValidator(ctx).validate(tender, Decimal('13.68'))
        assert not is_valid
        assert "exceeds the remaining" in error


@pytest.mark.django_db
class TestValidateSequence:
    def test_running_balance(self, ctx):
        tenders = [card('10.00'), CashTender(Decimal('5.00'), 'EUR')]
        assert PaymentValidator(ctx).validate_sequence(tenders, Decimal('13.68')) == (None, None)

    def test_reports_first_failing_index(self, ctx):
        tenders = [CashTender(Decimal('10.00'), 'EUR'), card('5.00')]
        index, error = PaymentValidator(ctx).validate_sequence(tenders, Decimal('13.68'))
        assert index == 1
        assert "exceeds the remaining" in error

    def test_cash_change_only_on_last(self, ctx):
        tenders = [CashTender(Decimal('20.00'), 'EUR'), CashTender(Decimal('1.00'), 'EUR')]
        index, _ = PaymentValidator(ctx).validate_sequence(tenders, Decimal('13.68'))
        assert index == 0
