"""
Monetary precision helpers for settlement calculations.

All rounding goes through ``quantize`` with ROUND_HALF_EVEN (banker's
rounding) at the currency's minor unit. Allocation across groups is done
in integer minor units so that the parts always sum exactly to the whole.

Key Principles:
1. NEVER use float for money
2. Quantize Decimals BEFORE converting to minor units
3. Allocate remainder cents deterministically (largest remainder first)
"""

from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from typing import List, Sequence, Union

getcontext().prec = 28

ZERO = Decimal("0.00")

# Currencies accepted by the settlement engine
SUPPORTED_CURRENCIES = ("EUR", "USD", "GBP")

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    "EUR": 2,
    "USD": 2,
    "GBP": 2,
}

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
}

Amount = Union[Decimal, str, int, float]


def currency_exponent(currency: str) -> int:
    """
    Number of decimal places for a currency. Unknown codes default to 2.

        >>> currency_exponent("EUR")
        2
    """
    return CURRENCY_EXPONENT.get((currency or "").upper(), 2)


def quantize_decimal(currency: str) -> Decimal:
    """Smallest unit of a currency, e.g. Decimal('0.01') for EUR."""
    return Decimal(10) ** -currency_exponent(currency)


def quantize(currency: str, amount: Amount) -> Decimal:
    """
    Round to currency decimals using banker's rounding (ROUND_HALF_EVEN).

        >>> quantize("EUR", "2.125")
        Decimal('2.12')
        >>> quantize("EUR", "2.135")
        Decimal('2.14')
    """
    if isinstance(amount, float):
        # Convert float to string first to avoid binary noise
        amount = str(amount)
    return Decimal(amount).quantize(quantize_decimal(currency), rounding=ROUND_HALF_EVEN)


def to_minor(currency: str, amount: Amount) -> int:
    """
    Convert to minor units (cents) after quantization.

        >>> to_minor("EUR", "10.125")
        1012
    """
    quantized = quantize(currency, amount)
    return int((quantized * (10 ** currency_exponent(currency))).to_integral_value())


def from_minor(currency: str, minor: int) -> Decimal:
    """
    Convert minor units back to a quantized Decimal.

        >>> from_minor("EUR", 1013)
        Decimal('10.13')
    """
    exponent = currency_exponent(currency)
    return quantize(currency, Decimal(minor) / (10 ** exponent))


def percentage_of(currency: str, amount: Amount, percent: Amount) -> Decimal:
    """
    ``amount * percent / 100`` rounded half-even to the currency unit.

        >>> percentage_of("EUR", "10.00", "21")
        Decimal('2.10')
    """
    amount_decimal = Decimal(str(amount))
    percent_decimal = Decimal(str(percent))
    return quantize(currency, amount_decimal * percent_decimal / Decimal("100"))


def allocate_minor(weights: Sequence[int], total_minor: int) -> List[int]:
    """
    Allocate ``total_minor`` across ``weights`` proportionally.

    Algorithm (largest remainder):
    1. Each share is floor(weight * total / sum(weights)), in integers
    2. Remaining cents go to the largest remainders
    3. Ties are broken by index (earlier wins)

    Guarantees:
    - sum(result) == total_minor exactly
    - Deterministic for the same inputs
    - All-zero weights yield all zeros

        >>> allocate_minor([100, 100, 100], 100)
        [34, 33, 33]
        >>> allocate_minor([1000, 1500, 2000], 100)
        [22, 33, 45]
    """
    if any(weight < 0 for weight in weights):
        raise ValueError("Allocation weights must be non-negative")
    if total_minor < 0:
        raise ValueError("Allocation total must be non-negative")

    total_weight = sum(weights)
    if total_weight == 0 or total_minor == 0:
        return [0] * len(weights)

    floors = []
    remainders = []
    for index, weight in enumerate(weights):
        share, remainder = divmod(weight * total_minor, total_weight)
        floors.append(share)
        remainders.append((remainder, index))

    leftover = total_minor - sum(floors)
    remainders.sort(key=lambda item: (-item[0], item[1]))

    result = list(floors)
    for _, index in remainders[:leftover]:
        result[index] += 1
    return result


def allocate(currency: str, weights: Sequence[Amount], total: Amount) -> List[Decimal]:
    """
    Decimal convenience wrapper around ``allocate_minor``.

        >>> allocate("EUR", ["10.00", "20.00"], "1.00")
        [Decimal('0.33'), Decimal('0.67')]
    """
    weight_minor = [to_minor(currency, weight) for weight in weights]
    parts = allocate_minor(weight_minor, to_minor(currency, total))
    return [from_minor(currency, part) for part in parts]


def validate_minor_sum(
    components: List[int],
    expected_total: int,
    context: str = "",
    tolerance: int = 0,
) -> None:
    """
    Raise ValueError if ``sum(components)`` differs from ``expected_total``
    by more than ``tolerance`` minor units.
    """
    actual = sum(components)
    diff = actual - expected_total

    if abs(diff) > tolerance:
        sign = "+" if diff > 0 else ""
        raise ValueError(
            f"Minor unit sum mismatch{' ' + context if context else ''}: "
            f"expected {expected_total}, got {actual} "
            f"(diff: {sign}{diff})"
        )


def format_money(currency: str, amount: Amount) -> str:
    """
    Human readable amount for log and error messages.

        >>> format_money("EUR", "1050.5")
        '€1,050.50'
    """
    code = (currency or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code, code + " ")
    return f"{symbol}{quantize(code, amount):,.{currency_exponent(code)}f}"
