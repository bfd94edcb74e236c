"""
Fixed-point money helpers.

Amounts enter and leave the system as Decimal with two fractional digits.
All arithmetic in between is done on integer cents.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Optional

CENT = Decimal("0.01")


def parse_amount(value) -> Optional[Decimal]:
    """
    Convert user input to a Decimal with at most two fractional digits.

    Returns None for anything that is not a finite number with currency
    precision (NaN, infinity, "12.345", "abc"). Sign is not checked here.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite():
        return None
    try:
        quantized = amount.quantize(CENT, rounding=ROUND_DOWN)
    except InvalidOperation:
        return None
    if amount != quantized:
        return None
    return quantized


def to_cents(amount: Decimal) -> int:
    """Exact conversion of a two-decimal amount to integer cents."""
    scaled = amount.scaleb(2)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount has more than two decimal places: {amount}")
    return int(scaled)


def from_cents(cents: int) -> Decimal:
    return Decimal(cents).scaleb(-2).quantize(CENT)
