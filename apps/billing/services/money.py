"""
Two-decimal fixed-point helpers shared by the billing services.

Every division in the allocator is rounded with ``round2`` before it is
summed; half-up rounding matches how amounts are shown to members.
"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value) -> Decimal:
    """Coerce an amount to Decimal; ``None`` (never entered) counts as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
