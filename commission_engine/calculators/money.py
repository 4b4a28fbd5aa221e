"""
Money helpers shared by all calculators.

Rounding is applied to final results only; intermediate sums stay exact.
"""

from decimal import ROUND_HALF_UP, Decimal

HUNDRED = Decimal("100")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """percentage% of amount, rounded to cents."""
    return quantize_money(amount * percentage / HUNDRED)
