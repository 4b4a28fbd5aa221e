"""
Flat Commission Calculator
"""

from decimal import Decimal

from .money import percent_of


class FlatCommissionCalculator:
    """A fixed percentage of every payment."""

    def calculate(self, paid_amount: Decimal, percentage: Decimal) -> Decimal:
        return percent_of(paid_amount, percentage)
