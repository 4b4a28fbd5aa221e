"""
Calculators Package

Provides all calculation components for commission decisions.
"""

from .deduction import DeductionCalculator
from .expenses import ExpenseCollector
from .flat import FlatCommissionCalculator
from .money import percent_of, quantize_money
from .referral import ReferralCommissionCalculator
from .target import TargetProgressCalculator
from .target_expense import TargetExpenseCalculator

__all__ = [
    "FlatCommissionCalculator",
    "TargetProgressCalculator",
    "ExpenseCollector",
    "DeductionCalculator",
    "TargetExpenseCalculator",
    "ReferralCommissionCalculator",
    "quantize_money",
    "percent_of",
]
