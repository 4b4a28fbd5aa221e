"""
Target + Expense Calculator

Combines the target crossing rules with expense deduction.
"""

from dataclasses import dataclass
from decimal import Decimal

from ..models import (
    BillingEvent,
    CommissionContext,
    CommissionProfile,
    CommissionType,
    ExpenseSummary,
    TargetProgress,
)
from .expenses import ExpenseCollector
from .money import percent_of
from .target import TargetProgressCalculator

# Both target policies draw from one cumulative pool
SHARED_TARGET_POOL = (CommissionType.TARGET_BASED, CommissionType.TARGET_PLUS_EXPENSE)


@dataclass
class TargetExpenseCalculation:
    progress: TargetProgress
    expenses: ExpenseSummary | None = None  # not fetched below target
    net_commissionable_amount: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")


class TargetExpenseCalculator:
    """Calculates target_plus_expense commissions."""

    def __init__(
        self,
        target_calculator: TargetProgressCalculator | None = None,
        expense_collector: ExpenseCollector | None = None,
    ):
        self.target_calculator = target_calculator or TargetProgressCalculator()
        self.expense_collector = expense_collector or ExpenseCollector()

    def calculate(
        self, billing: BillingEvent, profile: CommissionProfile, ctx: CommissionContext
    ) -> TargetExpenseCalculation:
        """
        Example: target 2000, 1500 achieved, 3000 paid -> 2500 above target.
        With 500 of expenses, 2000 is commissionable; at 5% that is 100.00.
        """
        progress = self.target_calculator.calculate(billing, profile, ctx, SHARED_TARGET_POOL)

        if not progress.is_above_target:
            return TargetExpenseCalculation(progress=progress)

        expenses = self.expense_collector.collect(ctx, billing.patient_id, billing.appointment_id)
        net = max(Decimal("0"), progress.amount_above_target - expenses.total_expenses)

        return TargetExpenseCalculation(
            progress=progress,
            expenses=expenses,
            net_commissionable_amount=net,
            commission_amount=percent_of(net, profile.commission_percentage),
        )
