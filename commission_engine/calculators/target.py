"""
Target Progress Calculator

Tracks cumulative payments toward a staff member's target and works out how
much of the current payment lies above it.
"""

from decimal import Decimal
from typing import Iterable

from ..models import BillingEvent, CommissionContext, CommissionProfile, CommissionType, TargetProgress
from .money import percent_of


class TargetProgressCalculator:
    """Applies the target crossing rules to one payment."""

    def previous_achieved(self, ctx: CommissionContext, commission_types: Iterable[CommissionType]) -> Decimal:
        """
        Sum of amount_paid over the staff member's prior commissions.

        The ledger is re-summed on every call; there is no running counter.
        """
        entries = ctx.source.get_prior_commissions(
            ctx.staff_id, ctx.clinic_id, [t.value for t in commission_types]
        )
        return sum((entry.amount_paid for entry in entries), Decimal("0"))

    def progress(self, paid_amount: Decimal, target_amount: Decimal, previous_achieved: Decimal) -> TargetProgress:
        """
        Work out the commissionable part of a payment.

        - Target already reached before this payment: the whole payment counts
        - This payment crosses the target: only the overage counts
        - Still at or below target: nothing counts
        """
        cumulative = previous_achieved + paid_amount

        if previous_achieved >= target_amount:
            above = paid_amount
            is_above = True
        elif cumulative > target_amount:
            above = cumulative - target_amount
            is_above = True
        else:
            above = Decimal("0")
            is_above = False

        return TargetProgress(
            target_amount=target_amount,
            previous_achieved=previous_achieved,
            cumulative_achieved=cumulative,
            amount_above_target=above,
            is_above_target=is_above,
        )

    def calculate(
        self,
        billing: BillingEvent,
        profile: CommissionProfile,
        ctx: CommissionContext,
        commission_types: Iterable[CommissionType] = (CommissionType.TARGET_BASED,),
    ) -> TargetProgress:
        previous = self.previous_achieved(ctx, commission_types)
        return self.progress(billing.paid_amount, profile.target_amount, previous)

    @staticmethod
    def commission_for(progress: TargetProgress, percentage: Decimal) -> Decimal:
        if not progress.is_above_target:
            return Decimal("0")
        return percent_of(progress.amount_above_target, percentage)
