"""
After-Deduction Calculator

Commission on the payment minus the expenses of the current visit.
"""

from decimal import Decimal

from ..models import (
    BillingAudit,
    BillingEvent,
    CommissionContext,
    CommissionProfile,
    DeductionCalculation,
)
from .expenses import ExpenseCollector
from .money import percent_of


class DeductionCalculator:
    """Calculates after_deduction commissions."""

    def __init__(self, expense_collector: ExpenseCollector | None = None):
        self.expense_collector = expense_collector or ExpenseCollector()

    def calculate(
        self, billing: BillingEvent, profile: CommissionProfile, ctx: CommissionContext
    ) -> DeductionCalculation:
        """
        Deduct the appointment's expenses from the payment.

        This is the raw calculation: it yields a (flat-equivalent) amount even
        when there is nothing to deduct. Payability is decided by the processor.
        """
        audit = self.audit_last_billing(billing, ctx)
        expenses = self.expense_collector.collect(ctx, billing.patient_id, billing.appointment_id)

        net_amount = max(Decimal("0"), billing.paid_amount - expenses.total_expenses)

        return DeductionCalculation(
            commission_amount=percent_of(net_amount, profile.commission_percentage),
            net_amount=net_amount,
            expenses=expenses,
            audit=audit,
        )

    def audit_last_billing(self, billing: BillingEvent, ctx: CommissionContext) -> BillingAudit:
        """Reference to the patient's previous billing. Does not gate expenses."""
        last = ctx.source.get_last_billing_before(
            billing.patient_id,
            ctx.clinic_id,
            exclude_billing_id=billing.billing_id,
            before=billing.created_at,
        )
        if last is None:
            return BillingAudit(is_first_billing=True)

        return BillingAudit(
            is_first_billing=False,
            last_billing_date=last.created_at,
            last_invoice_number=last.invoice_number,
        )
