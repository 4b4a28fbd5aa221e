"""
Expense Collector

Gathers the patient complaint line items that reduce the commissionable
amount under the expense-aware policies.
"""

from decimal import Decimal

from ..models import (
    CommissionContext,
    ExpenseBreakdown,
    ExpenseLine,
    ExpenseRecord,
    ExpenseSummary,
)
from .money import quantize_money


class ExpenseCollector:
    """Sums expenses recorded against one appointment."""

    def collect(self, ctx: CommissionContext, patient_id: str, appointment_id: str | None) -> ExpenseSummary:
        # Scoped to the current appointment, not to all expenses since the last billing
        records = ctx.source.get_expense_records(patient_id, appointment_id)
        return self.summarize(records)

    def summarize(self, records: list[ExpenseRecord]) -> ExpenseSummary:
        total = Decimal("0")
        breakdown = []

        for record in records:
            lines = []
            for item in record.items:
                total += item.total_amount
                lines.append(
                    ExpenseLine(
                        name=item.name,
                        code=item.code,
                        quantity=item.quantity,
                        uom=item.uom,
                        amount=item.total_amount,
                    )
                )
            breakdown.append(
                ExpenseBreakdown(
                    record_id=record.record_id,
                    created_at=record.created_at,
                    items_count=len(record.items),
                    items=lines,
                )
            )

        return ExpenseSummary(
            total_expenses=quantize_money(total),
            complaints_count=len(records),
            breakdown=breakdown,
        )
