"""
Output Builder

Constructs API responses and ledger entries from commission decisions.
"""

from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import Decimal

from .calculators.money import quantize_money
from .models import BillingEvent, CommissionDecision

# Detail fields that are counts or quantities rather than money
NON_MONEY_FIELDS = ("quantity",)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places, rounding half up first."""
    return round(float(quantize_money(value)), 2)


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"{value:,.2f}"


def to_jsonable(value, key: str | None = None):
    """Recursively convert decision details into JSON-friendly values."""
    if is_dataclass(value):
        value = asdict(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v, k) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return float(value) if key in NON_MONEY_FIELDS else to_money(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class OutputBuilder:
    """Builds the API response for a decision."""

    def build(self, decision: CommissionDecision) -> dict:
        output = {
            "should_create_commission": decision.should_create_commission,
            "commission_type": decision.commission_type,
            "source": decision.source,
        }

        if decision.should_create_commission:
            output["commission_percentage"] = float(decision.commission_percentage)
            output["commission_amount"] = to_money(decision.commission_amount)
            output["description"] = self._describe(decision)
        else:
            output["commission_amount"] = to_money(decision.commission_amount)
            output["reason"] = decision.reason

        output.update(to_jsonable(decision.details))
        return output

    def _describe(self, decision: CommissionDecision) -> str:
        """One-line explanation of how the amount was reached."""
        pct = f"{float(decision.commission_percentage):g}%"
        amount = _fmt(to_money(decision.commission_amount))
        details = decision.details

        if "net_commissionable_amount" in details:
            return (
                f"{pct} × (above target {_fmt(details['amount_above_target'])} "
                f"- expenses {_fmt(details['total_expenses'])}) = {amount}"
            )
        if "net_amount" in details:
            return f"{pct} × net amount {_fmt(details['net_amount'])} = {amount}"
        if "is_above_target" in details:
            if not details["is_above_target"]:
                return f"Cumulative {_fmt(details['cumulative_achieved'])} has not passed target {_fmt(details['target_amount'])}"
            return f"{pct} × above target {_fmt(details['amount_above_target'])} = {amount}"
        return f"{pct} of paid amount = {amount}"


class LedgerEntryBuilder:
    """Builds the commission document the caller persists for a payable decision."""

    def build(self, decision: CommissionDecision, billing: BillingEvent) -> dict:
        if not decision.should_create_commission:
            raise ValueError(f"Cannot build a ledger entry for a non-payable decision: {decision.reason}")

        entry = {
            "clinic_id": billing.clinic_id,
            "source": decision.source,
            "staff_id": billing.staff_id if decision.source == "staff" else None,
            "commission_type": decision.commission_type,
            "appointment_id": billing.appointment_id,
            "patient_id": billing.patient_id,
            "billing_id": billing.billing_id,
            "commission_percent": float(decision.commission_percentage),
            "amount_paid": to_money(billing.paid_amount),
            "commission_amount": to_money(decision.commission_amount),
            "invoiced_date": billing.invoiced_date.isoformat() if billing.invoiced_date else None,
        }

        if decision.source == "referral":
            entry["referral_id"] = decision.details.get("referral_id")
            entry["referral_name"] = decision.details.get("referral_name")

        return entry
