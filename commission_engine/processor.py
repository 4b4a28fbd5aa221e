"""
Commission Processor - Main Orchestrator

Decides whether a billing event earns a commission and how much.
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Dict

from .calculators import (
    DeductionCalculator,
    ExpenseCollector,
    FlatCommissionCalculator,
    ReferralCommissionCalculator,
    TargetExpenseCalculator,
    TargetProgressCalculator,
)
from .models import (
    BillingEvent,
    CommissionContext,
    CommissionDecision,
    CommissionProfile,
    CommissionRequest,
    CommissionType,
    Referral,
    TargetProgress,
)
from .output import LedgerEntryBuilder, OutputBuilder
from .sources import CommissionDataSource, InMemoryDataSource
from .validators import InputValidator

logger = logging.getLogger(__name__)

Policy = Callable[[CommissionProfile, BillingEvent, CommissionContext], CommissionDecision]


class CommissionProcessor:
    """
    Main orchestrator for commission decisions.

    Pipeline:
    1. Reject a percentage of 0 (any type)
    2. Dispatch on commission type
    3. Run the policy's lookups and calculation
    4. Apply payability rules to the raw calculation

    Lookup failures propagate to the caller untouched.
    """

    def __init__(self):
        self.validator = InputValidator()
        self.flat_calculator = FlatCommissionCalculator()
        self.target_calculator = TargetProgressCalculator()
        self.expense_collector = ExpenseCollector()
        self.deduction_calculator = DeductionCalculator(self.expense_collector)
        self.target_expense_calculator = TargetExpenseCalculator(self.target_calculator, self.expense_collector)
        self.referral_calculator = ReferralCommissionCalculator()
        self.output_builder = OutputBuilder()
        self.ledger_entry_builder = LedgerEntryBuilder()

        self._policies: dict[CommissionType, Policy] = {
            CommissionType.FLAT: self._decide_flat,
            CommissionType.TARGET_BASED: self._decide_target_based,
            CommissionType.AFTER_DEDUCTION: self._decide_after_deduction,
            CommissionType.TARGET_PLUS_EXPENSE: self._decide_target_plus_expense,
        }
        missing = set(CommissionType) - set(self._policies)
        if missing:
            raise RuntimeError(f"No policy registered for: {sorted(t.value for t in missing)}")

    def decide(self, profile: CommissionProfile, billing: BillingEvent, ctx: CommissionContext) -> CommissionDecision:
        """
        Decide the commission for one billing event.

        Args:
            profile: The staff member's commission profile
            billing: The payment just made
            ctx: Staff/clinic ids and the data source for lookups

        Returns:
            CommissionDecision; non-payable decisions carry a reason
        """
        if profile.commission_percentage <= 0:
            decision = CommissionDecision.not_payable("Commission percentage is 0", profile.commission_type)
            return self._log_decision(decision)

        policy = profile.policy
        if policy is None:
            decision = CommissionDecision.not_payable(
                f"Commission type {profile.commission_type} not yet implemented", profile.commission_type
            )
            return self._log_decision(decision)

        decision = self._policies[policy](profile, billing, ctx)
        return self._log_decision(decision)

    def decide_for_staff(
        self, staff_id: str, billing: BillingEvent, source: CommissionDataSource
    ) -> CommissionDecision:
        """Look the staff member's profile up, then decide."""
        profile = source.get_profile(staff_id)
        if profile is None:
            return self._log_decision(CommissionDecision.not_payable("No commission profile found"))

        ctx = CommissionContext(staff_id=staff_id, clinic_id=billing.clinic_id, source=source)
        return self.decide(profile, billing, ctx)

    def decide_referral(
        self, paid_amount: Decimal, referred_by: str | None, referrals: list[Referral]
    ) -> CommissionDecision:
        return self._log_decision(self.referral_calculator.calculate(paid_amount, referred_by, referrals))

    # -------------------------------------------------------------------------
    # Policies
    # -------------------------------------------------------------------------

    def _decide_flat(self, profile: CommissionProfile, billing: BillingEvent, ctx: CommissionContext) -> CommissionDecision:
        amount = self.flat_calculator.calculate(billing.paid_amount, profile.commission_percentage)
        return self._payable(profile, amount)

    def _decide_target_based(
        self, profile: CommissionProfile, billing: BillingEvent, ctx: CommissionContext
    ) -> CommissionDecision:
        if profile.target_amount <= 0:
            return CommissionDecision.not_payable("Target amount not set", profile.commission_type)

        progress = self.target_calculator.calculate(billing, profile, ctx)
        amount = self.target_calculator.commission_for(progress, profile.commission_percentage)

        # Below target is still a decision to record, just with a zero amount
        return self._payable(profile, amount, **self._progress_details(progress))

    def _decide_after_deduction(
        self, profile: CommissionProfile, billing: BillingEvent, ctx: CommissionContext
    ) -> CommissionDecision:
        if not billing.patient_id:
            return CommissionDecision.not_payable(
                "Patient ID required for after_deduction commission", profile.commission_type
            )

        calculation = self.deduction_calculator.calculate(billing, profile, ctx)
        expenses = calculation.expenses
        audit = calculation.audit
        details = {
            "total_expenses": expenses.total_expenses,
            "net_amount": calculation.net_amount,
            "expense_breakdown": expenses.breakdown,
            "complaints_count": expenses.complaints_count,
            "last_billing_date": audit.last_billing_date,
            "last_invoice_number": audit.last_invoice_number,
            "is_first_billing": audit.is_first_billing,
        }

        if expenses.total_expenses <= 0:
            return CommissionDecision.not_payable(
                "No new expenses found for this appointment - commission not applicable",
                profile.commission_type,
                **details,
            )

        return self._payable(profile, calculation.commission_amount, **details)

    def _decide_target_plus_expense(
        self, profile: CommissionProfile, billing: BillingEvent, ctx: CommissionContext
    ) -> CommissionDecision:
        if not billing.patient_id:
            return CommissionDecision.not_payable(
                "Patient ID required for target_plus_expense commission", profile.commission_type
            )
        if profile.target_amount <= 0:
            return CommissionDecision.not_payable("Target amount not set", profile.commission_type)

        calculation = self.target_expense_calculator.calculate(billing, profile, ctx)
        details = self._progress_details(calculation.progress)

        # Unlike target_based, nothing is recorded below target
        if calculation.expenses is None:
            return CommissionDecision.not_payable(
                "Below target - no commission", profile.commission_type, **details
            )

        expenses = calculation.expenses
        details.update(
            total_expenses=expenses.total_expenses,
            net_commissionable_amount=calculation.net_commissionable_amount,
            expense_breakdown=expenses.breakdown,
            complaints_count=expenses.complaints_count,
        )

        if expenses.total_expenses <= 0:
            return CommissionDecision.not_payable(
                "No expenses found for this appointment - commission not applicable",
                profile.commission_type,
                **details,
            )

        return self._payable(profile, calculation.commission_amount, **details)

    # -------------------------------------------------------------------------
    # Dict API
    # -------------------------------------------------------------------------

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Decide a commission from raw dictionary input.

        The payload carries the profile, the billing and the history the
        policies need (ledger, billings, expenses). Convenience method for API usage.
        """
        request = CommissionRequest.from_dict(data)
        self.validator.validate(request)

        billing = request.billing
        source = InMemoryDataSource.from_dict(data, staff_id=request.profile.staff_id, clinic_id=billing.clinic_id)
        self.validator.validate_ledger(source.ledger)

        ctx = CommissionContext(staff_id=request.profile.staff_id, clinic_id=billing.clinic_id, source=source)
        decision = self.decide(request.profile, billing, ctx)

        return {
            "decision": self.output_builder.build(decision),
            "ledger_entry": self._ledger_entry_or_none(decision, billing),
        }

    def process_referral_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        billing = BillingEvent.from_dict(data["billing"])
        if billing.paid_amount < 0:
            raise ValueError(f"paid_amount cannot be negative, got: {billing.paid_amount}")
        referrals = [Referral.from_dict(r) for r in data.get("referrals", [])]

        decision = self.decide_referral(billing.paid_amount, data.get("referred_by"), referrals)

        return {
            "decision": self.output_builder.build(decision),
            "ledger_entry": self._ledger_entry_or_none(decision, billing),
        }

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _ledger_entry_or_none(self, decision: CommissionDecision, billing: BillingEvent) -> dict | None:
        if not decision.should_create_commission:
            return None
        return self.ledger_entry_builder.build(decision, billing)

    @staticmethod
    def _payable(profile: CommissionProfile, amount: Decimal, **details) -> CommissionDecision:
        return CommissionDecision(
            should_create_commission=True,
            commission_type=profile.commission_type,
            commission_percentage=profile.commission_percentage,
            commission_amount=amount,
            details=details,
        )

    @staticmethod
    def _progress_details(progress: TargetProgress) -> dict:
        return {
            "cumulative_achieved": progress.cumulative_achieved,
            "previous_achieved": progress.previous_achieved,
            "target_amount": progress.target_amount,
            "amount_above_target": progress.amount_above_target,
            "is_above_target": progress.is_above_target,
        }

    @staticmethod
    def _log_decision(decision: CommissionDecision) -> CommissionDecision:
        if decision.should_create_commission:
            logger.info(
                f"Commission payable: type={decision.commission_type} "
                f"source={decision.source} amount={decision.commission_amount}"
            )
        else:
            logger.info(f"No commission: type={decision.commission_type} reason={decision.reason}")
        return decision


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def process_commission_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process a commission request from Python dict and return Python dict.
    """
    processor = CommissionProcessor()
    return processor.process_from_dict(input_data)
