"""
Input Validation for the Clinic Commission Engine

Rejects malformed input before any lookup happens.
Raises ValueError with clear messages for any constraint violations.

Non-numeric and non-finite amounts are already rejected while parsing.
Misconfigured profiles (percentage of 0, missing target, missing patient) are
not validation errors: they produce a non-payable decision instead.
"""

from decimal import Decimal

from .models import BillingEvent, CommissionProfile, CommissionRequest, LedgerEntry

MAX_PERCENTAGE = Decimal("100")


class InputValidator:
    """Validates commission input according to business rules."""

    def validate(self, request: CommissionRequest) -> None:
        """
        Run all validations. Raises ValueError if any check fails.
        """
        self._validate_billing(request.billing)
        self._validate_profile(request.profile)

    def validate_ledger(self, entries: list[LedgerEntry]) -> None:
        for entry in entries:
            if entry.amount_paid < 0:
                raise ValueError(f"amount_paid cannot be negative: {entry}")

    def _validate_billing(self, billing: BillingEvent) -> None:
        if billing.paid_amount < 0:
            raise ValueError(f"paid_amount cannot be negative, got: {billing.paid_amount}")

    def _validate_profile(self, profile: CommissionProfile) -> None:
        if profile.commission_percentage > MAX_PERCENTAGE:
            raise ValueError(
                f"commission_percentage must be between 0 and 100, got: {profile.commission_percentage}"
            )
