"""
Referral Commission Calculator

Pays the partner who referred a patient a flat share of what the patient paid.
"""

from decimal import Decimal

from ..models import CommissionDecision, Referral
from .money import percent_of


class ReferralCommissionCalculator:
    """Matches 'referred by' text to a referral and applies its percentage."""

    NO_REFERRAL_VALUES = ("", "no")

    def calculate(self, paid_amount: Decimal, referred_by: str | None, referrals: list[Referral]) -> CommissionDecision:
        if paid_amount <= 0:
            return CommissionDecision.not_payable("No paid amount", source="referral")

        referred = (referred_by or "").strip()
        if referred.lower() in self.NO_REFERRAL_VALUES:
            return CommissionDecision.not_payable("No referral", source="referral")

        match = self.find_referral(referred, referrals)
        if match is None:
            return CommissionDecision.not_payable(f"Referral {referred} not found", source="referral")

        if match.referral_percent <= 0:
            return CommissionDecision.not_payable(
                "Referral percentage is 0", source="referral", referral_id=match.referral_id
            )

        return CommissionDecision(
            should_create_commission=True,
            commission_type="flat",
            commission_percentage=match.referral_percent,
            commission_amount=percent_of(paid_amount, match.referral_percent),
            source="referral",
            details={"referral_id": match.referral_id, "referral_name": match.full_name},
        )

    @staticmethod
    def find_referral(referred_by: str, referrals: list[Referral]) -> Referral | None:
        """First referral whose full name matches, ignoring case."""
        wanted = referred_by.strip().lower()
        for referral in referrals:
            full = referral.full_name.lower()
            if full and full == wanted:
                return referral
        return None
