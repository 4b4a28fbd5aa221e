"""
Domain Models for the Clinic Commission Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sources import CommissionDataSource


def to_decimal(value, default: str = "0") -> Decimal:
    """Parse a JSON number (or numeric string) into a finite Decimal."""
    if value is None or value == "":
        return Decimal(default)
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid monetary value: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Invalid monetary value: {value!r}")
    return result


def parse_timestamp(value) -> datetime | None:
    """
    Parse an ISO-8601 date or datetime string. A trailing 'Z' is accepted.

    Values without an offset are taken as UTC so that every parsed
    timestamp compares with every other.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CommissionType(str, Enum):
    """Supported commission policies."""

    FLAT = "flat"
    TARGET_BASED = "target_based"
    AFTER_DEDUCTION = "after_deduction"
    TARGET_PLUS_EXPENSE = "target_plus_expense"

    @classmethod
    def parse(cls, value) -> "CommissionType | None":
        """Return the matching type, or None for anything not recognised."""
        try:
            return cls(str(value))
        except ValueError:
            return None


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class CommissionProfile:
    """Per-staff commission configuration."""

    staff_id: str | None
    commission_type: str  # raw value; may name a type we do not implement
    commission_percentage: Decimal = Decimal("0")
    target_amount: Decimal = Decimal("0")

    @property
    def policy(self) -> CommissionType | None:
        return CommissionType.parse(self.commission_type)

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionProfile":
        return cls(
            staff_id=data.get("staff_id"),
            commission_type=str(data.get("commission_type") or CommissionType.FLAT.value),
            commission_percentage=to_decimal(data.get("commission_percentage")),
            target_amount=to_decimal(data.get("target_amount")),
        )


@dataclass
class BillingEvent:
    """One payment transaction that may earn a commission."""

    paid_amount: Decimal
    clinic_id: str | None = None
    staff_id: str | None = None
    patient_id: str | None = None
    appointment_id: str | None = None
    billing_id: str | None = None  # current billing, excluded from history lookups
    invoiced_date: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "BillingEvent":
        return cls(
            paid_amount=to_decimal(data["paid_amount"]),
            clinic_id=data.get("clinic_id"),
            staff_id=data.get("staff_id"),
            patient_id=data.get("patient_id") or None,
            appointment_id=data.get("appointment_id") or None,
            billing_id=data.get("billing_id") or None,
            invoiced_date=parse_timestamp(data.get("invoiced_date")),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class LedgerEntry:
    """A previously recorded commission."""

    staff_id: str | None
    clinic_id: str | None
    commission_type: str | None
    amount_paid: Decimal
    commission_amount: Decimal = Decimal("0")
    commission_percent: Decimal = Decimal("0")
    source: str = "staff"  # 'staff' or 'referral'
    name: str | None = None
    referral_id: str | None = None
    patient_id: str | None = None
    billing_id: str | None = None
    invoiced_date: datetime | None = None
    created_at: datetime | None = None

    @property
    def reported_at(self) -> datetime | None:
        return self.invoiced_date or self.created_at

    @classmethod
    def from_dict(cls, data: dict, staff_id: str | None = None, clinic_id: str | None = None) -> "LedgerEntry":
        # Entries shipped alongside a single request may omit the owner ids
        return cls(
            staff_id=data.get("staff_id", staff_id),
            clinic_id=data.get("clinic_id", clinic_id),
            commission_type=data.get("commission_type"),
            amount_paid=to_decimal(data.get("amount_paid")),
            commission_amount=to_decimal(data.get("commission_amount")),
            commission_percent=to_decimal(data.get("commission_percent")),
            source=data.get("source", "staff"),
            name=data.get("name"),
            referral_id=data.get("referral_id"),
            patient_id=data.get("patient_id"),
            billing_id=data.get("billing_id"),
            invoiced_date=parse_timestamp(data.get("invoiced_date")),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class BillingRecord:
    """A past billing for a patient, used for audit lookups."""

    billing_id: str | None
    patient_id: str | None
    clinic_id: str | None
    created_at: datetime | None = None
    invoice_number: str | None = None

    @classmethod
    def from_dict(cls, data: dict, clinic_id: str | None = None) -> "BillingRecord":
        return cls(
            billing_id=data.get("billing_id"),
            patient_id=data.get("patient_id"),
            clinic_id=data.get("clinic_id", clinic_id),
            created_at=parse_timestamp(data.get("created_at")),
            invoice_number=data.get("invoice_number"),
        )


@dataclass
class ExpenseItem:
    """A billable line item on a patient complaint."""

    name: str
    code: str | None
    quantity: Decimal
    uom: str | None
    total_amount: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "ExpenseItem":
        return cls(
            name=data.get("name", ""),
            code=data.get("code"),
            quantity=to_decimal(data.get("quantity"), default="1"),
            uom=data.get("uom"),
            total_amount=to_decimal(data.get("total_amount")),
        )


@dataclass
class ExpenseRecord:
    """A patient complaint: the expenses incurred during one appointment."""

    record_id: str | None
    patient_id: str | None
    appointment_id: str | None
    created_at: datetime | None = None
    items: list[ExpenseItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ExpenseRecord":
        return cls(
            record_id=data.get("record_id"),
            patient_id=data.get("patient_id"),
            appointment_id=data.get("appointment_id"),
            created_at=parse_timestamp(data.get("created_at")),
            items=[ExpenseItem.from_dict(i) for i in data.get("items", [])],
        )


@dataclass
class Referral:
    """A referral partner configured for a clinic."""

    referral_id: str | None
    first_name: str
    last_name: str
    referral_percent: Decimal = Decimal("0")
    email: str | None = None
    phone: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()

    @classmethod
    def from_dict(cls, data: dict) -> "Referral":
        return cls(
            referral_id=data.get("referral_id"),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            referral_percent=to_decimal(data.get("referral_percent")),
            email=data.get("email"),
            phone=data.get("phone"),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class TargetProgress:
    """Progress toward a cumulative target, including this payment."""

    target_amount: Decimal = Decimal("0")
    previous_achieved: Decimal = Decimal("0")
    cumulative_achieved: Decimal = Decimal("0")
    amount_above_target: Decimal = Decimal("0")
    is_above_target: bool = False


@dataclass
class ExpenseLine:
    name: str
    code: str | None
    quantity: Decimal
    uom: str | None
    amount: Decimal


@dataclass
class ExpenseBreakdown:
    """Expenses of a single patient complaint."""

    record_id: str | None
    created_at: datetime | None
    items_count: int
    items: list[ExpenseLine] = field(default_factory=list)


@dataclass
class ExpenseSummary:
    """Totals of the expenses that reduce the commissionable amount."""

    total_expenses: Decimal = Decimal("0")
    complaints_count: int = 0
    breakdown: list[ExpenseBreakdown] = field(default_factory=list)


@dataclass
class BillingAudit:
    """Audit reference to the previous billing of the patient."""

    is_first_billing: bool = True
    last_billing_date: datetime | None = None
    last_invoice_number: str | None = None


@dataclass
class DeductionCalculation:
    """Raw result of the after-deduction calculation, before payability rules."""

    commission_amount: Decimal
    net_amount: Decimal
    expenses: ExpenseSummary
    audit: BillingAudit


@dataclass
class CommissionDecision:
    """The engine's answer for one billing event."""

    should_create_commission: bool
    commission_type: str | None = None
    commission_percentage: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    reason: str | None = None
    source: str = "staff"
    details: dict = field(default_factory=dict)

    @classmethod
    def not_payable(
        cls, reason: str, commission_type: str | None = None, source: str = "staff", **details
    ) -> "CommissionDecision":
        return cls(
            should_create_commission=False,
            commission_type=commission_type,
            reason=reason,
            source=source,
            details=details,
        )


@dataclass
class CommissionContext:
    """
    Holds what a policy needs beyond the profile and the payment.
    The source is only ever read from.
    """

    staff_id: str | None
    clinic_id: str | None
    source: "CommissionDataSource"


@dataclass
class CommissionRequest:
    """Complete input for the calculate endpoint."""

    profile: CommissionProfile
    billing: BillingEvent

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionRequest":
        profile = CommissionProfile.from_dict(data["profile"])
        billing = BillingEvent.from_dict(data["billing"])
        if billing.staff_id is None:
            billing.staff_id = profile.staff_id
        if profile.staff_id is None:
            profile.staff_id = billing.staff_id
        return cls(profile=profile, billing=billing)
