"""
Data Sources

The engine reads everything it needs through a CommissionDataSource. Hosts
back it with their database; the in-memory implementation serves API
requests that ship their own history and the test suite.
"""

from datetime import datetime
from typing import Iterable, Protocol

from .models import (
    BillingRecord,
    CommissionProfile,
    ExpenseRecord,
    LedgerEntry,
)


class DataAccessError(RuntimeError):
    """A lookup could not be completed. Never a business 'no'."""


class CommissionDataSource(Protocol):
    """Read-only queries the engine needs from its host."""

    def get_profile(self, staff_id: str) -> CommissionProfile | None:
        ...

    def get_prior_commissions(
        self, staff_id: str, clinic_id: str, commission_types: Iterable[str]
    ) -> list[LedgerEntry]:
        ...

    def get_last_billing_before(
        self,
        patient_id: str,
        clinic_id: str,
        exclude_billing_id: str | None = None,
        before: datetime | None = None,
    ) -> BillingRecord | None:
        ...

    def get_expense_records(self, patient_id: str, appointment_id: str | None) -> list[ExpenseRecord]:
        ...


class InMemoryDataSource:
    """CommissionDataSource over plain lists."""

    def __init__(
        self,
        profiles: Iterable[CommissionProfile] = (),
        ledger: Iterable[LedgerEntry] = (),
        billings: Iterable[BillingRecord] = (),
        expenses: Iterable[ExpenseRecord] = (),
    ):
        self.profiles = {p.staff_id: p for p in profiles}
        self.ledger = list(ledger)
        self.billings = list(billings)
        self.expenses = list(expenses)

    def get_profile(self, staff_id: str) -> CommissionProfile | None:
        return self.profiles.get(staff_id)

    def get_prior_commissions(
        self, staff_id: str, clinic_id: str, commission_types: Iterable[str]
    ) -> list[LedgerEntry]:
        types = set(commission_types)
        return [
            entry
            for entry in self.ledger
            if entry.staff_id == staff_id
            and entry.clinic_id == clinic_id
            and entry.commission_type in types
        ]

    def get_last_billing_before(
        self,
        patient_id: str,
        clinic_id: str,
        exclude_billing_id: str | None = None,
        before: datetime | None = None,
    ) -> BillingRecord | None:
        candidates = [
            b
            for b in self.billings
            if b.patient_id == patient_id
            and b.clinic_id == clinic_id
            and b.created_at is not None
            and (exclude_billing_id is None or b.billing_id != exclude_billing_id)
            and (before is None or b.created_at < before)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda b: b.created_at)

    def get_expense_records(self, patient_id: str, appointment_id: str | None) -> list[ExpenseRecord]:
        return [
            record
            for record in self.expenses
            if record.patient_id == patient_id and record.appointment_id == appointment_id
        ]

    @classmethod
    def from_dict(
        cls,
        data: dict,
        staff_id: str | None = None,
        clinic_id: str | None = None,
        profiles: Iterable[CommissionProfile] = (),
    ) -> "InMemoryDataSource":
        """
        Build a source from a request payload.

        History shipped with a single request belongs to that request's staff
        member and clinic unless an entry says otherwise.
        """
        return cls(
            profiles=profiles,
            ledger=[LedgerEntry.from_dict(e, staff_id, clinic_id) for e in data.get("ledger", [])],
            billings=[BillingRecord.from_dict(b, clinic_id) for b in data.get("billings", [])],
            expenses=[ExpenseRecord.from_dict(e) for e in data.get("expenses", [])],
        )
