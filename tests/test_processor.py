"""
Tests for the Commission Processor

Run with: python -m pytest tests/ -v
"""

from decimal import Decimal

import pytest

from commission_engine import CommissionProcessor, DataAccessError
from commission_engine.calculators import quantize_money
from commission_engine.models import (
    BillingEvent,
    CommissionContext,
    CommissionProfile,
    ExpenseItem,
    ExpenseRecord,
    LedgerEntry,
)
from commission_engine.sources import InMemoryDataSource


class TestZeroPercentage:
    """A percentage of 0 never pays, whatever the type."""

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    @pytest.mark.parametrize('commission_type', [
        'flat', 'target_based', 'after_deduction', 'target_plus_expense', 'mystery'
    ])
    def test_zero_percentage_is_not_payable(self, processor, commission_type):
        decision = processor.decide(_profile(commission_type, pct=0, target=2000), _billing(1000), _ctx())

        assert decision.should_create_commission == False
        assert decision.reason == "Commission percentage is 0"

    def test_negative_percentage_is_not_payable(self, processor):
        decision = processor.decide(_profile('flat', pct=-5), _billing(1000), _ctx())

        assert decision.should_create_commission == False
        assert decision.reason == "Commission percentage is 0"


class TestFlatPolicy:

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    @pytest.mark.parametrize('paid,pct,expected', [
        (1000, 5, '50.00'),
        (333.33, 7.5, '25.00'),
        (0.10, 5, '0.01'),      # 0.005 rounds half up
        (0, 10, '0.00'),
    ])
    def test_flat_amount(self, processor, paid, pct, expected):
        decision = processor.decide(_profile('flat', pct=pct), _billing(paid), _ctx())

        assert decision.should_create_commission == True
        assert decision.commission_amount == Decimal(expected)
        assert decision.commission_type == 'flat'
        assert decision.commission_percentage == Decimal(str(pct))


class TestTargetBasedPolicy:

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    def test_already_past_target_pays_full_amount(self, processor):
        ctx = _ctx(ledger=[_entry('target_based', 2500)])
        decision = processor.decide(_profile('target_based', pct=5, target=2000), _billing(1000), ctx)

        assert decision.should_create_commission == True
        assert decision.commission_amount == Decimal('50.00')
        assert decision.details['is_above_target'] == True

    def test_crossing_payment_pays_on_overage(self, processor):
        ctx = _ctx(ledger=[_entry('target_based', 1500)])
        decision = processor.decide(_profile('target_based', pct=5, target=2000), _billing(1000), ctx)

        assert decision.details['cumulative_achieved'] == Decimal('2500')
        assert decision.details['amount_above_target'] == Decimal('500')
        assert decision.commission_amount == Decimal('25.00')

    def test_below_target_is_payable_with_zero_amount(self, processor):
        ctx = _ctx(ledger=[_entry('target_based', 500)])
        decision = processor.decide(_profile('target_based', pct=5, target=2000), _billing(300), ctx)

        assert decision.should_create_commission == True
        assert decision.commission_amount == Decimal('0')
        assert decision.details['is_above_target'] == False
        assert decision.reason is None

    def test_ignores_target_plus_expense_entries(self, processor):
        """Plain target_based progress only counts its own type."""
        ctx = _ctx(ledger=[_entry('target_plus_expense', 5000)])
        decision = processor.decide(_profile('target_based', pct=5, target=2000), _billing(300), ctx)

        assert decision.details['previous_achieved'] == Decimal('0')
        assert decision.commission_amount == Decimal('0')

    @pytest.mark.parametrize('target', [0, -100])
    def test_target_not_set(self, processor, target):
        decision = processor.decide(_profile('target_based', pct=5, target=target), _billing(1000), _ctx())

        assert decision.should_create_commission == False
        assert decision.reason == "Target amount not set"


class TestAfterDeductionPolicy:

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    def test_deducts_expenses(self, processor):
        ctx = _ctx(expenses=[_expense('p1', 'a1', 300)])
        decision = processor.decide(_profile('after_deduction', pct=10), _billing(1000), ctx)

        assert decision.should_create_commission == True
        assert decision.details['total_expenses'] == Decimal('300.00')
        assert decision.details['net_amount'] == Decimal('700')
        assert decision.commission_amount == Decimal('70.00')
        assert decision.details['complaints_count'] == 1
        assert decision.details['is_first_billing'] == True

    def test_no_expenses_is_not_payable(self, processor):
        decision = processor.decide(_profile('after_deduction', pct=10), _billing(1000), _ctx())

        assert decision.should_create_commission == False
        assert "no new expenses" in decision.reason.lower()

    def test_expenses_of_other_appointments_do_not_count(self, processor):
        ctx = _ctx(expenses=[_expense('p1', 'a0', 300)])
        decision = processor.decide(_profile('after_deduction', pct=10), _billing(1000), ctx)

        assert decision.should_create_commission == False

    def test_patient_required(self, processor):
        billing = _billing(1000)
        billing.patient_id = None
        decision = processor.decide(_profile('after_deduction', pct=10), billing, _ctx())

        assert decision.should_create_commission == False
        assert decision.reason.startswith("Patient ID required")


class TestTargetPlusExpensePolicy:

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    def test_worked_example(self, processor):
        """target 2000, 1500 achieved, 3000 paid, 500 expenses, 5% -> 100.00"""
        ctx = _ctx(
            ledger=[_entry('target_based', 1000), _entry('target_plus_expense', 500)],
            expenses=[_expense('p1', 'a1', 500)],
        )
        decision = processor.decide(_profile('target_plus_expense', pct=5, target=2000), _billing(3000), ctx)

        assert decision.should_create_commission == True
        assert decision.details['cumulative_achieved'] == Decimal('4500')
        assert decision.details['amount_above_target'] == Decimal('2500')
        assert decision.details['net_commissionable_amount'] == Decimal('2000.00')
        assert decision.commission_amount == Decimal('100.00')

    def test_below_target_is_not_payable(self, processor):
        """Differs from target_based, where below target is payable with zero amount."""
        ctx = _ctx(ledger=[_entry('target_plus_expense', 500)], expenses=[_expense('p1', 'a1', 50)])
        decision = processor.decide(_profile('target_plus_expense', pct=5, target=2000), _billing(300), ctx)

        assert decision.should_create_commission == False
        assert decision.reason == "Below target - no commission"
        assert decision.commission_amount == Decimal('0')
        assert decision.details['is_above_target'] == False

    def test_crossing_without_expenses_is_not_payable(self, processor):
        ctx = _ctx(ledger=[_entry('target_based', 1500)])
        decision = processor.decide(_profile('target_plus_expense', pct=5, target=2000), _billing(1000), ctx)

        assert decision.should_create_commission == False
        assert decision.reason.startswith("No expenses found")

    def test_expenses_larger_than_overage(self, processor):
        ctx = _ctx(ledger=[_entry('target_based', 1500)], expenses=[_expense('p1', 'a1', 800)])
        decision = processor.decide(_profile('target_plus_expense', pct=5, target=2000), _billing(1000), ctx)

        assert decision.should_create_commission == True
        assert decision.details['net_commissionable_amount'] == Decimal('0')
        assert decision.commission_amount == Decimal('0.00')

    def test_patient_checked_before_target(self, processor):
        billing = _billing(1000)
        billing.patient_id = None
        decision = processor.decide(_profile('target_plus_expense', pct=5, target=0), billing, _ctx())

        assert decision.reason == "Patient ID required for target_plus_expense commission"

    def test_target_not_set(self, processor):
        decision = processor.decide(_profile('target_plus_expense', pct=5, target=0), _billing(1000), _ctx())

        assert decision.reason == "Target amount not set"


class TestDispatch:

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    def test_unknown_type_is_not_payable(self, processor):
        decision = processor.decide(_profile('tiered', pct=5), _billing(1000), _ctx())

        assert decision.should_create_commission == False
        assert decision.reason == "Commission type tiered not yet implemented"

    def test_missing_profile(self, processor):
        decision = processor.decide_for_staff('s1', _billing(1000), InMemoryDataSource())

        assert decision.should_create_commission == False
        assert decision.reason == "No commission profile found"

    def test_decide_for_staff_uses_stored_profile(self, processor):
        source = InMemoryDataSource(profiles=[_profile('flat', pct=10)])
        decision = processor.decide_for_staff('s1', _billing(1000), source)

        assert decision.commission_amount == Decimal('100.00')


class TestDataAccessFailures:
    """Lookup failures propagate instead of becoming a non-payable decision."""

    @pytest.fixture
    def processor(self):
        return CommissionProcessor()

    def test_ledger_failure_propagates(self, processor):
        ctx = CommissionContext(staff_id='s1', clinic_id='c1', source=FailingSource())

        with pytest.raises(DataAccessError):
            processor.decide(_profile('target_based', pct=5, target=2000), _billing(1000), ctx)

    def test_expense_failure_propagates(self, processor):
        ctx = CommissionContext(staff_id='s1', clinic_id='c1', source=FailingSource())

        with pytest.raises(DataAccessError):
            processor.decide(_profile('after_deduction', pct=5), _billing(1000), ctx)

    def test_flat_needs_no_lookups(self, processor):
        ctx = CommissionContext(staff_id='s1', clinic_id='c1', source=FailingSource())
        decision = processor.decide(_profile('flat', pct=5), _billing(1000), ctx)

        assert decision.commission_amount == Decimal('50.00')


class TestRounding:

    @pytest.mark.parametrize('value', ['0', '0.005', '1.005', '2.675', '-1.005', '12345.6789'])
    def test_rounding_is_idempotent(self, value):
        once = quantize_money(Decimal(value))

        assert quantize_money(once) == once

    def test_rounds_half_up(self):
        assert quantize_money(Decimal('2.675')) == Decimal('2.68')
        assert quantize_money(Decimal('2.665')) == Decimal('2.67')


class FailingSource(InMemoryDataSource):
    def get_prior_commissions(self, staff_id, clinic_id, commission_types):
        raise DataAccessError("ledger unavailable")

    def get_last_billing_before(self, patient_id, clinic_id, exclude_billing_id=None, before=None):
        raise DataAccessError("billing history unavailable")

    def get_expense_records(self, patient_id, appointment_id):
        raise DataAccessError("expenses unavailable")


def _profile(commission_type: str, pct: float = 5, target: float = 0) -> CommissionProfile:
    return CommissionProfile(
        staff_id='s1',
        commission_type=commission_type,
        commission_percentage=Decimal(str(pct)),
        target_amount=Decimal(str(target)),
    )


def _billing(paid: float) -> BillingEvent:
    return BillingEvent(
        paid_amount=Decimal(str(paid)),
        clinic_id='c1',
        staff_id='s1',
        patient_id='p1',
        appointment_id='a1',
        billing_id='b-current',
    )


def _entry(commission_type: str, amount_paid: float) -> LedgerEntry:
    return LedgerEntry(
        staff_id='s1',
        clinic_id='c1',
        commission_type=commission_type,
        amount_paid=Decimal(str(amount_paid)),
    )


def _expense(patient_id: str, appointment_id: str, amount: float) -> ExpenseRecord:
    item = ExpenseItem(name='Dressing', code='D1', quantity=Decimal('1'), uom='pcs', total_amount=Decimal(str(amount)))
    return ExpenseRecord('r1', patient_id, appointment_id, None, [item])


def _ctx(ledger=(), expenses=()) -> CommissionContext:
    return CommissionContext(
        staff_id='s1', clinic_id='c1', source=InMemoryDataSource(ledger=ledger, expenses=expenses)
    )
