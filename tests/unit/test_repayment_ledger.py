"""
Tests for repayment_ledger.py - Records and the repayment state machine

Tests:
- next_status transition rule
- apply_deferral / apply_payment pure transitions
- RepaymentLedger create / commit / lock behaviour
"""

import pytest
from dataclasses import replace

from repayment import (
    AlreadyRegistered,
    InvalidStatus,
    LoanRepaymentRecord,
    LoanStatus,
    NoActiveLoan,
    RepaymentLedger,
    apply_deferral,
    apply_payment,
    next_status,
)


@pytest.fixture
def record():
    return LoanRepaymentRecord(
        borrower="borrower1",
        outstanding_principal=10000,
        accrued_interest=0,
        last_activity_block=1000,
        status=LoanStatus.ACTIVE,
        total_paid=0,
        deferral_count=0,
        penalty_accrued=0,
    )


class TestNextStatus:

    def test_zero_principal_is_paid(self):
        assert next_status(0, 500) == LoanStatus.PAID

    def test_payment_is_active(self):
        assert next_status(9500, 500) == LoanStatus.ACTIVE

    def test_no_payment_is_deferred(self):
        assert next_status(10000, 0) == LoanStatus.DEFERRED


class TestRecordValidation:

    def test_negative_field_rejected(self, record):
        with pytest.raises(ValueError, match="total_paid must be non-negative"):
            replace(record, total_paid=-1)

    def test_paid_requires_zero_principal(self, record):
        with pytest.raises(ValueError, match="inconsistent"):
            replace(record, status=LoanStatus.PAID)

    def test_zero_principal_requires_paid(self, record):
        with pytest.raises(ValueError, match="inconsistent"):
            replace(record, outstanding_principal=0)

    def test_records_are_immutable(self, record):
        with pytest.raises(AttributeError):
            record.total_paid = 10


class TestApplyDeferral:

    def test_deferral_accrues(self, record):
        new = apply_deferral(record, 1200, interest=2400, penalty=560)
        assert new.status == LoanStatus.DEFERRED
        assert new.deferral_count == 1
        assert new.accrued_interest == 2400
        assert new.penalty_accrued == 560
        assert new.last_activity_block == 1200
        assert new.outstanding_principal == 10000
        assert new.total_paid == 0

    def test_original_record_untouched(self, record):
        apply_deferral(record, 1200, interest=10, penalty=0)
        assert record.deferral_count == 0
        assert record.status == LoanStatus.ACTIVE

    def test_interest_accumulates_across_deferrals(self, record):
        first = apply_deferral(record, 1100, interest=100, penalty=0)
        second = apply_deferral(first, 1200, interest=150, penalty=5)
        assert second.accrued_interest == 250
        assert second.penalty_accrued == 5
        assert second.deferral_count == 2

    def test_block_cannot_move_backwards(self, record):
        with pytest.raises(ValueError, match="precedes last activity"):
            apply_deferral(record, 999, interest=0, penalty=0)


class TestApplyPayment:

    def test_partial_payment(self, record):
        deferred = apply_deferral(record, 1100, interest=100, penalty=0)
        new = apply_payment(deferred, 500, 1200, penalty=280)
        assert new.outstanding_principal == 9500
        assert new.accrued_interest == 0
        assert new.status == LoanStatus.ACTIVE
        assert new.total_paid == 500
        assert new.penalty_accrued == 280
        assert new.deferral_count == 1
        assert new.last_activity_block == 1200

    def test_payment_covering_interest_floors_principal_at_zero(self, record):
        new = apply_payment(record, 10500, 1200, penalty=0)
        assert new.outstanding_principal == 0
        assert new.status == LoanStatus.PAID
        assert new.total_paid == 10500

    def test_exact_payoff(self, record):
        new = apply_payment(record, 10000, 1200, penalty=0)
        assert new.status == LoanStatus.PAID

    def test_non_positive_amount_rejected(self, record):
        with pytest.raises(ValueError, match="must be positive"):
            apply_payment(record, 0, 1200, penalty=0)

    def test_paid_record_is_terminal(self, record):
        paid = apply_payment(record, 10000, 1200, penalty=0)
        with pytest.raises(InvalidStatus):
            apply_payment(paid, 1, 1300, penalty=0)
        with pytest.raises(InvalidStatus):
            apply_deferral(paid, 1300, interest=0, penalty=0)

    def test_defaulted_record_is_terminal(self, record):
        defaulted = replace(record, status=LoanStatus.DEFAULTED)
        with pytest.raises(InvalidStatus):
            apply_payment(defaulted, 100, 1300, penalty=0)


class TestRepaymentLedger:

    def test_create(self):
        ledger = RepaymentLedger()
        record = ledger.create(1, "borrower1", principal=10000, block=1000)
        assert record.status == LoanStatus.ACTIVE
        assert record.outstanding_principal == 10000
        assert record.accrued_interest == 0
        assert record.total_paid == 0
        assert record.deferral_count == 0
        assert record.penalty_accrued == 0
        assert record.last_activity_block == 1000
        assert ledger.get(1) == record
        assert ledger.has(1)
        assert 1 in ledger
        assert len(ledger) == 1

    def test_duplicate_create_rejected(self):
        ledger = RepaymentLedger()
        ledger.create(1, "borrower1", principal=10000, block=1000)
        with pytest.raises(AlreadyRegistered):
            ledger.create(1, "borrower1", principal=10000, block=1000)

    def test_non_positive_principal_rejected(self):
        with pytest.raises(ValueError):
            RepaymentLedger().create(1, "borrower1", principal=0, block=1000)

    def test_get_missing_returns_none(self):
        assert RepaymentLedger().get(42) is None

    def test_require_missing_raises(self):
        with pytest.raises(NoActiveLoan):
            RepaymentLedger().require(42)

    def test_commit_replaces_record(self):
        ledger = RepaymentLedger()
        record = ledger.create(1, "borrower1", principal=10000, block=1000)
        ledger.commit(1, apply_payment(record, 500, 1200, penalty=0))
        assert ledger.get(1).outstanding_principal == 9500

    def test_commit_rejects_borrower_change(self):
        ledger = RepaymentLedger()
        record = ledger.create(1, "borrower1", principal=10000, block=1000)
        with pytest.raises(ValueError, match="Borrower"):
            ledger.commit(1, replace(record, borrower="mallory"))

    def test_commit_rejects_rewind(self):
        ledger = RepaymentLedger()
        record = ledger.create(1, "borrower1", principal=10000, block=1000)
        ledger.commit(1, apply_deferral(record, 1200, interest=0, penalty=0))
        with pytest.raises(ValueError, match="backwards"):
            ledger.commit(1, record)

    def test_commit_unknown_loan(self, record):
        with pytest.raises(NoActiveLoan):
            RepaymentLedger().commit(9, record)

    def test_loan_ids_sorted(self):
        ledger = RepaymentLedger()
        for loan_id in (3, 1, 2):
            ledger.create(loan_id, f"b{loan_id}", principal=100, block=0)
        assert ledger.loan_ids() == [1, 2, 3]

    def test_lock_is_per_loan_and_stable(self):
        ledger = RepaymentLedger()
        assert ledger.lock(1) is ledger.lock(1)
        assert ledger.lock(1) is not ledger.lock(2)

    def test_lock_is_reentrant(self):
        ledger = RepaymentLedger()
        with ledger.lock(1):
            with ledger.lock(1):
                pass
