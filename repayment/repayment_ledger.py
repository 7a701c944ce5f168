"""
repayment_ledger.py - Per-Loan Repayment Records and Their State Machine

The RepaymentLedger is the only place repayment records live. It stores one
immutable LoanRepaymentRecord per loan id and replaces it wholesale on every
commit; records are never edited in place and never deleted.

State machine:
    ACTIVE   -> ACTIVE | DEFERRED | PAID
    DEFERRED -> ACTIVE | DEFERRED | PAID
    PAID     -> (terminal)
    DEFAULTED-> (terminal, never entered here)

Transitions are pure functions (apply_deferral, apply_payment) that take a
record and return the next one. The engine computes the next record, then
commits it while holding the loan's lock.

Thread Safety:
    lock(loan_id) hands out one reentrant lock per loan. Callers that do a
    read-modify-write on a record must hold it for the whole sequence.
    Record creation is serialized by an internal registry lock.
"""

from __future__ import annotations
from dataclasses import replace
from threading import Lock, RLock
from typing import Dict, List, Optional

from .core import (
    AlreadyRegistered, Identity, InvalidStatus, LoanId, LoanRepaymentRecord,
    LoanStatus, NoActiveLoan,
)


# ============================================================================
# TRANSITIONS (pure)
# ============================================================================

def next_status(new_principal: int, effective_amount: int) -> LoanStatus:
    """
    Decide the status that follows a processed cycle.

    PAID if the principal reached zero, else ACTIVE if anything was
    collected, else DEFERRED.
    """
    if new_principal == 0:
        return LoanStatus.PAID
    if effective_amount > 0:
        return LoanStatus.ACTIVE
    return LoanStatus.DEFERRED


def _require_open(record: LoanRepaymentRecord) -> None:
    if record.status.is_terminal:
        raise InvalidStatus(f"Loan is {record.status.value}; no further cycles allowed")


def apply_deferral(
    record: LoanRepaymentRecord,
    block: int,
    interest: int,
    penalty: int,
) -> LoanRepaymentRecord:
    """
    Return the record after a cycle that collected nothing.

    Interest and penalty accrue, the deferral counter advances and the
    principal is untouched.

    Raises:
        InvalidStatus: If the record is terminal.
        ValueError: If block is earlier than the record's last activity.
    """
    _require_open(record)
    if block < record.last_activity_block:
        raise ValueError(f"block {block} precedes last activity {record.last_activity_block}")
    return replace(
        record,
        status=next_status(record.outstanding_principal, 0),
        deferral_count=record.deferral_count + 1,
        last_activity_block=block,
        accrued_interest=record.accrued_interest + interest,
        penalty_accrued=record.penalty_accrued + penalty,
    )


def apply_payment(
    record: LoanRepaymentRecord,
    amount: int,
    block: int,
    penalty: int,
) -> LoanRepaymentRecord:
    """
    Return the record after a cycle that collected amount.

    The principal is reduced by the collected amount, floored at zero when
    the collection also covered interest and penalty. Accrued interest is
    cleared.

    Raises:
        InvalidStatus: If the record is terminal.
        ValueError: If amount is not positive or block moves backwards.
    """
    _require_open(record)
    if amount <= 0:
        raise ValueError(f"payment amount must be positive, got {amount}")
    if block < record.last_activity_block:
        raise ValueError(f"block {block} precedes last activity {record.last_activity_block}")
    new_principal = record.outstanding_principal - min(amount, record.outstanding_principal)
    return replace(
        record,
        outstanding_principal=new_principal,
        accrued_interest=0,
        status=next_status(new_principal, amount),
        total_paid=record.total_paid + amount,
        penalty_accrued=record.penalty_accrued + penalty,
        last_activity_block=block,
    )


# ============================================================================
# LEDGER
# ============================================================================

class RepaymentLedger:
    """
    Store of loan repayment records keyed by loan id.

    Example:
        ledger = RepaymentLedger()
        ledger.create(1, "borrower1", principal=10000, block=1000)
        with ledger.lock(1):
            record = ledger.get(1)
            ledger.commit(1, apply_deferral(record, 1200, interest=10, penalty=0))
    """

    def __init__(self):
        self._records: Dict[LoanId, LoanRepaymentRecord] = {}
        self._locks: Dict[LoanId, RLock] = {}
        self._registry_lock = Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, loan_id: LoanId) -> bool:
        return loan_id in self._records

    def has(self, loan_id: LoanId) -> bool:
        """Check if a record exists for loan_id."""
        return loan_id in self._records

    def get(self, loan_id: LoanId) -> Optional[LoanRepaymentRecord]:
        """Return the current record for loan_id, or None."""
        return self._records.get(loan_id)

    def require(self, loan_id: LoanId) -> LoanRepaymentRecord:
        """
        Return the current record for loan_id.

        Raises:
            NoActiveLoan: If no record exists.
        """
        record = self._records.get(loan_id)
        if record is None:
            raise NoActiveLoan(f"No repayment record for loan {loan_id}")
        return record

    def loan_ids(self) -> List[LoanId]:
        """Return all loan ids with a record, sorted."""
        return sorted(self._records)

    def lock(self, loan_id: LoanId) -> RLock:
        """Return the lock serializing mutations of one loan's record."""
        with self._registry_lock:
            lock = self._locks.get(loan_id)
            if lock is None:
                lock = self._locks[loan_id] = RLock()
            return lock

    def create(
        self,
        loan_id: LoanId,
        borrower: Identity,
        principal: int,
        block: int,
    ) -> LoanRepaymentRecord:
        """
        Create the initial ACTIVE record for a loan.

        Args:
            loan_id: Loan identifier
            borrower: Borrower identity (immutable afterwards)
            principal: Original principal (must be positive)
            block: Current block height

        Returns:
            The created record

        Raises:
            AlreadyRegistered: If loan_id already has a record.
            ValueError: If principal is not positive.
        """
        if principal <= 0:
            raise ValueError(f"principal must be positive, got {principal}")
        record = LoanRepaymentRecord(
            borrower=borrower,
            outstanding_principal=principal,
            accrued_interest=0,
            last_activity_block=block,
            status=LoanStatus.ACTIVE,
            total_paid=0,
            deferral_count=0,
            penalty_accrued=0,
        )
        with self._registry_lock:
            if loan_id in self._records:
                raise AlreadyRegistered(f"Loan {loan_id} already registered")
            self._records[loan_id] = record
        return record

    def commit(self, loan_id: LoanId, record: LoanRepaymentRecord) -> None:
        """
        Replace the stored record for loan_id.

        The borrower is immutable and the activity block never moves back.

        Raises:
            NoActiveLoan: If loan_id has no record.
            ValueError: If the new record changes the borrower or rewinds
                        last_activity_block.
        """
        current = self.require(loan_id)
        if record.borrower != current.borrower:
            raise ValueError(f"Borrower of loan {loan_id} cannot change")
        if record.last_activity_block < current.last_activity_block:
            raise ValueError(
                f"last_activity_block cannot move backwards: "
                f"{record.last_activity_block} < {current.last_activity_block}"
            )
        self._records[loan_id] = record
