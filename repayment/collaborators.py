"""
collaborators.py - In-Memory Collaborator Implementations

The engine talks to four external subsystems through the protocols in
core.py. This module provides simple in-process implementations of each,
for simulations, demos and tests:

- StaticIncomeOracle: fixed verified incomes per borrower
- StaticLoanRegistry: fixed loan terms per loan id
- StaticBorrowerRegistry: fixed eligibility signals per borrower
- InMemoryEscrow: records transfers and can be told to refuse them

All lookups fail by raising CollaboratorError, the same way a remote
implementation would surface an error response.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from .core import (
    BorrowerStatus, CollaboratorError, Identity, LoanDetails, LoanId,
)


# Error code a collaborator reports for an unknown key.
ERR_NOT_FOUND = 101


class StaticIncomeOracle:
    """
    Income source with static per-borrower incomes.

    Borrowers without an entry have no verified income and the lookup fails,
    unless a default_income is given.
    """

    def __init__(self, incomes: Optional[Dict[Identity, int]] = None, default_income: Optional[int] = None):
        self.incomes: Dict[Identity, int] = dict(incomes or {})
        self.default_income = default_income

    def get_verified_income(self, borrower: Identity) -> int:
        """Get the borrower's income (raises CollaboratorError if unknown)."""
        income = self.incomes.get(borrower, self.default_income)
        if income is None:
            raise CollaboratorError(f"No verified income for {borrower}", ERR_NOT_FOUND)
        return income

    def set_income(self, borrower: Identity, income: int) -> None:
        """Update a borrower's verified income."""
        self.incomes[borrower] = income

    def __repr__(self):
        return f"StaticIncomeOracle({len(self.incomes)} borrowers)"


class StaticLoanRegistry:
    """Loan-terms source backed by a dict of LoanDetails."""

    def __init__(self, loans: Optional[Dict[LoanId, LoanDetails]] = None):
        self.loans: Dict[LoanId, LoanDetails] = dict(loans or {})

    def get_loan_details(self, loan_id: LoanId) -> LoanDetails:
        """Get loan terms (raises CollaboratorError if unknown)."""
        loan = self.loans.get(loan_id)
        if loan is None:
            raise CollaboratorError(f"Loan {loan_id} not issued", ERR_NOT_FOUND)
        return loan

    def add_loan(self, loan_id: LoanId, loan: LoanDetails) -> None:
        """Register or replace a loan's terms."""
        self.loans[loan_id] = loan

    def __repr__(self):
        return f"StaticLoanRegistry({len(self.loans)} loans)"


class StaticBorrowerRegistry:
    """Eligibility source backed by a dict of BorrowerStatus."""

    def __init__(self, statuses: Optional[Dict[Identity, BorrowerStatus]] = None):
        self.statuses: Dict[Identity, BorrowerStatus] = dict(statuses or {})

    def get_borrower_status(self, borrower: Identity) -> BorrowerStatus:
        """Get eligibility signals (raises CollaboratorError if unknown)."""
        status = self.statuses.get(borrower)
        if status is None:
            raise CollaboratorError(f"Borrower {borrower} has no profile", ERR_NOT_FOUND)
        return status

    def set_status(self, borrower: Identity, status: BorrowerStatus) -> None:
        """Register or replace a borrower's eligibility signals."""
        self.statuses[borrower] = status

    def __repr__(self):
        return f"StaticBorrowerRegistry({len(self.statuses)} borrowers)"


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """One executed escrow transfer."""
    source: Identity
    dest: Identity
    amount: int


class InMemoryEscrow:
    """
    Transfer executor that records transfers instead of moving funds.

    Set fail_with to an exception to make every transfer raise it, or
    refuse=True to make transfers return False.
    """

    def __init__(self):
        self.transfers: List[TransferRecord] = []
        self.refuse = False
        self.fail_with: Optional[Exception] = None

    def transfer_funds(self, source: Identity, dest: Identity, amount: int) -> bool:
        """Record a transfer, or refuse/fail it as configured."""
        if amount <= 0:
            raise CollaboratorError(f"transfer amount must be positive, got {amount}")
        if self.fail_with is not None:
            raise self.fail_with
        if self.refuse:
            return False
        self.transfers.append(TransferRecord(source, dest, amount))
        return True

    def total_transferred(self, source: Optional[Identity] = None) -> int:
        """Sum of recorded transfers, optionally for one source."""
        return sum(t.amount for t in self.transfers if source is None or t.source == source)

    def __repr__(self):
        return f"InMemoryEscrow({len(self.transfers)} transfers)"
