"""
Core types for the income-contingent repayment system.

This module provides the foundational data structures and protocols:
1. Protocols: the four collaborator contracts the engine consumes
2. Immutable data structures: LoanRepaymentRecord, RepaymentHistoryEntry,
   LoanDetails, BorrowerStatus, RepaymentQuote, RepaymentOutcome
3. Exceptions: RepaymentError and the stable error-code taxonomy
4. Enums: LoanStatus, RepaymentResult, ErrorCode

Nothing in this module mutates state. Every record is a frozen dataclass;
a state change produces a new instance.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Loan identifiers are issued by the loan-issuance collaborator.
LoanId = int

# Borrowers, collectors and the admin are all opaque principal identities.
Identity = str


# ============================================================================
# ENUMS
# ============================================================================

class LoanStatus(Enum):
    """
    Lifecycle state of a loan repayment record.

    ACTIVE:    Collecting; the last cycle moved funds (or none has run yet).
    DEFERRED:  The last cycle collected nothing because income was too low.
    PAID:      Outstanding principal reached zero. Terminal.
    DEFAULTED: Reserved for an external default declaration. Terminal and
               never assigned by this package.
    """
    ACTIVE = "active"
    DEFERRED = "deferred"
    PAID = "paid"
    DEFAULTED = "defaulted"

    @property
    def is_terminal(self) -> bool:
        return self in (LoanStatus.PAID, LoanStatus.DEFAULTED)


class RepaymentResult(Enum):
    """
    Outcome of a process_repayment call that reached the decision point.

    COLLECTED: A non-zero amount was transferred and applied.
    DEFERRED:  Income-derived capacity was zero; the cycle was recorded but
               no funds moved.
    """
    COLLECTED = "collected"
    DEFERRED = "deferred"


class ErrorCode(Enum):
    """Stable numeric codes for every failure the system can report."""
    UNAUTHORIZED = 100
    INVALID_LOAN = 101
    INVALID_INCOME = 102
    PAUSED = 103
    INVALID_AMOUNT = 104
    NO_ACTIVE_LOAN = 105
    DEFERRED = 106
    GRACE_PERIOD = 107  # reserved
    INVALID_STATUS = 108
    TRANSFER_FAILED = 109
    INVALID_THRESHOLDS = 110
    NOT_LOW_INCOME = 111
    CALCULATION_OVERFLOW = 112
    ALREADY_REGISTERED = 113


# ============================================================================
# EXCEPTIONS
# ============================================================================

class RepaymentError(Exception):
    """Base exception for all repayment errors."""
    code: ErrorCode


class Unauthorized(RepaymentError):
    """Raised when a non-admin identity attempts an admin operation."""
    code = ErrorCode.UNAUTHORIZED


class InvalidLoan(RepaymentError):
    """Raised when loan terms or borrower eligibility cannot be looked up."""
    code = ErrorCode.INVALID_LOAN


class InvalidIncome(RepaymentError):
    """Raised when the verified income lookup fails or returns garbage."""
    code = ErrorCode.INVALID_INCOME


class ContractPaused(RepaymentError):
    """Raised when an operation is attempted while the system is paused."""
    code = ErrorCode.PAUSED


class InvalidAmount(RepaymentError):
    """Raised when a caller-supplied amount is out of range."""
    code = ErrorCode.INVALID_AMOUNT


class NoActiveLoan(RepaymentError):
    """Raised when no repayment record exists for a loan id."""
    code = ErrorCode.NO_ACTIVE_LOAN


class InvalidStatus(RepaymentError):
    """Raised when the borrower or the record is in the wrong state."""
    code = ErrorCode.INVALID_STATUS


class TransferFailed(RepaymentError):
    """Raised when the transfer executor refuses or fails a payment."""
    code = ErrorCode.TRANSFER_FAILED


class InvalidThresholds(RepaymentError):
    """Raised when set_thresholds receives out-of-range parameters."""
    code = ErrorCode.INVALID_THRESHOLDS


class NotLowIncome(RepaymentError):
    """Raised when the borrower lacks the low-income eligibility flag."""
    code = ErrorCode.NOT_LOW_INCOME


class CalculationOverflow(RepaymentError):
    """Raised when a financial calculation breaches its sanity ceiling."""
    code = ErrorCode.CALCULATION_OVERFLOW


class AlreadyRegistered(RepaymentError):
    """Raised when a loan id is initialized twice."""
    code = ErrorCode.ALREADY_REGISTERED


class CollaboratorError(Exception):
    """
    Raised by collaborator implementations when a lookup or transfer fails.

    The engine never lets this escape: it is translated into the matching
    RepaymentError (InvalidLoan, InvalidIncome, TransferFailed) and chained.
    """

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


# ============================================================================
# COLLABORATOR RESULT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanDetails:
    """
    Loan terms as reported by the loan-issuance collaborator.

    Attributes:
        principal: Original principal in the smallest currency unit.
        interest_rate: Rate scaled by SCALE_FACTOR (500 = 5%).
        term: Loan term in periods.
        start_block: Block height at which the loan was issued.
        borrower: Identity of the borrower.
    """
    principal: int
    interest_rate: int
    term: int
    start_block: int
    borrower: Identity


@dataclass(frozen=True, slots=True)
class BorrowerStatus:
    """Eligibility signals reported by the borrower-profile collaborator."""
    is_active: bool
    low_income_flag: bool


# ============================================================================
# LEDGER RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanRepaymentRecord:
    """
    Immutable snapshot of one loan's repayment state.

    Created by initialize_loan_repayment, replaced (never edited in place)
    by process_repayment, never deleted.

    Attributes:
        borrower: Borrower identity, fixed at creation.
        outstanding_principal: Remaining principal; non-increasing.
        accrued_interest: Interest accumulated across deferred cycles; reset
                          to 0 when a payment is applied.
        last_activity_block: Block of the last processed cycle.
        status: Current LoanStatus.
        total_paid: Sum of all effective payments; non-decreasing.
        deferral_count: Number of deferred cycles; non-decreasing.
        penalty_accrued: Lifetime penalty total; non-decreasing.
    """
    borrower: Identity
    outstanding_principal: int
    accrued_interest: int
    last_activity_block: int
    status: LoanStatus
    total_paid: int
    deferral_count: int
    penalty_accrued: int

    def __post_init__(self):
        for name in (
            'outstanding_principal', 'accrued_interest', 'last_activity_block',
            'total_paid', 'deferral_count', 'penalty_accrued',
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be int, got {type(value).__name__}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if (self.status == LoanStatus.PAID) != (self.outstanding_principal == 0):
            raise ValueError(
                f"status {self.status.value} inconsistent with "
                f"outstanding_principal {self.outstanding_principal}"
            )


@dataclass(frozen=True, slots=True)
class RepaymentHistoryEntry:
    """
    One audit-trail entry, keyed by (loan_id, sequence_number).

    Attributes:
        amount: Amount actually transferred this cycle (0 if deferred).
        block_height: Block at which the cycle was processed.
        income_at_time: Verified income used for the decision.
        was_deferred: True if no funds moved.
        penalty_applied: Penalty computed this cycle (not cumulative).
    """
    amount: int
    block_height: int
    income_at_time: int
    was_deferred: bool
    penalty_applied: int


# ============================================================================
# COMPUTATION RESULTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class RepaymentQuote:
    """
    Result of the shared amount-due / capacity calculation.

    Produced identically by process_repayment and by the read-only forecast.
    """
    elapsed_blocks: int
    interest: int
    penalty: int
    total_due: int
    repayment_capacity: int
    effective_amount: int

    @property
    def is_deferral(self) -> bool:
        return self.effective_amount == 0


@dataclass(frozen=True, slots=True)
class RepaymentOutcome:
    """
    Result of a process_repayment call that reached the decision point.

    Attributes:
        loan_id: The processed loan.
        result: COLLECTED or DEFERRED.
        amount: Amount transferred (0 when deferred).
        sequence_number: History sequence number allocated for this cycle.
        record: The record as committed.
        entry: The history entry as written.
        quote: The calculation the decision was based on.
    """
    loan_id: LoanId
    result: RepaymentResult
    amount: int
    sequence_number: int
    record: LoanRepaymentRecord
    entry: RepaymentHistoryEntry
    quote: RepaymentQuote

    @property
    def deferred(self) -> bool:
        return self.result == RepaymentResult.DEFERRED

    @property
    def code(self) -> ErrorCode | None:
        """ErrorCode.DEFERRED for a deferred cycle, None when funds moved."""
        return ErrorCode.DEFERRED if self.deferred else None


# ============================================================================
# COLLABORATOR PROTOCOLS
# ============================================================================

@runtime_checkable
class IncomeSource(Protocol):
    """Employment oracle: synchronous verified-income lookup."""

    def get_verified_income(self, borrower: Identity) -> int:
        """
        Return the borrower's verified annual income.

        Raises:
            CollaboratorError: If no verified income is available.
        """
        ...


@runtime_checkable
class LoanTermsSource(Protocol):
    """Loan-issuance registry: loan terms lookup."""

    def get_loan_details(self, loan_id: LoanId) -> LoanDetails:
        """
        Return the terms of a loan.

        Raises:
            CollaboratorError: If the loan is unknown.
        """
        ...


@runtime_checkable
class EligibilitySource(Protocol):
    """Borrower-profile registry: eligibility lookup."""

    def get_borrower_status(self, borrower: Identity) -> BorrowerStatus:
        """
        Return the borrower's eligibility signals.

        Raises:
            CollaboratorError: If the borrower is unknown.
        """
        ...


@runtime_checkable
class TransferExecutor(Protocol):
    """Escrow vault: executes a fund transfer."""

    def transfer_funds(self, source: Identity, dest: Identity, amount: int) -> bool:
        """
        Move amount from source to dest.

        Returns:
            True if the transfer executed, False if it was refused.

        Raises:
            CollaboratorError: If the transfer failed.
        """
        ...
