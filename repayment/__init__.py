"""
repayment - Income-Contingent Loan Repayment Engine

Computes what a borrower owes each cycle, how much their verified income
allows to be collected, and keeps a per-loan ledger and audit trail.

Usage:
    from repayment import (
        RepaymentEngine, ContractConfig, CollaboratorRegistry, LoanDetails,
        BorrowerStatus, StaticIncomeOracle, StaticLoanRegistry,
        StaticBorrowerRegistry, InMemoryEscrow,
    )

    config = ContractConfig(dependencies=CollaboratorRegistry(
        oracle=StaticIncomeOracle({"borrower1": 25000}),
        loan_issuance=StaticLoanRegistry({
            1: LoanDetails(principal=10000, interest_rate=500, term=120,
                           start_block=1000, borrower="borrower1"),
        }),
        borrower_profile=StaticBorrowerRegistry({"borrower1": BorrowerStatus(True, True)}),
        escrow=InMemoryEscrow(),
    ))
    engine = RepaymentEngine(config, initial_block=1000)
    engine.initialize_loan_repayment(1)
    engine.advance_blocks(200)
    outcome = engine.process_repayment(1, collector="lender")
"""

# Core types
from .core import (
    LoanId,
    Identity,
    LoanStatus,
    RepaymentResult,
    ErrorCode,
    LoanDetails,
    BorrowerStatus,
    LoanRepaymentRecord,
    RepaymentHistoryEntry,
    RepaymentQuote,
    RepaymentOutcome,
    IncomeSource,
    LoanTermsSource,
    EligibilitySource,
    TransferExecutor,
    RepaymentError,
    Unauthorized,
    InvalidLoan,
    InvalidIncome,
    ContractPaused,
    InvalidAmount,
    NoActiveLoan,
    InvalidStatus,
    TransferFailed,
    InvalidThresholds,
    NotLowIncome,
    CalculationOverflow,
    AlreadyRegistered,
    CollaboratorError,
)

# Financial math
from .financial_math import (
    SCALE_FACTOR,
    PENALTY_RATE,
    MAX_UINT,
    compute_interest,
    compute_penalty,
    compute_repayment_capacity,
    quote_repayment,
)

# Ledger and history
from .repayment_ledger import (
    RepaymentLedger,
    next_status,
    apply_deferral,
    apply_payment,
)
from .history import RepaymentHistory

# Configuration
from .config import (
    ContractConfig,
    CollaboratorRegistry,
    ConfigStore,
    validate_thresholds,
)

# Engine
from .engine import RepaymentEngine
from .cycle import RepaymentCycle, CycleReport

# Collaborators
from .collaborators import (
    StaticIncomeOracle,
    StaticLoanRegistry,
    StaticBorrowerRegistry,
    InMemoryEscrow,
    TransferRecord,
)

# Logging
from .logging import setup_logging, get_logger

__all__ = [
    # Core
    'LoanId', 'Identity', 'LoanStatus', 'RepaymentResult', 'ErrorCode',
    'LoanDetails', 'BorrowerStatus', 'LoanRepaymentRecord',
    'RepaymentHistoryEntry', 'RepaymentQuote', 'RepaymentOutcome',
    'IncomeSource', 'LoanTermsSource', 'EligibilitySource', 'TransferExecutor',
    # Errors
    'RepaymentError', 'Unauthorized', 'InvalidLoan', 'InvalidIncome',
    'ContractPaused', 'InvalidAmount', 'NoActiveLoan', 'InvalidStatus',
    'TransferFailed', 'InvalidThresholds', 'NotLowIncome',
    'CalculationOverflow', 'AlreadyRegistered', 'CollaboratorError',
    # Math
    'SCALE_FACTOR', 'PENALTY_RATE', 'MAX_UINT', 'compute_interest',
    'compute_penalty', 'compute_repayment_capacity', 'quote_repayment',
    # Ledger / history
    'RepaymentLedger', 'next_status', 'apply_deferral', 'apply_payment',
    'RepaymentHistory',
    # Config
    'ContractConfig', 'CollaboratorRegistry', 'ConfigStore', 'validate_thresholds',
    # Engine
    'RepaymentEngine', 'RepaymentCycle', 'CycleReport',
    # Collaborators
    'StaticIncomeOracle', 'StaticLoanRegistry', 'StaticBorrowerRegistry',
    'InMemoryEscrow', 'TransferRecord',
    # Logging
    'setup_logging', 'get_logger',
]
