"""
conftest.py - Shared pytest fixtures for repayment tests

Provides:
- In-memory collaborators seeded with a small book of loans
- A default config (threshold 20000, 10%, grace 144, admin "deployer")
- An engine starting at block 1000, plus one with loan 1 already opened

Seeded book:
    loan 1: borrower1, principal 10000, rate 500, income 25000 (collects)
    loan 2: borrower2, principal 20000, rate 600, income 15000 (defers)
    loan 3: inactive borrower
    loan 4: active borrower without the low-income flag
    loan 5: borrower with no profile
    loan 6: eligible borrower with no verified income
    loan 7: wealthy borrower, principal 1000 (pays off in one cycle)
"""

import pytest

from repayment import (
    BorrowerStatus,
    CollaboratorRegistry,
    ContractConfig,
    InMemoryEscrow,
    LoanDetails,
    RepaymentEngine,
    StaticBorrowerRegistry,
    StaticIncomeOracle,
    StaticLoanRegistry,
)


START_BLOCK = 1000
ADMIN = "deployer"
COLLECTOR = "lender"


@pytest.fixture
def oracle():
    return StaticIncomeOracle({
        "borrower1": 25000,
        "borrower2": 15000,
        "inactive": 30000,
        "richguy": 90000,
        "wealthy": 1020000,
    })


@pytest.fixture
def loan_registry():
    return StaticLoanRegistry({
        1: LoanDetails(principal=10000, interest_rate=500, term=120, start_block=START_BLOCK, borrower="borrower1"),
        2: LoanDetails(principal=20000, interest_rate=600, term=240, start_block=START_BLOCK, borrower="borrower2"),
        3: LoanDetails(principal=5000, interest_rate=500, term=120, start_block=START_BLOCK, borrower="inactive"),
        4: LoanDetails(principal=5000, interest_rate=500, term=120, start_block=START_BLOCK, borrower="richguy"),
        5: LoanDetails(principal=5000, interest_rate=500, term=120, start_block=START_BLOCK, borrower="ghost"),
        6: LoanDetails(principal=5000, interest_rate=500, term=120, start_block=START_BLOCK, borrower="noincome"),
        7: LoanDetails(principal=1000, interest_rate=500, term=12, start_block=START_BLOCK, borrower="wealthy"),
    })


@pytest.fixture
def borrower_registry():
    return StaticBorrowerRegistry({
        "borrower1": BorrowerStatus(is_active=True, low_income_flag=True),
        "borrower2": BorrowerStatus(is_active=True, low_income_flag=True),
        "inactive": BorrowerStatus(is_active=False, low_income_flag=False),
        "richguy": BorrowerStatus(is_active=True, low_income_flag=False),
        "noincome": BorrowerStatus(is_active=True, low_income_flag=True),
        "wealthy": BorrowerStatus(is_active=True, low_income_flag=True),
    })


@pytest.fixture
def escrow():
    return InMemoryEscrow()


@pytest.fixture
def registry(oracle, loan_registry, borrower_registry, escrow):
    return CollaboratorRegistry(
        oracle=oracle,
        loan_issuance=loan_registry,
        borrower_profile=borrower_registry,
        escrow=escrow,
    )


@pytest.fixture
def config(registry):
    return ContractConfig(dependencies=registry, admin=ADMIN)


@pytest.fixture
def engine(config):
    """Fresh engine at block 1000 with no loans opened."""
    return RepaymentEngine(config, initial_block=START_BLOCK)


@pytest.fixture
def opened_engine(engine):
    """Engine with loans 1 and 2 opened at block 1000."""
    engine.initialize_loan_repayment(1)
    engine.initialize_loan_repayment(2)
    return engine
