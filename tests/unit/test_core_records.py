"""
Tests for core.py - Enums, error taxonomy and value types
"""

import pytest

from repayment import (
    AlreadyRegistered,
    CalculationOverflow,
    CollaboratorError,
    ContractPaused,
    ErrorCode,
    InvalidAmount,
    InvalidIncome,
    InvalidLoan,
    InvalidStatus,
    InvalidThresholds,
    LoanStatus,
    NoActiveLoan,
    NotLowIncome,
    RepaymentError,
    RepaymentQuote,
    TransferFailed,
    Unauthorized,
)


class TestLoanStatus:

    def test_terminal_states(self):
        assert LoanStatus.PAID.is_terminal
        assert LoanStatus.DEFAULTED.is_terminal
        assert not LoanStatus.ACTIVE.is_terminal
        assert not LoanStatus.DEFERRED.is_terminal


class TestErrorCodes:

    @pytest.mark.parametrize("exc,value", [
        (Unauthorized, 100),
        (InvalidLoan, 101),
        (InvalidIncome, 102),
        (ContractPaused, 103),
        (InvalidAmount, 104),
        (NoActiveLoan, 105),
        (InvalidStatus, 108),
        (TransferFailed, 109),
        (InvalidThresholds, 110),
        (NotLowIncome, 111),
        (CalculationOverflow, 112),
        (AlreadyRegistered, 113),
    ])
    def test_exception_codes(self, exc, value):
        assert issubclass(exc, RepaymentError)
        assert exc.code.value == value
        assert exc("boom").code == ErrorCode(value)

    def test_deferral_and_grace_codes(self):
        assert ErrorCode.DEFERRED.value == 106
        assert ErrorCode.GRACE_PERIOD.value == 107

    def test_codes_are_unique(self):
        values = [c.value for c in ErrorCode]
        assert len(values) == len(set(values))

    def test_collaborator_error_is_not_a_repayment_error(self):
        err = CollaboratorError("down", 7)
        assert not isinstance(err, RepaymentError)
        assert err.code == 7
        assert str(err) == "down"


class TestRepaymentQuote:

    def test_is_deferral(self):
        quote = RepaymentQuote(
            elapsed_blocks=10, interest=0, penalty=0, total_due=100,
            repayment_capacity=0, effective_amount=0,
        )
        assert quote.is_deferral
