"""
Tests for financial_math.py - Fixed-point interest, penalty and capacity

Tests:
- compute_interest truncation and the interest-exceeds-principal ceiling
- compute_penalty truncation
- compute_repayment_capacity threshold behaviour
- quote_repayment grace period handling and effective amount selection
- arithmetic width guard
"""

import pytest

from repayment import (
    CalculationOverflow,
    MAX_UINT,
    PENALTY_RATE,
    SCALE_FACTOR,
    compute_interest,
    compute_penalty,
    compute_repayment_capacity,
    quote_repayment,
)


class TestConstants:

    def test_scale_and_penalty_rate(self):
        assert SCALE_FACTOR == 10000
        assert PENALTY_RATE == 5


# ============================================================================
# compute_interest Tests
# ============================================================================

class TestComputeInterest:
    """Tests for compute_interest."""

    def test_basic_interest(self):
        """10000 at 5% over 200 blocks."""
        assert compute_interest(10000, 500, 200) == 1000

    def test_truncates_toward_zero(self):
        # 333 * 500 * 7 = 1165500 -> //10000 = 116 -> //100 = 1
        assert compute_interest(333, 500, 7) == 1
        # 10 * 500 * 1 = 5000 -> 0
        assert compute_interest(10, 500, 1) == 0

    def test_zero_elapsed_is_zero(self):
        assert compute_interest(10000, 500, 0) == 0

    def test_zero_rate_is_zero(self):
        assert compute_interest(10000, 0, 5000) == 0

    def test_interest_equal_to_principal_is_allowed(self):
        # 100 * 500 * 2000 = 1e8 -> 10000 -> 100
        assert compute_interest(100, 500, 2000) == 100

    def test_interest_above_principal_overflows(self):
        # 100 * 500 * 2100 -> 105 > 100
        with pytest.raises(CalculationOverflow):
            compute_interest(100, 500, 2100)

    def test_overflow_boundary_for_default_loan(self):
        assert compute_interest(10000, 500, 2000) == 10000
        with pytest.raises(CalculationOverflow):
            compute_interest(10000, 500, 2001)

    def test_arithmetic_width_guard(self):
        with pytest.raises(CalculationOverflow, match="arithmetic width"):
            compute_interest(MAX_UINT, 10, 10)

    def test_negative_inputs_rejected(self):
        with pytest.raises(ValueError, match="principal must be non-negative"):
            compute_interest(-1, 500, 10)
        with pytest.raises(ValueError, match="elapsed_periods must be non-negative"):
            compute_interest(100, 500, -10)


# ============================================================================
# compute_penalty Tests
# ============================================================================

class TestComputePenalty:
    """Tests for compute_penalty."""

    def test_basic_penalty(self):
        # 10000 * 5 * 56 // 10000
        assert compute_penalty(10000, 56) == 280

    def test_six_blocks_late(self):
        assert compute_penalty(10000, 6) == 30

    def test_truncation(self):
        # 100 * 5 * 3 = 1500 // 10000 = 0
        assert compute_penalty(100, 3) == 0

    def test_no_blocks_late(self):
        assert compute_penalty(10000, 0) == 0

    def test_penalty_may_exceed_principal(self):
        """Penalty has no principal ceiling, only the width guard."""
        assert compute_penalty(100, 10000) == 500

    def test_width_guard(self):
        with pytest.raises(CalculationOverflow):
            compute_penalty(MAX_UINT, 2)


# ============================================================================
# compute_repayment_capacity Tests
# ============================================================================

class TestComputeRepaymentCapacity:

    def test_below_threshold_is_zero(self):
        assert compute_repayment_capacity(15000, 20000, 10) == 0

    def test_at_threshold_is_zero(self):
        assert compute_repayment_capacity(20000, 20000, 10) == 0

    def test_above_threshold(self):
        assert compute_repayment_capacity(25000, 20000, 10) == 500

    def test_truncation(self):
        # (20009 - 20000) * 10 // 100 = 0
        assert compute_repayment_capacity(20009, 20000, 10) == 0
        assert compute_repayment_capacity(20010, 20000, 10) == 1

    def test_zero_percentage(self):
        assert compute_repayment_capacity(1_000_000, 20000, 0) == 0

    def test_full_percentage(self):
        assert compute_repayment_capacity(30000, 20000, 100) == 10000


# ============================================================================
# quote_repayment Tests
# ============================================================================

class TestQuoteRepayment:
    """Tests for quote_repayment."""

    def quote(self, **overrides):
        params = dict(
            outstanding=10000,
            rate=500,
            elapsed_blocks=200,
            grace_period_blocks=144,
            income=25000,
            threshold=20000,
            min_percentage=10,
        )
        params.update(overrides)
        return quote_repayment(**params)

    def test_full_quote_past_grace(self):
        q = self.quote()
        assert q.elapsed_blocks == 200
        assert q.interest == 1000
        assert q.penalty == 280
        assert q.total_due == 11280
        assert q.repayment_capacity == 500
        assert q.effective_amount == 500
        assert not q.is_deferral

    def test_no_penalty_within_grace(self):
        q = self.quote(elapsed_blocks=144)
        assert q.penalty == 0
        assert q.interest == 720

    def test_penalty_one_block_past_grace(self):
        # 10000 * 5 * 1 // 10000 = 5
        assert self.quote(elapsed_blocks=145).penalty == 5

    def test_low_income_is_deferral(self):
        q = self.quote(income=15000)
        assert q.repayment_capacity == 0
        assert q.effective_amount == 0
        assert q.is_deferral

    def test_effective_amount_capped_at_total_due(self):
        q = self.quote(outstanding=1000, elapsed_blocks=10, income=1020000)
        assert q.interest == 5
        assert q.total_due == 1005
        assert q.repayment_capacity == 100000
        assert q.effective_amount == 1005

    def test_overflow_propagates(self):
        with pytest.raises(CalculationOverflow):
            self.quote(elapsed_blocks=2001)
