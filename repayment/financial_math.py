"""
financial_math.py - Fixed-point Interest, Penalty and Capacity Formulas

All amounts are Python ints in the smallest currency unit. Rates are
expressed in fixed point over SCALE_FACTOR, so an interest_rate of 500
means 5%. Every division is floor division on non-negative operands, which
is the same as truncation toward zero.

Key Formulas:
    interest = (principal * rate * elapsed // SCALE_FACTOR) // 100
    penalty  = outstanding * PENALTY_RATE * blocks_late // SCALE_FACTOR
    capacity = 0                                         if income < threshold
             = (income - threshold) * min_percentage // 100   otherwise
    effective_amount = min(capacity, principal + interest + penalty)

quote_repayment() composes all of them. It is the single implementation
used by both live processing and forecasting.
"""

from __future__ import annotations

from .core import CalculationOverflow, RepaymentQuote


# Fixed-point denominator for interest and penalty rates.
SCALE_FACTOR = 10000

# Penalty per block late, over SCALE_FACTOR (5 = 0.05% per block).
PENALTY_RATE = 5

# Widest value any intermediate product may reach (unsigned 128-bit).
MAX_UINT = 2 ** 128 - 1


def _check_width(value: int, what: str) -> int:
    if value > MAX_UINT:
        raise CalculationOverflow(f"{what} exceeds arithmetic width: {value}")
    return value


def _require_non_negative(**values: int) -> None:
    for name, value in values.items():
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


def compute_interest(principal: int, rate: int, elapsed_periods: int) -> int:
    """
    Calculate simple interest over a number of elapsed periods.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Args:
        principal: Outstanding principal
        rate: Interest rate scaled by SCALE_FACTOR
        elapsed_periods: Blocks since the last processed cycle

    Returns:
        Interest amount, truncated

    Raises:
        CalculationOverflow: If the interest would exceed the principal
            itself (a rate or clock misconfiguration) or an intermediate
            product exceeds MAX_UINT.
        ValueError: If any input is negative.

    Example:
        >>> compute_interest(10000, 500, 200)
        1000
    """
    _require_non_negative(principal=principal, rate=rate, elapsed_periods=elapsed_periods)
    product = _check_width(principal * rate * elapsed_periods, "interest product")
    interest = product // SCALE_FACTOR // 100
    if interest > principal:
        raise CalculationOverflow(
            f"interest {interest} exceeds principal {principal} "
            f"(rate={rate}, elapsed={elapsed_periods})"
        )
    return interest


def compute_penalty(outstanding: int, blocks_late: int) -> int:
    """
    Calculate the late penalty for blocks past the grace period.

    Args:
        outstanding: Outstanding principal
        blocks_late: Blocks elapsed beyond the grace period

    Returns:
        Penalty amount, truncated

    Raises:
        CalculationOverflow: If an intermediate product exceeds MAX_UINT.
        ValueError: If any input is negative.
    """
    _require_non_negative(outstanding=outstanding, blocks_late=blocks_late)
    product = _check_width(outstanding * PENALTY_RATE * blocks_late, "penalty product")
    return product // SCALE_FACTOR


def compute_repayment_capacity(income: int, threshold: int, min_percentage: int) -> int:
    """
    Calculate how much can be collected from a given income.

    Income at or above the threshold is collectable at min_percentage of
    the excess. Income below the threshold yields 0.
    """
    _require_non_negative(income=income, threshold=threshold, min_percentage=min_percentage)
    if income < threshold:
        return 0
    return _check_width((income - threshold) * min_percentage, "capacity product") // 100


def quote_repayment(
    outstanding: int,
    rate: int,
    elapsed_blocks: int,
    grace_period_blocks: int,
    income: int,
    threshold: int,
    min_percentage: int,
) -> RepaymentQuote:
    """
    Compute everything a repayment decision needs for one cycle.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Args:
        outstanding: Record's outstanding principal
        rate: Loan interest rate scaled by SCALE_FACTOR
        elapsed_blocks: Blocks since the record's last activity
        grace_period_blocks: Blocks after last activity with no penalty
        income: Verified (or hypothetical) income
        threshold: Income below which nothing is collected
        min_percentage: Share of income above threshold collected (0-100)

    Returns:
        RepaymentQuote with interest, penalty, total_due, capacity and the
        effective amount (min of capacity and total due).

    Raises:
        CalculationOverflow: Propagated from compute_interest/compute_penalty.
    """
    interest = compute_interest(outstanding, rate, elapsed_blocks)

    if elapsed_blocks > grace_period_blocks:
        penalty = compute_penalty(outstanding, elapsed_blocks - grace_period_blocks)
    else:
        penalty = 0

    total_due = _check_width(outstanding + interest + penalty, "total due")
    capacity = compute_repayment_capacity(income, threshold, min_percentage)

    return RepaymentQuote(
        elapsed_blocks=elapsed_blocks,
        interest=interest,
        penalty=penalty,
        total_due=total_due,
        repayment_capacity=capacity,
        effective_amount=min(capacity, total_due),
    )
