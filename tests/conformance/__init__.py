"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the repayment engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. repayment_monotonicity.py - Records only move one way; history is gap-free
2. repayment_atomicity.py - All-or-nothing cycles, serialized per loan
3. forecast_idempotency.py - Forecasts are pure and match live processing

These tests use hypothesis for property-based testing.
"""
