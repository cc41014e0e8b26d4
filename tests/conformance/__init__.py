"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending pool.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Aggregates equal the sum over positions
2. atomicity.py - Failed operations leave no trace
3. idempotency.py - Accrual and reads are safe to repeat
4. determinism.py - Reproducible behavior, replay and clone
5. temporal.py - Height ordering and interest growth

These tests use hypothesis for property-based testing.
"""
