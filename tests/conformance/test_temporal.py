"""
Temporal Conformance Tests

INVARIANT: Height only moves forward, and interest only grows with it.

    h₁ ≤ h₂ ⟹ index(h₁) ≤ index(h₂)
    h₁ ≤ h₂ ⟹ debt(p, h₁) ≤ debt(p, h₂)     (p untouched between h₁ and h₂)
    operation log heights are non-decreasing
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from .strategies import ACCOUNTS, operations, new_pool, apply_operation


class TestTemporalProperties:

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_index_never_decreases(self, ops):
        """
        PROPERTY: The committed interest index is non-decreasing across operations.
        """
        pool = new_pool()
        previous = pool.pool_state.interest_index
        for op in ops:
            apply_operation(pool, op)
            current = pool.pool_state.interest_index
            assert current >= previous
            previous = current

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_log_heights_ordered(self, ops):
        """
        PROPERTY: Operation records are in sequence and height order.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        heights = [r.height for r in pool.operation_log]
        assert heights == sorted(heights)
        assert [r.sequence for r in pool.operation_log] == list(range(len(pool.operation_log)))
        for record in pool.operation_log:
            assert record.pool_after.last_accrual_height == record.height

    @given(operations, st.lists(st.integers(min_value=0, max_value=50_000), min_size=1, max_size=5))
    @settings(max_examples=75, deadline=None)
    def test_debt_grows_with_height(self, ops, steps):
        """
        PROPERTY: Without interaction, every account's debt is non-decreasing in height.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        debts = {a: pool.get_current_debt(a) for a in ACCOUNTS}
        for step in steps:
            pool.advance_height(pool.current_height + step)
            for account in ACCOUNTS:
                debt = pool.get_current_debt(account)
                assert debt >= debts[account]
                debts[account] = debt

    @given(st.integers(min_value=1, max_value=10 ** 6))
    def test_height_cannot_rewind(self, height):
        pool = new_pool()
        pool.advance_height(height)
        with pytest.raises(ValueError):
            pool.advance_height(height - 1)
        assert pool.current_height == height
