"""
Idempotency Conformance Tests

INVARIANT: Accrual and reads are safe to repeat.

    accrue(h) ∘ accrue(h) = accrue(h)
    read operations never change state

A second accrual at the same height finds no elapsed heights and returns the
state unchanged.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from lendpool import PoolState, RateModelParams, calculate_accrual

from .strategies import ACCOUNTS, operations, new_pool, apply_operation, observable_state


class TestIdempotencyProperties:

    @given(
        borrowed=st.integers(min_value=0, max_value=10 ** 24),
        collateral=st.integers(min_value=0, max_value=10 ** 24),
        height=st.integers(min_value=0, max_value=10 ** 7),
    )
    def test_accrual_twice_equals_once(self, borrowed, collateral, height):
        """
        PROPERTY: Accruing to the same height twice gives the same state as once.
        """
        state = PoolState(total_collateral=collateral, total_borrowed=borrowed)
        params = RateModelParams()
        once = calculate_accrual(state, params, height)
        assert calculate_accrual(once, params, height) == once

    @given(operations, st.integers(min_value=2, max_value=5))
    @settings(max_examples=75, deadline=None)
    def test_repeated_update_rates(self, ops, repeats):
        """
        PROPERTY: Calling update_rates N times at one height commits at most once.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        first = pool.update_rates()
        state = pool.pool_state
        logged = len(pool.operation_log)
        for _ in range(repeats):
            assert pool.update_rates() == first
        assert pool.pool_state == state
        assert len(pool.operation_log) == logged

    @given(operations)
    @settings(max_examples=75, deadline=None)
    def test_reads_are_pure(self, ops):
        """
        PROPERTY: No read operation changes observable state.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        before = observable_state(pool)
        for account in ACCOUNTS:
            pool.get_position(account)
            pool.get_current_debt(account)
            pool.get_health_factor(account)
            pool.is_liquidatable(account)
            pool.get_account_summary(account)
        pool.get_current_rates()
        pool.get_pool_stats()
        pool.verify_conservation()
        assert observable_state(pool) == before

    @given(operations)
    @settings(max_examples=75, deadline=None)
    def test_repay_without_debt_is_noop(self, ops):
        """
        PROPERTY: Repaying an account with no debt returns 0 and changes nothing.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        for account in ACCOUNTS:
            if pool.get_current_debt(account) == 0:
                before = observable_state(pool)
                assert pool.repay(account, 1_000) == 0
                assert observable_state(pool) == before
