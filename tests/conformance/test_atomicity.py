"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O succeeds ⟹ position, aggregates, index and logs change together
        O fails    ⟹ nothing changes, not even the interest index

Partial application is impossible by construction: every operation builds
new frozen records first and commits them in one step.
"""

import threading

import pytest
from hypothesis import given, settings

from lendpool import (
    LendingPool, StaticPriceFeed, SCALE,
    InsufficientCollateral, HealthFactorTooLow, InsufficientCollateralToSeize,
)

from .strategies import operations, new_pool, apply_operation, observable_state


class TestAtomicityProperties:

    @given(operations)
    @settings(max_examples=150, deadline=None)
    def test_failed_operation_changes_nothing(self, ops):
        """
        PROPERTY: Any rejected operation leaves every observable piece of state as it was.
        """
        pool = new_pool()
        for op in ops:
            before = observable_state(pool)
            error = apply_operation(pool, op)
            if error is not None:
                assert observable_state(pool) == before, (op, error)

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_commit_bumps_version_once(self, ops):
        """
        PROPERTY: Each committed operation adds exactly one log record and one version.
        """
        pool = new_pool()
        for op in ops:
            version = pool.pool_state.version
            logged = len(pool.operation_log)
            apply_operation(pool, op)
            committed = len(pool.operation_log) - logged
            assert committed in (0, 1)
            assert pool.pool_state.version == version + committed


class TestAtomicityExamples:

    def test_rejected_borrow_does_not_accrue(self):
        pool = LendingPool("atomic", price_feed=StaticPriceFeed({"STX": SCALE}), verbose=False)
        pool.deposit("alice", 10_000_000)
        pool.borrow("alice", 5_000_000)
        pool.advance_height(10_000)
        state = pool.pool_state
        with pytest.raises(InsufficientCollateral):
            pool.borrow("alice", 10_000_000)
        assert pool.pool_state == state
        assert pool.get_position("alice").principal_borrowed == 5_000_000

    def test_rejected_withdraw(self):
        pool = new_pool()
        pool.deposit("alice", 10_000_000)
        pool.borrow("alice", 7_000_000)
        before = observable_state(pool)
        with pytest.raises(HealthFactorTooLow):
            pool.withdraw("alice", 5_000_000)
        assert observable_state(pool) == before

    def test_rejected_seizure_keeps_liquidation_counter(self):
        pool = new_pool()
        pool.deposit("alice", 10_000_000)
        pool.borrow("alice", 7_400_000)
        pool.price_feed.update_price("STX", SCALE // 10)
        with pytest.raises(InsufficientCollateralToSeize):
            pool.liquidate("bob", "alice", 3_700_000)
        pool.price_feed.update_price("STX", SCALE)
        assert pool.liquidate("bob", "alice", 1_000_000).liquidation_id == 1


class TestConcurrency:

    def test_parallel_deposits_and_borrows(self):
        """Operations from many threads serialize without losing updates."""
        pool = new_pool()
        accounts = [f"user_{i}" for i in range(8)]

        def worker(account):
            for _ in range(50):
                pool.deposit(account, 1_000)
                pool.borrow(account, 500)

        threads = [threading.Thread(target=worker, args=(a,)) for a in accounts]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        state = pool.pool_state
        assert state.total_collateral == 8 * 50 * 1_000
        assert state.total_borrowed == 8 * 50 * 500
        assert state.version == 8 * 50 * 2
        assert pool.verify_conservation()["valid"]
