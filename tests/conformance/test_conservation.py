"""
Conservation Law Conformance Tests

INVARIANT: At every commit, for the pool P and its positions p:

    P.total_collateral = Σ p.collateral
    P.total_borrowed   = Σ p.principal_borrowed

Accrued interest is folded into both sides whenever a position is touched,
so the equalities hold exactly, with no rounding slack.
"""

from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

from lendpool import SCALE, ProtocolParams, calculate_health_factor, is_liquidatable

from .strategies import ACCOUNTS, operations, new_pool, apply_operation


class TestConservationProperties:

    @given(operations)
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_aggregates_match_positions(self, ops):
        """
        PROPERTY: verify_conservation() holds after every operation, applied or not.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
            result = pool.verify_conservation()
            assert result["valid"], result

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_collateral_flows_balance(self, ops):
        """
        PROPERTY: total_collateral = deposits - withdrawals - seized collateral.
        """
        pool = new_pool()
        deposited = withdrawn = 0
        for op in ops:
            kind, _, _, amount = op
            if apply_operation(pool, op) is None:
                if kind == "deposit":
                    deposited += amount
                elif kind == "withdraw":
                    withdrawn += amount
        seized = pool.get_liquidation_stats().collateral_seized_total
        assert pool.pool_state.total_collateral == deposited - withdrawn - seized

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_live_debt_covers_recorded_principal(self, ops):
        """
        PROPERTY: Σ current_debt >= total_borrowed (interest only adds, rounding is up).
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        live = sum(pool.get_current_debt(a) for a in ACCOUNTS)
        assert live >= pool.pool_state.total_borrowed

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_liquidation_stats_match_log(self, ops):
        """
        PROPERTY: Running statistics equal the sums over the liquidation log.
        """
        pool = new_pool()
        for op in ops:
            apply_operation(pool, op)
        records = pool.list_liquidations()
        stats = pool.get_liquidation_stats()
        assert stats.count == len(records)
        assert stats.collateral_seized_total == sum(r.collateral_seized for r in records)
        assert stats.debt_repaid_total == sum(r.debt_repaid for r in records)
        assert [r.id for r in records] == list(range(1, len(records) + 1))


class TestSolvencyProperties:

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_successful_borrow_within_ratio(self, ops):
        """
        PROPERTY: Right after a successful borrow, debt <= collateral * collateral_ratio.
        """
        pool = new_pool()
        ratio = pool.protocol_params.collateral_ratio
        for op in ops:
            if apply_operation(pool, op) is None and op[0] == "borrow":
                position = pool.get_position(op[1])
                assert position.principal_borrowed * SCALE <= position.collateral * ratio

    @given(operations)
    @settings(max_examples=100, deadline=None)
    def test_successful_withdraw_keeps_min_health(self, ops):
        """
        PROPERTY: Right after a successful withdraw, an indebted position is at or above min_health_factor.
        """
        pool = new_pool()
        for op in ops:
            if apply_operation(pool, op) is None and op[0] == "withdraw":
                position = pool.get_position(op[1])
                if position.principal_borrowed:
                    health_factor = calculate_health_factor(
                        position.collateral, position.principal_borrowed,
                        pool.protocol_params.collateral_ratio,
                    )
                    assert health_factor >= pool.protocol_params.min_health_factor

    @given(
        collateral=st.integers(min_value=0, max_value=10 ** 24),
        debt=st.integers(min_value=0, max_value=10 ** 24),
        threshold_pct=st.integers(min_value=1, max_value=120),
    )
    def test_liquidatable_iff_below_threshold(self, collateral, debt, threshold_pct):
        """
        PROPERTY: liquidatable <=> debt > 0 and health factor < liquidation_threshold.
        """
        params = ProtocolParams(liquidation_threshold=threshold_pct * SCALE // 100)
        expected = debt > 0 and collateral * params.collateral_ratio // debt < params.liquidation_threshold
        assert is_liquidatable(collateral, debt, params) == expected
