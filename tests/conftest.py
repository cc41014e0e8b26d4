"""
conftest.py - Shared pytest fixtures for lending pool tests

Provides common fixtures used across unit, functional and conformance tests:
- Pools (empty, funded, with an open borrow, with an unhealthy position)
- Price feeds
- Comparison utilities
"""

import pytest
from typing import Any, Dict

from lendpool import (
    LendingPool, StaticPriceFeed, RateModelParams, ProtocolParams, SCALE,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def build_pool(name: str = "test", prices: Dict[str, int] = None, **kwargs) -> LendingPool:
    """Create a quiet pool priced 1:1 unless prices are given."""
    feed = StaticPriceFeed(prices if prices is not None else {"STX": SCALE})
    return LendingPool(name, price_feed=feed, verbose=False, **kwargs)


def pool_snapshot(pool: LendingPool) -> Dict[str, Any]:
    """Everything observable about a pool, for before/after comparisons."""
    return {
        "state": pool.pool_state,
        "positions": {a: pool.get_position(a) for a in pool.list_accounts()},
        "height": pool.current_height,
        "stats": pool.get_liquidation_stats(),
        "liquidations": pool.list_liquidations(),
        "operations": len(pool.operation_log),
        "rate_params": pool.rate_params,
        "protocol_params": pool.protocol_params,
        "admin": pool.admin,
    }


def compare_pool_states(pool1: LendingPool, pool2: LendingPool) -> Dict[str, Any]:
    """Compare positions and aggregates of two pools and return the differences."""
    position_diffs = []
    for account in sorted(set(pool1.list_accounts()) | set(pool2.list_accounts())):
        p1 = pool1.get_position(account)
        p2 = pool2.get_position(account)
        if (p1.collateral, p1.principal_borrowed, p1.index_snapshot) != (
            p2.collateral, p2.principal_borrowed, p2.index_snapshot
        ):
            position_diffs.append({"account": account, "pool1": p1, "pool2": p2})

    s1, s2 = pool1.pool_state, pool2.pool_state
    state_diffs = {}
    for name in ("total_collateral", "total_borrowed", "interest_index", "last_accrual_height"):
        if getattr(s1, name) != getattr(s2, name):
            state_diffs[name] = {"pool1": getattr(s1, name), "pool2": getattr(s2, name)}

    return {
        "equal": not position_diffs and not state_diffs,
        "position_diffs": position_diffs,
        "state_diffs": state_diffs,
    }


# =============================================================================
# POOL FIXTURES
# =============================================================================

@pytest.fixture
def feed():
    """Static feed pricing STX at 1 USD."""
    return StaticPriceFeed({"STX": SCALE})


@pytest.fixture
def pool(feed):
    """Fresh pool with default parameters at height 0."""
    return LendingPool("test", price_feed=feed, verbose=False)


@pytest.fixture
def funded_pool(pool):
    """Pool where alice has deposited 10M collateral."""
    pool.deposit("alice", 10_000_000)
    return pool


@pytest.fixture
def borrowed_pool(funded_pool):
    """Alice has 10M collateral and 5M debt (health factor 150)."""
    funded_pool.borrow("alice", 5_000_000)
    return funded_pool


@pytest.fixture
def unhealthy_pool(funded_pool):
    """Alice has 10M collateral and 7.4M debt (health factor 101, liquidatable)."""
    funded_pool.borrow("alice", 7_400_000)
    return funded_pool


@pytest.fixture
def default_rate_params():
    return RateModelParams()


@pytest.fixture
def default_protocol_params():
    return ProtocolParams()


# =============================================================================
# FACTORY FIXTURES
# =============================================================================

@pytest.fixture
def make_pool():
    """Factory for quiet pools: make_pool(name, prices=None, **LendingPool kwargs)."""
    return build_pool


@pytest.fixture
def snapshot():
    """Callable capturing everything observable about a pool."""
    return pool_snapshot


@pytest.fixture
def compare_pools():
    """Callable comparing two pools' positions and aggregates."""
    return compare_pool_states
