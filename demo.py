#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Pool Step by Step

A pedagogical walk through the lending pool. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation   - The empty pool, deposits, borrowing capacity
  4-6:   Interest     - Rates from utilization, the global index, repayment
  7-9:   Liquidation  - Unhealthy positions, quotes, liquidating
  10-11: Guarantees   - Conservation, clone and replay

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import logging
import sys

from lendpool import (
    LendingPool, StaticPriceFeed, SCALE, HEALTH_FACTOR_NO_DEBT,
    LendingError, InsufficientCollateral, NotLiquidatable,
    to_decimal,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    alice_deposit: int = 10_000_000
    alice_borrow: int = 5_000_000
    bob_deposit: int = 10_000_000
    bob_borrow: int = 7_400_000
    blocks_per_year: int = 52_560


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt_rate(scaled: int) -> str:
    return f"{to_decimal(scaled) * 100:.4f}%"


def fmt_health(percent_value: int) -> str:
    if percent_value == HEALTH_FACTOR_NO_DEBT:
        return "no debt"
    return f"{percent_value}%"


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_pool():
    step_header(1, "The Empty Pool",
        "A pool starts with no positions, an index of 1.0 and height 0.")

    print(">>> feed = StaticPriceFeed({'STX': SCALE})")
    print(">>> pool = LendingPool('tutorial', price_feed=feed)")
    pool = LendingPool("tutorial", price_feed=StaticPriceFeed({"STX": SCALE}))

    section_header("Initial State")
    state = pool.pool_state
    print(f"Total collateral: {state.total_collateral}")
    print(f"Total borrowed:   {state.total_borrowed}")
    print(f"Interest index:   {to_decimal(state.interest_index)}")
    print(f"Height:           {pool.current_height}")
    print(f"Collateral ratio: {fmt_rate(pool.protocol_params.collateral_ratio)}")
    return pool


def step_02_deposit(pool: LendingPool):
    step_header(2, "Depositing Collateral",
        "Deposits create a position and grow the pool's collateral.")

    print(f">>> pool.deposit('alice', {CONFIG.alice_deposit:,})")
    pool.deposit("alice", CONFIG.alice_deposit)
    position = pool.get_position("alice")
    print(f"Alice collateral: {position.collateral:,}")
    print(f"Alice health:     {fmt_health(pool.get_health_factor('alice'))}")
    return pool


def step_03_borrow(pool: LendingPool):
    step_header(3, "Borrowing Capacity",
        "Debt may not exceed collateral times the collateral ratio.")

    section_header("Too much")
    try:
        pool.borrow("alice", 8_000_000)
    except InsufficientCollateral as exc:
        print(f"Rejected: {exc}")

    section_header("Within capacity")
    print(f">>> pool.borrow('alice', {CONFIG.alice_borrow:,})")
    pool.borrow("alice", CONFIG.alice_borrow)
    summary = pool.get_account_summary("alice")
    print(f"Debt:       {summary.current_debt:,}")
    print(f"Health:     {fmt_health(summary.health_factor)} ({summary.status})")
    print(f"Max borrow: {summary.max_borrow:,}")
    return pool


# ============================================================================
# PHASE 2: INTEREST (Steps 4-6)
# ============================================================================

def step_04_rates(pool: LendingPool):
    step_header(4, "Rates From Utilization",
        "The borrow rate follows a kinked curve over utilization.")

    rates = pool.get_current_rates()
    print(f"Utilization: {fmt_rate(rates.utilization)}")
    print(f"Borrow rate: {fmt_rate(rates.borrow_rate)}")
    print(f"Supply rate: {fmt_rate(rates.supply_rate)}")
    return pool


def step_05_interest_index(pool: LendingPool):
    step_header(5, "The Global Interest Index",
        "Debt grows through one index shared by all borrowers.")

    print(f">>> pool.advance_height({CONFIG.blocks_per_year:,})   # one year")
    pool.advance_height(CONFIG.blocks_per_year)
    stats = pool.get_pool_stats()
    print(f"Projected index: {to_decimal(stats.interest_index)}")
    print(f"Alice debt:      {pool.get_current_debt('alice'):,}")
    print(f"Stored principal (unchanged until alice interacts): "
          f"{pool.get_position('alice').principal_borrowed:,}")
    return pool


def step_06_repay(pool: LendingPool):
    step_header(6, "Repayment",
        "Repayments are capped at the debt, interest included.")

    debt = pool.get_current_debt("alice")
    print(f">>> pool.repay('alice', {debt + 1_000_000:,})")
    applied = pool.repay("alice", debt + 1_000_000)
    print(f"Applied:    {applied:,}")
    print(f"Debt now:   {pool.get_current_debt('alice'):,}")
    print(f"Health now: {fmt_health(pool.get_health_factor('alice'))}")
    return pool


# ============================================================================
# PHASE 3: LIQUIDATION (Steps 7-9)
# ============================================================================

def step_07_unhealthy(pool: LendingPool):
    step_header(7, "An Unhealthy Position",
        "Below the liquidation threshold, anyone may liquidate.")

    pool.deposit("bob", CONFIG.bob_deposit)
    pool.borrow("bob", CONFIG.bob_borrow)
    summary = pool.get_account_summary("bob")
    print(f"Bob health:   {fmt_health(summary.health_factor)} ({summary.status})")
    print(f"Liquidatable: {summary.liquidatable}")

    try:
        pool.liquidate("carol", "alice", 1)
    except NotLiquidatable as exc:
        print(f"Alice cannot be liquidated: {exc}")
    return pool


def step_08_quote(pool: LendingPool):
    step_header(8, "Liquidation Quote",
        "The close factor caps the repayment; the bonus sweetens the seizure.")

    quote = pool.compute_liquidation("bob")
    print(f"Debt to repay:       {quote.debt_to_repay:,}")
    print(f"Collateral to seize: {quote.collateral_to_seize:,}")
    return pool, quote


def step_09_liquidate(pool: LendingPool, quote):
    step_header(9, "Liquidating",
        "The liquidator repays debt and receives discounted collateral.")

    result = pool.liquidate("carol", "bob", quote.debt_to_repay)
    print(f"Liquidation #{result.liquidation_id}: repaid {result.debt_repaid:,}, "
          f"seized {result.collateral_seized:,}")
    print(f"Bob health after: {fmt_health(pool.get_health_factor('bob'))}")
    stats = pool.get_liquidation_stats()
    print(f"Stats: {stats.count} liquidation(s), {stats.collateral_seized_total:,} seized")
    return pool


# ============================================================================
# PHASE 4: GUARANTEES (Steps 10-11)
# ============================================================================

def step_10_conservation(pool: LendingPool):
    step_header(10, "Conservation",
        "Pool totals always equal the sums over positions.")

    result = pool.verify_conservation()
    print(f"Total collateral {result['total_collateral']:,} == sum {result['sum_collateral']:,}")
    print(f"Total borrowed   {result['total_borrowed']:,} == sum {result['sum_principal']:,}")
    print(f"Valid: {result['valid']}")
    return pool


def step_11_replay(pool: LendingPool):
    step_header(11, "Clone and Replay",
        "The operation log rebuilds the pool exactly.")

    replayed = pool.replay()
    same = all(
        replayed.get_position(a) == pool.get_position(a) for a in pool.list_accounts()
    ) and replayed.pool_state == pool.pool_state
    print(f"Operations logged: {len(pool.operation_log)}")
    print(f"Replay identical:  {same}")

    clone = pool.clone()
    clone.withdraw("alice", 1_000)
    print(f"Clone diverged, original alice collateral: {pool.get_position('alice').collateral:,}")
    return pool


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    try:
        pool = step_01_empty_pool()
        wait_for_enter()
        pool = step_02_deposit(pool)
        wait_for_enter()
        pool = step_03_borrow(pool)
        wait_for_enter()
        pool = step_04_rates(pool)
        wait_for_enter()
        pool = step_05_interest_index(pool)
        wait_for_enter()
        pool = step_06_repay(pool)
        wait_for_enter()
        pool = step_07_unhealthy(pool)
        wait_for_enter()
        pool, quote = step_08_quote(pool)
        wait_for_enter()
        pool = step_09_liquidate(pool, quote)
        wait_for_enter()
        pool = step_10_conservation(pool)
        wait_for_enter()
        step_11_replay(pool)
    except LendingError as exc:
        print(f"\nTutorial stopped: {exc}")
        sys.exit(1)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lendpool/*.py for the pure calculations
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
