"""
interest.py - Global interest accrual index and debt replay

Interest compounds through one pool-wide index instead of per-position
timers. A position stores its principal together with the index at its last
interaction; its live debt is the principal scaled by how far the index has
moved since:

    index'  = index * (1 + borrow_rate * elapsed / periods_per_year)    (rounded down)
    debt    = principal * index / index_snapshot                       (rounded up)

Both functions are pure. LendingPool calls calculate_accrual() at the start
of every mutating operation, and read paths use it to project the index to
the current height without committing anything.
"""

from __future__ import annotations
from dataclasses import replace
from decimal import ROUND_DOWN, ROUND_UP
from typing import Tuple

from .core import SCALE, Position, PoolState
from .fixed_point import mul_div, scaled_mul, checked_add, checked_sub, require_uint
from .params import RateModelParams
from .rate_model import calculate_rates


def calculate_index_growth(borrow_rate: int, elapsed: int, periods_per_year: int) -> int:
    """Scaled growth of the index over `elapsed` heights at an annual rate (rounded down)."""
    return mul_div(borrow_rate, elapsed, periods_per_year, ROUND_DOWN)


def calculate_accrual(state: PoolState, params: RateModelParams, current_height: int) -> PoolState:
    """
    Bring the interest index forward to current_height.

    PURE FUNCTION - returns a new PoolState, never mutates.

    The borrow rate is taken from the utilization at the start of the
    interval. When no height has elapsed the state is returned unchanged, so
    accruing twice at one height is a no-op.

    Args:
        state: Pool aggregates and index as last committed
        params: Rate curve
        current_height: Height to accrue to

    Returns:
        PoolState with interest_index and last_accrual_height updated

    Raises:
        ValueError: If current_height is before the last accrual height.
    """
    require_uint(current_height, "current_height")
    if current_height < state.last_accrual_height:
        raise ValueError(
            f"Cannot accrue backwards: {current_height} < {state.last_accrual_height}"
        )
    elapsed = current_height - state.last_accrual_height
    if elapsed == 0:
        return state

    rates = calculate_rates(state.total_borrowed, state.total_collateral, params)
    growth = calculate_index_growth(rates.borrow_rate, elapsed, params.periods_per_year)
    new_index = scaled_mul(state.interest_index, checked_add(SCALE, growth), ROUND_DOWN)
    return replace(state, interest_index=new_index, last_accrual_height=current_height)


def calculate_current_debt(position: Position, interest_index: int) -> int:
    """
    Live debt of a position at the given index, interest included.

    Rounds up so that replayed debt is never understated. Returns the stored
    principal unchanged when the index has not moved, and 0 for positions
    without principal.

    Raises:
        ValueError: If interest_index is below the position's snapshot.
    """
    require_uint(interest_index, "interest_index")
    if position.principal_borrowed == 0:
        return 0
    if interest_index == position.index_snapshot:
        return position.principal_borrowed
    if interest_index < position.index_snapshot:
        raise ValueError(
            f"Interest index {interest_index} is below position snapshot {position.index_snapshot}"
        )
    return mul_div(position.principal_borrowed, interest_index, position.index_snapshot, ROUND_UP)


def settle_position(position: Position, interest_index: int, height: int) -> Tuple[Position, int]:
    """
    Fold accrued interest into principal and re-snapshot the index.

    Returns:
        (settled_position, interest) where interest is the amount added to
        principal. The pool adds it to total_borrowed so that the aggregate
        keeps matching the sum of principals.
    """
    debt = calculate_current_debt(position, interest_index)
    interest = checked_sub(debt, position.principal_borrowed)
    settled = replace(
        position,
        principal_borrowed=debt,
        index_snapshot=interest_index,
        last_interaction_height=height,
    )
    return settled, interest
