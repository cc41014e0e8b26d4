"""
rate_model.py - Utilization-sensitive interest rate curve

Pure functions mapping pool utilization to annual borrow and supply rates.

Key Formulas:
    utilization = total_borrowed / total_collateral      (0 if no collateral, capped at 100%)

    u <= optimal:  borrow = base + (u / optimal) * (optimal_rate - base)
    u >  optimal:  borrow = optimal_rate + ((u - optimal) / (1 - optimal)) * (max_rate - optimal_rate)

    supply = borrow * u * (1 - reserve_factor)

All values are scaled ints (SCALE == 100%). Every division rounds down, and
the curve is continuous at the kink, so the borrow rate never decreases as
utilization rises.
"""

from __future__ import annotations
from decimal import ROUND_DOWN

from .core import SCALE, RateSnapshot
from .fixed_point import mul_div, scaled_mul, require_uint, checked_add
from .params import RateModelParams


def calculate_utilization(total_borrowed: int, total_collateral: int) -> int:
    """
    Share of pooled collateral currently borrowed out, clamped to [0, SCALE].

    Returns 0 when the pool holds no collateral.
    """
    require_uint(total_borrowed, "total_borrowed")
    require_uint(total_collateral, "total_collateral")
    if total_collateral == 0:
        return 0
    return min(mul_div(total_borrowed, SCALE, total_collateral, ROUND_DOWN), SCALE)


def calculate_borrow_rate(utilization: int, params: RateModelParams) -> int:
    """
    Annual borrow rate at the given utilization (kinked curve).

    Utilization above 100% is treated as 100%.
    """
    u = min(require_uint(utilization, "utilization"), SCALE)
    if u <= params.optimal_utilization:
        slope = params.optimal_rate - params.base_rate
        return checked_add(
            params.base_rate,
            mul_div(u, slope, params.optimal_utilization, ROUND_DOWN),
        )
    excess = u - params.optimal_utilization
    slope = params.max_rate - params.optimal_rate
    return checked_add(
        params.optimal_rate,
        mul_div(excess, slope, SCALE - params.optimal_utilization, ROUND_DOWN),
    )


def calculate_supply_rate(borrow_rate: int, utilization: int, params: RateModelParams) -> int:
    """Annual rate earned by suppliers: borrow_rate * utilization * (1 - reserve_factor)."""
    u = min(require_uint(utilization, "utilization"), SCALE)
    gross = scaled_mul(borrow_rate, u, ROUND_DOWN)
    return scaled_mul(gross, SCALE - params.reserve_factor, ROUND_DOWN)


def calculate_rates(total_borrowed: int, total_collateral: int, params: RateModelParams) -> RateSnapshot:
    """
    Utilization, borrow rate and supply rate for the given pool aggregates.

    Example:
        snapshot = calculate_rates(40_000_000, 100_000_000, RateModelParams())
        # utilization 40%, borrow rate 6%, supply rate 2.4%
    """
    utilization = calculate_utilization(total_borrowed, total_collateral)
    borrow_rate = calculate_borrow_rate(utilization, params)
    return RateSnapshot(
        utilization=utilization,
        borrow_rate=borrow_rate,
        supply_rate=calculate_supply_rate(borrow_rate, utilization, params),
    )
