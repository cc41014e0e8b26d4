"""
health.py - Health factor and borrowing capacity

    health_factor = collateral * collateral_ratio / debt

Health factors are scaled ints (SCALE == 1.00x); health_factor_percent()
gives the integer percentage shown to callers (150 == 1.50x). A position
without debt reports HEALTH_FACTOR_NO_DEBT in both forms.

Collateral and debt are compared in raw units here: the collateral ratio
already prices one collateral unit against one borrow unit. Only the
liquidation path converts between the two assets with feed prices.
"""

from __future__ import annotations
from decimal import ROUND_DOWN

from .core import (
    HEALTH_FACTOR_NO_DEBT, HEALTHY_THRESHOLD, WARNING_THRESHOLD,
    HEALTH_STATUS_HEALTHY, HEALTH_STATUS_WARNING, HEALTH_STATUS_DANGER,
)
from .fixed_point import scaled_mul, to_percent, require_uint


def calculate_health_factor(collateral: int, debt: int, collateral_ratio: int) -> int:
    """
    Scaled health factor, rounded down; HEALTH_FACTOR_NO_DEBT when debt is 0.

    Saturates just below the sentinel for dust debts against large collateral.
    """
    require_uint(collateral, "collateral")
    require_uint(debt, "debt")
    require_uint(collateral_ratio, "collateral_ratio")
    if debt == 0:
        return HEALTH_FACTOR_NO_DEBT
    return min(collateral * collateral_ratio // debt, HEALTH_FACTOR_NO_DEBT - 1)


def health_factor_percent(health_factor: int) -> int:
    """Integer percentage of a scaled health factor (sentinel passes through)."""
    if health_factor == HEALTH_FACTOR_NO_DEBT:
        return HEALTH_FACTOR_NO_DEBT
    return to_percent(health_factor)


def calculate_max_borrow(collateral: int, debt: int, collateral_ratio: int) -> int:
    """Additional amount the position could borrow right now (0 if none)."""
    capacity = scaled_mul(collateral, collateral_ratio, ROUND_DOWN)
    return max(capacity - require_uint(debt, "debt"), 0)


def classify_health(health_factor: int) -> str:
    """
    Status band of a scaled health factor.

    HEALTHY at 1.50x and above (or no debt), WARNING from 1.20x, DANGER below.
    """
    if health_factor >= HEALTHY_THRESHOLD:
        return HEALTH_STATUS_HEALTHY
    if health_factor >= WARNING_THRESHOLD:
        return HEALTH_STATUS_WARNING
    return HEALTH_STATUS_DANGER
