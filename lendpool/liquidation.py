"""
liquidation.py - Liquidation engine read path

Pure calculations behind LendingPool.is_liquidatable(),
compute_liquidation() and liquidate():

    liquidatable        = debt > 0 and health_factor < liquidation_threshold
    debt_to_repay       = debt * close_factor                                  (rounded down)
    collateral_to_seize = debt_to_repay * (1 + bonus) * borrow_price / collateral_price
    seized(repay)       = collateral_to_seize * repay / debt_to_repay          (rounded down)

Every rounding goes against the liquidator: they repay the amount they ask
for and receive at most the pro-rata share of the quoted seizure.
"""

from __future__ import annotations
from decimal import ROUND_DOWN

from .core import SCALE, LiquidationQuote
from .fixed_point import mul_div, scaled_mul, checked_add, require_uint
from .health import calculate_health_factor
from .params import ProtocolParams


def is_liquidatable(collateral: int, debt: int, params: ProtocolParams) -> bool:
    """True when the position has debt and its health factor is below the threshold."""
    if debt == 0:
        return False
    health_factor = calculate_health_factor(collateral, debt, params.collateral_ratio)
    return health_factor < params.liquidation_threshold


def calculate_liquidation(
    debt: int,
    collateral_price: int,
    borrow_price: int,
    params: ProtocolParams,
) -> LiquidationQuote:
    """
    Largest repayment allowed in one call and the collateral it buys.

    PURE FUNCTION - does not check whether the position is liquidatable.

    Args:
        debt: Current debt of the position (interest included)
        collateral_price: Scaled price of one collateral unit
        borrow_price: Scaled price of one borrow unit
        params: Close factor and liquidation bonus

    Returns:
        LiquidationQuote(debt_to_repay, collateral_to_seize)

    Example:
        quote = calculate_liquidation(7_400_000, SCALE, SCALE, ProtocolParams())
        # LiquidationQuote(debt_to_repay=3_700_000, collateral_to_seize=3_885_000)
    """
    require_uint(debt, "debt")
    if require_uint(collateral_price, "collateral_price") == 0:
        raise ValueError("collateral_price must be positive")
    if require_uint(borrow_price, "borrow_price") == 0:
        raise ValueError("borrow_price must be positive")

    debt_to_repay = scaled_mul(debt, params.close_factor, ROUND_DOWN)
    value_with_bonus = scaled_mul(
        debt_to_repay, checked_add(SCALE, params.liquidation_bonus), ROUND_DOWN
    )
    collateral_to_seize = mul_div(value_with_bonus, borrow_price, collateral_price, ROUND_DOWN)
    return LiquidationQuote(debt_to_repay=debt_to_repay, collateral_to_seize=collateral_to_seize)


def calculate_seizure(quote: LiquidationQuote, repay_amount: int) -> int:
    """
    Collateral seized for a partial (or full) repayment of the quote.

    Raises:
        ValueError: If repay_amount exceeds quote.debt_to_repay.
    """
    require_uint(repay_amount, "repay_amount")
    if repay_amount > quote.debt_to_repay:
        raise ValueError(
            f"repay_amount {repay_amount} exceeds debt_to_repay {quote.debt_to_repay}"
        )
    if repay_amount == quote.debt_to_repay:
        return quote.collateral_to_seize
    return mul_div(quote.collateral_to_seize, repay_amount, quote.debt_to_repay, ROUND_DOWN)
