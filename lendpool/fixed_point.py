"""
fixed_point.py - Checked fixed-point arithmetic

All arithmetic on pool quantities goes through these helpers:

    - Amounts are plain ints in the smallest unit of their asset.
    - Rates, ratios, prices and the interest index are ints scaled by SCALE.
    - Every result is checked against [0, MAX_UINT]; nothing wraps.
    - Division always names its rounding direction (ROUND_DOWN or ROUND_UP,
      the same constants the decimal module uses), so each call site states
      whom the rounding favours.

Floats are rejected everywhere. Use to_scaled("0.75") or percent(75) to build
scaled constants from human-readable values.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_DOWN, ROUND_UP, InvalidOperation
from typing import Union

from .core import SCALE, MAX_UINT, MAX_INTERMEDIATE, ArithmeticOverflow


Number = Union[int, str, Decimal]


def require_uint(value: int, name: str = "value") -> int:
    """
    Validate that value is an int within [0, MAX_UINT] and return it.

    Raises:
        TypeError: If value is not an int (bool and float are rejected).
        ArithmeticOverflow: If value is negative or exceeds MAX_UINT.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT:
        raise ArithmeticOverflow(f"{name} out of range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """a + b, raising ArithmeticOverflow above MAX_UINT."""
    result = require_uint(a, "a") + require_uint(b, "b")
    if result > MAX_UINT:
        raise ArithmeticOverflow(f"{a} + {b} overflows")
    return result


def checked_sub(a: int, b: int) -> int:
    """a - b, raising ArithmeticOverflow below zero."""
    result = require_uint(a, "a") - require_uint(b, "b")
    if result < 0:
        raise ArithmeticOverflow(f"{a} - {b} underflows")
    return result


def checked_mul(a: int, b: int) -> int:
    """a * b, raising ArithmeticOverflow above MAX_UINT."""
    result = require_uint(a, "a") * require_uint(b, "b")
    if result > MAX_UINT:
        raise ArithmeticOverflow(f"{a} * {b} overflows")
    return result


def mul_div(a: int, b: int, denominator: int, rounding: str = ROUND_DOWN) -> int:
    """
    Compute a * b / denominator with explicit rounding.

    The product is checked against a 256-bit bound and the quotient against
    MAX_UINT.

    Args:
        a, b: Non-negative ints
        denominator: Positive int
        rounding: ROUND_DOWN (floor) or ROUND_UP (ceiling)

    Raises:
        ZeroDivisionError: If denominator is zero.
        ValueError: If rounding is not ROUND_DOWN or ROUND_UP.
        ArithmeticOverflow: If the product or the result is out of range.
    """
    require_uint(a, "a")
    require_uint(b, "b")
    require_uint(denominator, "denominator")
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    product = a * b
    if product > MAX_INTERMEDIATE:
        raise ArithmeticOverflow(f"{a} * {b} overflows intermediate width")
    if rounding == ROUND_DOWN:
        result = product // denominator
    elif rounding == ROUND_UP:
        result = -(-product // denominator)
    else:
        raise ValueError(f"Unsupported rounding mode: {rounding}")
    if result > MAX_UINT:
        raise ArithmeticOverflow(f"{a} * {b} / {denominator} overflows")
    return result


def scaled_mul(a: int, b: int, rounding: str = ROUND_DOWN) -> int:
    """a * b / SCALE (multiply an amount or a scaled value by a scaled factor)."""
    return mul_div(a, b, SCALE, rounding)


def scaled_div(a: int, b: int, rounding: str = ROUND_DOWN) -> int:
    """a * SCALE / b (ratio of two values, as a scaled factor)."""
    return mul_div(a, SCALE, b, rounding)


def to_scaled(value: Number) -> int:
    """
    Convert a human-readable decimal value to its scaled int.

    to_scaled("0.75") == 75 * 10**16, to_scaled(1) == SCALE.

    Raises:
        TypeError: For floats or other unsupported types.
        ValueError: If the value is not a finite number or needs more than
            18 fractional digits.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Scaled values must be int, str or Decimal, got {type(value).__name__}")
    if isinstance(value, int):
        return require_uint(value * SCALE, "scaled value")
    if isinstance(value, str):
        try:
            value = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Not a decimal number: {value!r}") from None
    if not isinstance(value, Decimal):
        raise TypeError(f"Scaled values must be int, str or Decimal, got {type(value).__name__}")
    if not value.is_finite():
        raise ValueError(f"Scaled value must be finite, got {value}")
    scaled = value * SCALE
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value} has more precision than SCALE supports")
    return require_uint(int(scaled), "scaled value")


def percent(value: Number) -> int:
    """Scaled value of a percentage: percent(75) == to_scaled("0.75")."""
    return mul_div(to_scaled(value), 1, 100)


def to_percent(scaled: int) -> int:
    """Whole percentage of a scaled value, rounded down: to_percent(15 * SCALE // 10) == 150."""
    return mul_div(scaled, 100, SCALE, ROUND_DOWN)


def to_decimal(scaled: int) -> Decimal:
    """Exact Decimal view of a scaled value, for display only."""
    return Decimal(require_uint(scaled, "scaled")) / Decimal(SCALE)
