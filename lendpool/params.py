"""
params.py - Pool configuration

Two frozen parameter sets configure a pool:

    RateModelParams: the kinked interest rate curve
    ProtocolParams:  collateral, health and liquidation parameters

Both carry the protocol defaults, validate themselves on construction, and
can be loaded from plain mappings (e.g. parsed JSON) with from_mapping().
Scaled fields are ints where SCALE == 100%; from_mapping() also accepts
decimal strings such as "0.75".

Parameters change only through LendingPool's admin surface, which swaps in a
new frozen instance.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any, Mapping

from .core import SCALE
from .fixed_point import percent, to_scaled, require_uint


# Default rate curve: 2% base, 10% at 80% utilization, 50% at 100%.
DEFAULT_BASE_RATE = percent(2)
DEFAULT_OPTIMAL_RATE = percent(10)
DEFAULT_MAX_RATE = percent(50)
DEFAULT_OPTIMAL_UTILIZATION = percent(80)
DEFAULT_RESERVE_FACTOR = 0

# One block every ~10 minutes.
DEFAULT_PERIODS_PER_YEAR = 52_560

DEFAULT_COLLATERAL_RATIO = percent(75)
DEFAULT_MIN_HEALTH_FACTOR = percent(120)
DEFAULT_LIQUIDATION_THRESHOLD = percent(120)
DEFAULT_LIQUIDATION_BONUS = percent(5)
DEFAULT_CLOSE_FACTOR = percent(50)
DEFAULT_COLLATERAL_ASSET = "STX"
DEFAULT_BORROW_ASSET = "USD"


def _coerce_scaled(name: str, value: Any) -> int:
    """Accept an already-scaled int or a decimal string/Decimal."""
    if isinstance(value, (str, Decimal)):
        return to_scaled(value)
    if isinstance(value, float):
        raise TypeError(f"{name} must not be a float, use a decimal string instead")
    return require_uint(value, name)


@dataclass(frozen=True, slots=True)
class RateModelParams:
    """
    Kinked utilization curve.

    Attributes:
        base_rate: Borrow rate at zero utilization.
        optimal_rate: Borrow rate at optimal_utilization (the kink).
        max_rate: Borrow rate at 100% utilization.
        optimal_utilization: Utilization at the kink, strictly between 0 and 100%.
        reserve_factor: Share of interest withheld from suppliers.
        periods_per_year: Heights per year, used to turn annual rates into
            per-height growth.
    """
    base_rate: int = DEFAULT_BASE_RATE
    optimal_rate: int = DEFAULT_OPTIMAL_RATE
    max_rate: int = DEFAULT_MAX_RATE
    optimal_utilization: int = DEFAULT_OPTIMAL_UTILIZATION
    reserve_factor: int = DEFAULT_RESERVE_FACTOR
    periods_per_year: int = DEFAULT_PERIODS_PER_YEAR

    def __post_init__(self):
        for f in fields(self):
            require_uint(getattr(self, f.name), f.name)
        if not self.base_rate <= self.optimal_rate <= self.max_rate:
            raise ValueError(
                f"Rates must satisfy base_rate <= optimal_rate <= max_rate, got "
                f"{self.base_rate}, {self.optimal_rate}, {self.max_rate}"
            )
        if not 0 < self.optimal_utilization < SCALE:
            raise ValueError(
                f"optimal_utilization must be strictly between 0 and 100%, got {self.optimal_utilization}"
            )
        if self.reserve_factor > SCALE:
            raise ValueError(f"reserve_factor cannot exceed 100%, got {self.reserve_factor}")
        if self.periods_per_year == 0:
            raise ValueError("periods_per_year must be positive")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RateModelParams:
        """Build from a mapping; unknown keys raise ValueError, missing keys take defaults."""
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown rate model parameters: {sorted(unknown)}")
        values = {}
        for name, value in raw.items():
            if name == "periods_per_year":
                values[name] = require_uint(value, name)
            else:
                values[name] = _coerce_scaled(name, value)
        return cls(**values)

    def with_changes(self, **changes: Any) -> RateModelParams:
        """Return a validated copy with the named fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class ProtocolParams:
    """
    Collateral, health and liquidation parameters.

    Attributes:
        collateral_ratio: Fraction of collateral that may be borrowed against (LTV).
        min_health_factor: Floor a withdraw may not cross while debt is open.
        liquidation_threshold: Health factor below which a position can be liquidated.
        liquidation_bonus: Premium paid to liquidators on seized collateral.
        close_factor: Largest fraction of debt one liquidation may repay.
        collateral_asset: Price feed symbol of the collateral asset.
        borrow_asset: Price feed symbol of the borrowed asset.
    """
    collateral_ratio: int = DEFAULT_COLLATERAL_RATIO
    min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR
    liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD
    liquidation_bonus: int = DEFAULT_LIQUIDATION_BONUS
    close_factor: int = DEFAULT_CLOSE_FACTOR
    collateral_asset: str = DEFAULT_COLLATERAL_ASSET
    borrow_asset: str = DEFAULT_BORROW_ASSET

    def __post_init__(self):
        for name in ("collateral_ratio", "min_health_factor", "liquidation_threshold",
                     "liquidation_bonus", "close_factor"):
            require_uint(getattr(self, name), name)
        if not 0 < self.collateral_ratio <= SCALE:
            raise ValueError(f"collateral_ratio must be in (0, 100%], got {self.collateral_ratio}")
        if self.liquidation_threshold == 0:
            raise ValueError("liquidation_threshold must be positive")
        if self.liquidation_threshold > self.min_health_factor:
            raise ValueError(
                f"liquidation_threshold ({self.liquidation_threshold}) cannot exceed "
                f"min_health_factor ({self.min_health_factor})"
            )
        if self.liquidation_bonus > SCALE:
            raise ValueError(f"liquidation_bonus cannot exceed 100%, got {self.liquidation_bonus}")
        if not 0 < self.close_factor <= SCALE:
            raise ValueError(f"close_factor must be in (0, 100%], got {self.close_factor}")
        if not self.collateral_asset or not self.collateral_asset.strip():
            raise ValueError("collateral_asset cannot be empty")
        if not self.borrow_asset or not self.borrow_asset.strip():
            raise ValueError("borrow_asset cannot be empty")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProtocolParams:
        """Build from a mapping; unknown keys raise ValueError, missing keys take defaults."""
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown protocol parameters: {sorted(unknown)}")
        values = {}
        for name, value in raw.items():
            if name in ("collateral_asset", "borrow_asset"):
                values[name] = str(value)
            else:
                values[name] = _coerce_scaled(name, value)
        return cls(**values)

    def with_changes(self, **changes: Any) -> ProtocolParams:
        """Return a validated copy with the named fields replaced."""
        return replace(self, **changes)
