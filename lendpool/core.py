"""
Core types for the lending pool accounting system.

This module provides the foundational data structures for the pool:
1. Constants: the fixed-point scale, numeric bounds, sentinels and status bands
2. Immutable records: Position, PoolState, liquidation records and results
3. Exceptions: LendingError and the domain-specific failure kinds
4. Protocols: PoolView for read-only pool access

Every record here is frozen. State changes are expressed by building a new
record (dataclasses.replace) and handing it to LendingPool, which is the only
place that commits state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# The single fixed-point scale. Rates, ratios, prices and the interest index
# are ints where SCALE represents 1.0 (100%). Amounts are unscaled ints in
# the smallest indivisible unit of their asset.
SCALE = 10 ** 18

# Largest representable value (an unsigned 128-bit word). Results beyond it
# raise ArithmeticOverflow instead of wrapping.
MAX_UINT = 2 ** 128 - 1

# Bound for intermediate products inside mul_div (a 256-bit word).
MAX_INTERMEDIATE = 2 ** 256 - 1

# Interest index at genesis ("1.0x").
INITIAL_INTEREST_INDEX = SCALE

# Health factor reported for a position without debt. It compares greater
# than every threshold, so no-debt positions are never liquidatable.
HEALTH_FACTOR_NO_DEBT = MAX_UINT

# Health status bands (scaled health factor lower bounds).
HEALTH_STATUS_HEALTHY = "HEALTHY"
HEALTH_STATUS_WARNING = "WARNING"
HEALTH_STATUS_DANGER = "DANGER"
HEALTHY_THRESHOLD = 15 * SCALE // 10      # 1.50x
WARNING_THRESHOLD = 12 * SCALE // 10      # 1.20x


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account identity (principal / wallet address).
Account = str

# Mapping from asset symbol to fixed-point price.
PriceMap = Dict[str, int]


# ============================================================================
# ENUMS
# ============================================================================

class OperationKind(Enum):
    """Kind of a committed pool operation, used in the audit trail."""
    DEPOSIT = "deposit"
    BORROW = "borrow"
    REPAY = "repay"
    WITHDRAW = "withdraw"
    LIQUIDATE = "liquidate"
    ACCRUE = "accrue"
    SET_RATE_PARAMS = "set_rate_params"
    SET_PROTOCOL_PARAMS = "set_protocol_params"
    SET_ADMIN = "set_admin"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending pool errors."""
    pass


class InvalidAmount(LendingError):
    """Raised when an operation is called with a zero or negative amount."""
    pass


class InsufficientCollateral(LendingError):
    """Raised when a borrow would exceed the collateral ratio, or a withdraw exceeds the deposit."""
    pass


class HealthFactorTooLow(LendingError):
    """Raised when a withdraw would leave an indebted position below the minimum health factor."""
    pass


class NotLiquidatable(LendingError):
    """Raised when liquidation is attempted on a healthy or debt-free position."""
    pass


class AmountExceedsCloseFactor(LendingError):
    """Raised when a liquidator tries to repay more than the close factor allows."""
    pass


class InsufficientCollateralToSeize(LendingError):
    """Raised when a seizure would exceed the collateral held by the position."""
    pass


class PriceUnavailable(LendingError):
    """Raised when the price feed has no fresh price for an asset."""
    pass


class Unauthorized(LendingError):
    """Raised when a non-admin account calls an administrative operation."""
    pass


class SelfLiquidation(LendingError):
    """Raised when an account tries to liquidate its own position."""
    pass


class ArithmeticOverflow(LendingError):
    """Raised when a fixed-point result leaves the representable range [0, MAX_UINT]."""
    pass


# ============================================================================
# POSITION AND POOL STATE
# ============================================================================

@dataclass(frozen=True, slots=True)
class Position:
    """
    One account's position in the pool.

    Attributes:
        account: Owner of the position.
        collateral: Deposited collateral, in collateral-asset units.
        principal_borrowed: Debt recorded at the last interaction, before the
            interest accrued since then.
        index_snapshot: Global interest index at the last interaction.
        last_interaction_height: Height of the last mutating operation.
    """
    account: Account
    collateral: int = 0
    principal_borrowed: int = 0
    index_snapshot: int = INITIAL_INTEREST_INDEX
    last_interaction_height: int = 0

    def __post_init__(self):
        if not self.account or not self.account.strip():
            raise ValueError("Position account cannot be empty")
        for name in ("collateral", "principal_borrowed", "index_snapshot", "last_interaction_height"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Position {name} must be int, got {type(value).__name__}")
            if value < 0:
                raise ValueError(f"Position {name} cannot be negative, got {value}")
        if self.index_snapshot == 0:
            raise ValueError("Position index_snapshot must be positive")

    @classmethod
    def empty(cls, account: Account, index: int, height: int = 0) -> Position:
        """
        Default position for an account that has never interacted.

        The snapshot is taken at the given (current) index so that interest
        is only ever charged from the first interaction onward.
        """
        return cls(account=account, index_snapshot=index, last_interaction_height=height)

    def is_empty(self) -> bool:
        """A zeroed position is equivalent to an absent one."""
        return self.collateral == 0 and self.principal_borrowed == 0


@dataclass(frozen=True, slots=True)
class PoolState:
    """
    Global pool aggregates and the interest accrual index.

    Attributes:
        total_collateral: Sum of collateral over all positions.
        total_borrowed: Sum of principal_borrowed over all positions.
        interest_index: Cumulative interest multiplier since genesis (SCALE == 1.0x).
        last_accrual_height: Height at which the index was last brought forward.
        version: Commit counter, incremented by every committed change.
    """
    total_collateral: int = 0
    total_borrowed: int = 0
    interest_index: int = INITIAL_INTEREST_INDEX
    last_accrual_height: int = 0
    version: int = 0


# ============================================================================
# RATE, LIQUIDATION AND SUMMARY RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class RateSnapshot:
    """Utilization and annual rates at one point in time (all scaled)."""
    utilization: int
    borrow_rate: int
    supply_rate: int


@dataclass(frozen=True, slots=True)
class LiquidationQuote:
    """Maximum repayment a liquidator may make and the collateral it buys."""
    debt_to_repay: int
    collateral_to_seize: int


@dataclass(frozen=True, slots=True)
class LiquidationResult:
    """Outcome of a successful liquidation."""
    collateral_seized: int
    debt_repaid: int
    liquidation_id: int


@dataclass(frozen=True, slots=True)
class LiquidationRecord:
    """Append-only log entry for one liquidation."""
    id: int
    liquidator: Account
    account: Account
    collateral_seized: int
    debt_repaid: int
    height: int


@dataclass(frozen=True, slots=True)
class LiquidationStats:
    """Running totals over every liquidation since genesis."""
    count: int = 0
    collateral_seized_total: int = 0
    debt_repaid_total: int = 0


@dataclass(frozen=True, slots=True)
class PoolStats:
    """Pool-wide figures at the current height."""
    total_collateral: int
    total_borrowed: int
    utilization: int
    borrow_rate: int
    supply_rate: int
    interest_index: int
    height: int


@dataclass(frozen=True, slots=True)
class AccountSummary:
    """Everything a caller needs to display one account's position."""
    account: Account
    collateral: int
    principal_borrowed: int
    current_debt: int
    health_factor: int          # percentage, or HEALTH_FACTOR_NO_DEBT
    max_borrow: int
    status: str
    liquidatable: bool


# ============================================================================
# AUDIT TRAIL
# ============================================================================

@dataclass(frozen=True, slots=True)
class PositionChange:
    """
    Before/after snapshots of one position touched by an operation.

    old_position is None when the account had no stored position.
    """
    account: Account
    old_position: Optional[Position]
    new_position: Position

    def changed_fields(self) -> Dict[str, Tuple[int, int]]:
        """Fields that differ between old and new position, as (old, new) pairs."""
        old = self.old_position or Position.empty(self.account, self.new_position.index_snapshot)
        changes = {}
        for name in ("collateral", "principal_borrowed", "index_snapshot", "last_interaction_height"):
            old_val = getattr(old, name)
            new_val = getattr(self.new_position, name)
            if old_val != new_val:
                changes[name] = (old_val, new_val)
        return changes


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """
    An executed, immutable record of one committed pool operation.

    Attributes:
        sequence: Monotonic sequence number within the pool.
        kind: What was done.
        caller: Account that invoked the operation.
        account: Position owner the operation acted on (same as caller except
            for liquidations and admin operations).
        amount: Requested amount (0 for operations without one).
        height: Height at which the operation ran.
        result: Value returned to the caller.
        position_changes: Positions written by the operation.
        pool_before: Pool state before the operation (pre-accrual).
        pool_after: Pool state committed by the operation.
        payload: Extra operation data (new parameters, liquidation id).
    """
    sequence: int
    kind: OperationKind
    caller: Account
    account: Account
    amount: int
    height: int
    result: object
    position_changes: Tuple[PositionChange, ...]
    pool_before: PoolState
    pool_after: PoolState
    payload: Dict[str, object] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"OperationRecord(#{self.sequence} {self.kind.value} {self.account} "
            f"amount={self.amount} height={self.height} result={self.result!r})"
        )


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PoolView(Protocol):
    """
    Read-only interface to pool state.

    Functions accepting a PoolView declare that they only read. LendingPool
    implements this protocol alongside its mutating operations.
    """

    @property
    def current_height(self) -> int:
        """Return the current logical height of the pool."""
        ...

    @property
    def pool_state(self) -> PoolState:
        """Return the committed pool aggregates."""
        ...

    def get_position(self, account: Account) -> Position:
        """Return the stored position, or the default position if none exists."""
        ...

    def list_accounts(self) -> Tuple[Account, ...]:
        """Return all accounts with a stored position, sorted."""
        ...
