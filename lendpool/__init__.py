"""
lendpool - Collateralized Lending Pool Accounting

Accounting core of a single-collateral lending pool: deposits, borrows
against a collateral ratio, interest through a global accrual index, and
liquidation of unhealthy positions at a bonus.

Usage:
    from lendpool import LendingPool, StaticPriceFeed, SCALE

    pool = LendingPool("main", price_feed=StaticPriceFeed({"STX": SCALE}))
    pool.deposit("alice", 10_000_000)
    pool.borrow("alice", 5_000_000)
    pool.get_health_factor("alice")          # 150

    pool.advance_height(52_560)              # one year later
    pool.get_current_debt("alice")           # principal plus interest
    pool.repay("alice", 1_000_000)
"""

__version__ = "0.1.0"

# Core types
from .core import (
    Account,
    PriceMap,
    Position,
    PoolState,
    PoolView,
    PositionChange,
    OperationRecord,
    OperationKind,
    RateSnapshot,
    LiquidationQuote,
    LiquidationResult,
    LiquidationRecord,
    LiquidationStats,
    PoolStats,
    AccountSummary,
    LendingError,
    InvalidAmount,
    InsufficientCollateral,
    HealthFactorTooLow,
    NotLiquidatable,
    AmountExceedsCloseFactor,
    InsufficientCollateralToSeize,
    PriceUnavailable,
    Unauthorized,
    SelfLiquidation,
    ArithmeticOverflow,
    SCALE,
    MAX_UINT,
    INITIAL_INTEREST_INDEX,
    HEALTH_FACTOR_NO_DEBT,
    HEALTH_STATUS_HEALTHY,
    HEALTH_STATUS_WARNING,
    HEALTH_STATUS_DANGER,
)

# Fixed-point arithmetic
from .fixed_point import (
    checked_add,
    checked_sub,
    checked_mul,
    mul_div,
    scaled_mul,
    scaled_div,
    to_scaled,
    to_decimal,
    percent,
    to_percent,
)

# Configuration
from .params import RateModelParams, ProtocolParams

# Pure calculations
from .rate_model import (
    calculate_utilization,
    calculate_borrow_rate,
    calculate_supply_rate,
    calculate_rates,
)
from .interest import (
    calculate_accrual,
    calculate_current_debt,
    settle_position,
)
from .health import (
    calculate_health_factor,
    health_factor_percent,
    calculate_max_borrow,
    classify_health,
)
from .liquidation import (
    is_liquidatable,
    calculate_liquidation,
    calculate_seizure,
)

# Price feeds
from .price_feed import PriceFeed, StaticPriceFeed, TimeSeriesPriceFeed

# Pool
from .pool import LendingPool

__all__ = [
    # Core
    'Account', 'PriceMap', 'Position', 'PoolState', 'PoolView', 'PositionChange',
    'OperationRecord', 'OperationKind', 'RateSnapshot', 'LiquidationQuote',
    'LiquidationResult', 'LiquidationRecord', 'LiquidationStats', 'PoolStats',
    'AccountSummary',
    'SCALE', 'MAX_UINT', 'INITIAL_INTEREST_INDEX', 'HEALTH_FACTOR_NO_DEBT',
    'HEALTH_STATUS_HEALTHY', 'HEALTH_STATUS_WARNING', 'HEALTH_STATUS_DANGER',
    # Exceptions
    'LendingError', 'InvalidAmount', 'InsufficientCollateral', 'HealthFactorTooLow',
    'NotLiquidatable', 'AmountExceedsCloseFactor', 'InsufficientCollateralToSeize',
    'PriceUnavailable', 'Unauthorized', 'SelfLiquidation', 'ArithmeticOverflow',
    # Fixed point
    'checked_add', 'checked_sub', 'checked_mul', 'mul_div', 'scaled_mul', 'scaled_div',
    'to_scaled', 'to_decimal', 'percent', 'to_percent',
    # Configuration
    'RateModelParams', 'ProtocolParams',
    # Calculations
    'calculate_utilization', 'calculate_borrow_rate', 'calculate_supply_rate', 'calculate_rates',
    'calculate_accrual', 'calculate_current_debt', 'settle_position',
    'calculate_health_factor', 'health_factor_percent', 'calculate_max_borrow', 'classify_health',
    'is_liquidatable', 'calculate_liquidation', 'calculate_seizure',
    # Price feeds
    'PriceFeed', 'StaticPriceFeed', 'TimeSeriesPriceFeed',
    # Pool
    'LendingPool',
]
