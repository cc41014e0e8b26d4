"""
pool.py - Stateful lending pool ledger

The LendingPool class is the central state manager of the lending system.
It is the only module that mutates state.

Key responsibilities:
    - Implements the PoolView protocol for read-only access
    - Runs deposit / borrow / repay / withdraw / liquidate as atomic
      transactions against positions and pool aggregates
    - Brings the interest index forward before every mutation
    - Keeps the liquidation log, liquidation statistics and an audit trail
      of every committed operation (enabling clone() and replay())
    - Guards all state with a single lock

Every operation follows the same shape:

    1. accrue the index to the current height (pure, not yet committed)
    2. settle the target position against the accrued index
    3. validate, raising a LendingError subclass on failure
    4. commit the new position, pool state and logs in one step

Because steps 1-3 only build new frozen records, a failure anywhere before
step 4 leaves the pool exactly as it was.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from decimal import ROUND_DOWN
from typing import Dict, Iterator, List, Optional, Tuple, Any
import logging
import threading

from .core import (
    # Types
    Account, Position, PoolState, PositionChange, OperationRecord, OperationKind,
    RateSnapshot, LiquidationQuote, LiquidationResult, LiquidationRecord,
    LiquidationStats, PoolStats, AccountSummary,
    # Constants
    MAX_UINT,
    # Exceptions
    LendingError, InvalidAmount, InsufficientCollateral, HealthFactorTooLow,
    NotLiquidatable, AmountExceedsCloseFactor, InsufficientCollateralToSeize,
    PriceUnavailable, Unauthorized, SelfLiquidation, ArithmeticOverflow,
)
from .fixed_point import checked_add, checked_sub, scaled_mul, require_uint
from .health import (
    calculate_health_factor, health_factor_percent, calculate_max_borrow, classify_health,
)
from .interest import calculate_accrual, calculate_current_debt, settle_position
from .liquidation import is_liquidatable, calculate_liquidation, calculate_seizure
from .params import RateModelParams, ProtocolParams
from .price_feed import PriceFeed
from .rate_model import calculate_rates

logger = logging.getLogger(__name__)


class _RecordedPrices:
    """Price feed answering with the prices captured in a liquidation record."""

    def __init__(self, prices: Dict[str, int]):
        self.prices = dict(prices)

    def get_price(self, asset: str) -> int:
        if asset not in self.prices:
            raise PriceUnavailable(f"No recorded price for {asset}")
        return self.prices[asset]

    def is_fresh(self, asset: str) -> bool:
        return asset in self.prices


class LendingPool:
    """
    Single-collateral, single-borrow-asset lending pool.

    Implements the PoolView protocol. All public methods are safe to call
    from several threads. Positions, pool aggregates, parameters and logs
    share one re-entrant lock.

    Example:
        pool = LendingPool("main", price_feed=StaticPriceFeed({"STX": SCALE}))
        pool.deposit("alice", 10_000_000)
        pool.borrow("alice", 5_000_000)
        pool.get_health_factor("alice")      # 150
    """

    def __init__(
        self,
        name: str,
        price_feed: Optional[PriceFeed] = None,
        rate_params: Optional[RateModelParams] = None,
        protocol_params: Optional[ProtocolParams] = None,
        admin: Account = "admin",
        initial_height: int = 0,
        verbose: bool = True,
    ):
        """
        Create a pool at genesis.

        Args:
            name: Pool identifier (used in log lines)
            price_feed: Source of collateral/borrow prices for liquidations
            rate_params: Interest rate curve (default: RateModelParams())
            protocol_params: Collateral and liquidation parameters (default: ProtocolParams())
            admin: Account allowed to change parameters
            initial_height: Starting logical height
            verbose: Log committed operations at INFO instead of DEBUG
        """
        if not admin or not admin.strip():
            raise ValueError("admin cannot be empty")
        require_uint(initial_height, "initial_height")
        self.name = name
        self.price_feed = price_feed
        self.rate_params = rate_params or RateModelParams()
        self.protocol_params = protocol_params or ProtocolParams()
        self.admin = admin
        self.verbose = verbose
        self.operation_log: List[OperationRecord] = []
        self._genesis = (self.rate_params, self.protocol_params, admin, initial_height)
        self._height = initial_height
        self._state = PoolState(last_accrual_height=initial_height)
        self._positions: Dict[Account, Position] = {}
        self._stats = LiquidationStats()
        self._liquidations: List[LiquidationRecord] = []
        self._next_liquidation_id = 1
        self._next_sequence = 0
        self._lock = threading.RLock()

    # ========================================================================
    # PoolView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_height(self) -> int:
        """Current logical height of the pool."""
        return self._height

    @property
    def pool_state(self) -> PoolState:
        """Pool aggregates as last committed (the index may lag the current height)."""
        with self._lock:
            return self._state

    def get_position(self, account: Account) -> Position:
        """
        Stored position of an account.

        Accounts that never interacted get the default position: no
        collateral, no debt, snapshot at the committed index.
        """
        self._require_account(account)
        with self._lock:
            stored = self._positions.get(account)
            if stored is not None:
                return stored
            return Position.empty(account, self._state.interest_index, self._height)

    def list_accounts(self) -> Tuple[Account, ...]:
        """All accounts with a stored position, sorted."""
        with self._lock:
            return tuple(sorted(self._positions))

    # ========================================================================
    # READ SURFACE
    # ========================================================================

    def get_current_debt(self, account: Account) -> int:
        """Debt of an account at the current height, interest included."""
        with self._lock:
            index = self._projected_state().interest_index
            return calculate_current_debt(self.get_position(account), index)

    def get_health_factor(self, account: Account) -> int:
        """
        Health factor as an integer percentage (150 == 1.50x).

        Returns HEALTH_FACTOR_NO_DEBT for positions without debt.
        """
        with self._lock:
            position = self.get_position(account)
            debt = self.get_current_debt(account)
            return health_factor_percent(
                calculate_health_factor(position.collateral, debt, self.protocol_params.collateral_ratio)
            )

    def is_liquidatable(self, account: Account) -> bool:
        """True if the account has debt and its health factor is below the liquidation threshold."""
        with self._lock:
            position = self.get_position(account)
            debt = self.get_current_debt(account)
            return is_liquidatable(position.collateral, debt, self.protocol_params)

    def compute_liquidation(self, account: Account) -> LiquidationQuote:
        """
        Largest repayment a liquidator may make on this account and the collateral it buys.

        Raises:
            NotLiquidatable: If the position is healthy or has no debt.
            PriceUnavailable: If the price feed has no fresh price.
        """
        with self._lock:
            position = self.get_position(account)
            debt = self.get_current_debt(account)
            if not is_liquidatable(position.collateral, debt, self.protocol_params):
                raise NotLiquidatable(f"Position of {account} is not liquidatable")
            quote, _ = self._quote(debt)
            return quote

    def get_liquidation_stats(self) -> LiquidationStats:
        """Running totals over all liquidations."""
        with self._lock:
            return self._stats

    def get_liquidation(self, liquidation_id: int) -> LiquidationRecord:
        """
        Look up a liquidation record by id.

        Raises:
            KeyError: If no liquidation has that id.
        """
        with self._lock:
            if not 1 <= liquidation_id <= len(self._liquidations):
                raise KeyError(f"No liquidation with id {liquidation_id}")
            return self._liquidations[liquidation_id - 1]

    def list_liquidations(self, account: Optional[Account] = None) -> List[LiquidationRecord]:
        """All liquidation records in id order, optionally only those against one account."""
        with self._lock:
            if account is None:
                return list(self._liquidations)
            return [r for r in self._liquidations if r.account == account]

    def get_current_rates(self) -> RateSnapshot:
        """Utilization and annual rates implied by the committed aggregates."""
        with self._lock:
            return calculate_rates(self._state.total_borrowed, self._state.total_collateral, self.rate_params)

    def get_pool_stats(self) -> PoolStats:
        """Pool-wide figures, with the index projected to the current height."""
        with self._lock:
            projected = self._projected_state()
            rates = self.get_current_rates()
            return PoolStats(
                total_collateral=projected.total_collateral,
                total_borrowed=projected.total_borrowed,
                utilization=rates.utilization,
                borrow_rate=rates.borrow_rate,
                supply_rate=rates.supply_rate,
                interest_index=projected.interest_index,
                height=self._height,
            )

    def get_account_summary(self, account: Account) -> AccountSummary:
        """Position, live debt, health and remaining borrowing capacity of one account."""
        with self._lock:
            position = self.get_position(account)
            debt = self.get_current_debt(account)
            ratio = self.protocol_params.collateral_ratio
            health_factor = calculate_health_factor(position.collateral, debt, ratio)
            return AccountSummary(
                account=account,
                collateral=position.collateral,
                principal_borrowed=position.principal_borrowed,
                current_debt=debt,
                health_factor=health_factor_percent(health_factor),
                max_borrow=calculate_max_borrow(position.collateral, debt, ratio),
                status=classify_health(health_factor),
                liquidatable=is_liquidatable(position.collateral, debt, self.protocol_params),
            )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Check that the pool aggregates equal the sums over all positions.

        Returns:
            Dict with keys:
            - 'valid': bool - True if both totals match
            - 'total_collateral' / 'sum_collateral'
            - 'total_borrowed' / 'sum_principal'
            - 'discrepancies': List of field names that differ

        Example:
            result = pool.verify_conservation()
            assert result['valid'], result['discrepancies']
        """
        with self._lock:
            positions = [self._positions[a] for a in sorted(self._positions)]
            sum_collateral = sum(p.collateral for p in positions)
            sum_principal = sum(p.principal_borrowed for p in positions)
            discrepancies = []
            if sum_collateral != self._state.total_collateral:
                discrepancies.append('total_collateral')
            if sum_principal != self._state.total_borrowed:
                discrepancies.append('total_borrowed')
            return {
                'valid': not discrepancies,
                'total_collateral': self._state.total_collateral,
                'sum_collateral': sum_collateral,
                'total_borrowed': self._state.total_borrowed,
                'sum_principal': sum_principal,
                'discrepancies': discrepancies,
            }

    # ========================================================================
    # HEIGHT MANAGEMENT
    # ========================================================================

    def advance_height(self, new_height: int) -> None:
        """
        Move the pool's logical clock forward.

        Interest is not accrued here; the next operation accrues it.

        Raises:
            ValueError: If new_height is before the current height
        """
        require_uint(new_height, "new_height")
        with self._lock:
            if new_height < self._height:
                raise ValueError(f"Cannot move height backwards: {new_height} < {self._height}")
            self._height = new_height

    # ========================================================================
    # LENDING OPERATIONS (mutating)
    # ========================================================================

    def deposit(self, account: Account, amount: int) -> bool:
        """
        Add collateral to an account's position, creating it if needed.

        Raises:
            InvalidAmount: If amount is not positive
        """
        with self._transaction(OperationKind.DEPOSIT, account):
            self._require_positive(amount, "deposit amount")
            before, state, old, settled = self._begin(account)
            position = replace(settled, collateral=checked_add(settled.collateral, amount))
            state = replace(state, total_collateral=checked_add(state.total_collateral, amount))
            self._commit(OperationKind.DEPOSIT, account, account, amount, True,
                         before, state, [(old, position)])
            return True

    def borrow(self, account: Account, amount: int) -> bool:
        """
        Borrow against deposited collateral.

        Accrued interest is folded into the new principal.

        Raises:
            InvalidAmount: If amount is not positive
            InsufficientCollateral: If debt + amount would exceed collateral * collateral_ratio
        """
        with self._transaction(OperationKind.BORROW, account):
            self._require_positive(amount, "borrow amount")
            before, state, old, settled = self._begin(account)
            new_debt = checked_add(settled.principal_borrowed, amount)
            capacity = scaled_mul(settled.collateral, self.protocol_params.collateral_ratio, ROUND_DOWN)
            if new_debt > capacity:
                raise InsufficientCollateral(
                    f"{account}: debt {new_debt} would exceed borrowing capacity {capacity}"
                )
            position = replace(settled, principal_borrowed=new_debt)
            state = replace(state, total_borrowed=checked_add(state.total_borrowed, amount))
            self._commit(OperationKind.BORROW, account, account, amount, True,
                         before, state, [(old, position)])
            return True

    def repay(self, account: Account, amount: int) -> int:
        """
        Repay debt, capped at what is owed.

        Returns:
            The amount actually applied (min(amount, current debt)). Nothing
            beyond the debt is taken; with no debt this returns 0 and leaves
            the pool untouched.

        Raises:
            InvalidAmount: If amount is not positive
        """
        with self._transaction(OperationKind.REPAY, account):
            self._require_positive(amount, "repay amount")
            before, state, old, settled = self._begin(account)
            applied = min(amount, settled.principal_borrowed)
            if applied == 0:
                self._log("%s has no debt to repay", account)
                return 0
            position = replace(settled, principal_borrowed=checked_sub(settled.principal_borrowed, applied))
            state = replace(state, total_borrowed=checked_sub(state.total_borrowed, applied))
            self._commit(OperationKind.REPAY, account, account, amount, applied,
                         before, state, [(old, position)])
            return applied

    def withdraw(self, account: Account, amount: int) -> bool:
        """
        Withdraw collateral.

        With open debt, the remaining collateral must keep the health factor
        at or above min_health_factor. Without debt, everything may be withdrawn.

        Raises:
            InvalidAmount: If amount is not positive
            InsufficientCollateral: If amount exceeds the deposited collateral
            HealthFactorTooLow: If the withdraw would breach min_health_factor
        """
        with self._transaction(OperationKind.WITHDRAW, account):
            self._require_positive(amount, "withdraw amount")
            before, state, old, settled = self._begin(account)
            if amount > settled.collateral:
                raise InsufficientCollateral(
                    f"{account}: cannot withdraw {amount}, only {settled.collateral} deposited"
                )
            remaining = settled.collateral - amount
            debt = settled.principal_borrowed
            if debt > 0:
                health_factor = calculate_health_factor(remaining, debt, self.protocol_params.collateral_ratio)
                if health_factor < self.protocol_params.min_health_factor:
                    raise HealthFactorTooLow(
                        f"{account}: health factor after withdraw would be "
                        f"{health_factor_percent(health_factor)}%, minimum is "
                        f"{health_factor_percent(self.protocol_params.min_health_factor)}%"
                    )
            position = replace(settled, collateral=remaining)
            state = replace(state, total_collateral=checked_sub(state.total_collateral, amount))
            self._commit(OperationKind.WITHDRAW, account, account, amount, True,
                         before, state, [(old, position)])
            return True

    # ========================================================================
    # LIQUIDATION (mutating)
    # ========================================================================

    def liquidate(self, liquidator: Account, account: Account, repay_amount: int) -> LiquidationResult:
        """
        Repay part of an unhealthy position in exchange for discounted collateral.

        The seized collateral is the quoted seizure scaled by
        repay_amount / debt_to_repay. It leaves the pool (paid to the
        liquidator outside this ledger).

        Returns:
            LiquidationResult(collateral_seized, debt_repaid, liquidation_id)

        Raises:
            SelfLiquidation: If liquidator and account are the same
            InvalidAmount: If repay_amount is not positive
            NotLiquidatable: If the position is healthy or has no debt
            PriceUnavailable: If the price feed has no fresh price
            AmountExceedsCloseFactor: If repay_amount exceeds the close factor
            InsufficientCollateralToSeize: If the seizure exceeds the position's collateral
        """
        self._require_account(liquidator)
        with self._transaction(OperationKind.LIQUIDATE, account):
            if liquidator == account:
                raise SelfLiquidation(f"{account} cannot liquidate its own position")
            self._require_positive(repay_amount, "repay amount")
            before, state, old, settled = self._begin(account)
            debt = settled.principal_borrowed
            if not is_liquidatable(settled.collateral, debt, self.protocol_params):
                raise NotLiquidatable(f"Position of {account} is not liquidatable")
            quote, prices = self._quote(debt)
            if repay_amount > quote.debt_to_repay:
                raise AmountExceedsCloseFactor(
                    f"repay amount {repay_amount} exceeds close factor limit {quote.debt_to_repay}"
                )
            seized = calculate_seizure(quote, repay_amount)
            if seized > settled.collateral:
                raise InsufficientCollateralToSeize(
                    f"seizure of {seized} exceeds collateral {settled.collateral} of {account}"
                )

            position = replace(
                settled,
                principal_borrowed=checked_sub(debt, repay_amount),
                collateral=checked_sub(settled.collateral, seized),
            )
            state = replace(
                state,
                total_borrowed=checked_sub(state.total_borrowed, repay_amount),
                total_collateral=checked_sub(state.total_collateral, seized),
            )
            record = LiquidationRecord(
                id=self._next_liquidation_id,
                liquidator=liquidator,
                account=account,
                collateral_seized=seized,
                debt_repaid=repay_amount,
                height=self._height,
            )
            stats = LiquidationStats(
                count=self._stats.count + 1,
                collateral_seized_total=checked_add(self._stats.collateral_seized_total, seized),
                debt_repaid_total=checked_add(self._stats.debt_repaid_total, repay_amount),
            )
            result = LiquidationResult(
                collateral_seized=seized,
                debt_repaid=repay_amount,
                liquidation_id=record.id,
            )
            self._commit(OperationKind.LIQUIDATE, liquidator, account, repay_amount, result,
                         before, state, [(old, position)],
                         payload={'liquidation_id': record.id, 'prices': prices},
                         liquidation=(record, stats))
            return result

    # ========================================================================
    # RATE UPDATES
    # ========================================================================

    def update_rates(self) -> RateSnapshot:
        """
        Accrue the index to the current height and report the current rates.

        Anyone may call this; it changes nothing but the index and the
        last accrual height.
        """
        with self._transaction(OperationKind.ACCRUE, ""):
            before = self._state
            state = calculate_accrual(before, self.rate_params, self._height)
            rates = calculate_rates(state.total_borrowed, state.total_collateral, self.rate_params)
            if state != before:
                self._commit(OperationKind.ACCRUE, "", "", 0, rates, before, state, [])
            return rates

    # ========================================================================
    # ADMINISTRATION (mutating)
    # ========================================================================

    def set_rate_params(
        self,
        caller: Account,
        params: Optional[RateModelParams] = None,
        **changes: Any,
    ) -> RateModelParams:
        """
        Replace the rate curve, either wholesale or by named fields.

        Interest up to the current height is accrued under the old curve first.

        Raises:
            Unauthorized: If caller is not the admin
            ValueError: If the new parameters are invalid
        """
        with self._transaction(OperationKind.SET_RATE_PARAMS, caller):
            self._require_admin(caller)
            new_params = params if params is not None else self.rate_params
            if changes:
                new_params = new_params.with_changes(**changes)
            before = self._state
            state = calculate_accrual(before, self.rate_params, self._height)
            self._commit(OperationKind.SET_RATE_PARAMS, caller, caller, 0, new_params,
                         before, state, [], payload={'params': new_params},
                         rate_params=new_params)
            return new_params

    def set_protocol_params(
        self,
        caller: Account,
        params: Optional[ProtocolParams] = None,
        **changes: Any,
    ) -> ProtocolParams:
        """
        Replace the collateral and liquidation parameters.

        Raises:
            Unauthorized: If caller is not the admin
            ValueError: If the new parameters are invalid
        """
        with self._transaction(OperationKind.SET_PROTOCOL_PARAMS, caller):
            self._require_admin(caller)
            new_params = params if params is not None else self.protocol_params
            if changes:
                new_params = new_params.with_changes(**changes)
            before = self._state
            state = calculate_accrual(before, self.rate_params, self._height)
            self._commit(OperationKind.SET_PROTOCOL_PARAMS, caller, caller, 0, new_params,
                         before, state, [], payload={'params': new_params},
                         protocol_params=new_params)
            return new_params

    def set_admin(self, caller: Account, new_admin: Account) -> None:
        """
        Hand the admin role to another account.

        Raises:
            Unauthorized: If caller is not the admin
        """
        with self._transaction(OperationKind.SET_ADMIN, caller):
            self._require_admin(caller)
            self._require_account(new_admin)
            before = self._state
            state = calculate_accrual(before, self.rate_params, self._height)
            self._commit(OperationKind.SET_ADMIN, caller, caller, 0, None,
                         before, state, [], payload={'new_admin': new_admin},
                         admin=new_admin)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _transaction(self, kind: OperationKind, account: Account) -> Iterator[None]:
        """Hold the pool lock for one operation and log its rejection, if any."""
        with self._lock:
            try:
                yield
            except LendingError as exc:
                self._log("REJECTED %s %s: %s", kind.value, account, exc)
                raise

    def _log(self, msg: str, *args: Any) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, "[%s] " + msg, self.name, *args)

    @staticmethod
    def _require_account(account: Account) -> None:
        if not isinstance(account, str) or not account.strip():
            raise ValueError("account must be a non-empty string")

    @staticmethod
    def _require_positive(amount: int, name: str) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError(f"{name} must be int, got {type(amount).__name__}")
        if amount <= 0:
            raise InvalidAmount(f"{name} must be positive, got {amount}")
        if amount > MAX_UINT:
            raise ArithmeticOverflow(f"{name} out of range: {amount}")

    def _require_admin(self, caller: Account) -> None:
        if caller != self.admin:
            raise Unauthorized(f"{caller} is not the pool admin")

    def _projected_state(self) -> PoolState:
        """Committed state with the index brought forward to the current height (not committed)."""
        return calculate_accrual(self._state, self.rate_params, self._height)

    def _begin(self, account: Account) -> Tuple[PoolState, PoolState, Optional[Position], Position]:
        """
        Accrue and settle for a mutating operation on one account.

        Returns:
            (state_before, accrued_state, stored_position_or_None, settled_position)
            where accrued_state already carries the settled interest in
            total_borrowed.
        """
        self._require_account(account)
        before = self._state
        state = calculate_accrual(before, self.rate_params, self._height)
        old = self._positions.get(account)
        current = old if old is not None else Position.empty(account, state.interest_index, self._height)
        settled, interest = settle_position(current, state.interest_index, self._height)
        if interest:
            state = replace(state, total_borrowed=checked_add(state.total_borrowed, interest))
        return before, state, old, settled

    def _quote(self, debt: int) -> Tuple[LiquidationQuote, Dict[str, int]]:
        """Liquidation quote for a debt at current feed prices, plus the prices used."""
        if self.price_feed is None:
            raise PriceUnavailable("No price feed configured")
        params = self.protocol_params
        collateral_price = self.price_feed.get_price(params.collateral_asset)
        borrow_price = self.price_feed.get_price(params.borrow_asset)
        quote = calculate_liquidation(debt, collateral_price, borrow_price, params)
        return quote, {params.collateral_asset: collateral_price, params.borrow_asset: borrow_price}

    def _commit(
        self,
        kind: OperationKind,
        caller: Account,
        account: Account,
        amount: int,
        result: Any,
        before: PoolState,
        after: PoolState,
        position_updates: List[Tuple[Optional[Position], Position]],
        payload: Optional[Dict[str, Any]] = None,
        liquidation: Optional[Tuple[LiquidationRecord, LiquidationStats]] = None,
        rate_params: Optional[RateModelParams] = None,
        protocol_params: Optional[ProtocolParams] = None,
        admin: Optional[Account] = None,
    ) -> OperationRecord:
        """
        Apply a fully validated operation. Nothing in here can fail.
        """
        after = replace(after, version=before.version + 1)
        changes = tuple(
            PositionChange(account=new.account, old_position=old, new_position=new)
            for old, new in position_updates
        )
        record = OperationRecord(
            sequence=self._next_sequence,
            kind=kind,
            caller=caller,
            account=account,
            amount=amount,
            height=self._height,
            result=result,
            position_changes=changes,
            pool_before=before,
            pool_after=after,
            payload=dict(payload or {}),
        )

        for change in changes:
            self._positions[change.account] = change.new_position
        self._state = after
        if liquidation is not None:
            liquidation_record, stats = liquidation
            self._liquidations.append(liquidation_record)
            self._stats = stats
            self._next_liquidation_id += 1
        if rate_params is not None:
            self.rate_params = rate_params
        if protocol_params is not None:
            self.protocol_params = protocol_params
        if admin is not None:
            self.admin = admin
        self.operation_log.append(record)
        self._next_sequence += 1

        self._log("APPLIED %r", record)
        return record

    # ========================================================================
    # CLONE AND REPLAY
    # ========================================================================

    def clone(self) -> LendingPool:
        """
        Create an independent copy of this pool.

        Records are frozen, so containers are copied and records shared.
        The clone keeps the same price feed object.
        """
        with self._lock:
            cloned = LendingPool.__new__(LendingPool)
            cloned.name = self.name
            cloned.price_feed = self.price_feed
            cloned.rate_params = self.rate_params
            cloned.protocol_params = self.protocol_params
            cloned.admin = self.admin
            cloned.verbose = self.verbose
            cloned.operation_log = list(self.operation_log)
            cloned._genesis = self._genesis
            cloned._height = self._height
            cloned._state = self._state
            cloned._positions = dict(self._positions)
            cloned._stats = self._stats
            cloned._liquidations = list(self._liquidations)
            cloned._next_liquidation_id = self._next_liquidation_id
            cloned._next_sequence = self._next_sequence
            cloned._lock = threading.RLock()
            return cloned

    def replay(self) -> LendingPool:
        """
        Rebuild the pool from genesis by re-running the operation log.

        Liquidations are replayed against the prices recorded when they ran,
        so the result does not depend on the feed's current prices.

        Raises:
            LendingError: If a logged operation fails during replay
        """
        with self._lock:
            rate_params, protocol_params, admin, initial_height = self._genesis
            replayed = LendingPool(
                name=f"{self.name}_replayed",
                price_feed=self.price_feed,
                rate_params=rate_params,
                protocol_params=protocol_params,
                admin=admin,
                initial_height=initial_height,
                verbose=self.verbose,
            )
            for record in self.operation_log:
                replayed.advance_height(record.height)
                try:
                    replayed._replay_one(record)
                except LendingError as exc:
                    raise LendingError(f"Replay failed at operation #{record.sequence}: {exc}") from exc
            replayed.price_feed = self.price_feed
            replayed.advance_height(self._height)
            return replayed

    def _replay_one(self, record: OperationRecord) -> None:
        kind = record.kind
        if kind == OperationKind.DEPOSIT:
            self.deposit(record.account, record.amount)
        elif kind == OperationKind.BORROW:
            self.borrow(record.account, record.amount)
        elif kind == OperationKind.REPAY:
            self.repay(record.account, record.amount)
        elif kind == OperationKind.WITHDRAW:
            self.withdraw(record.account, record.amount)
        elif kind == OperationKind.LIQUIDATE:
            self.price_feed = _RecordedPrices(record.payload['prices'])
            self.liquidate(record.caller, record.account, record.amount)
        elif kind == OperationKind.ACCRUE:
            self.update_rates()
        elif kind == OperationKind.SET_RATE_PARAMS:
            self.set_rate_params(record.caller, params=record.payload['params'])
        elif kind == OperationKind.SET_PROTOCOL_PARAMS:
            self.set_protocol_params(record.caller, params=record.payload['params'])
        elif kind == OperationKind.SET_ADMIN:
            self.set_admin(record.caller, record.payload['new_admin'])
        else:
            raise LendingError(f"Unknown operation kind {kind}")

    def __repr__(self) -> str:
        return (
            f"LendingPool({self.name!r}, height={self._height}, "
            f"positions={len(self._positions)}, operations={len(self.operation_log)})"
        )
