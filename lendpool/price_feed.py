"""
price_feed.py - Price feed boundary for liquidation math

The pool consumes prices through the PriceFeed protocol and never fetches
anything itself: the caller resolves (or caches) prices before invoking an
operation. Only the liquidation path reads prices.

Classes:
- PriceFeed: Protocol the pool depends on
- StaticPriceFeed: Fixed prices with per-asset stale flags
- TimeSeriesPriceFeed: Height-indexed observations with a freshness window

All prices are scaled ints (SCALE == 1.0) quoted in a base asset, which
always prices at SCALE and is always fresh.
"""

import logging
from bisect import bisect_right
from typing import Callable, Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable

from .core import SCALE, PriceUnavailable
from .fixed_point import require_uint

logger = logging.getLogger(__name__)


def _validate_price(asset: str, price: int) -> int:
    if require_uint(price, f"price of {asset}") == 0:
        raise ValueError(f"Price of {asset} must be positive")
    return price


@runtime_checkable
class PriceFeed(Protocol):
    """
    Read contract of the external price oracle.

    get_price() raises PriceUnavailable when the asset is unknown or its
    latest price is stale; is_fresh() reports the same condition without
    raising.
    """

    def get_price(self, asset: str) -> int:
        """Return the current scaled price of an asset."""
        ...

    def is_fresh(self, asset: str) -> bool:
        """Return True if a fresh price is available for the asset."""
        ...


class StaticPriceFeed:
    """
    Price feed with fixed prices.

    Prices stay constant until updated. Individual assets can be marked
    stale to simulate an oracle outage.
    """

    def __init__(self, prices: Optional[Dict[str, int]] = None, base_asset: str = "USD"):
        """
        Args:
            prices: Mapping from asset symbol to scaled price
            base_asset: Asset every price is quoted in
        """
        self.base_asset = base_asset
        self.prices: Dict[str, int] = {}
        self.stale: Set[str] = set()
        for asset, price in (prices or {}).items():
            self.prices[asset] = _validate_price(asset, price)
        self.prices[base_asset] = SCALE

    def get_price(self, asset: str) -> int:
        if not self.is_fresh(asset):
            raise PriceUnavailable(f"No fresh price for {asset}")
        return self.prices[asset]

    def is_fresh(self, asset: str) -> bool:
        if asset == self.base_asset:
            return True
        return asset in self.prices and asset not in self.stale

    def update_price(self, asset: str, price: int) -> None:
        """Set the price of an asset and mark it fresh."""
        if asset == self.base_asset:
            raise ValueError(f"Base asset {asset} always prices at 1.0")
        self.prices[asset] = _validate_price(asset, price)
        self.stale.discard(asset)

    def update_prices(self, prices: Dict[str, int]) -> None:
        """Set several prices at once."""
        for asset, price in prices.items():
            self.update_price(asset, price)

    def mark_stale(self, asset: str) -> None:
        """Treat the asset's price as stale until the next update."""
        logger.debug("Price of %s marked stale", asset)
        self.stale.add(asset)

    def __repr__(self):
        return f"StaticPriceFeed({len(self.prices)} prices, base={self.base_asset})"


class TimeSeriesPriceFeed:
    """
    Price feed backed by height-indexed observations.

    get_price() returns the most recent observation at or before the current
    height. The price is stale when that observation is more than max_age
    heights old, when there is none, or while the feed is paused.

    The current height comes from height_source when given (typically
    ``lambda: pool.current_height``), otherwise from set_height().
    """

    def __init__(
        self,
        price_paths: Optional[Dict[str, List[Tuple[int, int]]]] = None,
        max_age: int = 144,
        base_asset: str = "USD",
        height_source: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            price_paths: Optional mapping from asset to list of (height, price)
            max_age: Largest observation age, in heights, still considered fresh
            base_asset: Asset every price is quoted in
            height_source: Callable returning the current height

        Example:
            feed = TimeSeriesPriceFeed({
                'STX': [(0, SCALE), (10, SCALE * 9 // 10)],
            }, max_age=20)
        """
        self.base_asset = base_asset
        self.max_age = require_uint(max_age, "max_age")
        self.price_history: Dict[str, List[Tuple[int, int]]] = {}
        self.paused = False
        self._height_source = height_source
        self._height = 0

        if price_paths:
            for asset, path in price_paths.items():
                for height, price in path:
                    self.add_price(asset, height, price)

    @property
    def current_height(self) -> int:
        if self._height_source is not None:
            return self._height_source()
        return self._height

    def set_height(self, height: int) -> None:
        """Move the feed's own clock (ignored when a height_source is set)."""
        self._height = require_uint(height, "height")

    def add_price(self, asset: str, height: int, price: int) -> None:
        """Record an observation, keeping the history sorted by height."""
        require_uint(height, "height")
        _validate_price(asset, price)
        history = self.price_history.setdefault(asset, [])
        history.append((height, price))
        history.sort(key=lambda x: x[0])

    def set_paused(self, paused: bool) -> None:
        """While paused, every non-base asset reports stale."""
        if paused != self.paused:
            logger.warning("Price feed %s", "paused" if paused else "resumed")
        self.paused = paused

    def _latest(self, asset: str) -> Optional[Tuple[int, int]]:
        history = self.price_history.get(asset)
        if not history:
            return None
        heights = [h for h, _ in history]
        idx = bisect_right(heights, self.current_height)
        if idx == 0:
            return None
        return history[idx - 1]

    def is_fresh(self, asset: str) -> bool:
        if asset == self.base_asset:
            return True
        if self.paused:
            return False
        latest = self._latest(asset)
        if latest is None:
            return False
        return self.current_height - latest[0] <= self.max_age

    def get_price(self, asset: str) -> int:
        if asset == self.base_asset:
            return SCALE
        if not self.is_fresh(asset):
            raise PriceUnavailable(f"No fresh price for {asset} at height {self.current_height}")
        return self._latest(asset)[1]

    def __repr__(self):
        total_observations = sum(len(history) for history in self.price_history.values())
        return (
            f"TimeSeriesPriceFeed({len(self.price_history)} assets, "
            f"{total_observations} observations, base={self.base_asset})"
        )
