"""
oracle.py - Price oracle interface and reference implementations

Provides the price feed the pool values collateral and debt against.

Classes:
- PriceOracle: Protocol defining the oracle interface
- StaticPriceOracle: Prices that change only when updated explicitly
- TimeSeriesPriceOracle: Historical prices looked up at the ledger's current time

Prices are integers quoted with per-asset decimal precision:

    value = amount * price // 10 ** decimals

Decimals are read from the oracle for each asset, never assumed.
"""

from __future__ import annotations
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .core import LedgerView, ValidationError


@runtime_checkable
class PriceOracle(Protocol):
    """
    Protocol for price oracles.

    Implementations must provide get_price() and get_decimals(). Both are
    read-only.
    """

    def get_price(self, asset: str) -> int:
        """Current price of one whole unit of ``asset``, scaled by 10**get_decimals(asset)."""
        ...

    def get_decimals(self, asset: str) -> int:
        """Decimal precision of ``asset``'s price."""
        ...


@dataclass(frozen=True, slots=True)
class Quote:
    """Price and precision of one asset, read together."""
    asset: str
    price: int
    decimals: int

    def value(self, amount: int) -> int:
        return amount * self.price // 10 ** self.decimals


def quote(oracle: PriceOracle, asset: str) -> Quote:
    """Read price and decimals for ``asset`` once, for use in a single valuation."""
    return Quote(asset, oracle.get_price(asset), oracle.get_decimals(asset))


def value_of(oracle: PriceOracle, asset: str, amount: int) -> int:
    """
    Value of ``amount`` base units of ``asset``.

    Example:
        # ETH quoted at 3000 * 10**8 with 8 decimals
        value_of(oracle, "ETH", 2 * 10**18) -> 6000 * 10**18
    """
    return quote(oracle, asset).value(amount)


class StaticPriceOracle:
    """
    Oracle with static prices (time-independent).

    Prices remain constant until update_price() is called.
    """

    def __init__(self, prices: Dict[str, int], decimals: Dict[str, int]):
        """
        Initialize with a static price map.

        Args:
            prices: Dictionary mapping assets to integer prices
            decimals: Dictionary mapping assets to their price precision
        """
        self.prices = prices.copy()
        self.decimals = decimals.copy()

    def get_price(self, asset: str) -> int:
        if asset not in self.prices:
            raise ValidationError(f"No price for {asset}")
        return self.prices[asset]

    def get_decimals(self, asset: str) -> int:
        if asset not in self.decimals:
            raise ValidationError(f"No decimals for {asset}")
        return self.decimals[asset]

    def update_price(self, asset: str, price: int):
        """Update the price of an asset."""
        self.prices[asset] = price

    def update_prices(self, prices: Dict[str, int]):
        """Update multiple prices at once."""
        self.prices.update(prices)

    def __repr__(self):
        return f"StaticPriceOracle({len(self.prices)} prices)"


class TimeSeriesPriceOracle:
    """
    Oracle with time-varying prices.

    Stores historical price data and answers with the most recent price at or
    before the clock's current time. Pass the custody ledger as ``clock`` so
    price moves follow ``Ledger.advance_time``.
    """

    def __init__(
        self,
        clock: LedgerView,
        decimals: Dict[str, int],
        price_paths: Optional[Dict[str, List[Tuple[datetime, int]]]] = None,
    ):
        """
        Initialize the oracle.

        Args:
            clock: View whose current_time selects the observation
            decimals: Dictionary mapping assets to their price precision
            price_paths: Optional dict mapping assets to (timestamp, price) lists

        Example:
            oracle = TimeSeriesPriceOracle(ledger, {"ETH": 8}, {
                "ETH": [(t0, 3000 * 10**8), (t1, 2500 * 10**8)],
            })
        """
        self._clock = clock
        self.decimals = decimals.copy()
        self.price_history: Dict[str, List[Tuple[datetime, int]]] = {}

        if price_paths:
            for asset, path in price_paths.items():
                if not path:
                    continue
                self.price_history[asset] = sorted(path, key=lambda x: x[0])

    def add_price(self, asset: str, timestamp: datetime, price: int):
        """Add a price observation for an asset at a specific time."""
        history = self.price_history.setdefault(asset, [])
        history.append((timestamp, price))
        history.sort(key=lambda x: x[0])

    def get_price(self, asset: str) -> int:
        """
        Price at or before the clock's current time.

        Raises:
            ValidationError: If no observation exists at or before now
        """
        history = self.price_history.get(asset)
        if not history:
            raise ValidationError(f"No price for {asset}")

        timestamps = [ts for ts, _ in history]
        idx = bisect_right(timestamps, self._clock.current_time)
        if idx == 0:
            raise ValidationError(f"No price for {asset} at {self._clock.current_time}")
        return history[idx - 1][1]

    def get_decimals(self, asset: str) -> int:
        if asset not in self.decimals:
            raise ValidationError(f"No decimals for {asset}")
        return self.decimals[asset]

    def __repr__(self):
        total_observations = sum(len(history) for history in self.price_history.values())
        return f"TimeSeriesPriceOracle({len(self.price_history)} assets, {total_observations} observations)"
