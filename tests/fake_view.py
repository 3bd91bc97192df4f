"""
fake_view.py - Test Helper for LedgerView

Provides a minimal LedgerView implementation for testing share-token handles
and oracles without requiring a full Ledger instance.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Dict, Set, Optional, Any

from lendpool import Unit, UnitNotRegistered


# Type aliases (matching core.py)
Positions = Dict[str, Decimal]
UnitState = Dict[str, Any]


class FakeView:
    """
    Minimal LedgerView implementation for testing read-only consumers.

    Example:
        view = FakeView(
            balances={'alice': {'USDC-SHARE-1': Decimal(100)}},
            time=datetime(2025, 1, 1)
        )

        positions = view.get_positions('USDC-SHARE-1')
        # Returns: {'alice': Decimal('100')}
    """

    def __init__(
        self,
        balances: Dict[str, Dict[str, Decimal]],
        states: Optional[Dict[str, UnitState]] = None,
        time: Optional[datetime] = None,
        units: Optional[Dict[str, Unit]] = None
    ):
        self._balances = balances
        self._states = states or {}
        self._time = time or datetime(2025, 1, 1)
        self._units = units or {}

    @property
    def current_time(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        self._time = time

    def get_balance(self, wallet: str, unit: str) -> Decimal:
        return self._balances.get(wallet, {}).get(unit, Decimal("0"))

    def get_unit_state(self, unit: str) -> UnitState:
        return dict(self._states.get(unit, {}))

    def get_positions(self, unit: str) -> Positions:
        return {
            w: b[unit]
            for w, b in self._balances.items()
            if unit in b and b[unit] != 0
        }

    def list_wallets(self) -> Set[str]:
        return set(self._balances.keys())

    def get_unit(self, symbol: str) -> Unit:
        if symbol not in self._units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self._units[symbol]
