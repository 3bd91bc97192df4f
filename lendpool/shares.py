"""
shares.py - Exchange-rate share accounting

=== SHARE MODEL ===

Each supported asset has one share token. Shares are a proportional claim on
the asset's pool value:

    pool_value    = available_liquidity + total_borrowed
    exchange_rate = pool_value * WAD // total_supply      (WAD when supply == 0)

    deposit:  shares = amount * WAD // exchange_rate
    withdraw: payout = shares * exchange_rate // WAD

All divisions floor and every formula multiplies before it divides, so
rounding dust always stays in the pool.

=== MINT / BURN AUTHORITY ===

ShareToken is a read-only handle (balance and supply). Only the pool builds
the mint and burn moves, which issue from and retire into SYSTEM_WALLET.
"""

from __future__ import annotations
from typing import List

from .core import (
    LedgerView, Move, SYSTEM_WALLET, WAD,
    to_amount, to_quantity,
)


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def exchange_rate(available_liquidity: int, total_borrowed: int, total_supply: int) -> int:
    """
    Pool value per share, WAD-scaled.

    Example:
        exchange_rate(150, 50, 100) -> 2 * WAD
    """
    if total_supply == 0:
        return WAD
    return (available_liquidity + total_borrowed) * WAD // total_supply


def shares_for_deposit(amount: int, rate: int) -> int:
    """Shares minted for ``amount`` at ``rate`` (floored)."""
    return amount * WAD // rate


def payout_for_shares(share_amount: int, rate: int) -> int:
    """Underlying paid out for ``share_amount`` at ``rate`` (floored)."""
    return share_amount * rate // WAD


# =============================================================================
# SHARE TOKEN HANDLE
# =============================================================================

class ShareToken:
    """
    Read-only handle on one asset's share-token unit.

    The share balances live in the custody ledger under ``symbol``.
    """

    def __init__(self, view: LedgerView, symbol: str, underlying: str):
        self._view = view
        self.symbol = symbol
        self.underlying = underlying

    def balance_of(self, holder: str) -> int:
        if holder not in self._view.list_wallets():
            return 0
        return to_amount(self._view.get_balance(holder, self.symbol))

    def total_supply(self) -> int:
        positions = self._view.get_positions(self.symbol)
        return sum(
            (to_amount(qty) for wallet, qty in positions.items() if wallet != SYSTEM_WALLET),
            0,
        )

    def __repr__(self) -> str:
        return f"ShareToken({self.symbol}, underlying={self.underlying})"


def mint_moves(symbol: str, holder: str, shares: int, contract_id: str) -> List[Move]:
    """Moves issuing ``shares`` of ``symbol`` to ``holder``."""
    if shares == 0:
        return []
    return [Move(to_quantity(shares), symbol, SYSTEM_WALLET, holder, contract_id)]


def burn_moves(symbol: str, holder: str, shares: int, contract_id: str) -> List[Move]:
    """Moves retiring ``shares`` of ``symbol`` held by ``holder``."""
    if shares == 0:
        return []
    return [Move(to_quantity(shares), symbol, holder, SYSTEM_WALLET, contract_id)]
