"""
pool_builder.py - Standard test market for LendingPool tests

Builds the same three-asset market every pool test starts from:

    ETH   - native coin, collateral and borrowable
    USDC  - token, collateral and borrowable, 20% base APR
    WBTC  - token, collateral only

Prices carry 2 decimals, so valuing N base units of ETH gives N * 2000.
Hypothesis tests call these builders directly instead of going through
function-scoped fixtures.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Tuple

from lendpool import (
    Ledger, LendingPool, CreditLedger, StaticPriceOracle,
    token, native_coin, SECONDS_PER_YEAR,
)


T0 = datetime(2025, 1, 1)
ADMIN = "admin"
POOL = "pool"
USERS = ("alice", "bob", "carol", "dave")

PRICE_DECIMALS = 2
PRICES = {
    "ETH": 2_000 * 100,
    "USDC": 1 * 100,
    "WBTC": 50_000 * 100,
}
STARTING_BALANCES = {
    "ETH": 1_000,
    "USDC": 1_000_000,
    "WBTC": 100,
}

# asset -> (collateral_ratio, liquidation_ratio, base_apr, apr_floor,
#           liquidation_bonus, can_be_collateral, can_be_borrowed)
ASSET_CONFIGS = {
    "ETH": (15000, 12500, 800, 300, 500, True, True),
    "USDC": (15000, 12000, 2000, 500, 500, True, True),
    "WBTC": (15000, 12000, 1000, 200, 1000, True, False),
}


def build_ledger() -> Ledger:
    """Ledger with the three units and every user funded."""
    ledger = Ledger("test", T0, verbose=False, test_mode=True)
    ledger.register_unit(native_coin("ETH", "Ether"))
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))
    ledger.register_unit(token("WBTC", "Wrapped Bitcoin", decimals=8))
    for user in USERS:
        ledger.register_wallet(user)
        for unit, amount in STARTING_BALANCES.items():
            ledger.set_balance(user, unit, Decimal(amount))
    return ledger


def build_oracle() -> StaticPriceOracle:
    return StaticPriceOracle(PRICES, {asset: PRICE_DECIMALS for asset in PRICES})


def build_credit() -> CreditLedger:
    credit = CreditLedger(owner=ADMIN)
    credit.authorize(ADMIN, POOL)
    return credit


def build_pool(
    ledger: Ledger = None,
    oracle: StaticPriceOracle = None,
    credit: CreditLedger = None,
) -> LendingPool:
    """Pool with ETH, USDC and WBTC registered per ASSET_CONFIGS."""
    pool = LendingPool(
        POOL,
        ledger or build_ledger(),
        oracle or build_oracle(),
        credit or build_credit(),
        admin=ADMIN,
        verbose=False,
    )
    for asset, config in ASSET_CONFIGS.items():
        pool.add_asset(ADMIN, asset, *config)
    return pool


def advance(ledger: Ledger, seconds: int = 0, days: int = 0, years: int = 0) -> datetime:
    """Move the ledger clock forward and return the new time."""
    delta = timedelta(seconds=seconds + years * SECONDS_PER_YEAR, days=days)
    ledger.advance_time(ledger.current_time + delta)
    return ledger.current_time


def balances(ledger: Ledger) -> Dict[Tuple[str, str], Decimal]:
    """Every non-zero (wallet, unit) balance, for before/after comparisons."""
    return {
        (wallet, unit): qty
        for wallet in ledger.list_wallets()
        for unit, qty in ledger.get_wallet_balances(wallet).items()
        if qty != 0
    }


def pool_state(pool: LendingPool) -> tuple:
    """Pool-side state that a rolled-back operation must leave untouched."""
    return (
        balances(pool.ledger),
        len(pool.ledger.transaction_log),
        pool.book.last_loan_id,
        [pool.get_loan(i) for i in range(1, pool.book.last_loan_id + 1)],
        {asset: pool.asset_balance(asset) for asset in pool.supported_assets()},
        {asset: pool.asset_config(asset) for asset in pool.supported_assets()},
        list(pool.events),
        {user: pool.credit.get_score(user) for user in USERS},
    )
