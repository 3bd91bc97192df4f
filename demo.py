#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Pool Step by Step

This is a pedagogical demonstration that teaches how the lending pool works.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation   - The custody ledger, prices and credit, the pool itself
  4-6:   Lending      - Deposits and shares, borrowing, interest over time
  7-8:   Safety       - Repayment, rejected operations and rollback
  9-10:  Stress       - Price crash and liquidation, reentrant recipients
  11-12: Proof        - Conservation, lenders cashing out

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict
import sys

from lendpool import (
    # Custody
    Ledger, Move, build_transaction, token, native_coin, SYSTEM_WALLET,
    # Market
    LendingPool, StaticPriceOracle, CreditLedger,
    # Errors
    PoolError, ReentrancyError,
    # Constants
    SECONDS_PER_YEAR, WAD,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # Prices carry 2 decimals: 200_000 means $2,000.00
    eth_price: int = 200_000
    usdc_price: int = 100
    crashed_eth_price: int = 150_000

    # Initial funding, in base units
    funding: Dict[str, Dict[str, int]] = field(default_factory=lambda: {
        "alice": {"USDC": 500_000, "ETH": 100},
        "bob": {"USDC": 50_000, "ETH": 200},
        "carol": {"USDC": 200_000},
        "dave": {"ETH": 10},
    })

    bob_credit_score: int = 20


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_rate(pool: LendingPool, asset: str):
    rate = pool.get_exchange_rate(asset)
    print(f"{asset} exchange rate: {Decimal(rate) / WAD:.6f} per share")


def show_wallet(ledger: Ledger, wallet: str):
    holdings = {unit: qty for unit, qty in ledger.get_wallet_balances(wallet).items() if qty != 0}
    print(f"  {wallet:<18} {holdings}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_custody_ledger():
    """Create the custody ledger and fund the participants."""
    step_header(1, "The Custody Ledger",
        "Every balance lives in a double-entry ledger; the pool never holds a private tally.")

    print("""
    The pool settles everything through a Ledger:

    1. UNITS   - ETH (the native coin) and USDC (an external token)
    2. WALLETS - alice (lender), bob (borrower), carol (liquidator), dave
    3. SYSTEM  - the issuer: funding enters from SYSTEM_WALLET

    Native value travels attached to a call; tokens are pulled explicitly.
    """)

    wait_for_enter()

    ledger = Ledger("tutorial", initial_time=CONFIG.start_time, verbose=False)
    ledger.register_unit(native_coin("ETH", "Ether"))
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))

    moves = []
    for wallet, holdings in CONFIG.funding.items():
        ledger.register_wallet(wallet)
        for unit, amount in holdings.items():
            moves.append(Move(Decimal(amount), unit, SYSTEM_WALLET, wallet, f"faucet_{wallet}_{unit}"))
    ledger.execute(build_transaction(ledger, moves))

    section_header("Funded Wallets")
    for wallet in CONFIG.funding:
        show_wallet(ledger, wallet)
    show_wallet(ledger, SYSTEM_WALLET)

    return ledger


def step_02_prices_and_credit():
    """Set up the price oracle and the credit-score ledger."""
    step_header(2, "Prices and Credit",
        "Collateral is valued by an oracle; APRs are discounted by credit score.")

    oracle = StaticPriceOracle(
        {"ETH": CONFIG.eth_price, "USDC": CONFIG.usdc_price},
        {"ETH": 2, "USDC": 2},
    )
    print(f">>> oracle = {oracle}")
    print(f"    1 ETH  = {oracle.get_price('ETH') / 100:,.2f}")
    print(f"    1 USDC = {oracle.get_price('USDC') / 100:,.2f}")

    credit = CreditLedger(owner="admin")
    credit.authorize("admin", "pool")
    credit.set_score("admin", "bob", CONFIG.bob_credit_score)

    section_header("Key Insight")
    print(f"""
    Only authorized callers change scores. The pool earns +10 per repaid
    loan for the borrower and costs -30 per liquidation.

    bob's score: {credit.get_score('bob')}   (each point takes 0.5% off the base APR)
    """)

    return oracle, credit


def step_03_create_pool(ledger: Ledger, oracle: StaticPriceOracle, credit: CreditLedger):
    """Create the pool and register its assets."""
    step_header(3, "The Lending Pool",
        "Assets are registered once, with their risk parameters and share token.")

    pool = LendingPool("pool", ledger, oracle, credit, admin="admin")

    print(">>> pool.add_asset('admin', 'ETH',  15000, 12500,  800, 300, 500, True, True)")
    pool.add_asset("admin", "ETH", 15000, 12500, 800, 300, 500, True, True)
    print(">>> pool.add_asset('admin', 'USDC', 15000, 12000, 2000, 500, 500, True, True)")
    pool.add_asset("admin", "USDC", 15000, 12000, 2000, 500, 500, True, True)

    section_header("Registered Assets")
    for asset in pool.supported_assets():
        config = pool.asset_config(asset)
        pathway = "native" if config.native else "token"
        print(f"  {asset:<5} share={config.share_token:<14} pathway={pathway:<7} "
              f"collateral {config.collateral_ratio / 100:.0f}%  "
              f"liquidation {config.liquidation_ratio / 100:.0f}%")

    return pool


# ============================================================================
# PHASE 2: LENDING (Steps 4-6)
# ============================================================================

def step_04_deposits(pool: LendingPool):
    """Lenders supply assets and receive shares."""
    step_header(4, "Deposits and Shares",
        "Shares are minted at the current exchange rate; the first deposit is 1:1.")

    print(">>> pool.deposit('alice', 'USDC', 300_000)")
    usdc_shares = pool.deposit("alice", "USDC", 300_000)
    print(">>> pool.deposit('alice', 'ETH', value=100)")
    eth_shares = pool.deposit("alice", "ETH", value=100)

    section_header("Result")
    print(f"alice holds {usdc_shares:,} {pool.share_token('USDC').symbol}")
    print(f"alice holds {eth_shares:,} {pool.share_token('ETH').symbol}")
    show_rate(pool, "USDC")
    show_rate(pool, "ETH")


def step_05_borrow(pool: LendingPool):
    """A borrower locks collateral and draws a loan."""
    step_header(5, "Borrowing",
        "Collateral moves to escrow; the loan's APR is fixed at origination.")

    collateral_value = pool.value_of("ETH", 100)
    print(f"100 ETH is worth {collateral_value:,}; at 150% it supports "
          f"{collateral_value * 10_000 // 15_000:,} of debt.\n")

    print(">>> pool.borrow('bob', 'ETH', 'USDC', 0, 100_000, value=100)")
    loan_id = pool.borrow("bob", "ETH", "USDC", 0, 100_000, value=100)

    loan = pool.get_loan(loan_id)
    section_header("Loan")
    print(f"  id={loan.loan_id} principal={loan.principal:,} {loan.borrow_asset} "
          f"collateral={loan.collateral} {loan.collateral_asset} APR={loan.apr / 100:.2f}%")
    print(f"  USDC utilization: {pool.utilization_rate('USDC') / 100:.2f}%")
    show_wallet(pool.ledger, pool.escrow_wallet)
    show_rate(pool, "USDC")

    return loan_id


def step_06_interest(pool: LendingPool, loan_id: int):
    """Interest accrues with time and is realized when paid."""
    step_header(6, "Interest Over Time",
        "Interest is simple, per-second, and only reaches lenders when repaid.")

    ledger = pool.ledger
    print(">>> ledger.advance_time(+1 year)")
    ledger.advance_time(ledger.current_time + timedelta(seconds=SECONDS_PER_YEAR))

    health = pool.loan_health(loan_id)
    section_header("After One Year")
    print(f"  interest owed:    {pool.interest_owed(loan_id):,}")
    print(f"  total debt:       {health.total_debt:,}")
    print(f"  collateral ratio: {health.ratio_bps / 100:.2f}% ({health.status})")
    show_rate(pool, "USDC")
    print("\n  The rate has not moved: unpaid interest is not pool value yet.")


# ============================================================================
# PHASE 3: SAFETY (Steps 7-8)
# ============================================================================

def step_07_repay(pool: LendingPool, loan_id: int):
    """Full repayment returns collateral and improves credit."""
    step_header(7, "Repayment",
        "Paying principal plus interest closes the loan and releases collateral.")

    print(f">>> pool.repay('bob', {loan_id}, 110_000)")
    closed = pool.repay("bob", loan_id, 110_000)

    section_header("Result")
    print(f"  loan closed:  {closed}")
    print(f"  bob's score:  {pool.credit.get_score('bob')}")
    show_wallet(pool.ledger, "bob")
    show_rate(pool, "USDC")


def step_08_rollback(pool: LendingPool):
    """A failing operation leaves no trace."""
    step_header(8, "Rejections and Rollback",
        "An operation commits every effect or none, even after a leg has settled.")

    print("""
    bob asks for 150,000 USDC against 100 ETH. The collateral is pulled into
    escrow first; the LTV check fails afterwards. Watch the rollback.
    """)
    before = pool.ledger.get_balance("bob", "ETH")
    try:
        pool.borrow("bob", "ETH", "USDC", 0, 150_000, value=100)
    except PoolError as exc:
        print(f"\nCaught {type(exc).__name__}")

    after = pool.ledger.get_balance("bob", "ETH")
    print(f"bob's ETH before: {before}  after: {after}")
    print(f"loans issued: {pool.book.last_loan_id}")


# ============================================================================
# PHASE 4: STRESS (Steps 9-10)
# ============================================================================

def step_09_liquidation(pool: LendingPool, oracle: StaticPriceOracle):
    """A price crash makes a loan liquidatable."""
    step_header(9, "Price Crash and Liquidation",
        "Below the liquidation ratio anyone may repay the debt and seize the collateral.")

    loan_id = pool.borrow("bob", "ETH", "USDC", 0, 130_000, value=100)
    print(f"bob opens loan {loan_id}: {pool.loan_health(loan_id).ratio_bps / 100:.2f}% collateralized")

    print(f"\n>>> oracle.update_price('ETH', {CONFIG.crashed_eth_price})")
    oracle.update_price("ETH", CONFIG.crashed_eth_price)
    health = pool.loan_health(loan_id)
    print(f"loan {loan_id}: {health.ratio_bps / 100:.2f}% collateralized ({health.status})")

    print(f"\n>>> pool.liquidate('carol', {loan_id})")
    reward = pool.liquidate("carol", loan_id)

    section_header("Result")
    print(f"  carol paid {health.total_debt:,} USDC and received {reward} ETH")
    print(f"  ETH kept by the pool for lenders: {pool.asset_balance('ETH').total_interest_earned}")
    print(f"  bob's score: {pool.credit.get_score('bob')}")
    show_rate(pool, "ETH")


def step_10_reentrancy(pool: LendingPool):
    """Recipient hooks cannot call back into the pool."""
    step_header(10, "Reentrant Recipients",
        "A native payment may run the recipient's code, but not a second pool operation.")

    shares = pool.deposit("dave", "ETH", value=5)

    def greedy(p, asset, amount):
        print(f"  dave's hook received {amount} {asset}; trying to deposit it again...")
        p.deposit("dave", asset, value=amount)

    pool.register_receiver("dave", greedy)
    print(f">>> pool.withdraw('dave', 'ETH', {shares})")
    try:
        pool.withdraw("dave", "ETH", shares)
    except ReentrancyError:
        print("\nCaught ReentrancyError")

    print(f"dave still holds {pool.share_balance('ETH', 'dave')} shares")

    pool.register_receiver("dave", lambda p, asset, amount: print(f"  dave received {amount} {asset}"))
    pool.withdraw("dave", "ETH", shares)


# ============================================================================
# PHASE 5: PROOF (Steps 11-12)
# ============================================================================

def step_11_conservation(pool: LendingPool):
    """Nothing was created or destroyed."""
    step_header(11, "Conservation",
        "Every unit's supply is unchanged; shares net to zero against SYSTEM_WALLET.")

    ledger = pool.ledger
    supplies = ledger.supplies()
    for unit, total in supplies.items():
        print(f"  {unit:<14} total = {total}")
    shares_net_zero = all(supplies.get(pool.share_token(asset).symbol, 0) == 0 for asset in pool.supported_assets())
    print(f"\n  shares net to zero: {shares_net_zero}")

    section_header("Where Everything Is")
    for wallet in ("alice", "bob", "carol", "dave", pool.pool_wallet, pool.escrow_wallet):
        show_wallet(ledger, wallet)


def step_12_cash_out(pool: LendingPool):
    """Lenders redeem their shares for principal plus earnings."""
    step_header(12, "Cashing Out",
        "Shares redeem for more than was deposited once interest and fees came in.")

    for asset in ("USDC", "ETH"):
        shares = pool.share_balance(asset, "alice")
        payout = pool.withdraw("alice", asset, shares)
        print(f"  alice redeemed {shares:,} {asset} shares for {payout:,} {asset}")

    section_header("Event Log")
    for event in pool.events:
        print(f"  {event}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LENDING POOL TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")

    # Phase 1: Foundation
    ledger = step_01_custody_ledger()
    wait_for_enter()

    oracle, credit = step_02_prices_and_credit()
    wait_for_enter()

    pool = step_03_create_pool(ledger, oracle, credit)
    wait_for_enter()

    # Phase 2: Lending
    step_04_deposits(pool)
    wait_for_enter()

    loan_id = step_05_borrow(pool)
    wait_for_enter()

    step_06_interest(pool, loan_id)
    wait_for_enter()

    # Phase 3: Safety
    step_07_repay(pool, loan_id)
    wait_for_enter()

    step_08_rollback(pool)
    wait_for_enter()

    # Phase 4: Stress
    step_09_liquidation(pool, oracle)
    wait_for_enter()

    step_10_reentrancy(pool)
    wait_for_enter()

    # Phase 5: Proof
    step_11_conservation(pool)
    wait_for_enter()

    step_12_cash_out(pool)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

    FOUNDATION
      - All custody lives in a double-entry Ledger
      - Native value is attached; tokens are pulled

    LENDING
      - Shares track a growing claim on pool value
      - Loans fix their APR from the borrower's credit score
      - Interest reaches lenders only when paid

    SAFETY
      - Operations are all-or-nothing
      - Recipients cannot re-enter the pool

    Next steps:
      - See lendpool/pool.py for the operation flows
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
