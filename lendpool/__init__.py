"""
lendpool - Multi-asset pooled-lending engine

Lenders deposit assets for interest-bearing share tokens; borrowers lock
collateral in one asset to draw loans in another, at an APR discounted by
their credit score; undercollateralized loans are liquidated by anyone.
Every balance lives in a double-entry custody Ledger.

Usage:
    from lendpool import (
        Ledger, LendingPool, CreditLedger, StaticPriceOracle,
        token, native_coin, build_transaction, Move, SYSTEM_WALLET,
    )

    ledger = Ledger("main")
    ledger.register_unit(native_coin("ETH", "Ether"))
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))
    ledger.register_wallet("alice")

    # Fund wallets via SYSTEM_WALLET (proper issuance)
    ledger.execute(build_transaction(ledger, [
        Move(Decimal(10**12), "USDC", SYSTEM_WALLET, "alice", "faucet")
    ]))

    oracle = StaticPriceOracle({"ETH": 3000 * 10**8, "USDC": 10**8}, {"ETH": 8, "USDC": 8})
    credit = CreditLedger(owner="admin")
    credit.authorize("admin", "pool")

    pool = LendingPool("pool", ledger, oracle, credit, admin="admin")
    pool.add_asset("admin", "USDC", 15000, 12000, 1000, 200, 500, True, True)
    shares = pool.deposit("alice", "USDC", 1_000_000)
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    ExecuteResult,
    LedgerError,
    UnitNotRegistered,
    WalletNotRegistered,
    PoolError,
    AuthorizationError,
    ValidationError,
    InsufficientFundsError,
    StateError,
    ReentrancyError,
    HealthError,
    token,
    native_coin,
    share_token_unit,
    to_quantity,
    to_amount,
    SYSTEM_WALLET,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_NATIVE,
    UNIT_TYPE_SHARE,
    WAD,
    BPS,
    SECONDS_PER_YEAR,
    CREDIT_SCORE_MIN,
    CREDIT_SCORE_MAX,
    APR_DISCOUNT_PER_POINT,
    REPAY_SCORE_REWARD,
    LIQUIDATION_SCORE_PENALTY,
)

# Custody ledger
from .ledger import Ledger

# Collaborators
from .oracle import (
    PriceOracle,
    Quote,
    StaticPriceOracle,
    TimeSeriesPriceOracle,
    quote,
    value_of,
)
from .credit import CreditLedger, clamp_score

# Components
from .registry import AssetConfig, AssetRegistry, share_symbol
from .shares import (
    ShareToken,
    exchange_rate,
    shares_for_deposit,
    payout_for_shares,
)
from .transfers import TransferPathway, NativeTransfer, TokenTransfer, pathway_for
from .interest import InterestModel, origination_apr, accrued_interest, elapsed_seconds
from .loans import Loan, LoanBook, AssetBalance
from .liquidation import (
    LiquidationEngine,
    LoanHealth,
    LiquidationPlan,
    max_borrow_value,
    collateral_ratio_bps,
    is_liquidatable,
    liquidator_reward,
    health_status,
    HEALTH_STATUS_HEALTHY,
    HEALTH_STATUS_WARNING,
    HEALTH_STATUS_LIQUIDATABLE,
    HEALTH_STATUS_CLOSED,
)
from .events import PoolEvent, Deposit, Withdraw, Borrow, Repay, Liquidate

# Pool
from .pool import LendingPool, ReceiveHook

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction',
    'TransactionOrigin', 'OriginType', 'build_transaction',
    'Unit', 'ExecuteResult',
    'LedgerError', 'UnitNotRegistered', 'WalletNotRegistered',
    'PoolError', 'AuthorizationError', 'ValidationError',
    'InsufficientFundsError', 'StateError', 'ReentrancyError', 'HealthError',
    'token', 'native_coin', 'share_token_unit', 'to_quantity', 'to_amount',
    'SYSTEM_WALLET', 'UNIT_TYPE_TOKEN', 'UNIT_TYPE_NATIVE', 'UNIT_TYPE_SHARE',
    'WAD', 'BPS', 'SECONDS_PER_YEAR',
    'CREDIT_SCORE_MIN', 'CREDIT_SCORE_MAX', 'APR_DISCOUNT_PER_POINT',
    'REPAY_SCORE_REWARD', 'LIQUIDATION_SCORE_PENALTY',
    # Ledger
    'Ledger',
    # Collaborators
    'PriceOracle', 'Quote', 'StaticPriceOracle', 'TimeSeriesPriceOracle',
    'quote', 'value_of',
    'CreditLedger', 'clamp_score',
    # Components
    'AssetConfig', 'AssetRegistry', 'share_symbol',
    'ShareToken', 'exchange_rate', 'shares_for_deposit', 'payout_for_shares',
    'TransferPathway', 'NativeTransfer', 'TokenTransfer', 'pathway_for',
    'InterestModel', 'origination_apr', 'accrued_interest', 'elapsed_seconds',
    'Loan', 'LoanBook', 'AssetBalance',
    'LiquidationEngine', 'LoanHealth', 'LiquidationPlan',
    'max_borrow_value', 'collateral_ratio_bps', 'is_liquidatable',
    'liquidator_reward', 'health_status',
    'HEALTH_STATUS_HEALTHY', 'HEALTH_STATUS_WARNING',
    'HEALTH_STATUS_LIQUIDATABLE', 'HEALTH_STATUS_CLOSED',
    'PoolEvent', 'Deposit', 'Withdraw', 'Borrow', 'Repay', 'Liquidate',
    # Pool
    'LendingPool', 'ReceiveHook',
]

__version__ = '1.0.0'
