"""
conftest.py - Shared pytest fixtures for lendpool tests

Provides common fixtures used across unit, functional and conformance tests:
- Basic ledgers (empty, funded)
- The standard three-asset market (ledger, oracle, credit, pool)
- Pools with open positions (supplied, borrowed)
"""

import pytest
from decimal import Decimal

from lendpool import Ledger, LendingPool, token

from tests.pool_builder import (
    T0, build_ledger, build_oracle, build_credit, build_pool,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def basic_ledger():
    """Ledger with USDC and two wallets."""
    ledger = Ledger("test", T0, verbose=False, test_mode=True)
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


@pytest.fixture
def funded_ledger(basic_ledger):
    """Basic ledger with alice holding 10,000 USDC."""
    basic_ledger.set_balance("alice", "USDC", Decimal("10000"))
    return basic_ledger


# =============================================================================
# MARKET FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Ledger with ETH, USDC, WBTC and four funded users."""
    return build_ledger()


@pytest.fixture
def oracle():
    return build_oracle()


@pytest.fixture
def credit():
    """Credit ledger owned by admin with the pool authorized."""
    return build_credit()


@pytest.fixture
def pool(ledger, oracle, credit) -> LendingPool:
    """Pool with ETH, USDC and WBTC registered."""
    return build_pool(ledger, oracle, credit)


@pytest.fixture
def supplied_pool(pool):
    """Pool where alice has supplied 100,000 USDC and 100 ETH."""
    pool.deposit("alice", "USDC", 100_000)
    pool.deposit("alice", "ETH", value=100)
    return pool


@pytest.fixture
def borrowed_pool(supplied_pool):
    """
    Supplied pool where bob holds loan 1: 50,000 USDC against 100 ETH.

    Collateral value 200,000 supports up to 133,333 of debt.
    """
    loan_id = supplied_pool.borrow("bob", "ETH", "USDC", 0, 50_000, value=100)
    assert loan_id == 1
    return supplied_pool
