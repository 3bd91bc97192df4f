"""
test_shares.py - Unit tests for share accounting

Tests:
- exchange_rate, shares_for_deposit, payout_for_shares (floor rounding)
- ShareToken balance and supply reads
- mint/burn move construction
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from lendpool import (
    ShareToken, exchange_rate, shares_for_deposit, payout_for_shares,
    SYSTEM_WALLET, WAD,
)
from lendpool.shares import mint_moves, burn_moves

from tests.fake_view import FakeView


class TestExchangeRate:

    def test_empty_pool_is_one(self):
        assert exchange_rate(0, 0, 0) == WAD
        assert exchange_rate(500, 100, 0) == WAD

    def test_includes_borrowed_value(self):
        assert exchange_rate(150, 50, 100) == 2 * WAD

    def test_floors(self):
        assert exchange_rate(1, 0, 3) == WAD // 3


class TestShareMath:

    def test_deposit_at_par(self):
        assert shares_for_deposit(100, WAD) == 100

    def test_deposit_floors_toward_pool(self):
        # 10 units at 3.0 buys 3.33.. shares; the depositor gets 3.
        assert shares_for_deposit(10, 3 * WAD) == 3

    def test_payout_floors_toward_pool(self):
        rate = exchange_rate(10, 0, 3)
        assert payout_for_shares(3, rate) == 9

    @given(
        cash=st.integers(min_value=1, max_value=10**24),
        supply=st.integers(min_value=1, max_value=10**24),
        amount=st.integers(min_value=1, max_value=10**24),
    )
    @settings(max_examples=200)
    def test_round_trip_never_pays_out_more_than_deposited(self, cash, supply, amount):
        rate = exchange_rate(cash, 0, supply)
        if rate == 0:
            return
        shares = shares_for_deposit(amount, rate)
        assert payout_for_shares(shares, rate) <= amount


class TestShareToken:

    def test_balance_of_registered_holder(self):
        view = FakeView(balances={"alice": {"USDC-SHARE-1": Decimal("40")}})
        share = ShareToken(view, "USDC-SHARE-1", "USDC")
        assert share.balance_of("alice") == 40

    def test_balance_of_unknown_holder_is_zero(self):
        share = ShareToken(FakeView(balances={}), "USDC-SHARE-1", "USDC")
        assert share.balance_of("nobody") == 0

    def test_total_supply_excludes_system_wallet(self):
        view = FakeView(balances={
            SYSTEM_WALLET: {"USDC-SHARE-1": Decimal("-70")},
            "alice": {"USDC-SHARE-1": Decimal("40")},
            "bob": {"USDC-SHARE-1": Decimal("30")},
        })
        assert ShareToken(view, "USDC-SHARE-1", "USDC").total_supply() == 70

    def test_total_supply_of_unissued_token(self):
        assert ShareToken(FakeView(balances={}), "USDC-SHARE-1", "USDC").total_supply() == 0


class TestMintBurnMoves:

    def test_mint_issues_from_system(self):
        (move,) = mint_moves("USDC-SHARE-1", "alice", 5, "pool:deposit:1:mint")
        assert move.source == SYSTEM_WALLET
        assert move.dest == "alice"
        assert move.quantity == Decimal(5)

    def test_burn_retires_into_system(self):
        (move,) = burn_moves("USDC-SHARE-1", "alice", 5, "pool:withdraw:2:burn")
        assert move.source == "alice"
        assert move.dest == SYSTEM_WALLET

    @pytest.mark.parametrize("build", [mint_moves, burn_moves])
    def test_zero_shares_builds_nothing(self, build):
        assert build("USDC-SHARE-1", "alice", 0, "tx") == []
