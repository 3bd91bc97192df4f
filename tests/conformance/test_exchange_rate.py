"""
Exchange Rate Conformance Tests

INVARIANT: Share value never falls while shares are outstanding.

    rate(asset) = (available_liquidity + total_borrowed) * WAD / share_supply

    ∀ operation O, ∀ asset A with share_supply(A) > 0 before and after O:
        rate_after(A) ≥ rate_before(A)

Deposits and withdrawals round in the pool's favor, borrows move value from
cash to loans, and repayments and liquidations bring back at least the
principal they retire. Interest is realized only when paid, so time passing
alone leaves the rate unchanged.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from lendpool import PoolError, WAD

from tests.pool_builder import build_oracle, build_pool, advance


USERS = ("alice", "bob", "carol", "dave")
ASSETS = ("ETH", "USDC")


def _rates(pool):
    return {
        asset: pool.get_exchange_rate(asset)
        for asset in ASSETS
        if pool.share_supply(asset) > 0
    }


ACTION = st.one_of(
    st.tuples(st.just("deposit"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=300_000)),
    st.tuples(st.just("withdraw"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=300_000)),
    st.tuples(st.just("borrow"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=150_000)),
    st.tuples(st.just("repay"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=200_000)),
    st.tuples(st.just("liquidate"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=10)),
    st.tuples(st.just("price"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=400_000)),
    st.tuples(st.just("wait"), st.sampled_from(USERS), st.sampled_from(ASSETS),
              st.integers(min_value=1, max_value=720)),
)


def _run(pool, oracle, action):
    kind, user, asset, n = action
    other = "USDC" if asset == "ETH" else "ETH"
    native = asset == "ETH"

    if kind == "deposit":
        amount = n % 500 + 1 if native else n
        if native:
            pool.deposit(user, asset, value=amount)
        else:
            pool.deposit(user, asset, amount)
    elif kind == "withdraw":
        held = pool.share_balance(asset, user)
        pool.withdraw(user, asset, min(held, n) if held else n)
    elif kind == "borrow":
        # borrow ``asset`` against the other one
        if native:
            pool.borrow(user, other, asset, n, n // 4000 + 1)
        else:
            pool.borrow(user, other, asset, 0, n, value=n // 1000 + 1)
    elif kind == "repay":
        loans = [i for i in pool.loans_of(user) if pool.get_loan(i).active]
        if not loans:
            return
        loan = pool.get_loan(loans[0])
        if loan.borrow_asset == "ETH":
            pool.repay(user, loan.loan_id, value=n % 200 + 1)
        else:
            pool.repay(user, loan.loan_id, n)
    elif kind == "liquidate":
        loan_id = n % max(1, pool.book.last_loan_id) + 1
        loan = pool.get_loan(loan_id)
        if not loan.active:
            return
        if loan.borrow_asset == "ETH":
            pool.liquidate(user, loan_id, value=pool.loan_health(loan_id).total_debt)
        else:
            pool.liquidate(user, loan_id)
    elif kind == "price":
        oracle.update_price(asset, n)
    else:
        advance(pool.ledger, days=n)


class TestExchangeRateMonotonic:

    @given(st.lists(ACTION, min_size=1, max_size=30))
    @settings(max_examples=60, deadline=None)
    def test_rate_never_decreases(self, actions):
        """
        PROPERTY: no operation, successful or not, lowers a live exchange rate.
        """
        oracle = build_oracle()
        pool = build_pool(oracle=oracle)
        pool.deposit("alice", "USDC", 100_000)
        pool.deposit("alice", "ETH", value=100)

        for action in actions:
            before = _rates(pool)
            try:
                _run(pool, oracle, action)
            except PoolError:
                pass
            after = _rates(pool)
            for asset, rate in before.items():
                if asset in after:
                    assert after[asset] >= rate, (action, before, after)

    @given(st.lists(st.integers(min_value=1, max_value=720), min_size=1, max_size=10))
    @settings(max_examples=30, deadline=None)
    def test_time_alone_leaves_rate_unchanged(self, waits):
        pool = build_pool()
        pool.deposit("alice", "USDC", 100_000)
        pool.borrow("bob", "ETH", "USDC", 0, 50_000, value=100)
        rate = pool.get_exchange_rate("USDC")

        for days in waits:
            advance(pool.ledger, days=days)
            assert pool.get_exchange_rate("USDC") == rate

    @given(
        st.integers(min_value=1, max_value=10**9),
        st.integers(min_value=1, max_value=10**9),
    )
    @settings(max_examples=100, deadline=None)
    def test_deposit_then_withdraw_never_profits(self, first, second):
        """
        PROPERTY: a depositor cannot withdraw more than they put in at a flat rate.
        """
        pool = build_pool()
        pool.ledger.set_balance("alice", "USDC", first * 10)
        pool.ledger.set_balance("bob", "USDC", second)
        pool.deposit("alice", "USDC", first)

        shares = pool.deposit("bob", "USDC", second)
        payout = pool.withdraw("bob", "USDC", shares)

        assert payout <= second
        assert pool.get_exchange_rate("USDC") >= WAD


class TestRateAfterRepayment:

    def test_interest_raises_rate(self):
        pool = build_pool()
        pool.deposit("alice", "USDC", 100_000)
        pool.borrow("bob", "ETH", "USDC", 0, 50_000, value=100)
        advance(pool.ledger, years=1)

        pool.repay("bob", 1, 60_000)

        assert pool.get_exchange_rate("USDC") == 110_000 * WAD // 100_000

    def test_partial_repay_raises_rate_immediately(self):
        pool = build_pool()
        pool.deposit("alice", "USDC", 100_000)
        pool.borrow("bob", "ETH", "USDC", 0, 50_000, value=100)
        advance(pool.ledger, years=1)

        assert pool.repay("bob", 1, 20_000) is False
        assert pool.get_exchange_rate("USDC") == 120_000 * WAD // 100_000
