"""
test_oracle.py - Unit tests for price oracles and valuation
"""

from datetime import datetime, timedelta

import pytest

from lendpool import (
    PriceOracle, StaticPriceOracle, TimeSeriesPriceOracle,
    Quote, quote, value_of, ValidationError,
)

from tests.fake_view import FakeView


T0 = datetime(2025, 1, 1)


class TestValuation:

    def test_value_uses_per_asset_decimals(self):
        oracle = StaticPriceOracle(
            {"ETH": 3000 * 10**8, "USDC": 10**6},
            {"ETH": 8, "USDC": 6},
        )
        assert value_of(oracle, "ETH", 2) == 6000
        assert value_of(oracle, "USDC", 2) == 2

    def test_value_floors(self):
        oracle = StaticPriceOracle({"X": 150}, {"X": 2})
        assert value_of(oracle, "X", 1) == 1

    def test_quote_reads_price_and_decimals_together(self):
        oracle = StaticPriceOracle({"ETH": 200_000}, {"ETH": 2})
        q = quote(oracle, "ETH")
        assert q == Quote("ETH", 200_000, 2)
        oracle.update_price("ETH", 100_000)
        assert q.value(10) == 20_000


class TestStaticPriceOracle:

    def test_protocol(self):
        assert isinstance(StaticPriceOracle({}, {}), PriceOracle)

    def test_missing_price_raises(self):
        with pytest.raises(ValidationError, match="No price"):
            StaticPriceOracle({}, {"ETH": 2}).get_price("ETH")

    def test_missing_decimals_raises(self):
        with pytest.raises(ValidationError, match="No decimals"):
            StaticPriceOracle({"ETH": 1}, {}).get_decimals("ETH")

    def test_update_prices(self):
        oracle = StaticPriceOracle({"ETH": 1, "WBTC": 2}, {"ETH": 0, "WBTC": 0})
        oracle.update_prices({"ETH": 10, "WBTC": 20})
        assert oracle.get_price("ETH") == 10
        assert oracle.get_price("WBTC") == 20

    def test_inputs_are_copied(self):
        prices = {"ETH": 1}
        oracle = StaticPriceOracle(prices, {"ETH": 0})
        prices["ETH"] = 99
        assert oracle.get_price("ETH") == 1


class TestTimeSeriesPriceOracle:

    @pytest.fixture
    def clock(self):
        return FakeView(balances={}, time=T0)

    @pytest.fixture
    def oracle(self, clock):
        return TimeSeriesPriceOracle(clock, {"ETH": 2}, {
            "ETH": [
                (T0 + timedelta(days=2), 150_000),
                (T0, 200_000),
            ],
        })

    def test_price_at_clock_time(self, oracle):
        assert oracle.get_price("ETH") == 200_000

    def test_follows_clock(self, oracle, clock):
        clock.set_time(T0 + timedelta(days=1))
        assert oracle.get_price("ETH") == 200_000
        clock.set_time(T0 + timedelta(days=2))
        assert oracle.get_price("ETH") == 150_000

    def test_before_first_observation_raises(self, oracle, clock):
        clock.set_time(T0 - timedelta(seconds=1))
        with pytest.raises(ValidationError, match="No price for ETH at"):
            oracle.get_price("ETH")

    def test_add_price(self, oracle, clock):
        oracle.add_price("ETH", T0 + timedelta(hours=1), 190_000)
        clock.set_time(T0 + timedelta(hours=2))
        assert oracle.get_price("ETH") == 190_000

    def test_unknown_asset_raises(self, oracle):
        with pytest.raises(ValidationError, match="No price"):
            oracle.get_price("DOGE")

    def test_follows_ledger_clock(self, ledger):
        oracle = TimeSeriesPriceOracle(ledger, {"ETH": 2}, {
            "ETH": [(ledger.current_time, 1), (ledger.current_time + timedelta(days=1), 2)],
        })
        ledger.advance_time(ledger.current_time + timedelta(days=1))
        assert oracle.get_price("ETH") == 2
