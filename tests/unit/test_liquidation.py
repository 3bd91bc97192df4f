"""
test_liquidation.py - Unit tests for health checks and liquidation planning
"""

from datetime import datetime, timedelta

import pytest

from lendpool import (
    AssetRegistry, CreditLedger, InterestModel, LiquidationEngine,
    Loan, StaticPriceOracle, HealthError,
    max_borrow_value, collateral_ratio_bps, is_liquidatable,
    liquidator_reward, health_status,
    HEALTH_STATUS_HEALTHY, HEALTH_STATUS_WARNING,
    HEALTH_STATUS_LIQUIDATABLE, HEALTH_STATUS_CLOSED,
    SECONDS_PER_YEAR,
)


T0 = datetime(2025, 1, 1)


class TestPureFunctions:

    def test_max_borrow_value(self):
        assert max_borrow_value(15000, 15000) == 10000
        assert max_borrow_value(200_000, 15000) == 133_333

    def test_ratio(self):
        assert collateral_ratio_bps(150, 100) == 15000

    def test_ratio_without_debt(self):
        assert collateral_ratio_bps(150, 0) is None
        assert not is_liquidatable(None, 12000)

    def test_threshold_is_strict(self):
        assert not is_liquidatable(12000, 12000)
        assert is_liquidatable(11999, 12000)

    def test_reward_capped_by_collateral(self):
        assert liquidator_reward(100, 500) == 100

    def test_negative_bonus_leaves_remainder(self):
        assert liquidator_reward(100, -500) == 95

    def test_zero_bonus(self):
        assert liquidator_reward(100, 0) == 100

    @pytest.mark.parametrize("ratio,status", [
        (None, HEALTH_STATUS_HEALTHY),
        (16000, HEALTH_STATUS_HEALTHY),
        (15000, HEALTH_STATUS_HEALTHY),
        (14999, HEALTH_STATUS_WARNING),
        (12000, HEALTH_STATUS_WARNING),
        (11999, HEALTH_STATUS_LIQUIDATABLE),
    ])
    def test_health_status(self, ratio, status):
        assert health_status(ratio, 15000, 12000) == status


class TestLiquidationEngine:

    @pytest.fixture
    def oracle(self):
        return StaticPriceOracle({"ETH": 2000, "USDC": 1}, {"ETH": 0, "USDC": 0})

    @pytest.fixture
    def engine(self, oracle):
        registry = AssetRegistry("admin")
        registry.add_asset("admin", "ETH", 15000, 12500, 800, 300, 500, True, True, native=True)
        registry.add_asset("admin", "USDC", 15000, 12000, 2000, 500, 500, True, True)
        interest = InterestModel(registry, CreditLedger("admin"))
        return LiquidationEngine(registry, interest, oracle)

    def _loan(self, principal=130_000, collateral=100, active=True):
        return Loan(1, "bob", "ETH", "USDC", principal, collateral, 2000, T0, active)

    def test_assess_healthy(self, engine):
        health = engine.assess(self._loan(), T0)
        assert health.collateral_value == 200_000
        assert health.debt_value == 130_000
        assert health.ratio_bps == 15384
        assert health.status == HEALTH_STATUS_HEALTHY

    def test_assess_counts_accrued_interest(self, engine):
        # One year at 20% turns 130,000 into 156,000: ratio 12820, still above 12500.
        health = engine.assess(self._loan(), T0 + timedelta(seconds=SECONDS_PER_YEAR))
        assert health.pending_interest == 26_000
        assert health.total_debt == 156_000
        assert health.status == HEALTH_STATUS_WARNING

    def test_interest_alone_can_make_loan_liquidatable(self, engine):
        health = engine.assess(self._loan(), T0 + timedelta(seconds=2 * SECONDS_PER_YEAR))
        assert health.ratio_bps < 12500
        assert health.status == HEALTH_STATUS_LIQUIDATABLE

    def test_assess_closed_loan(self, engine):
        health = engine.assess(self._loan(active=False), T0)
        assert health.status == HEALTH_STATUS_CLOSED
        assert health.ratio_bps is None

    def test_plan_healthy_loan_raises(self, engine):
        with pytest.raises(HealthError, match="not liquidatable"):
            engine.plan(self._loan(), T0)

    def test_plan_after_price_drop(self, engine, oracle):
        oracle.update_price("ETH", 1500)
        plan = engine.plan(self._loan(), T0)
        assert plan.ratio_bps == 11538
        assert plan.total_debt == 130_000
        assert plan.interest == 0
        assert plan.reward == 100
        assert plan.remainder == 0
