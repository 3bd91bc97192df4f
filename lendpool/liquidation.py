"""
liquidation.py - Collateral health and liquidation incentives

ARCHITECTURE:

1. PURE CALCULATION FUNCTIONS:
   - Take all inputs explicitly as parameters
   - Example: collateral_ratio_bps(collateral_value, debt_value) -> int

2. FROZEN RESULTS:
   - LoanHealth: status snapshot of one loan
   - LiquidationPlan: everything a liquidation settles

3. LiquidationEngine:
   - Reads loan, config and oracle once, then calls the pure functions

Key Formulas:
    total_debt  = principal + interest
    ratio_bps   = collateral_value * BPS // debt_value
    liquidatable iff ratio_bps < liquidation_ratio     (total debt, not bare principal)
    reward      = min(collateral, collateral * (BPS + liquidation_bonus) // BPS)
    remainder   = collateral - reward                  (protocol share)

The bonus is paid only out of collateral that exists: a thin position gives
the liquidator the whole collateral and nothing more.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .core import BPS, HealthError
from .interest import InterestModel
from .loans import Loan
from .oracle import PriceOracle, quote
from .registry import AssetRegistry


# Health status constants
HEALTH_STATUS_HEALTHY = "HEALTHY"
HEALTH_STATUS_WARNING = "WARNING"
HEALTH_STATUS_LIQUIDATABLE = "LIQUIDATABLE"
HEALTH_STATUS_CLOSED = "CLOSED"


# ============================================================================
# FROZEN RESULTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanHealth:
    """
    Immutable result of a loan health assessment.

    ratio_bps is None when the debt has no value (nothing to liquidate).
    """
    loan_id: int
    collateral_value: int
    debt_value: int
    total_debt: int
    pending_interest: int
    ratio_bps: Optional[int]
    collateral_ratio: int
    liquidation_ratio: int
    status: str


@dataclass(frozen=True, slots=True)
class LiquidationPlan:
    loan_id: int
    interest: int
    total_debt: int
    ratio_bps: int
    reward: int
    remainder: int


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def max_borrow_value(collateral_value: int, collateral_ratio: int) -> int:
    """
    Largest debt value a collateral value supports.

    Example:
        max_borrow_value(15000, 15000) -> 10000
    """
    return collateral_value * BPS // collateral_ratio


def collateral_ratio_bps(collateral_value: int, debt_value: int) -> Optional[int]:
    """Collateral value as a bps fraction of debt value; None when debt_value is 0."""
    if debt_value == 0:
        return None
    return collateral_value * BPS // debt_value


def is_liquidatable(ratio_bps: Optional[int], liquidation_ratio: int) -> bool:
    return ratio_bps is not None and ratio_bps < liquidation_ratio


def liquidator_reward(collateral: int, liquidation_bonus: int) -> int:
    """
    Collateral handed to the liquidator, capped at the collateral held.

    Example:
        liquidator_reward(100, 500) -> 100     # 105 wanted, 100 available
        liquidator_reward(100, -500) -> 95
    """
    return min(collateral, collateral * (BPS + liquidation_bonus) // BPS)


def health_status(ratio_bps: Optional[int], collateral_ratio: int, liquidation_ratio: int) -> str:
    if is_liquidatable(ratio_bps, liquidation_ratio):
        return HEALTH_STATUS_LIQUIDATABLE
    if ratio_bps is not None and ratio_bps < collateral_ratio:
        return HEALTH_STATUS_WARNING
    return HEALTH_STATUS_HEALTHY


# ============================================================================
# ENGINE
# ============================================================================

class LiquidationEngine:
    """Evaluates loan health and plans liquidations against the oracle."""

    def __init__(self, registry: AssetRegistry, interest: InterestModel, oracle: PriceOracle):
        self.registry = registry
        self.interest = interest
        self.oracle = oracle

    def assess(self, loan: Loan, now: datetime) -> LoanHealth:
        """Value collateral and total debt (principal + accrued interest) for ``loan``."""
        config = self.registry.get(loan.collateral_asset)
        if not loan.active:
            return LoanHealth(
                loan_id=loan.loan_id,
                collateral_value=0,
                debt_value=0,
                total_debt=0,
                pending_interest=0,
                ratio_bps=None,
                collateral_ratio=config.collateral_ratio,
                liquidation_ratio=config.liquidation_ratio,
                status=HEALTH_STATUS_CLOSED,
            )

        interest = self.interest.owed(loan, now)
        total_debt = loan.principal + interest
        collateral_value = quote(self.oracle, loan.collateral_asset).value(loan.collateral)
        debt_value = quote(self.oracle, loan.borrow_asset).value(total_debt)
        ratio = collateral_ratio_bps(collateral_value, debt_value)

        return LoanHealth(
            loan_id=loan.loan_id,
            collateral_value=collateral_value,
            debt_value=debt_value,
            total_debt=total_debt,
            pending_interest=interest,
            ratio_bps=ratio,
            collateral_ratio=config.collateral_ratio,
            liquidation_ratio=config.liquidation_ratio,
            status=health_status(ratio, config.collateral_ratio, config.liquidation_ratio),
        )

    def plan(self, loan: Loan, now: datetime) -> LiquidationPlan:
        """
        Plan the liquidation of an active loan.

        Raises:
            HealthError: If the collateral ratio is at or above the liquidation ratio
        """
        health = self.assess(loan, now)
        if health.status != HEALTH_STATUS_LIQUIDATABLE:
            raise HealthError(
                f"Loan {loan.loan_id} is not liquidatable: ratio {health.ratio_bps} bps, "
                f"threshold {health.liquidation_ratio} bps"
            )

        config = self.registry.get(loan.collateral_asset)
        reward = liquidator_reward(loan.collateral, config.liquidation_bonus)
        return LiquidationPlan(
            loan_id=loan.loan_id,
            interest=health.pending_interest,
            total_debt=health.total_debt,
            ratio_bps=health.ratio_bps,
            reward=reward,
            remainder=loan.collateral - reward,
        )
