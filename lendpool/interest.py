"""
interest.py - Credit-adjusted origination APR and linear interest

Key Formulas:
    apr      = min(base_apr, max(apr_floor, base_apr - score * APR_DISCOUNT_PER_POINT))
    interest = principal * apr * elapsed_seconds // (SECONDS_PER_YEAR * BPS)

The APR is snapshotted on the loan at origination and never recomputed.
Interest is simple, never compounded, and always recomputed from the loan's
current start_time, which a partial repayment resets.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .core import APR_DISCOUNT_PER_POINT, BPS, SECONDS_PER_YEAR

if TYPE_CHECKING:
    from .credit import CreditLedger
    from .loans import Loan
    from .registry import AssetRegistry


def origination_apr(base_apr: int, apr_floor: int, credit_score: int) -> int:
    """
    APR in bps for a borrower with ``credit_score``.

    Example:
        origination_apr(2000, 500, 10) -> 1500
        origination_apr(2000, 500, 90) -> 500    # floored
    """
    discounted = base_apr - credit_score * APR_DISCOUNT_PER_POINT
    return min(base_apr, max(apr_floor, discounted))


def elapsed_seconds(start: datetime, now: datetime) -> int:
    """Whole seconds from ``start`` to ``now``; never negative."""
    return max(0, (now - start) // timedelta(seconds=1))


def accrued_interest(principal: int, apr: int, seconds: int) -> int:
    """
    Simple interest on ``principal`` at ``apr`` bps over ``seconds``.

    Example:
        accrued_interest(20, 2000, SECONDS_PER_YEAR) -> 4
    """
    return principal * apr * seconds // (SECONDS_PER_YEAR * BPS)


class InterestModel:
    """Origination pricing and accrual for loans in a pool."""

    def __init__(self, registry: AssetRegistry, credit: CreditLedger):
        self.registry = registry
        self.credit = credit

    def apr_for(self, borrower: str, borrow_asset: str) -> int:
        config = self.registry.get(borrow_asset)
        return origination_apr(config.base_apr, config.apr_floor, self.credit.get_score(borrower))

    def owed(self, loan: Loan, now: datetime) -> int:
        """Interest accrued on ``loan`` since its start_time; 0 once closed."""
        if not loan.active or loan.start_time is None:
            return 0
        return accrued_interest(loan.principal, loan.apr, elapsed_seconds(loan.start_time, now))
