"""
loans.py - Loan records and per-asset borrow aggregates

=== LOAN LIFECYCLE ===

    borrow          -> Loan(active=True, principal=borrow_amount, start_time=now)
    partial repay   -> principal := principal + interest - payment, start_time := now
    full repay      -> active=False, aggregates settled
    liquidation     -> active=False, aggregates settled

Loans are never deleted. Ids come from a counter that increments before
assignment, so the first loan is id 1 and id 0 is never issued.

=== AGGREGATES ===

AssetBalance per borrow asset:
    total_borrowed         - sum of principals as originated, reduced on close
    total_interest_earned  - cumulative interest (and liquidation protocol
                             share) credited to lenders; only grows

A partial repayment changes the loan's principal but NOT total_borrowed, so
the aggregate keeps reflecting the principal as last settled.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional

from .core import StateError


@dataclass(slots=True)
class Loan:
    """
    One loan record. The all-default instance stands for "no such loan".
    """
    loan_id: int = 0
    borrower: str = ""
    collateral_asset: str = ""
    borrow_asset: str = ""
    principal: int = 0
    collateral: int = 0
    apr: int = 0
    start_time: Optional[datetime] = None
    active: bool = False


@dataclass(slots=True)
class AssetBalance:
    total_borrowed: int = 0
    total_interest_earned: int = 0


class LoanBook:
    """
    Owns loan records, the borrower index and per-asset aggregates.

    Records handed out by get() are copies; the pool mutates loans only
    through open(), capitalize() and close().
    """

    def __init__(self):
        self._loans: Dict[int, Loan] = {}
        self._by_borrower: Dict[str, List[int]] = {}
        self._balances: Dict[str, AssetBalance] = {}
        self._last_id = 0

    @property
    def last_loan_id(self) -> int:
        return self._last_id

    def open(
        self,
        borrower: str,
        collateral_asset: str,
        borrow_asset: str,
        principal: int,
        collateral: int,
        apr: int,
        start_time: datetime,
    ) -> Loan:
        self._last_id += 1
        loan = Loan(
            loan_id=self._last_id,
            borrower=borrower,
            collateral_asset=collateral_asset,
            borrow_asset=borrow_asset,
            principal=principal,
            collateral=collateral,
            apr=apr,
            start_time=start_time,
            active=True,
        )
        self._loans[loan.loan_id] = loan
        self._by_borrower.setdefault(borrower, []).append(loan.loan_id)
        self._balance(borrow_asset).total_borrowed += principal
        return replace(loan)

    def get(self, loan_id: int) -> Loan:
        """Copy of the loan, or an empty Loan() if ``loan_id`` was never issued."""
        loan = self._loans.get(loan_id)
        return replace(loan) if loan is not None else Loan()

    def require_active(self, loan_id: int) -> Loan:
        """
        Copy of an active loan.

        Raises:
            StateError: If the loan does not exist or is closed
        """
        loan = self._loans.get(loan_id)
        if loan is None:
            raise StateError(f"Loan {loan_id} does not exist")
        if not loan.active:
            raise StateError(f"Loan {loan_id} is not active")
        return replace(loan)

    def loans_of(self, borrower: str) -> List[int]:
        """Loan ids of ``borrower`` in origination order."""
        return list(self._by_borrower.get(borrower, []))

    def balance(self, asset: str) -> AssetBalance:
        """Copy of the asset's aggregates (zeros if nothing was ever borrowed)."""
        return replace(self._balances.get(asset, AssetBalance()))

    def capitalize(self, loan_id: int, new_principal: int, now: datetime) -> Loan:
        """Roll unpaid interest into principal and restart the interest clock."""
        loan = self._loans[loan_id]
        loan.principal = new_principal
        loan.start_time = now
        return replace(loan)

    def close(self, loan_id: int, interest: int) -> Loan:
        """Deactivate the loan and settle its principal and interest into the aggregates."""
        loan = self._loans[loan_id]
        loan.active = False
        balance = self._balance(loan.borrow_asset)
        # Capitalized repayments can leave principal above what was lent.
        balance.total_borrowed = max(0, balance.total_borrowed - loan.principal)
        balance.total_interest_earned += interest
        return replace(loan)

    def credit_interest(self, asset: str, amount: int) -> None:
        self._balance(asset).total_interest_earned += amount

    def _balance(self, asset: str) -> AssetBalance:
        return self._balances.setdefault(asset, AssetBalance())
