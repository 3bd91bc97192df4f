"""
events.py - Immutable records of committed pool operations

One record is appended to LendingPool.events per committed operation, with
one exception: a partial repayment emits nothing. A rolled-back operation
emits nothing either.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Union


@dataclass(frozen=True, slots=True)
class Deposit:
    depositor: str
    asset: str
    amount: int
    shares_minted: int
    time: datetime


@dataclass(frozen=True, slots=True)
class Withdraw:
    holder: str
    asset: str
    shares_burned: int
    amount_returned: int
    time: datetime


@dataclass(frozen=True, slots=True)
class Borrow:
    borrower: str
    loan_id: int
    principal: int
    collateral: int
    apr: int
    time: datetime


@dataclass(frozen=True, slots=True)
class Repay:
    """Full close of a loan: principal and interest as settled."""
    borrower: str
    loan_id: int
    principal: int
    interest: int
    time: datetime


@dataclass(frozen=True, slots=True)
class Liquidate:
    liquidator: str
    borrower: str
    loan_id: int
    collateral_seized: int
    liquidator_reward: int
    time: datetime


PoolEvent = Union[Deposit, Withdraw, Borrow, Repay, Liquidate]
