"""
transfers.py - Native and external value-transfer pathways

An asset moves into and out of the pool along one of two pathways, chosen
once when the asset is registered:

    NativeTransfer  - the amount travels as value attached to the call
                      (debited from the caller's native balance); outbound
                      payments notify the recipient, which may run code
    TokenTransfer   - the amount is pulled explicitly from the caller;
                      attaching value to a token operation is an error

Pool operations are written once against TransferPathway and never branch on
asset identity.
"""

from __future__ import annotations
from typing import List, Protocol

from .core import (
    Move, InsufficientFundsError, ValidationError,
    to_quantity,
)


class TransferPathway(Protocol):
    """Inbound amount resolution and move construction for one asset."""

    asset: str
    notifies_receiver: bool

    def resolve_amount(self, amount: int, value: int) -> int:
        """Amount actually transferred in, given the declared amount and attached value."""
        ...

    def resolve_settlement(self, required: int, value: int) -> int:
        """Amount transferred in to settle a debt of exactly ``required``."""
        ...

    def transfer(self, amount: int, source: str, dest: str, contract_id: str) -> List[Move]:
        """Moves carrying ``amount`` of the asset from ``source`` to ``dest``."""
        ...


class _Pathway:
    notifies_receiver = False

    def __init__(self, asset: str):
        self.asset = asset

    def transfer(self, amount: int, source: str, dest: str, contract_id: str) -> List[Move]:
        if amount < 0:
            raise ValidationError(f"Cannot transfer a negative amount of {self.asset}: {amount}")
        if amount == 0:
            return []
        return [Move(to_quantity(amount), self.asset, source, dest, contract_id)]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.asset})"


class NativeTransfer(_Pathway):
    """Value-attached pathway of the native asset."""

    notifies_receiver = True

    def resolve_amount(self, amount: int, value: int) -> int:
        if value < 0:
            raise ValidationError(f"Attached value cannot be negative: {value}")
        if amount and amount != value:
            raise ValidationError(
                f"{self.asset} amount {amount} does not match attached value {value}"
            )
        return value

    def resolve_settlement(self, required: int, value: int) -> int:
        # Any value above ``required`` is accepted and kept.
        if value < required:
            raise InsufficientFundsError(
                f"Attached value {value} {self.asset} is below the required {required}"
            )
        return value


class TokenTransfer(_Pathway):
    """Explicit-pull pathway of an external token."""

    def resolve_amount(self, amount: int, value: int) -> int:
        if value:
            raise ValidationError(f"{self.asset} is not the native asset; value cannot be attached")
        return amount

    def resolve_settlement(self, required: int, value: int) -> int:
        if value:
            raise ValidationError(f"{self.asset} is not the native asset; value cannot be attached")
        return required


def pathway_for(asset: str, native: bool) -> TransferPathway:
    """Select the transfer pathway for an asset at registration time."""
    if native:
        return NativeTransfer(asset)
    return TokenTransfer(asset)
