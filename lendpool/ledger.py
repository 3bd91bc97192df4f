"""
ledger.py - Custody ledger the lending pool settles through

Every balance the pool touches lives here:

    <user>              - underlying tokens, native coin, share tokens
    <pool>              - the pool's cash (available liquidity)
    <pool>:collateral   - escrow for posted collateral
    system              - issuer of share tokens; may go negative

A PendingTransaction is applied whole or not at all, at most once per
intent_id, and every applied one is appended to transaction_log.

A pool operation settles as several transactions. checkpoint() marks the
ledger before the first and rollback() unwinds everything applied since:
the log is truncated and the truncated intent ids are forgotten, so the
cost of a checkpoint grows with the number of balances, not with history.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Set, Optional, Tuple
import copy
from decimal import Decimal

from .core import (
    Transaction, Unit,
    PendingTransaction,
    ExecuteResult,
    Positions, UnitState, BalanceMap,
    QUANTITY_EPSILON, SYSTEM_WALLET,
    LedgerError, UnitNotRegistered, WalletNotRegistered,
)


def _zero() -> Decimal:
    return Decimal("0")


@dataclass(frozen=True)
class Checkpoint:
    """
    Ledger state captured by Ledger.checkpoint().

    Holds copies of the balance maps and only the lengths of the
    append-only structures. Single use: rollback() adopts the maps.
    """
    ledger_name: str
    log_length: int
    next_sequence: int
    wallets: FrozenSet[str]
    units: FrozenSet[str]
    balances: Dict[str, Dict[str, Decimal]]
    positions: Dict[str, Dict[str, Decimal]]


class Ledger:
    """
    Double-entry custody ledger.

    Implements the LedgerView protocol, so read-only helpers (share supply,
    balance checks) can take either a Ledger or a test double.

    Every transaction is validated against unit balance limits and the
    ledger clock before it is applied. SYSTEM_WALLET is exempt from limits.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Ledger instance.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(token("USDC", "USD Coin", decimals=6))
        ledger.register_wallet("alice")
        ledger.register_wallet("pool")

        ledger.execute(build_transaction(ledger, [
            Move(Decimal("100"), "USDC", "alice", "pool", "deposit_001")
        ]))
    """

    POSITION_EPSILON = QUANTITY_EPSILON

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time for the ledger (default: 1970-01-01)
            verbose: Print registrations and applied transactions (default: True)
            test_mode: Allow set_balance() for seeding tests (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, Decimal]] = {}
        self.units: Dict[str, Unit] = {}
        self.registered_wallets: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0
        # unit -> {wallet -> quantity}, non-zero entries only
        self._positions_by_unit: Dict[str, Dict[str, Decimal]] = defaultdict(dict)

        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(_zero)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time; interest accrues against it."""
        return self._current_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Balance of ``unit_symbol`` held by ``wallet_id`` (0 if never touched).

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        self._require_wallet(wallet_id)
        self._require_unit(unit_symbol)
        return self.balances[wallet_id].get(unit_symbol, Decimal("0"))

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """Deep copy of a unit's metadata (e.g. a share token's underlying)."""
        return copy.deepcopy(self._require_unit(unit_symbol).state)

    def get_positions(self, unit_symbol: str) -> Positions:
        """Every wallet holding a non-zero quantity of ``unit_symbol``."""
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        return self.registered_wallets.copy()

    def get_unit(self, symbol: str) -> Unit:
        return self._require_unit(symbol)

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        self._require_wallet(wallet_id)
        return dict(self.balances[wallet_id])

    def total_supply(self, unit_symbol: str) -> Decimal:
        """
        Sum of a unit over all wallets, SYSTEM_WALLET included.

        Units issued from SYSTEM_WALLET (share tokens) net to zero.
        Wallets are summed in sorted order so the result is deterministic.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        self._require_unit(unit_symbol)
        return sum(
            (self.balances[w].get(unit_symbol, Decimal("0")) for w in sorted(self.registered_wallets)),
            Decimal("0"),
        )

    def supplies(self) -> Dict[str, Decimal]:
        """Total supply of every registered unit, keyed by symbol in sorted order."""
        return {symbol: self.total_supply(symbol) for symbol in sorted(self.units)}

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def _require_wallet(self, wallet_id: str) -> None:
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")

    def _require_unit(self, unit_symbol: str) -> Unit:
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.units[unit_symbol]

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the logical clock forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a wallet (a user, the pool, its escrow).

        Raises:
            ValueError: If wallet is already registered
        """
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(_zero)
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        """
        Register a unit (an underlying asset or a share token).

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> None:
        """
        Overwrite a balance directly, bypassing double entry. Test mode only.

        Raises:
            LedgerError: If the ledger was not created with test_mode=True
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Fund wallets with moves from SYSTEM_WALLET instead, "
                "or create the Ledger with test_mode=True."
            )
        self._require_wallet(wallet_id)
        self._require_unit(unit_symbol)
        if not isinstance(quantity, Decimal):
            quantity = Decimal(str(quantity))
        self.balances[wallet_id][unit_symbol] = quantity
        self._update_position_index(wallet_id, unit_symbol, quantity)

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """Format: exec:{ledger_name}:{sequence:012d}:{timestamp_micros}"""
        micros = int(self._current_time.timestamp() * 1_000_000)
        return f"exec:{self.name}:{sequence:012d}:{micros}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Apply a PendingTransaction: all of its moves, or none.

        A transaction whose intent_id was already applied is skipped, so a
        retried settlement never moves value twice.

        Returns:
            ExecuteResult.APPLIED if applied (or empty)
            ExecuteResult.ALREADY_APPLIED if the intent_id was seen before
            ExecuteResult.REJECTED if validation failed; nothing changed
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        # New units must exist for validation; they are dropped again on rejection.
        created: List[str] = []
        for unit in pending.units_to_create:
            if unit.symbol not in self.units:
                self.register_unit(unit)
                created.append(unit.symbol)

        valid, reason = self._validate_pending(pending)
        if not valid:
            for symbol in created:
                del self.units[symbol]
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1

        tx = Transaction(
            moves=pending.moves,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
            units_to_create=pending.units_to_create,
        )

        self._execute_moves(tx.moves)
        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            self._print_tx_result(tx, "APPLIED", "✓")
        return ExecuteResult.APPLIED

    def _print_tx_result(self, tx: Transaction, result: str, icon: str) -> None:
        """Print the transaction box with a trailing result line."""
        lines = repr(tx).split('\n')
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Check a pending transaction without applying it.

        Moves are netted per (wallet, unit) first, so a wallet may pass value
        through within one transaction. Returns (ok, reason).
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            for wallet in (move.source, move.dest):
                if wallet not in self.registered_wallets:
                    return False, f"wallet not registered: {wallet}"

        net: Dict[Tuple[str, str], Decimal] = {}
        for move in pending.moves:
            unit = self.units[move.unit_symbol]
            key_src = (move.source, move.unit_symbol)
            key_dst = (move.dest, move.unit_symbol)
            net[key_src] = unit.round(net.get(key_src, Decimal("0")) - move.quantity)
            net[key_dst] = unit.round(net.get(key_dst, Decimal("0")) + move.quantity)

        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[unit_sym]
            proposed = unit.round(self.balances[wallet][unit_sym] + delta)
            if proposed < unit.min_balance:
                return False, f"{wallet} {unit_sym}: {proposed} < min {unit.min_balance}"
            if proposed > unit.max_balance:
                return False, f"{wallet} {unit_sym}: {proposed} > max {unit.max_balance}"

        return True, ""

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> None:
        if abs(quantity) > self.POSITION_EPSILON:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves) -> None:
        for move in moves:
            unit = self.units[move.unit_symbol]
            for wallet, signed in ((move.source, -move.quantity), (move.dest, move.quantity)):
                balance = unit.round(self.balances[wallet][move.unit_symbol] + signed)
                self.balances[wallet][move.unit_symbol] = balance
                self._update_position_index(wallet, move.unit_symbol, balance)

    # ========================================================================
    # CHECKPOINTS
    # ========================================================================

    def checkpoint(self) -> Checkpoint:
        """
        Mark the current state so rollback() can return to it.

        Copies the balance and position maps; the log, intent ids, wallets
        and units are append-only between a checkpoint and its rollback, so
        only their extent is recorded.
        """
        return Checkpoint(
            ledger_name=self.name,
            log_length=len(self.transaction_log),
            next_sequence=self._next_sequence,
            wallets=frozenset(self.registered_wallets),
            units=frozenset(self.units),
            balances={w: defaultdict(_zero, bals) for w, bals in self.balances.items()},
            positions={u: dict(positions) for u, positions in self._positions_by_unit.items()},
        )

    def rollback(self, checkpoint: Checkpoint) -> None:
        """
        Unwind everything applied or registered since ``checkpoint``.

        Rolled-back intent ids are forgotten, so the same transaction can be
        applied again. The logical clock is kept: time is not an effect.

        Raises:
            LedgerError: If the checkpoint belongs to another ledger or lies
                         ahead of this ledger's log
        """
        if checkpoint.ledger_name != self.name:
            raise LedgerError(f"Cannot roll {self.name} back to a checkpoint of {checkpoint.ledger_name}")
        if checkpoint.log_length > len(self.transaction_log):
            raise LedgerError(
                f"Checkpoint at log length {checkpoint.log_length} is ahead of "
                f"{self.name} ({len(self.transaction_log)} transactions)"
            )

        for tx in self.transaction_log[checkpoint.log_length:]:
            self.seen_intent_ids.discard(tx.intent_id)
        del self.transaction_log[checkpoint.log_length:]
        self._next_sequence = checkpoint.next_sequence

        for symbol in set(self.units) - checkpoint.units:
            del self.units[symbol]
        self.registered_wallets &= checkpoint.wallets

        self.balances = dict(checkpoint.balances)
        self._positions_by_unit = defaultdict(dict, checkpoint.positions)
