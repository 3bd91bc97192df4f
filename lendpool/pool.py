"""
pool.py - The lending pool: deposits, withdrawals, loans and liquidations

The LendingPool ties the components together:

    AssetRegistry      - which assets exist and how they may be used
    ShareToken         - per-asset claim on pool value (exchange-rate accounting)
    InterestModel      - origination APR and accrued interest
    LoanBook           - loan records and per-asset aggregates
    LiquidationEngine  - health checks and liquidation incentives
    Ledger             - custody: every asset movement settles through it

Wallets in the custody ledger:
    <name>              - the pool's cash (available liquidity)
    <name>:collateral   - escrow for posted collateral
    system              - mint source / burn sink for share tokens

=== ATOMICITY ===

Each mutating operation runs inside _operation(): the custody ledger is
checkpointed and the pool's own state copied on entry; both are rolled back
if anything raises, so an operation either commits every effect or none.
A second mutating call made while one is running (for instance from a
recipient hook fired by an outbound native payment) fails immediately with
ReentrancyError.

Inbound pulls settle before outbound payouts, as two ledger transactions,
so a caller must hold the full amount being pulled even when part of it is
refunded in the same operation.

Usage:
    pool = LendingPool("pool", ledger, oracle, credit, admin="admin")
    pool.add_asset("admin", "USDC", 15000, 12000, 1000, 200, 500, True, True)
    pool.deposit("alice", "USDC", 1_000_000)
"""

from __future__ import annotations
from contextlib import contextmanager
import copy
from typing import Callable, Dict, Iterator, List, Type

from .core import (
    ExecuteResult, Move, OriginType, PendingTransaction, TransactionOrigin,
    InsufficientFundsError, ReentrancyError, StateError, ValidationError,
    UnitNotRegistered,
    LIQUIDATION_SCORE_PENALTY, REPAY_SCORE_REWARD, UNIT_TYPE_NATIVE, BPS,
    share_token_unit, to_amount,
)
from .credit import CreditLedger
from .events import Borrow, Deposit, Liquidate, PoolEvent, Repay, Withdraw
from .interest import InterestModel
from .ledger import Ledger
from .liquidation import LiquidationEngine, LoanHealth, max_borrow_value
from .loans import AssetBalance, Loan, LoanBook
from .oracle import PriceOracle, value_of
from .registry import AssetConfig, AssetRegistry
from .shares import (
    ShareToken, burn_moves, exchange_rate, mint_moves,
    payout_for_shares, shares_for_deposit,
)
from .transfers import TransferPathway, pathway_for


# Called as hook(pool, asset, amount) after a native payment reaches the wallet.
ReceiveHook = Callable[["LendingPool", str, int], None]


class LendingPool:
    """
    Multi-asset pooled-lending engine settling through a custody Ledger.

    Thread Safety:
        Not thread-safe. Operations are serialized per instance by the
        non-reentrant guard, which fails fast instead of waiting.
    """

    def __init__(
        self,
        name: str,
        ledger: Ledger,
        oracle: PriceOracle,
        credit: CreditLedger,
        admin: str,
        verbose: bool = True,
    ):
        """
        Create a pool.

        Args:
            name: Pool identifier; also its wallet and its credit-ledger identity
            ledger: Custody ledger holding every balance
            oracle: Price source for collateral and debt valuation
            credit: Credit-score ledger (the pool must be authorized on it)
            admin: Identity allowed to register assets
            verbose: Print committed events and rollbacks (default: True)
        """
        self.name = name
        self.ledger = ledger
        self.oracle = oracle
        self.credit = credit
        self.verbose = verbose

        self.pool_wallet = name
        self.escrow_wallet = f"{name}:collateral"
        for wallet in (self.pool_wallet, self.escrow_wallet):
            if not ledger.is_registered(wallet):
                ledger.register_wallet(wallet)

        self.registry = AssetRegistry(admin)
        self.book = LoanBook()
        self.interest = InterestModel(self.registry, credit)
        self.liquidation = LiquidationEngine(self.registry, self.interest, oracle)

        self.events: List[PoolEvent] = []
        self._pathways: Dict[str, TransferPathway] = {}
        self._shares: Dict[str, ShareToken] = {}
        self._receivers: Dict[str, ReceiveHook] = {}
        self._nonce = 0
        self._entered = False

    # ========================================================================
    # ADMIN
    # ========================================================================

    def add_asset(
        self,
        caller: str,
        asset: str,
        collateral_ratio: int,
        liquidation_ratio: int,
        base_apr: int,
        apr_floor: int,
        liquidation_bonus: int,
        can_be_collateral: bool,
        can_be_borrowed: bool,
    ) -> AssetConfig:
        """
        Register or re-register ``asset``. Admin only.

        The transfer pathway follows the asset's ledger unit: a NATIVE unit
        travels as attached value, anything else is pulled explicitly.
        Re-registering binds a new share token and orphans the old one.

        Raises:
            AuthorizationError: If caller is not the admin
            ValidationError: If the asset's unit is unknown to the ledger, or
                             the configuration is inconsistent
        """
        with self._operation("add_asset"):
            try:
                unit = self.ledger.get_unit(asset)
            except UnitNotRegistered as exc:
                raise ValidationError(f"Asset {asset} has no unit in ledger {self.ledger.name}") from exc

            config = self.registry.add_asset(
                caller, asset,
                collateral_ratio, liquidation_ratio,
                base_apr, apr_floor, liquidation_bonus,
                can_be_collateral, can_be_borrowed,
                native=unit.unit_type == UNIT_TYPE_NATIVE,
            )
            generation = int(config.share_token.rsplit("-", 1)[1])
            share_unit = share_token_unit(config.share_token, asset, generation, self.name)
            self._settle("add_asset", asset, [], units_to_create=(share_unit,))

            self._pathways[asset] = pathway_for(asset, config.native)
            self._shares[asset] = ShareToken(self.ledger, config.share_token, asset)
        return config

    def register_receiver(self, wallet: str, hook: ReceiveHook) -> None:
        """Run ``hook`` whenever a native payment from this pool reaches ``wallet``."""
        self._receivers[wallet] = hook

    # ========================================================================
    # LENDERS
    # ========================================================================

    def deposit(self, caller: str, asset: str, amount: int = 0, value: int = 0) -> int:
        """
        Supply ``asset`` to the pool and receive shares at the current exchange rate.

        For the native asset the deposit is the attached ``value``; for any
        other asset ``amount`` is pulled and ``value`` must be 0.

        Returns:
            Shares minted to the caller

        Raises:
            ValidationError: Unsupported/inactive asset, zero amount, wrong pathway
            InsufficientFundsError: Caller cannot cover the transfer
        """
        with self._operation("deposit"):
            self.registry.get_active(asset)
            pathway = self._pathways[asset]
            amount = pathway.resolve_amount(amount, value)
            if amount <= 0:
                raise ValidationError(f"Deposit amount must be positive, got {amount}")

            rate = self.get_exchange_rate(asset)
            if rate <= 0:
                raise StateError(f"{asset} shares are outstanding but the pool holds no value")
            shares = shares_for_deposit(amount, rate)

            self._ensure_wallet(caller)
            pull = pathway.transfer(amount, caller, self.pool_wallet, self._contract_id("deposit", "pull"))
            self._settle("deposit", asset, pull)
            mint = mint_moves(self._shares[asset].symbol, caller, shares, self._contract_id("deposit", "mint"))
            self._settle("deposit", asset, mint)

            self._emit(Deposit(caller, asset, amount, shares, self.ledger.current_time))
        return shares

    def withdraw(self, caller: str, asset: str, share_amount: int) -> int:
        """
        Burn shares and receive their value in ``asset``.

        Returns:
            Amount paid out

        Raises:
            ValidationError: Zero shares, or more than the caller holds
            InsufficientFundsError: Payout exceeds available liquidity (cash on
                                    hand; amounts out on loan do not count)
        """
        with self._operation("withdraw"):
            self.registry.get(asset)
            token = self._shares[asset]
            held = token.balance_of(caller)
            if share_amount <= 0:
                raise ValidationError(f"Share amount must be positive, got {share_amount}")
            if share_amount > held:
                raise ValidationError(f"{caller} holds {held} {token.symbol}, cannot withdraw {share_amount}")

            rate = self.get_exchange_rate(asset)
            payout = payout_for_shares(share_amount, rate)
            liquidity = self.available_liquidity(asset)
            if payout > liquidity:
                raise InsufficientFundsError(
                    f"Withdrawal of {payout} {asset} exceeds available liquidity {liquidity}"
                )

            burn = burn_moves(token.symbol, caller, share_amount, self._contract_id("withdraw", "burn"))
            self._settle("withdraw", asset, burn)
            self._pay(asset, caller, payout, "withdraw")

            self._emit(Withdraw(caller, asset, share_amount, payout, self.ledger.current_time))
        return payout

    # ========================================================================
    # BORROWERS
    # ========================================================================

    def borrow(
        self,
        caller: str,
        collateral_asset: str,
        borrow_asset: str,
        collateral_amount: int,
        borrow_amount: int,
        value: int = 0,
    ) -> int:
        """
        Lock collateral and draw a loan.

        The collateral follows its asset's pathway (attached ``value`` for the
        native asset). The loan's APR is fixed now from the caller's credit score.

        Returns:
            The new loan id

        Raises:
            ValidationError: Wrong asset roles, zero amounts, wrong pathway
            InsufficientFundsError: Borrow value above the collateral's limit,
                                    or above available liquidity
        """
        with self._operation("borrow"):
            if borrow_amount <= 0:
                raise ValidationError(f"Borrow amount must be positive, got {borrow_amount}")
            collateral_config = self.registry.get_active(collateral_asset)
            if not collateral_config.can_be_collateral:
                raise ValidationError(f"{collateral_asset} cannot be used as collateral")
            borrow_config = self.registry.get_active(borrow_asset)
            if not borrow_config.can_be_borrowed:
                raise ValidationError(f"{borrow_asset} cannot be borrowed")

            collateral_pathway = self._pathways[collateral_asset]
            collateral_amount = collateral_pathway.resolve_amount(collateral_amount, value)
            if collateral_amount <= 0:
                raise ValidationError(f"Collateral amount must be positive, got {collateral_amount}")

            self._ensure_wallet(caller)
            pull = collateral_pathway.transfer(
                collateral_amount, caller, self.escrow_wallet, self._contract_id("borrow", "pull")
            )
            self._settle("borrow", collateral_asset, pull)

            limit = max_borrow_value(
                self.value_of(collateral_asset, collateral_amount),
                collateral_config.collateral_ratio,
            )
            borrow_value = self.value_of(borrow_asset, borrow_amount)
            if borrow_value > limit:
                raise InsufficientFundsError(
                    f"Borrow value {borrow_value} exceeds collateral limit {limit}"
                )
            liquidity = self.available_liquidity(borrow_asset)
            if borrow_amount > liquidity:
                raise InsufficientFundsError(
                    f"Borrow of {borrow_amount} {borrow_asset} exceeds available liquidity {liquidity}"
                )

            now = self.ledger.current_time
            apr = self.interest.apr_for(caller, borrow_asset)
            loan = self.book.open(
                caller, collateral_asset, borrow_asset,
                borrow_amount, collateral_amount, apr, now,
            )
            self._pay(borrow_asset, caller, borrow_amount, "borrow")

            self._emit(Borrow(caller, loan.loan_id, loan.principal, loan.collateral, apr, now))
        return loan.loan_id

    def repay(self, caller: str, loan_id: int, repay_amount: int = 0, value: int = 0) -> bool:
        """
        Pay down a loan.

        The payment is the attached ``value`` for a native borrow asset, else
        ``repay_amount`` pulled in full. A payment covering principal plus
        interest closes the loan, returns the collateral, refunds the excess
        and raises the borrower's credit score. A smaller payment capitalizes
        unpaid interest into principal and restarts the interest clock; it
        leaves the asset aggregates untouched and emits no event.

        Returns:
            True if the loan was closed

        Raises:
            StateError: Loan inactive or nonexistent, or caller is not the borrower
            ValidationError: Zero payment, wrong pathway
        """
        with self._operation("repay"):
            loan = self.book.require_active(loan_id)
            if loan.borrower != caller:
                raise StateError(f"{caller} is not the borrower of loan {loan_id}")

            now = self.ledger.current_time
            interest = self.interest.owed(loan, now)
            total_owed = loan.principal + interest

            pathway = self._pathways[loan.borrow_asset]
            payment = pathway.resolve_amount(repay_amount, value)
            if payment <= 0:
                raise ValidationError(f"Repayment must be positive, got {payment}")

            pull = pathway.transfer(payment, caller, self.pool_wallet, self._contract_id("repay", "pull"))
            self._settle("repay", loan.borrow_asset, pull)

            if payment < total_owed:
                self.book.capitalize(loan_id, total_owed - payment, now)
                return False

            self.book.close(loan_id, interest)
            self._release_collateral(loan, caller, loan.collateral, "repay")
            self._pay(loan.borrow_asset, caller, payment - total_owed, "repay")
            self.credit.increase_score(self.name, caller, REPAY_SCORE_REWARD)

            self._emit(Repay(caller, loan_id, loan.principal, interest, now))
        return True

    # ========================================================================
    # LIQUIDATORS
    # ========================================================================

    def liquidate(self, caller: str, loan_id: int, value: int = 0) -> int:
        """
        Close an unhealthy loan by paying its total debt; receive its collateral.

        For a native borrow asset the attached ``value`` must cover the debt
        and any excess is kept by the pool. For other assets exactly the
        total debt is pulled.

        Returns:
            Collateral paid to the liquidator

        Raises:
            StateError: Loan inactive or nonexistent
            HealthError: Collateral ratio is not below the liquidation ratio
            InsufficientFundsError: Attached value below the total debt, or
                                    caller cannot cover the pull
        """
        with self._operation("liquidate"):
            loan = self.book.require_active(loan_id)
            now = self.ledger.current_time
            plan = self.liquidation.plan(loan, now)

            pathway = self._pathways[loan.borrow_asset]
            supplied = pathway.resolve_settlement(plan.total_debt, value)

            self._ensure_wallet(caller)
            pull = pathway.transfer(supplied, caller, self.pool_wallet, self._contract_id("liquidate", "pull"))
            self._settle("liquidate", loan.borrow_asset, pull)

            self.book.close(loan_id, plan.interest)
            self._release_collateral(loan, caller, plan.reward, "liquidate")
            if plan.remainder > 0:
                # Protocol share stays in the pool as lender income.
                retained = self._pathways[loan.collateral_asset].transfer(
                    plan.remainder, self.escrow_wallet, self.pool_wallet,
                    self._contract_id("liquidate", "retain"),
                )
                self._settle("liquidate", loan.collateral_asset, retained)
                self.book.credit_interest(loan.collateral_asset, plan.remainder)
            self.credit.decrease_score(self.name, loan.borrower, LIQUIDATION_SCORE_PENALTY)

            self._emit(Liquidate(caller, loan.borrower, loan_id, loan.collateral, plan.reward, now))
        return plan.reward

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def available_liquidity(self, asset: str) -> int:
        """Cash the pool holds in ``asset``; excludes amounts on loan and posted collateral."""
        self.registry.get(asset)
        return to_amount(self.ledger.get_balance(self.pool_wallet, asset))

    def get_exchange_rate(self, asset: str) -> int:
        """WAD-scaled pool value per share of ``asset``."""
        return exchange_rate(
            self.available_liquidity(asset),
            self.book.balance(asset).total_borrowed,
            self._shares[asset].total_supply(),
        )

    def interest_owed(self, loan_id: int) -> int:
        """Interest accrued on the loan right now; 0 for closed or unknown loans."""
        return self.interest.owed(self.book.get(loan_id), self.ledger.current_time)

    def value_of(self, asset: str, amount: int) -> int:
        return value_of(self.oracle, asset, amount)

    def utilization_rate(self, asset: str) -> int:
        """Borrowed share of the asset's pool value, in bps."""
        borrowed = self.book.balance(asset).total_borrowed
        total = self.available_liquidity(asset) + borrowed
        if total <= 0 or borrowed <= 0:
            return 0
        return min(BPS, borrowed * BPS // total)

    def get_loan(self, loan_id: int) -> Loan:
        return self.book.get(loan_id)

    def loans_of(self, borrower: str) -> List[int]:
        return self.book.loans_of(borrower)

    def asset_balance(self, asset: str) -> AssetBalance:
        return self.book.balance(asset)

    def asset_config(self, asset: str) -> AssetConfig:
        return self.registry.get(asset)

    def supported_assets(self) -> List[str]:
        return self.registry.supported_assets()

    def share_token(self, asset: str) -> ShareToken:
        self.registry.get(asset)
        return self._shares[asset]

    def share_balance(self, asset: str, holder: str) -> int:
        return self.share_token(asset).balance_of(holder)

    def share_supply(self, asset: str) -> int:
        return self.share_token(asset).total_supply()

    def loan_health(self, loan_id: int) -> LoanHealth:
        """
        Health snapshot of a loan.

        Raises:
            StateError: If the loan was never issued
        """
        loan = self.book.get(loan_id)
        if loan.loan_id == 0:
            raise StateError(f"Loan {loan_id} does not exist")
        return self.liquidation.assess(loan, self.ledger.current_time)

    def events_of(self, kind: Type[PoolEvent]) -> List[PoolEvent]:
        return [event for event in self.events if isinstance(event, kind)]

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._entered:
            raise ReentrancyError(f"{name}: pool {self.name} is already executing an operation")
        self._entered = True
        checkpoint = self.ledger.checkpoint()
        state_snapshot = self._snapshot()
        self._nonce += 1
        try:
            yield
        except Exception as exc:
            self.ledger.rollback(checkpoint)
            self._restore(state_snapshot)
            if self.verbose:
                print(f"✗ ROLLED BACK {name}: {type(exc).__name__}: {exc}")
            raise
        finally:
            self._entered = False

    def _snapshot(self):
        return (
            copy.deepcopy(self.registry),
            copy.deepcopy(self.book),
            len(self.events),
            dict(self._pathways),
            dict(self._shares),
            self._nonce,
        )

    def _restore(self, snapshot) -> None:
        registry, book, event_count, pathways, shares, nonce = snapshot
        # The interest model and liquidation engine hold references to these.
        vars(self.registry).update(vars(registry))
        vars(self.book).update(vars(book))
        del self.events[event_count:]
        self._pathways = pathways
        self._shares = shares
        self._nonce = nonce

    def _contract_id(self, op: str, leg: str) -> str:
        return f"{self.name}:{op}:{self._nonce}:{leg}"

    def _ensure_wallet(self, wallet: str) -> None:
        if not self.ledger.is_registered(wallet):
            self.ledger.register_wallet(wallet)

    def _settle(self, op: str, asset: str, moves: List[Move], units_to_create=()) -> None:
        if not moves and not units_to_create:
            return
        pending = PendingTransaction(
            moves=tuple(moves),
            origin=TransactionOrigin(OriginType.CONTRACT, self.name, asset, op.upper()),
            timestamp=self.ledger.current_time,
            units_to_create=tuple(units_to_create),
        )
        result = self.ledger.execute(pending)
        if result != ExecuteResult.APPLIED:
            raise InsufficientFundsError(f"{op}: transfer of {asset} rejected by ledger {self.ledger.name}")

    def _pay(self, asset: str, recipient: str, amount: int, op: str) -> None:
        """Pay ``amount`` of ``asset`` out of pool cash and notify the recipient."""
        self._send(asset, self.pool_wallet, recipient, amount, op)

    def _release_collateral(self, loan: Loan, recipient: str, amount: int, op: str) -> None:
        self._send(loan.collateral_asset, self.escrow_wallet, recipient, amount, op)

    def _send(self, asset: str, source: str, recipient: str, amount: int, op: str) -> None:
        pathway = self._pathways[asset]
        moves = pathway.transfer(amount, source, recipient, self._contract_id(op, f"pay-{asset}"))
        self._settle(op, asset, moves)
        hook = self._receivers.get(recipient)
        if moves and hook is not None and pathway.notifies_receiver:
            hook(self, asset, amount)

    def _emit(self, event: PoolEvent) -> None:
        self.events.append(event)
        if self.verbose:
            print(f"✓ {event}")

    def __repr__(self) -> str:
        return (
            f"LendingPool({self.name}, {len(self.registry.supported_assets())} assets, "
            f"{self.book.last_loan_id} loans)"
        )
