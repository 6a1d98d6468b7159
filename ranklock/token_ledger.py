"""
token_ledger.py - Double-entry ledger for the value and receipt tokens

The TokenLedger records wallet balances for every registered TokenUnit and
applies PendingTransactions atomically: every move applies or none does.

Key responsibilities:
    - Validates balances before applying (non-system wallets cannot go below
      the unit's min_balance; SYSTEM_WALLET is exempt, it issues and retires)
    - Refuses to apply the same intent_id twice
    - Logs every applied Transaction
    - Tracks a logical clock that only moves forward

Thread Safety:
    Not thread-safe on its own. RankLocker serializes its calls.
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple, Any

from .core import (
    TokenUnit, Move, PendingTransaction, Transaction, ExecuteResult,
    SYSTEM_WALLET,
    UnitNotRegistered, WalletNotRegistered,
)


class TokenLedger:
    """
    Double-entry token ledger with validation and a transaction log.

    Example:
        tokens = TokenLedger("tokens", verbose=False)
        tokens.register_unit(value_token_unit("VAL", "Value Token"))
        tokens.register_wallet("alice")
        tokens.execute(build_transaction(
            [Move(Decimal("1000"), "VAL", SYSTEM_WALLET, "alice", "faucet")],
            tokens.current_time,
        ))
    """

    def __init__(self, name: str, initial_time: Optional[datetime] = None, verbose: bool = True):
        """
        Create a token ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time (default: 1970-01-01)
            verbose: Print one line per execution (default: True)
        """
        self.name = name
        self.units: Dict[str, TokenUnit] = {}
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.balances: Dict[str, Dict[str, Decimal]] = {
            SYSTEM_WALLET: defaultdict(lambda: Decimal("0")),
        }
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self._next_sequence: int = 0
        self.verbose = verbose

    # ========================================================================
    # READ-ONLY ACCESS
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Balance of a unit in a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.balances[wallet_id].get(unit_symbol, Decimal("0"))

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def list_wallets(self) -> Set[str]:
        return self.registered_wallets.copy()

    def total_supply(self, unit_symbol: str) -> Decimal:
        """
        Sum of a unit over every wallet, system included.

        Always zero for a unit that only moves between wallets, since the
        system wallet's balance goes negative by exactly what it issued.
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(
            (self.balances[w].get(unit_symbol, Decimal("0")) for w in sorted(self.registered_wallets)),
            Decimal("0"),
        )

    def circulating_supply(self, unit_symbol: str) -> Decimal:
        """Amount of a unit held outside the system wallet."""
        return self.total_supply(unit_symbol) - self.get_balance(SYSTEM_WALLET, unit_symbol)

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Check that every unit's total supply across all wallets is zero.

        Returns:
            Dict with 'valid', 'supplies' and 'discrepancies'
        """
        supplies = {symbol: self.total_supply(symbol) for symbol in sorted(self.units)}
        discrepancies = [
            {'unit': symbol, 'actual': supply}
            for symbol, supply in supplies.items()
            if supply != 0
        ]
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # TIME AND REGISTRATION
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

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a wallet.

        Raises:
            ValueError: If wallet is already registered
        """
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(lambda: Decimal("0"))
        return wallet_id

    def ensure_wallet(self, wallet_id: str) -> str:
        """Register a wallet unless it already exists."""
        if wallet_id not in self.registered_wallets:
            self.register_wallet(wallet_id)
        return wallet_id

    def register_unit(self, unit: TokenUnit) -> None:
        """
        Register a token unit.

        Raises:
            ValueError: If the symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Apply a PendingTransaction atomically.

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

        valid, reason = self._validate_pending(pending)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            moves=pending.moves,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=f"exec:{self.name}:{sequence:012d}",
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        for move in tx.moves:
            self.balances[move.source][move.unit_symbol] -= move.quantity
            self.balances[move.dest][move.unit_symbol] += move.quantity

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            print(f"✓ APPLIED {tx!r}")
        return ExecuteResult.APPLIED

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Check registration and balance constraints for every move.

        Returns:
            (True, "") if valid, otherwise (False, reason)
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        net: Dict[Tuple[str, str], Decimal] = {}
        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            if move.source not in self.registered_wallets:
                return False, f"wallet not registered: {move.source}"
            if move.dest not in self.registered_wallets:
                return False, f"wallet not registered: {move.dest}"
            key_src = (move.source, move.unit_symbol)
            key_dst = (move.dest, move.unit_symbol)
            net[key_src] = net.get(key_src, Decimal("0")) - move.quantity
            net[key_dst] = net.get(key_dst, Decimal("0")) + move.quantity

        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.balances[wallet][unit_sym] + delta
            unit = self.units[unit_sym]
            if proposed < unit.min_balance:
                return False, f"{wallet} {unit_sym}: {proposed} < min {unit.min_balance}"

        return True, ""
