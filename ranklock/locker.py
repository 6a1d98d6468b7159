"""
locker.py - Ranked timelock orchestrator

RankLocker is the only class that mutates lock state. It ties together the
rank table, the per-account timelock store, the settlement algorithms and the
two token collaborators.

Key responsibilities:
    - Validates every precondition before touching state
    - Runs settlement on a working copy of the account, commits it only after
      the token side effects succeeded (all-or-nothing)
    - Restricts rank administration to the operator identity
    - Emits DEPOSIT / WITHDRAW / NEW_RANK / MODIFY_RANK events

Thread Safety:
    Every mutation and every rank lookup runs under one re-entrant lock, so a
    rank change never lands in the middle of a deposit or withdrawal.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
import threading

from .core import (
    Rank, LockRecord, RankBalance, LockerEvent,
    ErrorKind, ExecuteResult, OperationResult,
    MAX_LOCKS_PER_ACCOUNT,
    EVENT_DEPOSIT, EVENT_WITHDRAW, EVENT_NEW_RANK, EVENT_MODIFY_RANK,
    LockerError,
    applied, rejected,
)
from .rank_table import RankTable
from .timelocks import AccountLedger, TimelockStore
from .tokens import ValueToken, ReceiptToken
from . import settlement


EventSubscriber = Callable[[LockerEvent], None]


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class RankLocker:
    """
    Tiered commitment ledger.

    Accounts deposit value at a rank; each deposit is locked for the rank's
    min_duration. Reaching a rank's goal releases everything the account
    holds below it. Falling short, the depositor may consolidate lower ranks
    upward instead.

    Example:
        locker = RankLocker("locker", "admin", value_token, receipt_token,
                            initial_time=datetime(2025, 1, 1))
        locker.add_rank("admin", timedelta(days=10), 100)
        locker.deposit("alice", 60, 0)
        locker.advance_time(datetime(2025, 1, 11))
        locker.withdraw("alice", 60, 0)
    """

    def __init__(
        self,
        name: str,
        operator: str,
        value_token: ValueToken,
        receipt_token: ReceiptToken,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        max_locks_per_account: int = MAX_LOCKS_PER_ACCOUNT,
        legacy_neighbor_check: bool = False,
    ):
        """
        Create a locker.

        Args:
            name: Locker identity; must hold the receipt token's mint authority
            operator: The only identity allowed to add or modify ranks
            value_token: Token deposited and withdrawn
            receipt_token: Token minted on deposit and burned on withdrawal
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print one line per operation (default: True)
            max_locks_per_account: Cap on outstanding lock records per account
            legacy_neighbor_check: See RankTable

        Raises:
            LockerError: If the receipt token's minter is not this locker
        """
        if receipt_token.minter != name:
            raise LockerError(
                f"Locker {name} has no mint authority over receipt token (minter={receipt_token.minter})"
            )
        self.name = name
        self.operator = operator
        self.value_token = value_token
        self.receipt_token = receipt_token
        self.rank_table = RankTable(legacy_neighbor_check=legacy_neighbor_check)
        self.store = TimelockStore(max_locks_per_account)
        self.event_log: List[LockerEvent] = []
        self.verbose = verbose
        self._subscribers: List[EventSubscriber] = []
        self.delivery_errors: List[Tuple[LockerEvent, Exception]] = []
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self._lock = threading.RLock()

    # ========================================================================
    # TIME
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the logical clock forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # READ-ONLY VIEWS
    # ========================================================================

    def ranks(self) -> Tuple[Rank, ...]:
        with self._lock:
            return self.rank_table.snapshot()

    @property
    def rank_count(self) -> int:
        with self._lock:
            return len(self.rank_table)

    def get_rank(self, rank_id: int) -> Optional[Rank]:
        with self._lock:
            return self.rank_table.get(rank_id)

    def balance_of(self, account: str, rank_id: int) -> RankBalance:
        """Copy of the account's balance at a rank (zero if never touched)."""
        with self._lock:
            ledger = self.store.get(account)
            return ledger.peek_balance(rank_id) if ledger is not None else RankBalance()

    def locks_of(self, account: str) -> Tuple[LockRecord, ...]:
        """The account's lock records. Order is not meaningful."""
        with self._lock:
            ledger = self.store.get(account)
            return tuple(ledger.locks) if ledger is not None else ()

    def lock_count(self, account: str) -> int:
        with self._lock:
            return self.store.lock_count(account)

    def total_value(self, account: str) -> int:
        """locked + unlocked over every rank."""
        with self._lock:
            ledger = self.store.get(account)
            return ledger.total_value() if ledger is not None else 0

    def accounts(self) -> List[str]:
        with self._lock:
            return self.store.accounts()

    def peek_expired(self, account: str, rank_id: int) -> int:
        """Amount a sweep would release at `rank_id` now, without sweeping."""
        with self._lock:
            return settlement.peek_expired(self.store.get(account), rank_id, self._current_time)

    # ========================================================================
    # EVENTS
    # ========================================================================

    def subscribe(self, callback: EventSubscriber) -> None:
        """
        Call `callback` with every event emitted from now on.

        Events are delivered after the operation has committed. A callback
        that raises does not undo or fail the operation; the exception is
        recorded in `delivery_errors` and the remaining callbacks still run.
        """
        with self._lock:
            self._subscribers.append(callback)

    def _emit(self, kind: str, **params) -> LockerEvent:
        event = LockerEvent(
            kind=kind,
            timestamp=self._current_time,
            sequence=len(self.event_log),
            params=tuple(params.items()),
        )
        self.event_log.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                self.delivery_errors.append((event, e))
                if self.verbose:
                    print(f"✗ DELIVERY FAILED {event!r}: {e!r}")
        return event

    def _reject(self, error: ErrorKind, reason: str) -> OperationResult:
        if self.verbose:
            print(f"✗ REJECTED [{error.value}]: {reason}")
        return rejected(error, reason)

    # ========================================================================
    # RANK ADMINISTRATION
    # ========================================================================

    def add_rank(self, caller: str, min_duration: timedelta, goal_amount: int) -> OperationResult:
        """
        Append a new highest rank. Operator only.

        Returns:
            APPLIED with the new Rank as payload, or REJECTED with UNAUTHORIZED,
            INVALID_AMOUNT, CAPACITY_EXCEEDED or ORDERING_VIOLATION.
        """
        if caller != self.operator:
            return self._reject(ErrorKind.UNAUTHORIZED, f"{caller} may not add ranks")
        with self._lock:
            result = self.rank_table.add_rank(min_duration, goal_amount)
            if not result.ok:
                return self._reject(result.error, result.reason)
            rank = result.payload
            self._emit(EVENT_NEW_RANK, min_duration=rank.min_duration,
                       goal_amount=rank.goal_amount, id=rank.id)
            if self.verbose:
                print(f"✓ NEW_RANK {rank!r}")
            return result

    def modify_rank(
        self,
        caller: str,
        rank_id: int,
        min_duration: timedelta,
        goal_amount: int,
    ) -> OperationResult:
        """
        Replace an existing rank in place. Operator only.

        Returns:
            APPLIED with the replacement Rank as payload, or REJECTED with
            UNAUTHORIZED, NOT_FOUND, INVALID_AMOUNT or ORDERING_VIOLATION.
        """
        if caller != self.operator:
            return self._reject(ErrorKind.UNAUTHORIZED, f"{caller} may not modify ranks")
        with self._lock:
            result = self.rank_table.modify_rank(rank_id, min_duration, goal_amount)
            if not result.ok:
                return self._reject(result.error, result.reason)
            rank = result.payload
            self._emit(EVENT_MODIFY_RANK, min_duration=rank.min_duration,
                       goal_amount=rank.goal_amount, id=rank.id)
            if self.verbose:
                print(f"✓ MODIFY_RANK {rank!r}")
            return result

    # ========================================================================
    # DEPOSIT / WITHDRAW
    # ========================================================================

    def deposit(
        self,
        account: str,
        amount: int,
        rank_id: int,
        consolidate: bool = False,
    ) -> OperationResult:
        """
        Lock `amount` at `rank_id` for the rank's min_duration.

        If the account's total at the rank (locked + unlocked + amount) reaches
        the goal, every lower holding is released first (promotion). Otherwise,
        if `consolidate` is set, lower holdings are pulled up into the rank.
        Then the deposit is locked, the value is transferred into custody and
        receipts are minted 1:1.

        Returns:
            APPLIED with the settlement report (or None) as payload, or REJECTED
            with INVALID_AMOUNT, TOO_MANY_LOCKS, NO_RANKS_DEFINED, INVALID_RANK
            or TRANSFER_REJECTED. A rejected deposit changes nothing.
        """
        if not _is_positive_int(amount):
            return self._reject(ErrorKind.INVALID_AMOUNT, f"deposit amount must be a positive integer, got {amount!r}")

        with self._lock:
            if self.store.at_capacity(account):
                return self._reject(
                    ErrorKind.TOO_MANY_LOCKS,
                    f"{account} has {self.store.lock_count(account)} outstanding locks",
                )
            if len(self.rank_table) == 0:
                return self._reject(ErrorKind.NO_RANKS_DEFINED, "no ranks defined")
            rank = self.rank_table.get(rank_id)
            if rank is None:
                return self._reject(
                    ErrorKind.INVALID_RANK,
                    f"rank {rank_id!r} not in table of {len(self.rank_table)}",
                )

            now = self._current_time
            working = self.store.working_copy(account)
            current = working.peek_balance(rank.id)
            report = None
            if current.total + amount >= rank.goal_amount:
                report = settlement.promote(working, rank.id)
            elif consolidate:
                report = settlement.consolidate(working, rank, amount, now)

            working.add_lock(LockRecord(expires_at=now + rank.min_duration, amount=amount, rank_id=rank.id))
            working.balance(rank.id).locked += amount

            if working.lock_count > self.store.max_locks_per_account:
                return self._reject(
                    ErrorKind.TOO_MANY_LOCKS,
                    f"deposit would leave {account} with {working.lock_count} locks",
                )

            if self.value_token.transfer_in(account, amount, reference=f"deposit:{account}") != ExecuteResult.APPLIED:
                return self._reject(ErrorKind.TRANSFER_REJECTED, f"value transfer from {account} refused")
            if self.receipt_token.mint(self.name, account, amount, reference=f"deposit:{account}") != ExecuteResult.APPLIED:
                self._compensate(self.value_token.transfer_out(account, amount, reference=f"refund:{account}"))
                return self._reject(ErrorKind.TRANSFER_REJECTED, f"receipt mint to {account} refused")

            self.store.replace(working)
            self._emit(EVENT_DEPOSIT, account=account, amount=amount)
            if self.verbose:
                detail = f" ({report!r})" if report is not None and not report.is_empty() else ""
                print(f"✓ DEPOSIT {account} {amount} @ rank {rank.id}{detail}")
            return applied(report)

    def withdraw(self, account: str, amount: int, rank_id: int) -> OperationResult:
        """
        Release `amount` of unlocked value at `rank_id` back to the account.

        Expired locks are swept first. Receipts are burned 1:1 and the value is
        transferred out of custody.

        Returns:
            APPLIED with the sweep report as payload, or REJECTED with
            INVALID_AMOUNT, INSUFFICIENT_UNLOCKED or TRANSFER_REJECTED.
            A rejected withdrawal changes nothing, including the sweep.
        """
        if not _is_positive_int(amount):
            return self._reject(ErrorKind.INVALID_AMOUNT, f"withdraw amount must be a positive integer, got {amount!r}")

        with self._lock:
            working = self.store.working_copy(account)
            report = settlement.sweep_expired(working, self._current_time)

            available = working.peek_balance(rank_id).unlocked
            if available < amount:
                return self._reject(
                    ErrorKind.INSUFFICIENT_UNLOCKED,
                    f"{account} has {available} unlocked at rank {rank_id!r}, requested {amount}",
                )
            working.balance(rank_id).unlocked -= amount

            if self.receipt_token.burn(self.name, account, amount, reference=f"withdraw:{account}") != ExecuteResult.APPLIED:
                return self._reject(ErrorKind.TRANSFER_REJECTED, f"receipt burn from {account} refused")
            if self.value_token.transfer_out(account, amount, reference=f"withdraw:{account}") != ExecuteResult.APPLIED:
                self._compensate(self.receipt_token.mint(self.name, account, amount, reference=f"restore:{account}"))
                return self._reject(ErrorKind.TRANSFER_REJECTED, f"value transfer to {account} refused")

            self.store.replace(working)
            self._emit(EVENT_WITHDRAW, account=account, amount=amount)
            if self.verbose:
                print(f"✓ WITHDRAW {account} {amount} @ rank {rank_id}")
            return applied(report)

    def sweep_expired(self, account: str) -> OperationResult:
        """Convert the account's expired locks to unlocked value now."""
        with self._lock:
            ledger = self.store.get(account)
            if ledger is None:
                return applied(settlement.SettlementReport(kind=settlement.SETTLEMENT_SWEEP, account=account))
            report = settlement.sweep_expired(ledger, self._current_time)
            if self.verbose and not report.is_empty():
                print(f"✓ SWEEP {report!r}")
            return applied(report)

    def _compensate(self, result: ExecuteResult) -> None:
        if result != ExecuteResult.APPLIED:
            raise LockerError(f"Compensating token transfer failed for locker {self.name}: {result.value}")

    # ========================================================================
    # AUDIT
    # ========================================================================

    def verify_account(self, account: str) -> Dict[str, Any]:
        """
        Check that each rank's locked bucket equals the sum of the account's
        lock records at that rank, and that no bucket is negative.

        Returns:
            Dict with 'valid' and 'discrepancies'
        """
        with self._lock:
            ledger = self.store.get(account)
            if ledger is None:
                return {'valid': True, 'discrepancies': []}
            by_records = ledger.locked_by_records()
            discrepancies = []
            for rank_id in sorted(set(by_records) | set(ledger.balances)):
                bal = ledger.peek_balance(rank_id)
                expected = by_records.get(rank_id, 0)
                if bal.locked != expected or bal.locked < 0 or bal.unlocked < 0:
                    discrepancies.append({
                        'rank_id': rank_id,
                        'locked': bal.locked,
                        'unlocked': bal.unlocked,
                        'records': expected,
                    })
            return {'valid': not discrepancies, 'discrepancies': discrepancies}

    def verify_custody(self) -> Dict[str, Any]:
        """
        Check that value held by all accounts matches custody and receipt supply.

        Returns:
            Dict with 'valid', 'ledger_total', 'custody', 'receipt_supply'
        """
        with self._lock:
            ledger_total = sum(ledger.total_value() for _, ledger in self.store)
            custody = self.value_token.custody_balance()
            receipt_supply = self.receipt_token.supply()
            return {
                'valid': ledger_total == custody == receipt_supply,
                'ledger_total': ledger_total,
                'custody': custody,
                'receipt_supply': receipt_supply,
            }
